from __future__ import annotations

from collections.abc import Sequence

from ..models.record import CanonicalRecord, RecordStatus
from ..models.statistics import SyncResult
from .aggregator import records_frame
from .formatters import dday_label, format_currency, mask_ssn

"""SUMMARY line and record table rendering for the CLI.

Line format:
SUMMARY records={n} skipped={n} loan={amount} remaining={amount}
repaid={amount} rate={0.0000} completed={n} normal={n} warning={n}
overdue={n} undetermined={n} avg_days={n} source={kind}
sheet_requested={amount|-} sheet_repaid={amount|-} sheet_rate={0.0000|-}

The sheet_* keys repeat the KPI block stated above the sheet header; "-"
when the sheet has none.
"""

__all__ = [
    "render_summary_line",
    "render_record_table",
]

SSN_COLUMNS = ("주민번호", "주민등록번호")


def _amount(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _optional_amount(value: float | None) -> str:
    return "-" if value is None else _amount(value)


def render_summary_line(result: SyncResult) -> str:
    """Render the SUMMARY line for one sync result.

    Examples:
        >>> from datetime import datetime, timezone
        >>> from repayment_sync.models.statistics import AggregateStatistics
        >>> r = SyncResult(records=[], statistics=AggregateStatistics.empty(),
        ...                source_kind="csv", fetched_at=datetime.now(timezone.utc))
        >>> render_summary_line(r)  # doctest: +ELLIPSIS
        'SUMMARY records=0 skipped=0 loan=0 remaining=0 repaid=0 rate=0.0000 ...sheet_rate=-'
    """
    stats = result.statistics
    counts = stats.status_counts
    kpi = result.kpi
    rate = "-" if kpi is None or kpi.repayment_rate is None else f"{kpi.repayment_rate:.4f}"
    return (
        f"SUMMARY records={len(result.records)} "
        f"skipped={result.skipped_rows} "
        f"loan={_amount(stats.total_loan_amount)} "
        f"remaining={_amount(stats.total_remaining_amount)} "
        f"repaid={_amount(stats.total_repaid_amount)} "
        f"rate={stats.repayment_rate:.4f} "
        f"completed={counts.get(RecordStatus.COMPLETED, 0)} "
        f"normal={counts.get(RecordStatus.NORMAL, 0)} "
        f"warning={counts.get(RecordStatus.WARNING, 0)} "
        f"overdue={counts.get(RecordStatus.OVERDUE, 0)} "
        f"undetermined={counts.get(RecordStatus.UNDETERMINED, 0)} "
        f"avg_days={stats.average_days_until_repayment} "
        f"source={result.source_kind} "
        f"sheet_requested={_optional_amount(kpi.total_requested if kpi else None)} "
        f"sheet_repaid={_optional_amount(kpi.total_repaid if kpi else None)} "
        f"sheet_rate={rate}"
    )


def _ssn_of(record: CanonicalRecord) -> str:
    for column in SSN_COLUMNS:
        value = record.original.get(column)
        if value:
            return mask_ssn(str(value))
    return ""


def render_record_table(records: Sequence[CanonicalRecord]) -> str:
    """Human readable table of the records (amounts in won, D-day labels)."""
    if not records:
        return "(no records)"
    df = records_frame(records)
    for col in ("loanAmount", "remainingAmount", "repaidAmount"):
        df[col] = df[col].map(format_currency)
    df["dday"] = [dday_label(r.days_until_repayment) for r in records]
    df["ssn"] = [_ssn_of(r) for r in records]
    df = df.drop(columns=["daysUntilRepayment", "loanDate"])
    df["repaymentDate"] = df["repaymentDate"].fillna("-")
    if not df["ssn"].any():
        df = df.drop(columns=["ssn"])
    return df.to_string(index=False)
