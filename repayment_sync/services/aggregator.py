from __future__ import annotations

import math
from collections.abc import Iterable

import pandas as pd

from ..models.record import CanonicalRecord
from ..models.statistics import AggregateStatistics, empty_status_counts

"""Roll-up of canonical records into AggregateStatistics.

Sums use math.fsum so the totals do not depend on record order.
"""

__all__ = [
    "aggregate",
    "records_frame",
    "RECORD_COLUMNS",
]

RECORD_COLUMNS = [
    "id",
    "borrowerName",
    "loanAmount",
    "remainingAmount",
    "repaidAmount",
    "loanDate",
    "repaymentDate",
    "daysUntilRepayment",
    "status",
    "note",
]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate(records: Iterable[CanonicalRecord]) -> AggregateStatistics:
    """Fold records into totals, status counts and the average days to due.

    The average only covers records whose day count is defined and >= 0
    (overdue records are excluded); it is 0 when none qualify.
    """
    loans: list[float] = []
    remaining: list[float] = []
    repaid: list[float] = []
    counts = empty_status_counts()
    day_total = 0
    day_count = 0

    for record in records:
        loans.append(record.loan_amount)
        remaining.append(record.remaining_amount)
        repaid.append(record.repaid_amount)
        counts[record.status] += 1
        days = record.days_until_repayment
        if days is not None and days >= 0:
            day_total += days
            day_count += 1

    total_loan = math.fsum(loans)
    total_repaid = math.fsum(repaid)
    return AggregateStatistics(
        total_loan_amount=total_loan,
        total_remaining_amount=math.fsum(remaining),
        total_repaid_amount=total_repaid,
        status_counts=counts,
        average_days_until_repayment=_round_half_up(day_total / day_count) if day_count else 0,
        record_count=len(loans),
        repayment_rate=total_repaid / total_loan if total_loan > 0 else 0.0,
    )


def records_frame(records: Iterable[CanonicalRecord]) -> pd.DataFrame:
    """Tabular view of the records (canonical column names, status labels)."""
    rows = [{k: v for k, v in r.to_dict().items() if k != "original"} for r in records]
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    # nullable int so that missing day counts do not turn the column into float
    df["daysUntilRepayment"] = df["daysUntilRepayment"].astype("Int64")
    return df
