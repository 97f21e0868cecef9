from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .record import CanonicalRecord, RecordStatus

"""Roll-up statistics and per-sync result models.

Both are derived on every sync and never persisted.
"""

__all__ = [
    "AggregateStatistics",
    "SheetKpi",
    "SyncResult",
    "empty_status_counts",
]


def empty_status_counts() -> dict[RecordStatus, int]:
    return {status: 0 for status in RecordStatus}


@dataclass(frozen=True)
class AggregateStatistics:
    """Totals over a set of CanonicalRecords."""
    total_loan_amount: float
    total_remaining_amount: float
    total_repaid_amount: float
    status_counts: dict[RecordStatus, int]
    average_days_until_repayment: int
    record_count: int = 0
    repayment_rate: float = 0.0  # total_repaid / total_loan

    @staticmethod
    def empty() -> AggregateStatistics:
        return AggregateStatistics(
            total_loan_amount=0.0,
            total_remaining_amount=0.0,
            total_repaid_amount=0.0,
            status_counts=empty_status_counts(),
            average_days_until_repayment=0,
        )


@dataclass(frozen=True)
class SheetKpi:
    """KPI block found above the header of a hand-kept sheet.

    Values are what the sheet itself states; None when the label is absent.
    They are reported next to the computed statistics, never merged into them.
    """
    total_requested: float | None = None
    total_repaid: float | None = None
    repayment_rate: float | None = None  # 0..1

    @property
    def total_remaining(self) -> float | None:
        if self.total_requested is None or self.total_repaid is None:
            return None
        return self.total_requested - self.total_repaid


@dataclass(frozen=True)
class SyncResult:
    """Output of one synchronization run."""
    records: list[CanonicalRecord]
    statistics: AggregateStatistics
    source_kind: str  # csv / json / excel / sample
    fetched_at: datetime
    skipped_rows: int = 0
    warnings: list[str] = field(default_factory=list)
    kpi: SheetKpi | None = None

    @property
    def degraded(self) -> bool:
        """True when the records come from the built-in sample dataset."""
        return self.source_kind == "sample"
