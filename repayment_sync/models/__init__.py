"""Domain models for the repayment sync pipeline."""

from .record import (
    CanonicalRecord,
    Instalment,
    RawRow,
    RecordStatus,
    id_placeholder,
    name_placeholder,
)
from .statistics import AggregateStatistics, SheetKpi, SyncResult, empty_status_counts

__all__ = [
    # Record models
    "CanonicalRecord",
    "Instalment",
    "RawRow",
    "RecordStatus",
    "id_placeholder",
    "name_placeholder",
    # Result models
    "AggregateStatistics",
    "SheetKpi",
    "SyncResult",
    "empty_status_counts",
]
