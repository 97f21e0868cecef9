from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from ..config.loader import DashboardConfig, today_in
from ..models.statistics import AggregateStatistics, SyncResult
from ..sources import Source, read_source_table
from .aggregator import aggregate
from .kpi import sheet_kpi
from .normalizer import normalize_rows
from .sample_data import sample_source
from .transport import SheetTransport, TransportError

"""Sync pipeline: source -> RawRows -> CanonicalRecords -> statistics.

One SyncPipeline instance serves one synchronization request. Nothing is
cached between runs; every call rebuilds the full dataset from the source.
The only suspension point is the transport fetch in sync().
"""

__all__ = [
    "SyncPipeline",
]

logger = logging.getLogger(__name__)


class SyncPipeline:
    """Runs read/normalize/aggregate for one DashboardConfig.

    Args:
        config: Dashboard settings (delimiter, header heuristics, aliases, ...)
        transport: Fetch collaborator; a SheetTransport is created per sync()
            call when omitted
        today: Fixed reference date for status derivation (defaults to the
            current date in config.timezone at run time)
    """

    def __init__(
        self,
        config: DashboardConfig,
        transport: SheetTransport | None = None,
        today: date | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self.today = today

    def _reference_date(self) -> date:
        return self.today or today_in(self.config.timezone)

    def run_source(self, source: Source, warnings: list[str] | None = None) -> SyncResult:
        """Synchronously turn one source into records and statistics."""
        fetched_at = datetime.now(UTC)
        table = read_source_table(
            source,
            keywords=self.config.header_keywords,
            scan_limit=self.config.header_scan_limit,
        )
        kpi = sheet_kpi(table.preamble)
        if not table.rows:
            logger.warning(f"no rows in {source.kind} source")
            return SyncResult(
                records=[],
                statistics=AggregateStatistics.empty(),
                source_kind=source.kind,
                fetched_at=fetched_at,
                warnings=list(warnings or []),
                kpi=kpi,
            )

        normalized = normalize_rows(
            table.rows,
            today=self._reference_date(),
            aliases=self.config.column_aliases,
            tz=self.config.timezone,
        )
        statistics = aggregate(normalized.records)
        logger.info(
            f"normalized {len(normalized.records)} record(s) from {len(table.rows)} row(s), "
            f"skipped={normalized.skipped}"
        )
        return SyncResult(
            records=normalized.records,
            statistics=statistics,
            source_kind=source.kind,
            fetched_at=fetched_at,
            skipped_rows=normalized.skipped,
            warnings=list(warnings or []),
            kpi=kpi,
        )

    async def sync(self) -> SyncResult:
        """Fetch through the transport and run the pipeline.

        Raises:
            TransportError: when the fetch fails and fallback_to_sample is off
        """
        transport = self.transport or SheetTransport(self.config)
        try:
            source = await transport.fetch()
        except TransportError as e:
            if not self.config.fallback_to_sample:
                raise
            message = f"fetch failed, showing sample data instead: {e}"
            logger.warning(message)
            return self.run_source(sample_source(), warnings=[message])
        finally:
            if self.transport is None:
                await transport.aclose()
        return self.run_source(source)
