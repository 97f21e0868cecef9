"""Source variants accepted by the sync pipeline.

A source is one of:

- RawTextSource: a delimited-text blob (CSV export of the sheet)
- PreNormalizedSource: field-maps already produced by an intermediary
  (script backend JSON feed, or canonical records from a previous run)
- WorkbookSource: a local .xlsx/.csv copy of the sheet
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .reader import (
    HEADER_SCAN_LIMIT,
    SheetTable,
    SourceError,
    read_delimited_table,
    read_workbook_table,
)

__all__ = [
    "RawTextSource",
    "PreNormalizedSource",
    "WorkbookSource",
    "Source",
    "SourceError",
    "SheetTable",
    "read_source",
    "read_source_table",
]


@dataclass(frozen=True)
class RawTextSource:
    text: str
    delimiter: str = ","
    kind: str = field(default="csv", init=False)


@dataclass(frozen=True)
class PreNormalizedSource:
    rows: list[dict[str, Any]]
    kind: str = "json"


@dataclass(frozen=True)
class WorkbookSource:
    path: Path
    sheet: str | int | None = None
    # .csv 사본에만 적용
    delimiter: str = ","

    @property
    def kind(self) -> str:
        return "csv" if Path(self.path).suffix.lower() == ".csv" else "excel"


Source = RawTextSource | PreNormalizedSource | WorkbookSource


def read_source_table(
    source: Source,
    keywords: Iterable[str] | None = None,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> SheetTable:
    """Produce the field-maps of any source variant, with the preamble lines
    of tabular sources (JSON feeds have none)."""
    if isinstance(source, RawTextSource):
        return read_delimited_table(source.text, source.delimiter, keywords, scan_limit)
    if isinstance(source, WorkbookSource):
        return read_workbook_table(
            source.path, source.sheet, source.delimiter, keywords=keywords, scan_limit=scan_limit
        )
    if isinstance(source, PreNormalizedSource):
        # dict 가 아닌 항목 (None 등) 은 버림
        return SheetTable(rows=[dict(row) for row in source.rows if isinstance(row, dict)])
    raise TypeError(f"unsupported source: {type(source).__name__}")


def read_source(
    source: Source,
    keywords: Iterable[str] | None = None,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> list[dict[str, Any]]:
    """Produce the field-maps of any source variant."""
    return read_source_table(source, keywords, scan_limit).rows
