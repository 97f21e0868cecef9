from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from ..models.record import RawRow

"""Tabular source reader.

Turns a delimited-text export (or the cells of a workbook sheet) into RawRows.
The sheets this tool reads are maintained by hand: title and KPI lines often
sit above the real header, so the header line is located heuristically
(find_header_index) instead of being assumed at line 0. Lines above the
header are kept as the table preamble for the sheet KPI block.

Parse problems never raise here. A missing header falls back to line 0, an
unterminated quote runs to the end of its line (a closed quote may span
lines, so multi-line notes stay in one cell), and a blob with fewer than
two lines yields no rows.
"""

__all__ = [
    "HEADER_KEYWORDS",
    "HEADER_SCAN_LIMIT",
    "SourceError",
    "SheetTable",
    "split_line",
    "quote_field",
    "split_records",
    "find_header_index",
    "rows_from_cells",
    "read_delimited_table",
    "read_delimited_text",
    "read_workbook_table",
    "read_workbook",
]

logger = logging.getLogger(__name__)

# 식별자/금액 열을 나타내는 키워드 (부분 일치)
HEADER_KEYWORDS: tuple[str, ...] = ("NO", "ID", "번호", "대상자", "이름", "성명", "금액", "요청")
HEADER_SCAN_LIMIT = 10
HEADER_MIN_FIELDS = 4

QUOTE = '"'


class SourceError(Exception):
    """Raised when a local source file cannot be read at all."""


@dataclass
class SheetTable:
    """RawRows of one source plus the split lines found above its header."""

    rows: list[RawRow] = field(default_factory=list)
    preamble: list[list[str]] = field(default_factory=list)


def _scan_record(
    text: str, start: int, delimiter: str, span_lines: bool = True
) -> tuple[list[str], int, bool]:
    """Scan one record beginning at ``start``.

    Returns the raw fields, the position just after the record's line break
    and whether every quote was closed. With ``span_lines`` a line break
    inside quotes is cell text; without it the line break ends the record.
    Only \\n and \\r\\n break records.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\n" or (ch == "\r" and i + 1 < n and text[i + 1] == "\n"):
            if not in_quotes or not span_lines:
                fields.append("".join(current))
                return fields, i + (1 if ch == "\n" else 2), not in_quotes
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < n and text[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                current.append(ch)
        elif ch == QUOTE:
            in_quotes = True
        elif ch == delimiter:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return fields, n, not in_quotes


def split_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one text record into raw (untrimmed) field values.

    A double quote toggles quoted mode; inside quotes a doubled quote is one
    literal quote, and the delimiter and line breaks are ordinary text. An
    unterminated quote keeps consuming to the end of the record.
    """
    return _scan_record(line, 0, delimiter)[0]


def quote_field(value: str, delimiter: str = ",") -> str:
    """Render a single value so that split_line() gives it back unchanged."""
    if any(c in value for c in (delimiter, QUOTE, "\n", "\r")):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def split_records(blob: str, delimiter: str = ",") -> list[list[str]]:
    """Split a text blob into records of raw fields, dropping blank lines.

    A quoted field may run over several lines. When a quote is still open at
    the end of the blob, that record is re-read as a single line whose open
    quote consumes to the end of the line, and scanning resumes on the next
    line.
    """
    records: list[list[str]] = []
    pos = 0
    n = len(blob)
    while pos < n:
        fields, end, closed = _scan_record(blob, pos, delimiter)
        if not closed:
            # 닫히지 않은 따옴표: 그 줄까지만 한 레코드로 본다
            fields, end, _ = _scan_record(blob, pos, delimiter, span_lines=False)
        if len(fields) > 1 or fields[0].strip():
            records.append(fields)
        pos = end
    return records


def _field_count(cells: Sequence[str]) -> int:
    # 시트 export 는 모든 줄을 시트 폭만큼 빈 칸으로 채운다
    n = len(cells)
    while n and not str(cells[n - 1]).strip():
        n -= 1
    return n


def _is_header_candidate(cells: Sequence[str], keywords: Iterable[str]) -> bool:
    if _field_count(cells) < HEADER_MIN_FIELDS:
        return False
    return any(kw in cell for cell in cells for kw in keywords)


def find_header_index(
    cells_by_line: Sequence[Sequence[str]],
    keywords: Iterable[str] | None = None,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> int:
    """Locate the header line among the first ``scan_limit`` lines.

    Heuristic: the first line with more than 3 fields where some field
    contains one of ``keywords``. Blank cells at the end of a line are
    padding and do not count as fields. Falls back to 0 when nothing
    qualifies.
    Substring matching can pick a KPI line that happens to mention an amount
    column, or miss a header named in another language; both are accepted.
    """
    kws = tuple(keywords) if keywords is not None else HEADER_KEYWORDS
    for index, cells in enumerate(cells_by_line[:scan_limit]):
        if _is_header_candidate(cells, kws):
            return index
    logger.debug(f"header: no keyword line in first {scan_limit} lines, using line 0")
    return 0


def rows_from_cells(cells_by_line: Sequence[Sequence[str]], header_index: int) -> list[RawRow]:
    """Zip the header line with every later line.

    Lines whose first field is blank are skipped. Missing trailing values
    become "", surplus values and blank header cells are dropped, and for a
    repeated header name the first column wins.
    """
    header = [str(h).strip() for h in cells_by_line[header_index]]
    rows: list[RawRow] = []
    for cells in cells_by_line[header_index + 1:]:
        if not cells or not str(cells[0]).strip():
            continue
        row: RawRow = {}
        for idx, name in enumerate(header):
            if not name or name in row:
                continue
            row[name] = str(cells[idx]).strip() if idx < len(cells) else ""
        rows.append(row)
    return rows


def _table_from_cells(cells_by_line: list[list[str]], keywords, scan_limit: int) -> SheetTable:
    header_index = find_header_index(cells_by_line, keywords, scan_limit)
    rows = rows_from_cells(cells_by_line, header_index)
    columns = [c.strip() for c in cells_by_line[header_index]]
    logger.debug(f"csv: header_line={header_index} columns={columns} rows={len(rows)}")
    return SheetTable(rows=rows, preamble=[list(c) for c in cells_by_line[:header_index]])


def read_delimited_table(
    blob: str,
    delimiter: str = ",",
    keywords: Iterable[str] | None = None,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> SheetTable:
    """Parse a delimited-text blob into RawRows and its preamble lines."""
    records = split_records(blob or "", delimiter)
    if len(records) < 2:
        logger.warning(f"source has {len(records)} usable line(s); no rows read")
        return SheetTable()
    return _table_from_cells(records, keywords, scan_limit)


def read_delimited_text(
    blob: str,
    delimiter: str = ",",
    keywords: Iterable[str] | None = None,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> list[RawRow]:
    """Parse a delimited-text blob into RawRows (pure, restartable)."""
    return read_delimited_table(blob, delimiter, keywords, scan_limit).rows


def read_workbook_table(
    path: Path,
    sheet: str | int | None = None,
    delimiter: str = ",",
    keywords: Iterable[str] | None = None,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> SheetTable:
    """Read a downloaded copy of the sheet (.xlsx or .csv).

    Workbook cells are read as text without a header row and go through the
    same header discovery as the CSV export. ``delimiter`` applies to .csv
    copies only.
    """
    if not path.exists():
        raise SourceError(f"source file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".csv":
        # utf-8-sig: Google/Excel CSV export 는 BOM 을 붙이는 경우가 있음
        return read_delimited_table(
            path.read_text(encoding="utf-8-sig"), delimiter, keywords, scan_limit
        )
    if suffix not in (".xlsx", ".xlsm"):
        raise SourceError(f"unsupported source file type: {path.name}")

    try:
        df = pd.read_excel(
            path,
            sheet_name=sheet if sheet is not None else 0,
            header=None,
            dtype=str,
            keep_default_na=False,
        )
    except (ValueError, OSError) as e:
        raise SourceError(f"cannot read workbook {path.name}: {e}") from e

    cells_by_line = [
        [str(v) for v in raw]
        for raw in df.fillna("").values.tolist()
        if any(str(v).strip() for v in raw)
    ]
    if len(cells_by_line) < 2:
        logger.warning(f"workbook {path.name} has {len(cells_by_line)} usable row(s); no rows read")
        return SheetTable()
    return _table_from_cells(cells_by_line, keywords, scan_limit)


def read_workbook(
    path: Path,
    sheet: str | int | None = None,
    delimiter: str = ",",
    keywords: Iterable[str] | None = None,
    scan_limit: int = HEADER_SCAN_LIMIT,
) -> list[RawRow]:
    """Read a downloaded copy of the sheet (.xlsx or .csv) into RawRows."""
    return read_workbook_table(path, sheet, delimiter, keywords, scan_limit).rows
