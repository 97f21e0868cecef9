from __future__ import annotations

import logging
import math
import re
import warnings
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import pandas as pd

from ..models.record import (
    CanonicalRecord,
    Instalment,
    RecordStatus,
    id_placeholder,
    name_placeholder,
)

"""Record normalizer.

Maps a field-map whose column names follow no fixed schema onto a
CanonicalRecord. Each semantic field is resolved through a priority-ordered
list of candidate column names; amounts and dates are coerced leniently
(bad text becomes 0 / None, never an exception); status and day counts are
derived relative to "today" on every call.

Field-maps that are already canonical (they carry ``borrowerName``) take a
short-circuit path that only re-types the values.

Sheets without a due-date column get one derived from the repayment start
date (start + 3 months) while a balance remains. Paid instalments are read
from columns named "1회차", "2회차", ... .
"""

__all__ = [
    "FIELD_CANDIDATES",
    "CANONICAL_DISCRIMINATOR",
    "WARNING_WINDOW_DAYS",
    "NormalizationResult",
    "candidates_for",
    "pick_field",
    "to_number",
    "parse_date",
    "days_until",
    "derive_status",
    "fallback_due_date",
    "instalments_of",
    "is_canonical",
    "is_noise_row",
    "normalize_row",
    "normalize_rows",
]

logger = logging.getLogger(__name__)

FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    "id": ("ID", "id", "NO", "No", "no", "번호"),
    "name": ("대상자", "차용자", "이름", "성명", "name"),
    "loan_amount": ("환수요청금액", "대출금액", "차용금액", "금액", "totalAmount", "amount"),
    "remaining_amount": ("잔액", "잔여금액", "미상환금액", "남은금액", "remaining"),
    "repaid_amount": ("상환완료금액", "상환금액", "repaid"),
    "loan_date": ("대출일", "차용일", "계약일", "loanDate"),
    "repayment_date": ("상환예정일", "상환일", "상환기한", "dueDate", "nextPaymentDate"),
    "repayment_start": ("상환시작일", "상환개시일", "repaymentStartDate"),
    "note": ("비고", "메모", "note"),
}

CANONICAL_DISCRIMINATOR = "borrowerName"
WARNING_WINDOW_DAYS = 7
DUE_DATE_FALLBACK_MONTHS = 3

# "1회차", "2 회차", "3회", "4차"
_INSTALMENT_COLUMN = re.compile(r"(\d{1,2})\s*(?:회차|회|차)")

# Excel serial day 25569 == 1970-01-01
EXCEL_EPOCH = date(1899, 12, 30)
EXCEL_SERIAL_MIN = 25569

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")

# (pattern, group order) tried in this order before the generic parse
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], tuple[int, int, int]], ...] = (
    (re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), (1, 2, 3)),
    (re.compile(r"(\d{4})\.\s*(\d{1,2})\.\s*(\d{1,2})\.?"), (1, 2, 3)),
    (re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})"), (1, 2, 3)),
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), (3, 1, 2)),
    (re.compile(r"(\d{4})\s*년\s*(\d{1,2})\s*월\s*(\d{1,2})\s*일"), (1, 2, 3)),
)
# time part allowed after the date ("2024-01-15 00:00:00", "2024-01-15T09:00")
_DATE_TAIL = re.compile(r"(?:[\sT].*)?")
# timestamp with an explicit offset ("2024-06-04T15:00:00.000Z", "... +09:00")
_ZONED_TAIL = re.compile(r"[\sT]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?\s*(?:Z|[+-]\d{2}:?\d{2})$")


@dataclass
class NormalizationResult:
    records: list[CanonicalRecord] = field(default_factory=list)
    skipped: int = 0


def candidates_for(key: str, aliases: Mapping[str, Iterable[str]] | None = None) -> tuple[str, ...]:
    """Configured aliases first, then the built-in candidates."""
    extra = tuple(aliases.get(key, ())) if aliases else ()
    return extra + tuple(c for c in FIELD_CANDIDATES[key] if c not in extra)


def pick_field(row: Mapping[str, Any], candidates: Iterable[str]) -> str | None:
    """First candidate column present with a non-blank value (trimmed)."""
    for name in candidates:
        value = row.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def to_number(value: Any) -> float:
    """Lenient amount coercion: "1,234,567원" -> 1234567.0, junk -> 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def _from_excel_serial(value: float) -> date | None:
    if value <= EXCEL_SERIAL_MIN:
        return None
    try:
        return EXCEL_EPOCH + timedelta(days=int(value))
    except OverflowError:
        return None


def _generic_date(text: str) -> date | None:
    with warnings.catch_warnings():
        # pandas warns when it has to guess the format of a lone string
        warnings.simplefilter("ignore", UserWarning)
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def _zoned_date(text: str, tz: str) -> date | None:
    try:
        stamp = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(stamp) or stamp.tzinfo is None:
        return None
    return stamp.tz_convert(tz).date()


def parse_date(value: Any, tz: str | None = None) -> date | None:
    """Coerce a cell to a calendar date.

    Tries YYYY-MM-DD, YYYY.MM.DD, YYYY/MM/DD, MM/DD/YYYY and "YYYY년 M월 D일",
    then a generic pandas parse. Numbers above 25569 are read as Excel
    serial days. Anything else gives None.

    Timestamps carrying an offset (the script backend sends sheet dates as
    UTC, "2024-06-04T15:00:00.000Z") are converted to ``tz`` first, so the
    date is the one seen in that timezone. Without ``tz`` the written date
    part is used as is.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if tz and value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(tz))
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return _from_excel_serial(value) if math.isfinite(value) else None

    text = str(value).strip()
    if not text:
        return None
    if tz and _ZONED_TAIL.search(text):
        zoned = _zoned_date(text, tz)
        if zoned is not None:
            return zoned
    for pattern, (yi, mi, di) in _DATE_PATTERNS:
        m = pattern.match(text)
        if not m or not _DATE_TAIL.fullmatch(text[m.end():]):
            continue
        try:
            return date(int(m.group(yi)), int(m.group(mi)), int(m.group(di)))
        except ValueError:
            break  # 형식은 맞지만 존재하지 않는 날짜 (2024-02-30)
    return _generic_date(text)


def days_until(due: date | None, today: date) -> int | None:
    """Whole days from ``today`` to ``due`` (negative once it has passed)."""
    if due is None:
        return None
    return (due - today).days


def derive_status(remaining: float, due: date | None, today: date) -> RecordStatus:
    if remaining <= 0:
        return RecordStatus.COMPLETED
    d = days_until(due, today)
    if d is None:
        return RecordStatus.UNDETERMINED
    if d < 0:
        return RecordStatus.OVERDUE
    if d <= WARNING_WINDOW_DAYS:
        return RecordStatus.WARNING
    return RecordStatus.NORMAL


def fallback_due_date(start: date | None, remaining: float) -> date | None:
    """Next repayment date for sheets that only record when repayment started.

    Start + 3 calendar months (clamped to the month end, 11-30 -> 02-28/29).
    None once nothing is left to repay or when the start is unknown.
    """
    if start is None or remaining <= 0:
        return None
    return (pd.Timestamp(start) + pd.DateOffset(months=DUE_DATE_FALLBACK_MONTHS)).date()


def instalments_of(row: Mapping[str, Any]) -> tuple[Instalment, ...]:
    """Paid instalments from "N회차" columns, ordered by round; 0/blank skipped."""
    found: dict[int, Instalment] = {}
    for name, value in row.items():
        m = _INSTALMENT_COLUMN.fullmatch(str(name).strip())
        if not m:
            continue
        round_no = int(m.group(1))
        amount = to_number(value)
        if amount > 0 and round_no not in found:
            found[round_no] = Instalment(round=round_no, amount=amount)
    return tuple(found[k] for k in sorted(found))


def _instalments_from_canonical(rounds: Any) -> tuple[Instalment, ...]:
    if not isinstance(rounds, list):
        return ()
    items = []
    for item in rounds:
        if not isinstance(item, Mapping):
            continue
        amount = to_number(item.get("amount"))
        round_no = int(to_number(item.get("round")))
        if amount > 0 and round_no > 0:
            items.append(Instalment(round=round_no, amount=amount))
    return tuple(sorted(items, key=lambda i: i.round))


def is_canonical(row: Mapping[str, Any]) -> bool:
    return CANONICAL_DISCRIMINATOR in row


def is_noise_row(record: CanonicalRecord, position: int) -> bool:
    """Heuristic filter for filler lines (totals, blank template rows).

    A row with no name of its own and no amounts is treated as noise. This
    also drops a genuine record that lost its name and has a zero balance.
    """
    return (
        record.borrower_name == name_placeholder(position)
        and record.loan_amount == 0
        and record.remaining_amount == 0
    )


def _build(
    *,
    record_id: str,
    name: str,
    loan: float,
    remaining: float,
    repaid: float,
    loan_date: date | None,
    repayment_date: date | None,
    note: str,
    instalments: tuple[Instalment, ...],
    original: dict[str, Any],
    today: date,
) -> CanonicalRecord:
    return CanonicalRecord(
        id=record_id,
        borrower_name=name,
        loan_amount=loan,
        remaining_amount=remaining,
        repaid_amount=repaid,
        loan_date=loan_date,
        repayment_date=repayment_date,
        days_until_repayment=days_until(repayment_date, today),
        status=derive_status(remaining, repayment_date, today),
        note=note,
        instalments=instalments,
        original=original,
    )


def _from_raw(
    row: Mapping[str, Any],
    position: int,
    today: date,
    aliases: Mapping[str, Iterable[str]] | None,
    tz: str | None,
) -> CanonicalRecord:
    def pick(key: str) -> str | None:
        return pick_field(row, candidates_for(key, aliases))

    loan = max(0.0, to_number(pick("loan_amount")))
    remaining_text = pick("remaining_amount")
    repaid_text = pick("repaid_amount")
    if remaining_text is not None:
        remaining = to_number(remaining_text)
    elif repaid_text is not None:
        remaining = loan - to_number(repaid_text)
    else:
        # 잔액 열이 없으면 전액 미상환으로 본다
        remaining = loan
    remaining = max(0.0, remaining)
    if repaid_text is not None:
        repaid = max(0.0, to_number(repaid_text))
    else:
        repaid = max(0.0, loan - remaining)

    repayment_date = parse_date(pick("repayment_date"), tz)
    if repayment_date is None:
        repayment_date = fallback_due_date(parse_date(pick("repayment_start"), tz), remaining)

    return _build(
        record_id=pick("id") or id_placeholder(position),
        name=pick("name") or name_placeholder(position),
        loan=loan,
        remaining=remaining,
        repaid=repaid,
        loan_date=parse_date(pick("loan_date"), tz),
        repayment_date=repayment_date,
        note=pick("note") or "",
        instalments=instalments_of(row),
        original=dict(row),
        today=today,
    )


def _from_canonical(
    row: Mapping[str, Any], position: int, today: date, tz: str | None
) -> CanonicalRecord:
    loan = max(0.0, to_number(row.get("loanAmount")))
    remaining = max(0.0, to_number(row.get("remainingAmount")))
    repaid_value = row.get("repaidAmount")
    if repaid_value is None or str(repaid_value).strip() == "":
        repaid = max(0.0, loan - remaining)
    else:
        repaid = max(0.0, to_number(repaid_value))
    original = row.get("original")

    record = _build(
        record_id=str(row.get("id") or "").strip() or id_placeholder(position),
        name=str(row.get(CANONICAL_DISCRIMINATOR) or "").strip() or name_placeholder(position),
        loan=loan,
        remaining=remaining,
        repaid=repaid,
        loan_date=parse_date(row.get("loanDate"), tz),
        repayment_date=parse_date(row.get("repaymentDate"), tz),
        note=str(row.get("note") or ""),
        instalments=_instalments_from_canonical(row.get("rounds")),
        original=dict(original) if isinstance(original, Mapping) else dict(row),
        today=today,
    )
    # status 는 항상 재계산; 들어온 값은 비교용으로만 본다
    stated = RecordStatus.from_label(str(row.get("status") or ""))
    if stated is not None and stated is not record.status:
        logger.debug(
            f"record {record.id}: stated status {stated.value} differs from "
            f"derived {record.status.value} (today={today.isoformat()})"
        )
    return record


def normalize_row(
    row: Mapping[str, Any],
    position: int,
    today: date,
    aliases: Mapping[str, Iterable[str]] | None = None,
    tz: str | None = None,
) -> CanonicalRecord:
    """Normalize one field-map; ``position`` is its 1-based index in the input."""
    if is_canonical(row):
        return _from_canonical(row, position, today, tz)
    return _from_raw(row, position, today, aliases, tz)


def normalize_rows(
    rows: Iterable[Mapping[str, Any]],
    today: date | None = None,
    aliases: Mapping[str, Iterable[str]] | None = None,
    tz: str | None = None,
) -> NormalizationResult:
    """Normalize every row and drop noise rows (see is_noise_row).

    ``tz`` is the timezone offset-carrying timestamps are converted to
    before their date is taken (see parse_date).
    """
    today = today or date.today()
    result = NormalizationResult()
    for position, row in enumerate(rows, start=1):
        record = normalize_row(row, position, today, aliases, tz)
        if is_noise_row(record, position):
            logger.debug(f"skip noise row #{position}: {dict(row)}")
            result.skipped += 1
            continue
        result.records.append(record)
    return result
