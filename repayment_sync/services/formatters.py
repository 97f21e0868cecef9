from __future__ import annotations

import re

"""Display helpers for amounts, rates, IDs and due dates (ko-KR style)."""

__all__ = [
    "format_currency",
    "format_percent",
    "mask_ssn",
    "dday_label",
]


def format_currency(amount: float | None) -> str:
    """1234567 -> '1,234,567원'. Fractions are rounded to whole won."""
    if amount is None:
        return "0원"
    return f"{round(amount):,}원"


def format_percent(rate: float) -> str:
    return f"{rate * 100:.1f}%"


def mask_ssn(ssn: str | None) -> str:
    """Show birth date and gender digit only: '8901231234567' -> '890123-1******'."""
    if not ssn:
        return ""
    digits = re.sub(r"\D", "", ssn)
    if len(digits) == 13:
        return f"{digits[:6]}-{digits[6]}******"
    return ssn


def dday_label(days: int | None) -> str:
    if days is None:
        return "-"
    if days == 0:
        return "오늘"
    if days > 0:
        return f"D-{days}"
    return f"{abs(days)}일 초과"
