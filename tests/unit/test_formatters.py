from __future__ import annotations

import pytest

from repayment_sync.services.formatters import dday_label, format_currency, format_percent, mask_ssn


@pytest.mark.parametrize(
    "amount, expected",
    [(1234567, "1,234,567원"), (0, "0원"), (None, "0원"), (999.6, "1,000원")],
)
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected


def test_format_percent():
    assert format_percent(0.4615) == "46.2%"
    assert format_percent(0) == "0.0%"


@pytest.mark.parametrize(
    "ssn, expected",
    [
        ("8901231234567", "890123-1******"),
        ("890123-1234567", "890123-1******"),
        ("890123-1******", "890123-1******"),
        ("", ""),
        (None, ""),
    ],
)
def test_mask_ssn(ssn, expected):
    assert mask_ssn(ssn) == expected


@pytest.mark.parametrize(
    "days, expected",
    [(None, "-"), (0, "오늘"), (3, "D-3"), (-2, "2일 초과")],
)
def test_dday_label(days, expected):
    assert dday_label(days) == expected
