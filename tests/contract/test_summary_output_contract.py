from __future__ import annotations

import re
from datetime import UTC, datetime

from repayment_sync.models.record import RecordStatus
from repayment_sync.models.statistics import AggregateStatistics, SheetKpi, SyncResult
from repayment_sync.services.summary import render_summary_line

"""SUMMARY 줄 포맷 계약 테스트.

Downstream scripts grep the last SUMMARY line; the key order and number
formats below must not change.
"""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+records=([0-9]+)\s+skipped=([0-9]+)\s+loan=([0-9]+(?:\.[0-9]+)?)\s+"
    r"remaining=([0-9]+(?:\.[0-9]+)?)\s+repaid=([0-9]+(?:\.[0-9]+)?)\s+rate=([0-9]\.[0-9]{4})\s+"
    r"completed=([0-9]+)\s+normal=([0-9]+)\s+warning=([0-9]+)\s+overdue=([0-9]+)\s+"
    r"undetermined=([0-9]+)\s+avg_days=(-?[0-9]+)\s+source=([a-z]+)\s+"
    r"sheet_requested=(-|-?[0-9]+(?:\.[0-9]+)?)\s+sheet_repaid=(-|-?[0-9]+(?:\.[0-9]+)?)\s+"
    r"sheet_rate=(-|[0-9]+\.[0-9]{4})$"
)


def _stats() -> AggregateStatistics:
    return AggregateStatistics(
        total_loan_amount=12200000,
        total_remaining_amount=6200000,
        total_repaid_amount=6000000,
        status_counts={status: 1 for status in RecordStatus},
        average_days_until_repayment=24,
        record_count=5,
        repayment_rate=6000000 / 12200000,
    )


def test_summary_pattern_example_line():
    line = (
        "SUMMARY records=5 skipped=0 loan=12200000 remaining=6200000 repaid=6000000 "
        "rate=0.4918 completed=1 normal=1 warning=1 overdue=1 undetermined=1 "
        "avg_days=24 source=csv sheet_requested=12200000 sheet_repaid=6000000 sheet_rate=0.4918"
    )
    m = SUMMARY_PATTERN.match(line)
    assert m, "SUMMARY line should match contract regex"


def test_rendered_line_matches_contract():
    result = SyncResult([], _stats(), "csv", datetime.now(UTC))
    line = render_summary_line(result)
    m = SUMMARY_PATTERN.match(line)
    assert m, line
    assert m.group(1) == "5"
    assert m.group(6) == "0.4918"
    assert m.group(13) == "csv"
    assert (m.group(14), m.group(15), m.group(16)) == ("-", "-", "-")


def test_rendered_line_with_sheet_kpi():
    kpi = SheetKpi(total_requested=116177722, total_repaid=53613316, repayment_rate=0.4615)
    line = render_summary_line(SyncResult([], _stats(), "csv", datetime.now(UTC), kpi=kpi))
    m = SUMMARY_PATTERN.match(line)
    assert m, line
    assert (m.group(14), m.group(15), m.group(16)) == ("116177722", "53613316", "0.4615")


def test_rendered_line_with_partial_sheet_kpi():
    kpi = SheetKpi(total_requested=1000)
    line = render_summary_line(SyncResult([], _stats(), "csv", datetime.now(UTC), kpi=kpi))
    assert line.endswith("sheet_requested=1000 sheet_repaid=- sheet_rate=-")
