from __future__ import annotations

import pytest

from repayment_sync.models.statistics import SheetKpi
from repayment_sync.services.kpi import sheet_kpi
from repayment_sync.sources.reader import read_delimited_table


def test_sheet_kpi_from_sheet_preamble(sheet_csv: str):
    table = read_delimited_table(sheet_csv)
    assert len(table.preamble) == 5
    assert sheet_kpi(table.preamble) == SheetKpi(12200000, 6000000, pytest.approx(0.4918))


def test_sheet_kpi_full_block():
    preamble = [
        ["환수 현황"],
        ["환수요청금액", "116,177,722원"],
        ["상환중인 금액", "53,613,316원"],
        ["환수율", "46.15%"],
    ]
    kpi = sheet_kpi(preamble)
    assert kpi.total_requested == 116177722
    assert kpi.total_repaid == 53613316
    assert kpi.repayment_rate == pytest.approx(0.4615)
    assert kpi.total_remaining == 116177722 - 53613316


def test_sheet_kpi_label_in_middle_of_line():
    kpi = sheet_kpi([["", "총 환수요청금액", "1,000", "", "환수율", "0.25"]])
    assert kpi.total_requested == 1000
    assert kpi.repayment_rate == 0.25
    assert kpi.total_repaid is None


def test_sheet_kpi_rate_already_fraction():
    assert sheet_kpi([["환수율", "0.5"]]).repayment_rate == 0.5


def test_sheet_kpi_later_line_overrides():
    kpi = sheet_kpi([["환수요청금액", "100"], ["환수요청금액(수정)", "200"]])
    assert kpi.total_requested == 200


def test_sheet_kpi_label_without_value():
    assert sheet_kpi([["환수요청금액", ""], ["환수율"]]) is None


@pytest.mark.parametrize("preamble", [[], [["환수 현황 보고서"], ["기준일", "2024-06-01"]]])
def test_sheet_kpi_without_labels(preamble):
    assert sheet_kpi(preamble) is None
