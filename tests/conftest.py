# Shared pytest fixtures
from __future__ import annotations
import logging
import tempfile
from datetime import date
from pathlib import Path

import pytest

from repayment_sync.config.loader import DashboardConfig
from repayment_sync.logging.init import LOGGER_NAME, reset_logging

FIXED_TODAY = date(2024, 6, 1)


@pytest.fixture(autouse=True)
def _clean_logging():
    # stdout handler 가 capsys 스트림을 잡고 있으므로 테스트마다 제거
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        # setenv 후 delenv: .env 로드로 생긴 값도 teardown 에서 원복됨
        monkeypatch.setenv("REPAYMENT_SHEET_ID", "")
        monkeypatch.delenv("REPAYMENT_SHEET_ID")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """sheet_id: sheet-from-config
sheet_gid: 0
script_url: null
delimiter: ","
header_scan_limit: 10
column_aliases:
  repayment_date: [다음상환일]
fallback_to_sample: false
request_timeout: 5
timezone: Asia/Seoul
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "dashboard.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def config() -> DashboardConfig:
    return DashboardConfig(sheet_id="test-sheet", timezone="Asia/Seoul")


@pytest.fixture()
def today() -> date:
    return FIXED_TODAY


@pytest.fixture()
def sheet_csv() -> str:
    # 제목/KPI 줄이 헤더 위에 있는 실제 시트 형태 (export 는 시트 폭만큼 빈 칸을 채움)
    return (
        "환수 현황 보고서,,,,,,,\n"
        "기준일,2024-06-01,,,,,,\n"
        '환수요청금액,"12,200,000원",,,,,,\n'
        '상환완료금액,"6,000,000원",,,,,,\n'
        "환수율,49.18%,,,,,,\n"
        "NO,대상자,주민번호,환수요청금액,상환완료금액,잔액,상환예정일,비고\n"
        '1,김철수,8901231234567,"5,000,000원","5,000,000원",0,2024-05-01,완납\n'
        '2,이영희,8512342234567,"3,000,000원","1,000,000원","2,000,000원",2024-06-04,\n'
        '3,박민수,,"2,500,000원",0,"2,500,000원",2024.07.15,"분할, 월 50만\n2차부터 자동이체"\n'
        "4,최지은,,1000000,0,1000000,05/20/2024,\n"
        "5,정우성,,700000,0,700000,,연락 두절\n"
        ",합계,,12200000,,,,\n"
    )
