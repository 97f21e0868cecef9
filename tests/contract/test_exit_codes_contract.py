from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from repayment_sync.cli import main as cli_main
from repayment_sync.logging.init import reset_logging
from repayment_sync.services.transport import TransportError
from repayment_sync.sources import RawTextSource

"""Exit code contract tests: 0 success, 1 fatal, 2 sample data shown."""


class _Transport:
    def __init__(self, outcome):
        self.outcome = outcome

    async def fetch(self):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    async def aclose(self):
        pass


def _patched_transport(outcome):
    return patch(
        "repayment_sync.services.pipeline.SheetTransport",
        side_effect=lambda cfg: _Transport(outcome),
    )


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/dashboard.yml 없음 → exit 1
    reset_logging()
    code = cli_main([])
    captured = capsys.readouterr()
    assert code == 1
    assert "ERROR config:" in captured.out


def test_exit_code_success_from_local_file(temp_workdir: Path, write_config, sheet_csv: str, capsys):
    reset_logging()
    csv_path = temp_workdir / "data" / "sheet.csv"
    csv_path.write_text(sheet_csv, encoding="utf-8")

    code = cli_main(["--file", str(csv_path)])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY records=5 skipped=0" in out
    assert "source=csv" in out


def test_exit_code_success_from_local_file_with_config_delimiter(
    temp_workdir: Path, sample_config_yaml: str, capsys
):
    cfg = temp_workdir / "config" / "dashboard.yml"
    cfg.write_text(sample_config_yaml.replace('delimiter: ","', 'delimiter: ";"'), encoding="utf-8")
    csv_path = temp_workdir / "data" / "sheet.csv"
    csv_path.write_text("NO;대상자;환수요청금액;잔액\n1;김철수;1000;500\n", encoding="utf-8")

    reset_logging()
    code = cli_main(["--file", str(csv_path)])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY records=1 skipped=0 loan=1000 remaining=500" in out
    assert "sheet_requested=- sheet_repaid=- sheet_rate=-" in out


def test_exit_code_success_from_remote(temp_workdir: Path, write_config, sheet_csv: str, capsys):
    reset_logging()
    with _patched_transport(RawTextSource(sheet_csv)):
        code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY records=5" in out


def test_exit_code_fetch_failure(temp_workdir: Path, write_config, capsys):
    reset_logging()
    with _patched_transport(TransportError("GET https://example.invalid failed")):
        code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR sync:" in out
    assert "SUMMARY" not in out


def test_exit_code_degraded_sample(temp_workdir: Path, write_config, capsys):
    reset_logging()
    text = write_config.read_text(encoding="utf-8").replace(
        "fallback_to_sample: false", "fallback_to_sample: true"
    )
    write_config.write_text(text, encoding="utf-8")

    with _patched_transport(TransportError("GET https://example.invalid failed")):
        code = cli_main([])
    out = capsys.readouterr().out
    assert code == 2
    assert "WARN fetch failed, showing sample data instead" in out
    assert "source=sample" in out


def test_exit_code_missing_local_file(temp_workdir: Path, write_config, capsys):
    reset_logging()
    code = cli_main(["--file", "data/missing.xlsx"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR sync:" in out


def test_exit_code_invalid_payload(temp_workdir: Path, write_config, capsys):
    reset_logging()
    code = cli_main(["--action", "UPDATE", "--payload", "{not json"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR payload:" in out
