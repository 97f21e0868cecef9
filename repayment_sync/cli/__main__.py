from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from repayment_sync.config.loader import (
    ConfigError,
    DashboardConfig,
    load_config,
    persisted_sheet_id,
    resolve_sheet_id,
)
from repayment_sync.logging.init import log_summary, set_debug, setup_logging
from repayment_sync.models.statistics import SyncResult
from repayment_sync.services.aggregator import records_frame
from repayment_sync.services.formatters import format_currency, format_percent
from repayment_sync.services.pipeline import SyncPipeline
from repayment_sync.services.summary import render_record_table, render_summary_line
from repayment_sync.services.transport import ACTIONS, SheetTransport, TransportError
from repayment_sync.sources import SourceError, WorkbookSource

"""CLI entrypoint.

Flow:
- Load .env (REPAYMENT_SHEET_ID etc.) and config/dashboard.yml
- Resolve the sheet id (--sheet-id > env/.env > config)
- Optionally forward an edit (--action) to the script backend
- Sync (remote fetch, or --file for a local copy) and print the SUMMARY line
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_DEGRADED = 2  # sample data shown instead of the real sheet

DEFAULT_CONFIG_PATH = Path("config/dashboard.yml")


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env so that a persisted sheet id is visible through os.environ."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Repayment sheet sync")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--sheet-id", help="Sheet id (overrides REPAYMENT_SHEET_ID and config)")
    p.add_argument("--file", type=Path, help="Read a local .xlsx/.csv copy instead of fetching")
    p.add_argument("--sheet", help="Worksheet name for --file workbooks")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--show-records", action="store_true", help="Print the normalized records")
    p.add_argument("--export", type=Path, help="Write normalized records to CSV")
    p.add_argument("--action", choices=ACTIONS, help="Send an edit to the script backend first")
    p.add_argument("--payload", default="{}", help="JSON object sent with --action")
    return p.parse_args(argv)


async def _submit(cfg: DashboardConfig, action: str, payload: dict) -> dict:
    async with SheetTransport(cfg) as transport:
        return await transport.submit(action, payload)


def _report(result: SyncResult, args: argparse.Namespace, logger) -> None:
    stats = result.statistics
    logger.info(
        f"loan={format_currency(stats.total_loan_amount)} "
        f"remaining={format_currency(stats.total_remaining_amount)} "
        f"rate={format_percent(stats.repayment_rate)}"
    )
    kpi = result.kpi
    if kpi is not None:
        # 시트 상단에 적힌 값 (계산값과 다를 수 있음)
        requested = "-" if kpi.total_requested is None else format_currency(kpi.total_requested)
        repaid = "-" if kpi.total_repaid is None else format_currency(kpi.total_repaid)
        rate = "-" if kpi.repayment_rate is None else format_percent(kpi.repayment_rate)
        logger.info(f"sheet kpi: requested={requested} repaid={repaid} rate={rate}")
    if args.show_records:
        print(render_record_table(result.records))
    if args.export:
        records_frame(result.records).to_csv(args.export, index=False, encoding="utf-8-sig")
        logger.info(f"exported {len(result.records)} record(s) to {args.export}")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # argv=None 일 때만 sys.argv 를 읽는다 ([] 는 테스트에서 명시적으로 전달)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    sheet_id = resolve_sheet_id(args.sheet_id, persisted_sheet_id(), cfg.sheet_id)
    cfg = dataclasses.replace(cfg, sheet_id=sheet_id)
    logger.debug(f"sheet_id={sheet_id} script_url={cfg.script_url or '-'}")

    if args.action:
        try:
            payload = json.loads(args.payload)
        except json.JSONDecodeError as e:
            logger.error(f"payload: invalid JSON: {e}")
            return EXIT_FATAL
        if not isinstance(payload, dict):
            logger.error("payload: must be a JSON object")
            return EXIT_FATAL
        try:
            asyncio.run(_submit(cfg, args.action, payload))
        except TransportError as e:
            logger.error(f"{args.action}: {e}")
            return EXIT_FATAL

    pipeline = SyncPipeline(cfg)
    try:
        if args.file:
            source = WorkbookSource(path=args.file, sheet=args.sheet, delimiter=cfg.delimiter)
            result = pipeline.run_source(source)
        else:
            result = asyncio.run(pipeline.sync())
    except (TransportError, SourceError) as e:
        logger.error(f"sync: {e}")
        return EXIT_FATAL

    _report(result, args, logger)
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))
    return EXIT_DEGRADED if result.degraded else EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
