from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

"""Dashboard configuration loader.

Responsibilities:
- Load YAML config/dashboard.yml
- Validate keys against config_schema.json (unknown keys rejected)
- Apply defaults (gid=0, delimiter=",", timezone=Asia/Seoul, ...)
- Resolve the sheet identifier from explicit / persisted / default values
"""

if TYPE_CHECKING:
    import jsonschema
    from jsonschema.exceptions import ValidationError
else:
    try:
        import jsonschema
        from jsonschema.exceptions import ValidationError
    except ImportError:  # pragma: no cover
        jsonschema = None  # type: ignore[assignment]
        ValidationError = Exception  # type: ignore[misc,assignment]

__all__ = [
    "ConfigError",
    "DashboardConfig",
    "DEFAULT_SHEET_ID",
    "SHEET_ID_ENV",
    "load_config",
    "persisted_sheet_id",
    "resolve_sheet_id",
    "today_in",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

# 설정이 전혀 없을 때 사용하는 공개 시트
DEFAULT_SHEET_ID = "1Bq3fXk0repaymentDemoSheet"
SHEET_ID_ENV = "REPAYMENT_SHEET_ID"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DashboardConfig:
    """Settings for one synchronisation pipeline.

    ``header_keywords`` / ``column_aliases`` left as None mean "use the
    reader / normalizer built-in lists".
    """
    sheet_id: str
    sheet_gid: int = 0
    script_url: str | None = None
    delimiter: str = ","
    header_scan_limit: int = 10
    header_keywords: tuple[str, ...] | None = None
    column_aliases: dict[str, tuple[str, ...]] = field(default_factory=dict)
    fallback_to_sample: bool = False
    request_timeout: float = 20.0
    timezone: str = "Asia/Seoul"

    @property
    def csv_export_url(self) -> str:
        return (
            f"https://docs.google.com/spreadsheets/d/{self.sheet_id}"
            f"/export?format=csv&gid={self.sheet_gid}"
        )


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Args:
        data: Configuration data to validate

    Raises:
        ConfigError: If jsonschema is unavailable, the schema file is missing
            or unreadable, or the data violates the schema.
    """
    if jsonschema is None:
        raise ConfigError("jsonschema library is required for config validation")

    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> DashboardConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    keywords = data.get("header_keywords")
    aliases_raw = data.get("column_aliases") or {}
    tz = data.get("timezone", "Asia/Seoul")
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {tz}") from e

    return DashboardConfig(
        sheet_id=data["sheet_id"],
        sheet_gid=data.get("sheet_gid", 0),
        script_url=data.get("script_url") or None,
        delimiter=data.get("delimiter", ","),
        header_scan_limit=data.get("header_scan_limit", 10),
        header_keywords=tuple(keywords) if keywords else None,
        column_aliases={k: tuple(v) for k, v in aliases_raw.items()},
        fallback_to_sample=bool(data.get("fallback_to_sample", False)),
        request_timeout=float(data.get("request_timeout", 20.0)),
        timezone=tz,
    )


def resolve_sheet_id(
    explicit: str | None = None,
    persisted: str | None = None,
    default: str | None = None,
) -> str:
    """Pick the sheet identifier by precedence.

    explicit (CLI option / query parameter) > persisted (REPAYMENT_SHEET_ID,
    usually loaded from .env) > config default > DEFAULT_SHEET_ID.
    Blank strings count as absent.
    """
    for candidate in (explicit, persisted, default):
        if candidate is not None and candidate.strip():
            return candidate.strip()
    return DEFAULT_SHEET_ID


def persisted_sheet_id() -> str | None:
    return os.getenv(SHEET_ID_ENV)


def today_in(tz: str) -> date:
    """Current calendar date in the given IANA timezone."""
    return datetime.now(ZoneInfo(tz)).date()
