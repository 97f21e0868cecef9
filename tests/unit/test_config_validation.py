from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from repayment_sync.config.loader import ConfigError, _validate_config_schema

"""Unit tests for config schema validation error cases."""


def test_validate_config_schema_missing_jsonschema():
    """ConfigError is raised when jsonschema library is not available."""
    with patch("repayment_sync.config.loader.jsonschema", None):
        with pytest.raises(ConfigError) as e:
            _validate_config_schema({})
        assert "jsonschema library is required for config validation" in str(e.value)


def test_validate_config_schema_missing_schema_file():
    """ConfigError is raised when schema file does not exist."""
    with patch("repayment_sync.config.loader.SCHEMA_PATH", Path("/nonexistent/schema.json")):
        with pytest.raises(ConfigError) as e:
            _validate_config_schema({})
        assert "config schema not found" in str(e.value)


def test_validate_config_schema_invalid_json_schema():
    """ConfigError is raised when schema file contains invalid JSON."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        f.write("{ invalid json }")
        f.flush()
        temp_path = Path(f.name)

    try:
        with patch("repayment_sync.config.loader.SCHEMA_PATH", temp_path):
            with pytest.raises(ConfigError) as e:
                _validate_config_schema({})
            assert "invalid schema file" in str(e.value)
    finally:
        temp_path.unlink()


def test_validate_config_schema_wrong_type():
    with pytest.raises(ConfigError) as e:
        _validate_config_schema({"sheet_id": 123})
    assert "config validation failed" in str(e.value)


def test_validate_config_schema_bad_timeout():
    with pytest.raises(ConfigError):
        _validate_config_schema({"sheet_id": "abc", "request_timeout": 0})


def test_validate_config_schema_minimal_ok():
    _validate_config_schema({"sheet_id": "abc"})
