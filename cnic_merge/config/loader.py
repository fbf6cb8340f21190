from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    ActiveClientColumns,
    DatabaseConfig,
    GuarantorColumns,
    MergeConfig,
)

"""Config loader.

Responsibilities:
- Load the YAML config (config/merge.yml by default)
- Validate it against the packaged JSON schema
- Fill every omitted key with the built-in layout defaults
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "default_config",
    "load_config",
    "config_from_mapping",
]

SCHEMA_PATH = Path(__file__).with_name("merge_schema.json")
DEFAULT_CONFIG_PATH = Path("config/merge.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the data
            fails validation (unknown keys, wrong types, negative indices).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {where}: {e.message}") from e


def default_config() -> MergeConfig:
    return MergeConfig()


def config_from_mapping(data: dict[str, Any]) -> MergeConfig:
    """Build a MergeConfig from already-validated YAML data."""
    base = MergeConfig()
    db_raw = data.get("database") or {}
    return MergeConfig(
        guarantor_columns=GuarantorColumns(**(data.get("guarantor_columns") or {})),
        client_columns=ActiveClientColumns(**(data.get("client_columns") or {})),
        guarantor_start_row=data.get("guarantor_start_row", base.guarantor_start_row),
        client_start_row=data.get("client_start_row", base.client_start_row),
        yield_every=data.get("yield_every", base.yield_every),
        min_id_length=data.get("min_id_length", base.min_id_length),
        output_file_name=data.get("output_file_name", base.output_file_name),
        sheet_name=data.get("sheet_name", base.sheet_name),
        database=DatabaseConfig(**db_raw),
    )


def load_config(path: Path) -> MergeConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return config_from_mapping(data)
