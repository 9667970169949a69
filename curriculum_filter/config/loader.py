from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/filter.yml``)
- Validate it against the packaged JSON schema
- Fill in defaults for every key that is left out
"""

__all__ = [
    "ConfigError",
    "FilterConfig",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_GROUPING_COLUMNS",
    "DEFAULT_DISPLAY_LIMITS",
    "SCHEMA_PATH",
    "load_config",
    "config_from_mapping",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/filter.yml")

# 最初に見つかった列を採用する (同義語リスト)
DEFAULT_GROUPING_COLUMNS: dict[str, tuple[str, ...]] = {
    "class": ("class",),
    "subject": ("subject_name", "subject"),
    "chapter": ("chapter_name", "chapter"),
    "topic": ("topic_name", "topic"),
}

# None = unlimited
DEFAULT_DISPLAY_LIMITS: dict[str, int | None] = {
    "class": None,
    "subject": 100,
    "chapter": 30,
    "topic": 20,
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class FilterConfig:
    grouping_columns: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_GROUPING_COLUMNS)
    )
    batch_size: int = 100
    export_batch_size: int = 3
    date_format: str = "%Y-%m-%d"
    path_separator: str = ">"
    output_name_template: str = "Filtered_Excel_File_{timestamp}.xlsx"
    display_limits: dict[str, int | None] = field(
        default_factory=lambda: dict(DEFAULT_DISPLAY_LIMITS)
    )


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the packaged JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the data
            violates the schema (unknown keys, wrong types, bad values).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_mapping(data: dict[str, Any]) -> FilterConfig:
    """Build a FilterConfig from already parsed data (validated first)."""
    _validate_config_schema(data)

    grouping = dict(DEFAULT_GROUPING_COLUMNS)
    for level, columns in (data.get("grouping_columns") or {}).items():
        grouping[level] = tuple(columns)

    limits = dict(DEFAULT_DISPLAY_LIMITS)
    limits.update(data.get("display_limits") or {})

    defaults = FilterConfig()
    return FilterConfig(
        grouping_columns=grouping,
        batch_size=data.get("batch_size", defaults.batch_size),
        export_batch_size=data.get("export_batch_size", defaults.export_batch_size),
        date_format=data.get("date_format", defaults.date_format),
        path_separator=data.get("path_separator", defaults.path_separator),
        output_name_template=data.get("output_name_template", defaults.output_name_template),
        display_limits=limits,
    )


def load_config(path: Path | None = None) -> FilterConfig:
    """Load configuration from ``path``.

    When ``path`` is None the default location is tried and built-in defaults
    are returned if nothing is there. An explicit path that does not exist is
    an error.
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return FilterConfig()
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    return config_from_mapping(data)
