from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from sheetql.models.config_models import AnalysisSettings, IngestConfig, LoaderSettings

"""Config loader.

Responsibilities:
- Load YAML config (e.g. config/sheetql.yml)
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults for every missing key
- Apply SHEETQL_* environment overrides (the CLI loads .env first)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/sheetql.yml")

# env var -> (section, key, converter)
ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
    "SHEETQL_DATABASE": ("loader", "database", str),
    "SHEETQL_BATCH_SIZE": ("loader", "batch_size", int),
    "SHEETQL_CACHE_CAPACITY": ("loader", "cache_capacity", int),
    "SHEETQL_CACHE_TTL_SECONDS": ("loader", "cache_ttl_seconds", float),
    "SHEETQL_MAX_WORKERS": ("analysis", "max_workers", int),
}


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or the config data
            violates the schema (unknown keys, wrong types, out of range).
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


def config_from_dict(data: Mapping[str, Any]) -> IngestConfig:
    """Build an IngestConfig from already-validated data, defaults for the rest."""
    analysis_raw = data.get("analysis") or {}
    loader_raw = data.get("loader") or {}
    defaults = IngestConfig()
    return IngestConfig(
        analysis=AnalysisSettings(**analysis_raw),
        loader=LoaderSettings(**loader_raw),
        max_file_size=data.get("max_file_size", defaults.max_file_size),
        logs_dir=Path(data["logs_dir"]) if "logs_dir" in data else defaults.logs_dir,
    )


def load_config(path: Path) -> IngestConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return config_from_dict(data)


def apply_env_overrides(
    config: IngestConfig, environ: Mapping[str, str] | None = None
) -> IngestConfig:
    """Return a copy of ``config`` with SHEETQL_* environment values applied.

    Invalid values raise ConfigError rather than being ignored.
    """
    env = os.environ if environ is None else environ
    sections: dict[str, dict[str, Any]] = {"analysis": {}, "loader": {}}
    for var, (section, key, convert) in ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            value = convert(raw)
        except ValueError as e:
            raise ConfigError(f"invalid value for {var}: {raw!r}") from e
        if isinstance(value, (int, float)) and value <= 0:
            raise ConfigError(f"{var} must be positive: {raw!r}")
        sections[section][key] = value

    if not sections["analysis"] and not sections["loader"]:
        return config
    return replace(
        config,
        analysis=replace(config.analysis, **sections["analysis"]),
        loader=replace(config.loader, **sections["loader"]),
    )


def resolve_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> IngestConfig:
    """Load ``path`` (or the default location when it exists) and apply env overrides."""
    if path is not None:
        cfg = load_config(path)
    elif DEFAULT_CONFIG_PATH.exists():
        cfg = load_config(DEFAULT_CONFIG_PATH)
    else:
        cfg = IngestConfig()
    return apply_env_overrides(cfg, environ)
