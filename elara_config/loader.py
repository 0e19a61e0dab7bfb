"""
Configuration loader (``elara_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the typed
``elara_config.schema`` dataclasses.  Runtime callers go through
``elara_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Unknown keys and wrongly-typed values raise ``ValueError`` with the
  offending key path; sections that are absent fall back to defaults.
* ``compute_checksum`` is deterministic for the same parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range or wrongly-typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from elara_config.schema import (
    ConcurrencySettings,
    DatabaseSettings,
    LoggingSettings,
    WorkflowConfig,
)
from elara_engines.validation import ValidationLimits

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: configuration root must be a mapping")
    return data


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _typed_fields(section: str, data: dict[str, Any], target: type) -> dict[str, Any]:
    """Check ``data`` against the dataclass ``target`` field by field."""
    defaults = target()
    known = {f.name: type(getattr(defaults, f.name)) for f in fields(target)}
    parsed: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            raise ValueError(f"unknown key '{section}.{key}'")
        expected = known[key]
        # bool is an int subclass; keep them apart
        if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValueError(f"'{section}.{key}' must be an integer, got {value!r}")
        if expected is bool and not isinstance(value, bool):
            raise ValueError(f"'{section}.{key}' must be true or false, got {value!r}")
        if expected is str and not isinstance(value, str):
            raise ValueError(f"'{section}.{key}' must be a string, got {value!r}")
        parsed[key] = value
    return parsed


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    settings = DatabaseSettings(**_typed_fields("database", data, DatabaseSettings))
    if not settings.url:
        raise ValueError("'database.url' must not be empty")
    if settings.pool_size < 1:
        raise ValueError("'database.pool_size' must be at least 1")
    return settings


def parse_concurrency(data: dict[str, Any]) -> ConcurrencySettings:
    settings = ConcurrencySettings(**_typed_fields("concurrency", data, ConcurrencySettings))
    if settings.cascade_max_attempts < 1:
        raise ValueError("'concurrency.cascade_max_attempts' must be at least 1")
    return settings


def parse_validation(data: dict[str, Any]) -> ValidationLimits:
    limits = ValidationLimits(**_typed_fields("validation", data, ValidationLimits))
    for f in fields(ValidationLimits):
        if getattr(limits, f.name) < 0:
            raise ValueError(f"'validation.{f.name}' must not be negative")
    if limits.project_name_min > limits.project_name_max:
        raise ValueError("'validation.project_name_min' exceeds project_name_max")
    if limits.story_title_min > limits.story_title_max:
        raise ValueError("'validation.story_title_min' exceeds story_title_max")
    if limits.project_deadline_min_days > limits.project_deadline_max_days:
        raise ValueError(
            "'validation.project_deadline_min_days' exceeds project_deadline_max_days"
        )
    return limits


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    settings = LoggingSettings(**_typed_fields("logging", data, LoggingSettings))
    level = settings.level.upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"'logging.level' is not a log level: {settings.level!r}")
    return LoggingSettings(level=level)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON form of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_config(data: dict[str, Any]) -> WorkflowConfig:
    """Build a ``WorkflowConfig`` from an already-loaded YAML document."""
    allowed = {"config_id", "version", "database", "concurrency", "validation", "logging"}
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"unknown configuration sections: {sorted(unknown)}")

    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ValueError(f"'version' must be an integer, got {version!r}")

    return WorkflowConfig(
        config_id=str(data.get("config_id", "default")),
        version=version,
        database=parse_database(_section(data, "database")),
        concurrency=parse_concurrency(_section(data, "concurrency")),
        validation=parse_validation(_section(data, "validation")),
        logging=parse_logging(_section(data, "logging")),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> WorkflowConfig:
    return parse_config(load_yaml_file(path))
