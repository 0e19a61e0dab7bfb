"""
elara_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Other components receive the returned
    ``WorkflowConfig`` (or one of its sections) instead of reading files or
    environment variables themselves.

Architecture position:
    Configuration.  Sits above ``elara_engines`` (it reuses
    ``ValidationLimits``) and is consumed by ``WorkflowService`` and the
    engine bootstrap.  The kernel's domain and engines never import it.

Environment:
    ELARA_CONFIG_PATH   -- YAML file to load instead of sets/default.yaml.
    ELARA_DATABASE_URL  -- replaces ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- the configured path does not exist.
    - ``ValueError`` -- malformed or out-of-range values.

Every successful call logs an ``elara_config_loaded`` entry with the
config id, version and checksum.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from elara_config.loader import load_config
from elara_config.schema import (
    ConcurrencySettings,
    DatabaseSettings,
    LoggingSettings,
    WorkflowConfig,
)

_logger = logging.getLogger("elara_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "ELARA_CONFIG_PATH"
DATABASE_URL_ENV = "ELARA_DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> WorkflowConfig:
    """The only public configuration entrypoint.

    Args:
        path: Explicit YAML file.  Falls back to ``ELARA_CONFIG_PATH``, then
            to the packaged default set.

    Returns:
        A frozen ``WorkflowConfig``.

    Raises:
        FileNotFoundError: If the YAML file does not exist.
        ValueError: If validation of the parsed values fails.
    """
    source = Path(path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    config = load_config(source)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = replace(config, database=replace(config.database, url=database_url))

    _logger.info(
        "elara_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
            "database_url_override": bool(database_url),
        },
    )
    return config


__all__ = [
    "ConcurrencySettings",
    "DatabaseSettings",
    "LoggingSettings",
    "WorkflowConfig",
    "get_active_config",
]
