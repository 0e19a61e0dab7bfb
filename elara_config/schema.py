"""
Workflow configuration schema.

The YAML set under ``elara_config/sets/`` is parsed into these frozen
dataclasses by ``elara_config.loader``.  Validation limits reuse the
engine-level ``ValidationLimits`` so the engines never import this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from elara_engines.validation import ValidationLimits


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings passed to ``elara_kernel.db.engine.build_engine``."""

    url: str = "sqlite:///elara.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_pre_ping: bool = True

    def pool_options(self) -> dict[str, int | bool]:
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_pre_ping": self.pool_pre_ping,
        }


@dataclass(frozen=True)
class ConcurrencySettings:
    # Attempts per workflow operation before CONFLICT is returned
    cascade_max_attempts: int = 3


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class WorkflowConfig:
    """Everything the runtime reads from configuration."""

    config_id: str = "default"
    version: int = 1
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    concurrency: ConcurrencySettings = field(default_factory=ConcurrencySettings)
    validation: ValidationLimits = field(default_factory=ValidationLimits)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
