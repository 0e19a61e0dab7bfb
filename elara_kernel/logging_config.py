"""Structured JSON logging for the workflow kernel.

Every record becomes one JSON line.  The workflow operation in flight
(correlation id, acting user, operation name, target entity) is carried
in a context variable and stamped onto each line, so cascade and
approval logs emitted deep inside a transaction can be tied back to the
call that caused them.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

_LOGGER_PREFIX = "elara_kernel"

_OPERATION_FIELDS = ("correlation_id", "actor_id", "operation", "entity_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})

_operation_scope: ContextVar[Mapping[str, str]] = ContextVar(
    "elara_operation_scope", default=_EMPTY
)


def _merged(fields: Mapping[str, Any]) -> Mapping[str, str]:
    scope = dict(_operation_scope.get())
    for name in _OPERATION_FIELDS:
        value = fields.get(name)
        if value is not None:
            scope[name] = str(value)
    return MappingProxyType(scope)


class LogContext:
    """Operation-scoped fields attached to every log line.

    Only ``correlation_id``, ``actor_id``, ``operation`` and ``entity_id``
    are tracked; other keyword arguments are ignored.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Overwrite the named fields; ``None`` leaves a field as it was."""
        _operation_scope.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_operation_scope.get())

    @staticmethod
    def clear() -> None:
        _operation_scope.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Scope fields to a ``with`` block and restore the outer scope after."""
        token = _operation_scope.set(_merged(fields))
        try:
            yield
        finally:
            _operation_scope.reset(token)


_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Renders ids, dates, enums and field sets; anything else via ``str``."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(str(item) for item in obj)
        return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    # Kernel errors carry code, entity_type, entity_id and reason
    # as plain attributes.
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_operation_scope.get(),
        }
        for key, value in vars(record).items():
            if key not in _STDLIB_KEYS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``elara_kernel`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the kernel logger.  Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Drop the kernel handler so tests can configure afresh."""
    global _configured
    with _lock:
        _configured = False
        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.handlers.clear()
        kernel_logger.setLevel(logging.WARNING)
