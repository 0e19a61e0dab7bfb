"""
elara_engines.tracer -- Engine invocation tracer emitting ELARA_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging: engine name, version,
    a deterministic fingerprint of selected arguments, the outcome, and the
    duration.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Emits a log record only; never mutates inputs.

Usage:
    @traced_engine("access_policy", "1.0", fingerprint_fields=("operation",))
    def authorize(actor, operation, target):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

# Own logger namespace under the kernel root, so the kernel's handler
# formats these records without engines importing kernel logging.
_logger = logging.getLogger("elara_kernel.engines.tracer")


def _canonicalize(value: Any) -> str:
    """Stable string representation of a value for fingerprinting."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (bool, int, float, str)):
        return str(value)
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (frozenset, set)):
        return "{" + ",".join(sorted(_canonicalize(v) for v in value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over the named arguments.

    Missing arguments are recorded as "null".
    """
    parts = [
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:16]


def _outcome(result: Any) -> Any:
    # AccessDecision and similar results expose ``allowed``
    allowed = getattr(result, "allowed", None)
    if allowed is not None:
        return "allow" if allowed else "deny"
    if isinstance(result, (bool, int, str)) or result is None:
        return result
    return type(result).__name__


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits ELARA_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "access_policy").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names (positional or keyword) to
            include in the input fingerprint hash.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, dict(bound.arguments))

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 3)

            _logger.debug(
                "ELARA_ENGINE_TRACE",
                extra={
                    "trace_type": "ELARA_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "outcome": _outcome(result),
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
