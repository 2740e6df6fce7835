"""
inventory_engines.tracer -- INVENTORY_ENGINE_TRACE records for pure engines.

Responsibility:
    ``@traced_engine`` wraps an engine entry point and logs one
    INVENTORY_ENGINE_TRACE record per call: engine name and version, a
    fingerprint of the selected keyword inputs, selected attributes of the
    result (e.g. the reconciliation action) and the duration.

Architecture position:
    Engines -- support code.  Emits a log record; performs no other I/O.

Invariants enforced:
    - The fingerprint depends only on input values: mapping keys are
      sorted, Decimals are normalized (``50`` and ``50.000`` agree),
      dataclasses are walked field by field.
    - Inputs and results are only read, never mutated.
    - A call that raises emits no trace; the exception propagates as is.

Usage:
    @traced_engine("reconciliation", "1.0",
                   fingerprint_fields=("snapshot",),
                   result_fields=("action", "to_round"))
    def evaluate(self, *, snapshot): ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from inventory_kernel.logging_config import get_logger

TRACE_EVENT = "INVENTORY_ENGINE_TRACE"

_logger = get_logger("engines.tracer")


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return _canonicalize(value.value)
    if isinstance(value, Decimal):
        return str(value.normalize()) if value.is_finite() else str(value)
    if isinstance(value, (str, int, float)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _canonicalize(
            {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        )
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    if isinstance(value, (set, frozenset)):
        return "[" + ",".join(sorted(_canonicalize(v) for v in value)) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """16 hex chars of SHA-256 over ``field=value`` pairs; missing -> null."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _result_summary(result: Any, result_fields: tuple[str, ...]) -> dict[str, Any]:
    summary: dict[str, Any] = {}
    for name in result_fields:
        value = getattr(result, name, None)
        summary[name] = value.value if isinstance(value, Enum) else value
    return summary


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    result_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - started) * 1000, 2)

            _logger.info(
                TRACE_EVENT,
                extra={
                    "trace_type": TRACE_EVENT,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, kwargs)
                        if fingerprint_fields
                        else ""
                    ),
                    "result": _result_summary(result, result_fields),
                    "duration_ms": duration_ms,
                },
            )
            return result

        return wrapper

    return decorator
