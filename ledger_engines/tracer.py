"""
Trace logging for pure calculation engines.

``@traced_engine`` wraps an engine function and, after each call, emits one
``LEDGER_ENGINE_TRACE`` record carrying the engine name and version, the
wall time, and a fingerprint of the arguments named in
``fingerprint_fields``.  Two calls with equal inputs produce equal
fingerprints whether arguments were passed positionally or by keyword, so a
KPI or aging figure in a report can be matched to the run that produced it.

The fingerprint is the first 16 hex characters of SHA-256 over a canonical
JSON form of the arguments: dict keys sorted, sets ordered, Decimal, date
and Enum rendered by value, dataclasses expanded field by field.

Usage:
    @traced_engine("ar_aging", "1.0", fingerprint_fields=("as_at_date",))
    def bucketize(invoices, as_at_date, group_by=GroupBy.CUSTOMER, customers=None):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")


def _plain(value: Any) -> Any:
    """Reduce ``value`` to JSON-compatible data with a stable ordering."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return _plain(value.value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=str)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return str(value)


def compute_input_fingerprint(fingerprint_fields: tuple[str, ...], arguments: dict[str, Any]) -> str:
    """16-char SHA-256 prefix over the named arguments; absent names count as None."""
    canonical = json.dumps(
        {name: _plain(arguments.get(name)) for name in fingerprint_fields},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorate a pure engine so each invocation logs ``LEDGER_ENGINE_TRACE``."""

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.perf_counter()
            result = func(*args, **kwargs)
            logger.info(
                "LEDGER_ENGINE_TRACE",
                extra={
                    "trace_type": "LEDGER_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
