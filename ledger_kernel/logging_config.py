"""
Structured JSON logging for the ledger kernel.

Every ledger event is one JSON object per line.  The payload is assembled
from three sources, in this order:

1. The record itself: ``ts``, ``level``, ``logger``, ``message``.
2. The ambient ``LogContext`` (correlation, actor, entry and item ids),
   bound by services around each posting or movement.
3. The ``extra={...}`` mapping passed at the call site.

A logged ``LedgerKernelError`` contributes its ``code`` and every public
attribute as ``exc_<name>``, so a rejected posting can be queried by
``exc_difference`` without parsing the message.

Usage:
    logger = get_logger("services.journal")
    with LogContext.bind(actor_id=actor_id):
        logger.info("journal_entry_posted", extra={"entry_number": "JE-1"})
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CONTEXT_FIELDS: tuple[str, ...] = ("correlation_id", "actor_id", "entry_id", "item_id")

_LOGGER_PREFIX = "ledger_kernel"

_context: ContextVar[dict[str, str] | None] = ContextVar("ledger_log_context", default=None)


def _checked(fields: dict[str, Any]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
    return {name: str(value) for name, value in fields.items() if value is not None}


class LogContext:
    """Context-local log fields shared by every record emitted in a unit of work."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Merge fields into the current context. None values are ignored."""
        _context.set({**LogContext.get_all(), **_checked(fields)})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get() or {})

    @staticmethod
    def clear() -> None:
        _context.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block, then restore."""
        token = _context.set({**LogContext.get_all(), **_checked(fields)})
        try:
            yield
        finally:
            _context.reset(token)


# Attributes every LogRecord has; anything else came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
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
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``ledger_kernel`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``ledger_kernel`` hierarchy once per process."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Detach handlers so tests can reconfigure."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
