"""
Transient-failure retry for persistence calls.

Responsibility:
    Re-run a unit of persistence work when it fails for an infrastructure
    reason that a second attempt can plausibly fix (dropped connection,
    serialization/lock conflict, optimistic version clash).  Validation
    failures are never retried.

Architecture position:
    Kernel > Services -- imperative shell helper used by callers of
    JournalEntryManager and InventoryCostingService.

Invariants enforced:
    - LedgerKernelError subclasses (unbalanced entry, duplicate number,
      negative stock, ...) propagate on the first occurrence.
    - IntegrityError is not transient and propagates unchanged.
    - Exhausted retries surface as PersistenceError, an InfrastructureError,
      chained to the last underlying failure.
    - Each attempt of ``run_in_transaction`` uses a fresh session that is
      rolled back on failure; no partial work leaks between attempts.

Failure modes:
    - PersistenceError after ``max_attempts`` transient failures.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from ledger_kernel.exceptions import LedgerKernelError, PersistenceError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 0.05


def is_transient(exc: BaseException) -> bool:
    """True when ``exc`` is an infrastructure failure worth retrying."""
    if isinstance(exc, LedgerKernelError):
        return False
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError):
        return bool(exc.connection_invalidated)
    return False


def retry_transient(
    operation: Callable[[], T],
    *,
    operation_name: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``operation`` until it succeeds, retrying transient failures only.

    Args:
        operation: Zero-argument callable performing the work.
        operation_name: Name recorded in logs and in PersistenceError.
        max_attempts: Total attempts including the first.
        backoff_seconds: Linear backoff unit between attempts.
        sleep: Injectable sleep (tests pass a no-op).

    Returns:
        The operation's return value.

    Raises:
        LedgerKernelError: Validation failures, immediately.
        PersistenceError: Transient failures exhausted the attempts.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except (DBAPIError, StaleDataError) as exc:
            if not is_transient(exc):
                raise
            if attempt == max_attempts:
                logger.error(
                    "transient_failure_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempt,
                        "error_type": type(exc).__name__,
                    },
                )
                raise PersistenceError(operation_name, attempt, str(exc)) from exc
            logger.warning(
                "transient_failure_retry",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "error_type": type(exc).__name__,
                },
            )
            sleep(backoff_seconds * attempt)

    raise AssertionError("unreachable")


def run_in_transaction(
    session_factory: sessionmaker[Session],
    work: Callable[[Session], T],
    *,
    operation_name: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``work(session)`` in its own committed transaction, with retries.

    Usage:
        entry_id = run_in_transaction(
            get_session_factory(),
            lambda s: JournalEntryManager(s).create_entry(data, actor_id=actor),
            operation_name="create_entry",
        )
    """

    def _attempt() -> T:
        session = session_factory()
        try:
            result = work(session)
            session.commit()
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return retry_transient(
        _attempt,
        operation_name=operation_name,
        max_attempts=max_attempts,
        backoff_seconds=backoff_seconds,
        sleep=sleep,
    )
