"""
BaseService -- abstract base for kernel write services.

Responsibility:
    Common constructor and session contract.  Services persist through
    ``session.flush()`` and never commit or roll back; the caller
    (``session_scope`` or ``run_in_transaction``) owns the transaction.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - Never calls ``session.commit()``, so several service calls can be
          composed into one atomic unit by the caller.

    Non-goals:
        - Read-only queries belong in ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
