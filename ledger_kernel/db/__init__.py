"""Database layer - engine, base classes, types, and immutability listeners."""

from ledger_kernel.db.base import Base, TrackedBase, UUIDString
from ledger_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from ledger_kernel.db.types import BALANCE_TOLERANCE, Money, Quantity, round_money

__all__ = [
    "BALANCE_TOLERANCE",
    "Base",
    "Money",
    "Quantity",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "round_money",
    "session_scope",
]
