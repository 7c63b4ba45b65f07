"""
Declarative bases for the ledger ORM models.

Every table gets a uuid4 primary key stored as String(36), so the same
schema runs on PostgreSQL and SQLite.  ``Decimal`` annotations map to
Numeric(38, 9): amounts, quantities and average costs are never floats.

``TrackedBase`` adds who/when audit columns.  ``updated_*`` may change on
rows whose financial fields are locked (see ``db/immutability.py``); the
immutability listeners only guard ledger-relevant columns.

This module imports nothing from the rest of the kernel.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID on the Python side, 36-character string in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Abstract base recording the creating actor and audit timestamps."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
    created_by_id: Mapped[UUID]
    updated_by_id: Mapped[UUID | None]
