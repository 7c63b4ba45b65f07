"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    append-only double-entry ledger.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - entry_number is unique ("PUR-1001", "REV-PUR-1001", ...).
    - reversal_of_id is unique: an entry is reversed at most once.
    - A header is DRAFT until its lines are confirmed persisted, then POSTED.
      Readers filter on POSTED only.
    - POSTED entries and their lines are never updated or deleted
      (db/immutability.py).

Failure modes:
    - IntegrityError on duplicate entry_number or a second reversal.
    - ImmutabilityViolationError on any change to a posted entry.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.journal import (
    JournalEntryStatus,
    LedgerEntry,
    LedgerLine,
)


class JournalEntry(TrackedBase):
    """
    Journal entry header.

    Contract:
        Created by JournalEntryManager only.  total_debit/total_credit are a
        cache written in the same flush as the DRAFT -> POSTED transition.

    Guarantees:
        - Posted entries are immutable.
        - A reversal points at its original through reversal_of_id.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("entry_number", name="uq_journal_entry_number"),
        UniqueConstraint("reversal_of_id", name="uq_journal_reversal_of"),
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_status", "status"),
    )

    entry_number: Mapped[str] = mapped_column(String(120), nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    kind: Mapped[str] = mapped_column(String(10), nullable=False)

    reference: Mapped[str | None] = mapped_column(String(200), nullable=True)

    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=JournalEntryStatus.DRAFT.value,
    )

    total_debit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    total_credit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side="JournalEntry.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} status={self.status}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    def to_ledger_entry(self) -> LedgerEntry:
        """Convert to the read-side DTO."""
        return LedgerEntry(
            entry_id=self.id,
            entry_number=self.entry_number,
            entry_date=self.entry_date,
            status=JournalEntryStatus(self.status),
            lines=tuple(line.to_ledger_line() for line in self.lines),
            description=self.description,
            reference=self.reference,
            reversal_of_id=self.reversal_of_id,
        )


class JournalLine(TrackedBase):
    """
    One debit or credit line of a journal entry.

    Contract:
        Belongs to exactly one entry and references exactly one account.
        Holds a debit column and a credit column; at most one is non-zero.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    credit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<JournalLine Dr {self.debit} Cr {self.credit}>"

    def to_ledger_line(self) -> LedgerLine:
        return LedgerLine(
            account_id=self.account_id,
            debit=self.debit,
            credit=self.credit,
            description=self.description,
            line_seq=self.line_seq,
        )
