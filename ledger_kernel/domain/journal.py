"""
Journal domain values -- entry input, balance check, numbering, ledger views.

Responsibility:
    Pure value objects and functions for double-entry journal data:
    the ``JournalEntryData`` input accepted by JournalEntryManager, the
    debit/credit balance check, deterministic entry numbering per
    transaction kind, line swapping for compensating entries, and the
    read-side ``LedgerEntry`` view consumed by statement generation.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Balance: an entry is postable only when |Σdebit - Σcredit| < 0.01.
      The difference is reported, never auto-corrected.
    - Line amounts are non-negative and at most one side is non-zero.
    - Entry number = "<PREFIX>-<source document number>".

Failure modes:
    - InvalidLineError, EmptyEntryError, UnbalancedEntryError from
      ``validate_entry``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import ZERO, is_within_tolerance
from ledger_kernel.exceptions import (
    EmptyEntryError,
    InvalidLineError,
    UnbalancedEntryError,
)


class JournalEntryStatus(str, Enum):
    """
    Lifecycle of a persisted entry.

    DRAFT is the header-only state between header and line persistence;
    only POSTED entries are visible to readers.
    """

    DRAFT = "draft"
    POSTED = "posted"


class EntryKind(str, Enum):
    """Transaction kind; the value is the entry-number prefix."""

    PURCHASE_ORDER = "PO"
    PURCHASE = "PUR"
    PAYMENT = "PAY"
    COGS = "COGS"
    ADJUSTMENT = "ADJ"
    REVERSAL = "REV"
    INVOICE = "INV"
    CREDIT_NOTE = "CN"
    RECEIPT = "RCP"
    GENERAL = "JE"

    @property
    def prefix(self) -> str:
        return self.value


def make_entry_number(kind: EntryKind, source_document_number: str) -> str:
    """Build the traceable entry number for a source document."""
    source = str(source_document_number).strip()
    if not source:
        raise ValueError("source_document_number cannot be blank")
    return f"{kind.prefix}-{source}"


@dataclass(frozen=True)
class JournalLineData:
    """One debit or credit line of an entry being created."""

    account_id: UUID
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str | None = None

    def swapped(self) -> JournalLineData:
        """Same line with debit and credit exchanged."""
        return JournalLineData(
            account_id=self.account_id,
            debit=self.credit,
            credit=self.debit,
            description=self.description,
        )


@dataclass(frozen=True)
class JournalEntryData:
    """Input to ``JournalEntryManager.create_entry``."""

    entry_number: str
    entry_date: date
    description: str
    lines: tuple[JournalLineData, ...]
    reference: str | None = None
    kind: EntryKind = EntryKind.GENERAL
    reversal_of_id: UUID | None = None


def reversal_lines(lines: Iterable) -> tuple[JournalLineData, ...]:
    """
    Compensating lines for an entry: same accounts, sides swapped.

    ``lines`` may be ``JournalLineData``, ``LedgerLine`` or ORM journal
    lines; anything carrying account_id, debit, credit and description.
    """
    return tuple(
        JournalLineData(
            account_id=line.account_id,
            debit=line.debit,
            credit=line.credit,
            description=f"Reversal: {line.description or ''}".rstrip(),
        ).swapped()
        for line in lines
    )


@dataclass(frozen=True)
class BalanceCheck:
    """Result of summing an entry's lines."""

    total_debit: Decimal
    total_credit: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit

    @property
    def is_balanced(self) -> bool:
        return is_within_tolerance(self.difference)


def check_balance(lines: Sequence[JournalLineData]) -> BalanceCheck:
    """Sum debit and credit columns."""
    return BalanceCheck(
        total_debit=sum((line.debit for line in lines), ZERO),
        total_credit=sum((line.credit for line in lines), ZERO),
    )


def validate_lines(lines: Sequence[JournalLineData]) -> None:
    """Reject negative amounts and lines carrying both a debit and a credit."""
    for index, line in enumerate(lines):
        if line.debit < ZERO or line.credit < ZERO:
            raise InvalidLineError(index, "amounts must be non-negative")
        if line.debit != ZERO and line.credit != ZERO:
            raise InvalidLineError(index, "a line cannot carry both a debit and a credit")


def validate_entry(data: JournalEntryData) -> BalanceCheck:
    """
    Validate an entry before persistence.

    Returns:
        The BalanceCheck of a valid entry.

    Raises:
        EmptyEntryError: No lines.
        InvalidLineError: A malformed line.
        UnbalancedEntryError: Debits and credits differ by 0.01 or more.
    """
    if not data.lines:
        raise EmptyEntryError(data.entry_number)
    validate_lines(data.lines)
    check = check_balance(data.lines)
    if not check.is_balanced:
        raise UnbalancedEntryError(
            total_debit=check.total_debit,
            total_credit=check.total_credit,
            difference=check.difference,
            entry_number=data.entry_number,
        )
    return check


# Read side


@dataclass(frozen=True)
class LedgerLine:
    """A persisted journal line as seen by readers."""

    account_id: UUID
    debit: Decimal
    credit: Decimal
    description: str | None = None
    line_seq: int = 0


@dataclass(frozen=True)
class LedgerEntry:
    """A persisted journal entry as seen by readers."""

    entry_id: UUID
    entry_number: str
    entry_date: date
    status: JournalEntryStatus
    lines: tuple[LedgerLine, ...]
    description: str = ""
    reference: str | None = None
    reversal_of_id: UUID | None = None

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)
