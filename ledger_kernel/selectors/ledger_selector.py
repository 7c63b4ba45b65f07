"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries: posted entries for a window or up
    to a cutoff date, and single-entry lookup.  The ledger is a derived view
    over posted lines; no balance is stored anywhere.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Invariants enforced:
    - Only POSTED entries are returned.  A DRAFT header whose lines are not
      yet confirmed is never visible to statement aggregation.
    - All amounts are Decimal.

Failure modes:
    - Empty results when nothing is posted.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.journal import JournalEntryStatus, LedgerEntry
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector[JournalEntry]):
    """
    Selector for posted-ledger reads.

    Contract:
        Every query filters status == POSTED.  Date filters are inclusive.

    Non-goals:
        - No currency conversion; amounts are in the single book currency.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _posted(self):
        return select(JournalEntry).where(
            JournalEntry.status == JournalEntryStatus.POSTED.value
        )

    def posted_entries(
        self,
        as_of_date: date | None = None,
        start_date: date | None = None,
    ) -> tuple[LedgerEntry, ...]:
        """
        Posted entries dated within [start_date, as_of_date].

        Either bound may be omitted.  Ordered by date then entry number.
        """
        query = self._posted()
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if as_of_date is not None:
            query = query.where(JournalEntry.entry_date <= as_of_date)
        query = query.order_by(JournalEntry.entry_date, JournalEntry.entry_number)

        entries = self.session.execute(query).scalars().all()
        return tuple(entry.to_ledger_entry() for entry in entries)

    def find_entry(self, reference: UUID | str) -> LedgerEntry | None:
        """Look up one entry (any status) by id or entry number."""
        if isinstance(reference, UUID):
            entry = self.session.get(JournalEntry, reference)
        else:
            entry = self.session.execute(
                select(JournalEntry).where(JournalEntry.entry_number == reference)
            ).scalar_one_or_none()
        return entry.to_ledger_entry() if entry is not None else None
