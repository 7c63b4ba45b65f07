"""
JournalEntryManager -- validates and posts balanced double-entry transactions.

Responsibility:
    The only writer of journal entries.  Validates debit/credit equality,
    persists the header and its lines as one unit, and creates compensating
    reversal entries.  Posted rows are never altered.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes domain/journal.py for
    validation and numbering, models/journal.py for persistence, and
    LedgerSelector for read-back.

Invariants enforced:
    - Balance: |Σdebit - Σcredit| < 0.01, checked before anything touches
      the session.  The difference is reported, never corrected.
    - Header/line atomicity: the header is flushed as DRAFT, the lines are
      flushed and counted, and only then does the header become POSTED.
      Readers see POSTED only, so a header-only entry is never authoritative.
    - Append-only: reversals are new entries with swapped sides and
      reversal_of_id set; the original row is untouched.
    - One reversal per entry (unique reversal_of_id), original locked with
      SELECT ... FOR UPDATE while the reversal is built.
    - Flush-only: the caller owns commit/rollback.

Failure modes:
    - UnbalancedEntryError, EmptyEntryError, InvalidLineError: bad input.
    - AccountNotFoundError: a line references an unknown account.
    - DuplicateEntryNumberError: entry_number already used.
    - EntryNotPostedError / EntryAlreadyReversedError on reversal.
    - PersistenceError if the line read-back does not match what was written.

Audit relevance:
    journal_entry_posted and journal_entry_reversed are logged with entry
    number, totals and actor.  The entry number prefix (PUR-, PAY-, COGS-,
    ADJ-, REV-, ...) ties every entry to its source document.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.journal import (
    BalanceCheck,
    EntryKind,
    JournalEntryData,
    JournalEntryStatus,
    LedgerEntry,
    make_entry_number,
    reversal_lines,
    validate_entry,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateEntryNumberError,
    EntryAlreadyReversedError,
    EntryNotPostedError,
    PersistenceError,
    PostingError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.journal_entry_manager")


class JournalEntryManager(BaseService[JournalEntry]):
    """
    Posts and reverses journal entries.

    Contract:
        ``create_entry`` returns the new entry id or raises a PostingError
        subclass; ``reverse_entry`` returns the reversal's id.

    Guarantees:
        - Every entry this class posts balances within 0.01.
        - Original entries are never updated or deleted.

    Non-goals:
        - Does not originate business events; see ledger_modules.postings.
        - Does not commit.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._ledger = LedgerSelector(session)

    # =========================================================================
    # Create
    # =========================================================================

    def create_entry(self, data: JournalEntryData, actor_id: UUID) -> UUID:
        """
        Validate and post a journal entry.

        Args:
            data: Entry header and lines.
            actor_id: Who is posting.

        Returns:
            The id of the posted entry.
        """
        with LogContext.bind(actor_id=actor_id):
            try:
                check = validate_entry(data)
            except UnbalancedEntryError as exc:
                logger.warning(
                    "unbalanced_entry_rejected",
                    extra={
                        "entry_number": data.entry_number,
                        "total_debit": exc.total_debit,
                        "total_credit": exc.total_credit,
                        "difference": exc.difference,
                    },
                )
                raise
            except PostingError:
                logger.warning(
                    "journal_entry_rejected",
                    extra={"entry_number": data.entry_number},
                    exc_info=True,
                )
                raise

            self._require_accounts(data)
            entry = self._persist(data, check, actor_id)

            logger.info(
                "journal_entry_posted",
                extra={
                    "entry_id": str(entry.id),
                    "entry_number": entry.entry_number,
                    "kind": data.kind.value,
                    "entry_date": data.entry_date.isoformat(),
                    "line_count": len(data.lines),
                    "total_debit": check.total_debit,
                    "total_credit": check.total_credit,
                },
            )
            return entry.id

    def _require_accounts(self, data: JournalEntryData) -> None:
        wanted = {line.account_id for line in data.lines}
        found = set(
            self.session.execute(
                select(Account.id).where(Account.id.in_(wanted))
            ).scalars()
        )
        missing = wanted - found
        if missing:
            raise AccountNotFoundError(str(sorted(missing, key=str)[0]))

    def _persist(
        self,
        data: JournalEntryData,
        check: BalanceCheck,
        actor_id: UUID,
    ) -> JournalEntry:
        entry = JournalEntry(
            entry_number=data.entry_number,
            entry_date=data.entry_date,
            kind=data.kind.value,
            reference=data.reference,
            description=data.description,
            status=JournalEntryStatus.DRAFT.value,
            reversal_of_id=data.reversal_of_id,
            created_by_id=actor_id,
        )

        # Header first, as DRAFT.  The savepoint turns a uniqueness conflict
        # into a typed error without discarding the caller's other work.
        try:
            with self.session.begin_nested():
                self.session.add(entry)
                self.session.flush()
        except IntegrityError as exc:
            if data.reversal_of_id is not None:
                raise EntryAlreadyReversedError(data.reference or str(data.reversal_of_id)) from exc
            raise DuplicateEntryNumberError(data.entry_number) from exc

        for seq, line in enumerate(data.lines):
            self.session.add(
                JournalLine(
                    journal_entry_id=entry.id,
                    account_id=line.account_id,
                    debit=line.debit,
                    credit=line.credit,
                    description=line.description,
                    line_seq=seq,
                    created_by_id=actor_id,
                )
            )
        self.session.flush()

        persisted = self.session.execute(
            select(func.count())
            .select_from(JournalLine)
            .where(JournalLine.journal_entry_id == entry.id)
        ).scalar_one()
        if persisted != len(data.lines):
            logger.error(
                "journal_lines_not_confirmed",
                extra={
                    "entry_number": data.entry_number,
                    "expected": len(data.lines),
                    "persisted": persisted,
                },
            )
            raise PersistenceError(
                "create_entry",
                1,
                f"expected {len(data.lines)} lines for {data.entry_number}, found {persisted}",
            )

        entry.status = JournalEntryStatus.POSTED.value
        entry.total_debit = check.total_debit
        entry.total_credit = check.total_credit
        entry.posted_at = self.clock.now()
        self.session.flush()
        # Lines were added by foreign key; reload the collection on next access.
        self.session.expire(entry, ["lines"])
        return entry

    # =========================================================================
    # Reverse
    # =========================================================================

    def reverse_entry(
        self,
        original_reference: UUID | str,
        actor_id: UUID,
        reversal_date: date | None = None,
        reason: str | None = None,
    ) -> UUID:
        """
        Post a compensating entry that swaps every debit and credit.

        Args:
            original_reference: Entry id or entry number of the original.
            actor_id: Who is reversing.
            reversal_date: Accounting date of the reversal (defaults to today
                per the injected clock).
            reason: Free-text reason appended to the description.

        Returns:
            The id of the reversal entry, numbered ``REV-<original number>``.
        """
        with LogContext.bind(actor_id=actor_id):
            original = self._load_for_reversal(original_reference)

            lines = reversal_lines(original.to_ledger_entry().lines)
            description = f"Reversal of {original.entry_number}"
            if reason:
                description = f"{description}: {reason}"

            data = JournalEntryData(
                entry_number=make_entry_number(EntryKind.REVERSAL, original.entry_number),
                entry_date=reversal_date or self.clock.today(),
                description=description,
                lines=lines,
                reference=original.entry_number,
                kind=EntryKind.REVERSAL,
                reversal_of_id=original.id,
            )
            reversal_id = self.create_entry(data, actor_id)

            logger.info(
                "journal_entry_reversed",
                extra={
                    "original_entry_id": str(original.id),
                    "original_entry_number": original.entry_number,
                    "reversal_entry_id": str(reversal_id),
                    "reason": reason,
                },
            )
            return reversal_id

    def _load_for_reversal(self, reference: UUID | str) -> JournalEntry:
        """Lock the original and check it can be reversed."""
        query = select(JournalEntry)
        if isinstance(reference, UUID):
            query = query.where(JournalEntry.id == reference)
        else:
            query = query.where(JournalEntry.entry_number == reference)
        original = self.session.execute(query.with_for_update()).scalar_one_or_none()

        if original is None:
            raise EntryNotPostedError(str(reference), "not_found")
        if original.status != JournalEntryStatus.POSTED:
            raise EntryNotPostedError(original.entry_number, str(original.status))

        existing = self.session.execute(
            select(JournalEntry.id).where(JournalEntry.reversal_of_id == original.id)
        ).scalar_one_or_none()
        if existing is not None:
            logger.warning(
                "reversal_already_exists",
                extra={
                    "original_entry_number": original.entry_number,
                    "reversal_entry_id": str(existing),
                },
            )
            raise EntryAlreadyReversedError(original.entry_number, str(existing))
        return original

    # =========================================================================
    # Read
    # =========================================================================

    def get_entry(self, reference: UUID | str) -> LedgerEntry | None:
        """Entry by id or number, with its lines."""
        return self._ledger.find_entry(reference)
