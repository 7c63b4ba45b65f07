"""
Tests for JournalEntryManager.

Covers:
- Balanced entries post; unbalanced entries are rejected with the difference
- Entries touching unknown accounts or reusing a number are rejected
- Reversal swaps sides, links the original and happens at most once
- Posted entries are immutable at the ORM boundary
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.journal import (
    EntryKind,
    JournalEntryData,
    JournalEntryStatus,
    JournalLineData,
)
from ledger_kernel.domain.taxonomy import AccountType
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateEntryNumberError,
    EmptyEntryError,
    EntryAlreadyReversedError,
    EntryNotPostedError,
    ImmutabilityViolationError,
    UnbalancedEntryError,
)
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.ledger_selector import LedgerSelector


@pytest.fixture
def accounts(create_account):
    return {
        "inventory": create_account("1110", "Finished Goods", AccountType.CURRENT_ASSET, "inventories"),
        "payables": create_account("3100", "Trade Payables", AccountType.CURRENT_LIABILITY, "trade-payables"),
        "bank": create_account("1103", "Bank", AccountType.CURRENT_ASSET, "bank-cash"),
    }


def _purchase(accounts, debit: str = "1000", credit: str = "1000", number: str = "PUR-1") -> JournalEntryData:
    return JournalEntryData(
        entry_number=number,
        entry_date=date(2024, 6, 15),
        description="Stock purchase",
        lines=(
            JournalLineData(accounts["inventory"].account_id, debit=Decimal(debit)),
            JournalLineData(accounts["payables"].account_id, credit=Decimal(credit)),
        ),
        kind=EntryKind.PURCHASE,
    )


class TestCreateEntry:
    def test_balanced_entry_posts(self, journal_manager, accounts, test_actor_id, deterministic_clock):
        entry_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)

        entry = journal_manager.get_entry(entry_id)
        assert entry.status == JournalEntryStatus.POSTED
        assert entry.entry_number == "PUR-1"
        assert entry.total_debit == Decimal("1000")
        assert entry.total_credit == Decimal("1000")
        assert [line.line_seq for line in entry.lines] == [0, 1]

    def test_header_totals_and_timestamp(self, session, journal_manager, accounts, test_actor_id):
        entry_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        row = session.get(JournalEntry, entry_id)
        assert row.total_debit == Decimal("1000")
        assert row.posted_at is not None
        assert row.created_by_id == test_actor_id

    def test_lookup_by_number(self, journal_manager, accounts, test_actor_id):
        entry_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        assert journal_manager.get_entry("PUR-1").entry_id == entry_id
        assert journal_manager.get_entry("PUR-404") is None

    def test_unbalanced_rejected_with_difference(self, session, journal_manager, accounts, test_actor_id):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            journal_manager.create_entry(_purchase(accounts, credit="900"), actor_id=test_actor_id)
        assert exc_info.value.difference == Decimal("100")
        assert session.query(JournalEntry).count() == 0

    def test_sub_cent_difference_accepted(self, journal_manager, accounts, test_actor_id):
        entry_id = journal_manager.create_entry(
            _purchase(accounts, debit="100.005", credit="100.00"), actor_id=test_actor_id,
        )
        assert journal_manager.get_entry(entry_id) is not None

    def test_empty_entry_rejected(self, journal_manager, test_actor_id):
        data = JournalEntryData(
            entry_number="JE-EMPTY", entry_date=date(2024, 6, 15), description="", lines=(),
        )
        with pytest.raises(EmptyEntryError):
            journal_manager.create_entry(data, actor_id=test_actor_id)

    def test_unknown_account_rejected(self, session, journal_manager, accounts, test_actor_id):
        data = JournalEntryData(
            entry_number="JE-X",
            entry_date=date(2024, 6, 15),
            description="",
            lines=(
                JournalLineData(accounts["bank"].account_id, debit=Decimal("5")),
                JournalLineData(uuid4(), credit=Decimal("5")),
            ),
        )
        with pytest.raises(AccountNotFoundError):
            journal_manager.create_entry(data, actor_id=test_actor_id)
        assert session.query(JournalLine).count() == 0

    def test_duplicate_number_rejected(self, journal_manager, accounts, test_actor_id):
        journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        with pytest.raises(DuplicateEntryNumberError) as exc_info:
            journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        assert exc_info.value.entry_number == "PUR-1"

    def test_duplicate_does_not_disturb_earlier_work(self, session, journal_manager, accounts, test_actor_id):
        journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        with pytest.raises(DuplicateEntryNumberError):
            journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        assert len(LedgerSelector(session).posted_entries()) == 1


class TestReverseEntry:
    def test_reversal_swaps_lines(self, journal_manager, accounts, test_actor_id):
        original_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        reversal_id = journal_manager.reverse_entry(
            original_id, actor_id=test_actor_id, reason="wrong supplier",
        )

        reversal = journal_manager.get_entry(reversal_id)
        assert reversal.entry_number == "REV-PUR-1"
        assert reversal.reversal_of_id == original_id
        assert reversal.reference == "PUR-1"
        assert reversal.description == "Reversal of PUR-1: wrong supplier"
        by_account = {line.account_id: line for line in reversal.lines}
        assert by_account[accounts["inventory"].account_id].credit == Decimal("1000")
        assert by_account[accounts["payables"].account_id].debit == Decimal("1000")

    def test_reversal_defaults_to_clock_date(self, journal_manager, accounts, test_actor_id):
        original_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        reversal_id = journal_manager.reverse_entry(original_id, actor_id=test_actor_id)
        assert journal_manager.get_entry(reversal_id).entry_date == date(2024, 6, 30)

    def test_original_untouched(self, journal_manager, accounts, test_actor_id):
        original_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        before = journal_manager.get_entry(original_id)
        journal_manager.reverse_entry(original_id, actor_id=test_actor_id)
        assert journal_manager.get_entry(original_id) == before

    def test_net_effect_is_zero(self, session, journal_manager, accounts, test_actor_id):
        original_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        journal_manager.reverse_entry(original_id, actor_id=test_actor_id)
        net: dict = {}
        for entry in LedgerSelector(session).posted_entries():
            for line in entry.lines:
                net[line.account_id] = net.get(line.account_id, Decimal("0")) + line.debit - line.credit
        assert len(net) == 2
        assert all(balance == Decimal("0") for balance in net.values())

    def test_reversal_lines_mirror_original(self, journal_manager, accounts, test_actor_id):
        original_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        original = journal_manager.get_entry(original_id)
        reversal = journal_manager.get_entry(
            journal_manager.reverse_entry(original_id, actor_id=test_actor_id)
        )
        assert [(line.account_id, line.debit, line.credit) for line in reversal.lines] == [
            (line.account_id, line.credit, line.debit) for line in original.lines
        ]

    def test_second_reversal_rejected(self, journal_manager, accounts, test_actor_id):
        original_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        first = journal_manager.reverse_entry(original_id, actor_id=test_actor_id)
        with pytest.raises(EntryAlreadyReversedError) as exc_info:
            journal_manager.reverse_entry("PUR-1", actor_id=test_actor_id)
        assert exc_info.value.reversal_entry_id == str(first)

    def test_unknown_entry(self, journal_manager, test_actor_id):
        with pytest.raises(EntryNotPostedError) as exc_info:
            journal_manager.reverse_entry(uuid4(), actor_id=test_actor_id)
        assert exc_info.value.status == "not_found"


class TestImmutability:
    def test_posted_header_cannot_change(self, session, journal_manager, accounts, test_actor_id):
        entry_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        row = session.get(JournalEntry, entry_id)
        row.description = "edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_posted_line_cannot_change(self, session, journal_manager, accounts, test_actor_id):
        entry_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        line = session.get(JournalEntry, entry_id).lines[0]
        line.debit = Decimal("1")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_posted_entry_cannot_be_deleted(self, session, journal_manager, accounts, test_actor_id):
        entry_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        session.delete(session.get(JournalEntry, entry_id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestLogging:
    def test_unbalanced_logged(self, journal_manager, accounts, test_actor_id, captured_logs):
        with pytest.raises(UnbalancedEntryError):
            journal_manager.create_entry(_purchase(accounts, credit="900"), actor_id=test_actor_id)
        (record,) = [r for r in captured_logs() if r["message"] == "unbalanced_entry_rejected"]
        assert record["difference"] == "100"
        assert record["actor_id"] == str(test_actor_id)

    def test_posted_and_reversed_logged(self, journal_manager, accounts, test_actor_id, captured_logs):
        original_id = journal_manager.create_entry(_purchase(accounts), actor_id=test_actor_id)
        journal_manager.reverse_entry(original_id, actor_id=test_actor_id)
        messages = [r["message"] for r in captured_logs()]
        assert messages.count("journal_entry_posted") == 2
        assert "journal_entry_reversed" in messages
