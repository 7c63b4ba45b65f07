"""
Tests for journal domain values: balance check, line validation, numbering.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.journal import (
    EntryKind,
    JournalEntryData,
    JournalLineData,
    check_balance,
    make_entry_number,
    reversal_lines,
    validate_entry,
)
from ledger_kernel.exceptions import (
    EmptyEntryError,
    InvalidLineError,
    PostingError,
    UnbalancedEntryError,
)

INVENTORY = uuid4()
PAYABLES = uuid4()


def _entry(*lines: JournalLineData, number: str = "JE-1") -> JournalEntryData:
    return JournalEntryData(
        entry_number=number,
        entry_date=date(2024, 1, 31),
        description="test",
        lines=tuple(lines),
    )


class TestBalanceCheck:
    def test_balanced_entry(self):
        check = check_balance([
            JournalLineData(INVENTORY, debit=Decimal("1000")),
            JournalLineData(PAYABLES, credit=Decimal("1000")),
        ])
        assert check.is_balanced
        assert check.difference == Decimal("0")

    def test_difference_under_tolerance_is_balanced(self):
        check = check_balance([
            JournalLineData(INVENTORY, debit=Decimal("100.005")),
            JournalLineData(PAYABLES, credit=Decimal("100.000")),
        ])
        assert check.is_balanced

    def test_difference_at_tolerance_is_unbalanced(self):
        check = check_balance([
            JournalLineData(INVENTORY, debit=Decimal("100.01")),
            JournalLineData(PAYABLES, credit=Decimal("100.00")),
        ])
        assert not check.is_balanced


class TestValidateEntry:
    def test_unbalanced_reports_difference(self):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            validate_entry(_entry(
                JournalLineData(INVENTORY, debit=Decimal("1000")),
                JournalLineData(PAYABLES, credit=Decimal("900")),
            ))
        err = exc_info.value
        assert err.total_debit == Decimal("1000")
        assert err.total_credit == Decimal("900")
        assert err.difference == Decimal("100")
        assert err.code == "UNBALANCED_ENTRY"

    def test_empty_entry(self):
        with pytest.raises(EmptyEntryError):
            validate_entry(_entry())

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidLineError) as exc_info:
            validate_entry(_entry(
                JournalLineData(INVENTORY, debit=Decimal("-5")),
                JournalLineData(PAYABLES, credit=Decimal("-5")),
            ))
        assert exc_info.value.line_index == 0

    def test_both_sides_on_one_line_rejected(self):
        with pytest.raises(InvalidLineError) as exc_info:
            validate_entry(_entry(
                JournalLineData(INVENTORY, debit=Decimal("5")),
                JournalLineData(PAYABLES, debit=Decimal("5"), credit=Decimal("10")),
            ))
        assert exc_info.value.line_index == 1

    def test_posting_errors_share_base(self):
        assert issubclass(UnbalancedEntryError, PostingError)
        assert issubclass(EmptyEntryError, PostingError)


class TestNumbering:
    @pytest.mark.parametrize(
        "kind,prefix",
        [
            (EntryKind.PURCHASE_ORDER, "PO"),
            (EntryKind.PURCHASE, "PUR"),
            (EntryKind.PAYMENT, "PAY"),
            (EntryKind.COGS, "COGS"),
            (EntryKind.ADJUSTMENT, "ADJ"),
            (EntryKind.REVERSAL, "REV"),
            (EntryKind.INVOICE, "INV"),
            (EntryKind.CREDIT_NOTE, "CN"),
            (EntryKind.RECEIPT, "RCP"),
        ],
    )
    def test_prefixes(self, kind, prefix):
        assert make_entry_number(kind, "1001") == f"{prefix}-1001"

    def test_blank_source_rejected(self):
        with pytest.raises(ValueError):
            make_entry_number(EntryKind.PURCHASE, "  ")

    def test_swapped_line(self):
        line = JournalLineData(INVENTORY, debit=Decimal("10"), description="x")
        swapped = line.swapped()
        assert swapped.debit == Decimal("0")
        assert swapped.credit == Decimal("10")
        assert swapped.account_id == INVENTORY

    def test_reversal_lines_swap_sides_and_label(self):
        original = (
            JournalLineData(INVENTORY, debit=Decimal("10"), description="Stock"),
            JournalLineData(PAYABLES, credit=Decimal("10")),
        )
        compensating = reversal_lines(original)
        assert [(line.debit, line.credit) for line in compensating] == [
            (Decimal("0"), Decimal("10")),
            (Decimal("10"), Decimal("0")),
        ]
        assert [line.description for line in compensating] == ["Reversal: Stock", "Reversal:"]
        assert check_balance(original + compensating).difference == Decimal("0")
