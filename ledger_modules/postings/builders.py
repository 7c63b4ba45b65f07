"""
Business-event posting builders (``ledger_modules.postings.builders``).

Responsibility
--------------
Turn business events -- purchase orders, supplier invoices and payments,
cost of goods sold, stock adjustments, customer invoices, credit notes,
receipts, owner capital and drawings -- into balanced ``JournalEntryData``
ready for ``JournalEntryManager.create_entry``.

Architecture position
---------------------
**Modules layer** -- pure functions, zero I/O.  Accounts are resolved by
number through an explicit ``ChartOfAccounts`` and a ``PostingAccounts``
map (defaults from ``ledger_config/defaults/settings.yaml``).

Invariants enforced
-------------------
* Every builder returns an entry whose debits equal its credits.
* Entry numbers carry the event prefix (PUR-, PAY-, COGS-, ADJ-, INV-,
  CN-, RCP-, PO-, JE-) followed by the source document number.
* Amounts are rounded to 2 places before lines are built.

Failure modes
-------------
* AccountNotFoundError when a configured account number is not in the chart.
* ValueError for non-positive amounts.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Self
from uuid import UUID

from ledger_engines.kpi import CompanyType
from ledger_kernel.db.types import ZERO, round_money, to_decimal
from ledger_kernel.domain.journal import (
    EntryKind,
    JournalEntryData,
    JournalLineData,
    make_entry_number,
)
from ledger_kernel.domain.taxonomy import ChartOfAccounts
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.postings.builders")


@dataclass(frozen=True)
class PostingAccounts:
    """Account numbers used by the posting builders."""

    raw_materials: str = "1109"
    finished_goods: str = "1110"
    vat_input: str = "1105"
    trade_debtors: str = "1106"
    cash: str = "1102"
    bank: str = "1103"
    trade_payables: str = "3100"
    vat_payable: str = "3104"
    share_capital: str = "5101"
    drawings: str = "5108"
    revenue: str = "6100"
    other_income: str = "6103"
    cost_of_sales: str = "7100"
    inventory_adjustments: str = "8106"
    memorandum: str = "9900"
    memorandum_contra: str = "9901"

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown posting accounts: {sorted(unknown)}")
        return cls(**{k: str(v) for k, v in data.items()})

    def inventory_for(self, company_type: CompanyType) -> str:
        """Trading companies hold finished goods; others hold raw materials."""
        if CompanyType(company_type) == CompanyType.TRADING:
            return self.finished_goods
        return self.raw_materials


_DEFAULT_ACCOUNTS = PostingAccounts()


def _amount(value: Decimal | int | str, name: str) -> Decimal:
    amount = round_money(to_decimal(value))
    if amount <= ZERO:
        raise ValueError(f"{name} must be positive, got {amount}")
    return amount


def _optional_amount(value: Decimal | int | str, name: str) -> Decimal:
    amount = round_money(to_decimal(value))
    if amount < ZERO:
        raise ValueError(f"{name} cannot be negative, got {amount}")
    return amount


class _Lines:
    """Accumulates lines, resolving account numbers against the chart."""

    def __init__(self, chart: ChartOfAccounts):
        self._chart = chart
        self.lines: list[JournalLineData] = []

    def _id(self, number: str) -> UUID:
        return self._chart.by_number(number).account_id

    def debit(self, number: str, amount: Decimal, description: str) -> None:
        self.lines.append(JournalLineData(self._id(number), debit=amount, description=description))

    def credit(self, number: str, amount: Decimal, description: str) -> None:
        self.lines.append(JournalLineData(self._id(number), credit=amount, description=description))


def _entry(
    kind: EntryKind,
    source: str,
    entry_date: date,
    description: str,
    lines: _Lines,
    reference: str | None = None,
) -> JournalEntryData:
    data = JournalEntryData(
        entry_number=make_entry_number(kind, source),
        entry_date=entry_date,
        description=description,
        lines=tuple(lines.lines),
        reference=reference or source,
        kind=kind,
    )
    logger.debug(
        "posting_entry_built",
        extra={"entry_number": data.entry_number, "line_count": len(data.lines)},
    )
    return data


# =========================================================================
# Purchasing
# =========================================================================


def purchase_order_entry(
    chart: ChartOfAccounts,
    po_number: str,
    entry_date: date,
    supplier: str,
    amount: Decimal,
    *,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """Memorandum entry tracking a purchase commitment; nets to zero."""
    amount = _amount(amount, "amount")
    lines = _Lines(chart)
    lines.debit(accounts.memorandum, amount, f"PO commitment to {supplier}")
    lines.credit(accounts.memorandum_contra, amount, "PO commitment contra")
    return _entry(
        EntryKind.PURCHASE_ORDER, po_number, entry_date,
        f"Purchase Order to {supplier}", lines,
    )


def purchase_entry(
    chart: ChartOfAccounts,
    purchase_number: str,
    entry_date: date,
    supplier: str,
    net: Decimal,
    vat: Decimal = ZERO,
    *,
    company_type: CompanyType = CompanyType.TRADING,
    supplier_invoice_number: str | None = None,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """
    Supplier invoice.

    Dr Inventory (cost of sales for professional services)
    Dr VAT Input (if any)
        Cr Trade Payables
    """
    net = _amount(net, "net")
    vat = _optional_amount(vat, "vat")
    debit_account = (
        accounts.cost_of_sales
        if CompanyType(company_type) == CompanyType.PROFESSIONAL_SERVICES
        else accounts.inventory_for(company_type)
    )
    lines = _Lines(chart)
    lines.debit(debit_account, net, f"Purchase from {supplier}")
    if vat > ZERO:
        lines.debit(accounts.vat_input, vat, "VAT on purchase")
    lines.credit(accounts.trade_payables, net + vat, f"Payable to {supplier}")
    return _entry(
        EntryKind.PURCHASE, purchase_number, entry_date,
        f"Purchase from {supplier}", lines,
        reference=supplier_invoice_number,
    )


def purchase_payment_entry(
    chart: ChartOfAccounts,
    payment_reference: str,
    entry_date: date,
    supplier: str,
    amount: Decimal,
    *,
    purchase_number: str | None = None,
    bank_account_number: str | None = None,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """Dr Trade Payables / Cr Bank."""
    amount = _amount(amount, "amount")
    lines = _Lines(chart)
    lines.debit(
        accounts.trade_payables, amount,
        f"Payment for {purchase_number}" if purchase_number else f"Payment to {supplier}",
    )
    lines.credit(bank_account_number or accounts.bank, amount, f"Payment to {supplier}")
    return _entry(
        EntryKind.PAYMENT, payment_reference, entry_date,
        f"Payment to {supplier}", lines,
    )


# =========================================================================
# Inventory
# =========================================================================


def cogs_entry(
    chart: ChartOfAccounts,
    invoice_number: str,
    entry_date: date,
    cost: Decimal,
    company_type: CompanyType = CompanyType.TRADING,
    *,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """
    Dr Cost of Goods Sold / Cr Inventory.

    ``cost`` is normally ``ledger_engines.costing.cost_of_issue`` of the
    quantity sold.
    """
    cost = _amount(cost, "cost")
    lines = _Lines(chart)
    lines.debit(accounts.cost_of_sales, cost, f"COGS for {invoice_number}")
    lines.credit(accounts.inventory_for(company_type), cost, "Inventory reduction")
    return _entry(
        EntryKind.COGS, invoice_number, entry_date,
        f"Cost of Goods Sold - {invoice_number}", lines,
    )


def inventory_adjustment_entry(
    chart: ChartOfAccounts,
    adjustment_number: str,
    entry_date: date,
    item_name: str,
    amount: Decimal,
    is_shortage: bool,
    *,
    reason: str | None = None,
    company_type: CompanyType = CompanyType.TRADING,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """
    Stock count adjustment.

    Shortage: Dr Inventory Adjustments (expense) / Cr Inventory
    Surplus:  Dr Inventory / Cr Other Income
    """
    amount = _amount(amount, "amount")
    inventory = accounts.inventory_for(company_type)
    lines = _Lines(chart)
    if is_shortage:
        lines.debit(accounts.inventory_adjustments, amount, f"Loss/shortage of {item_name}")
        lines.credit(inventory, amount, "Inventory reduction")
    else:
        lines.debit(inventory, amount, "Inventory increase")
        lines.credit(accounts.other_income, amount, f"Gain/surplus of {item_name}")
    return _entry(
        EntryKind.ADJUSTMENT, adjustment_number, entry_date,
        f"Inventory Adjustment - {item_name}", lines,
        reference=reason,
    )


# =========================================================================
# Sales
# =========================================================================


def invoice_entry(
    chart: ChartOfAccounts,
    invoice_number: str,
    entry_date: date,
    customer: str,
    subtotal: Decimal,
    tax: Decimal = ZERO,
    *,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """Dr Trade Debtors / Cr Revenue / Cr VAT Payable."""
    subtotal = _amount(subtotal, "subtotal")
    tax = _optional_amount(tax, "tax")
    lines = _Lines(chart)
    lines.debit(accounts.trade_debtors, subtotal + tax, f"Invoice {invoice_number} - {customer}")
    lines.credit(accounts.revenue, subtotal, f"Sales to {customer}")
    if tax > ZERO:
        lines.credit(accounts.vat_payable, tax, f"Tax on Invoice {invoice_number}")
    return _entry(
        EntryKind.INVOICE, invoice_number, entry_date,
        f"Invoice: {customer}", lines,
    )


def credit_note_entry(
    chart: ChartOfAccounts,
    credit_note_number: str,
    entry_date: date,
    customer: str,
    subtotal: Decimal,
    tax: Decimal = ZERO,
    *,
    invoice_number: str | None = None,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """
    The invoice entry with sides swapped.

    Credit-note amounts are often captured as negatives; absolute values
    are used.
    """
    subtotal = _amount(abs(to_decimal(subtotal)), "subtotal")
    tax = _optional_amount(abs(to_decimal(tax)), "tax")
    lines = _Lines(chart)
    lines.debit(accounts.revenue, subtotal, f"Credit note for {customer}")
    if tax > ZERO:
        lines.debit(accounts.vat_payable, tax, f"Tax reversal on {credit_note_number}")
    lines.credit(accounts.trade_debtors, subtotal + tax, f"Credit Note {credit_note_number}")
    return _entry(
        EntryKind.CREDIT_NOTE, credit_note_number, entry_date,
        f"Credit Note: {customer}", lines,
        reference=invoice_number,
    )


def customer_receipt_entry(
    chart: ChartOfAccounts,
    receipt_reference: str,
    entry_date: date,
    customer: str,
    amount: Decimal,
    *,
    invoice_number: str | None = None,
    received_in: str = "bank",
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """Dr Bank (or Cash) / Cr Trade Debtors."""
    amount = _amount(amount, "amount")
    asset = accounts.cash if received_in == "cash" else accounts.bank
    lines = _Lines(chart)
    lines.debit(asset, amount, f"Payment received from {customer}")
    lines.credit(
        accounts.trade_debtors, amount,
        f"Payment for Invoice {invoice_number}" if invoice_number else f"Receipt from {customer}",
    )
    return _entry(
        EntryKind.RECEIPT, receipt_reference, entry_date,
        f"Payment received: {invoice_number or customer}", lines,
        reference=invoice_number,
    )


# =========================================================================
# Owner transactions
# =========================================================================


def capital_contribution_entry(
    chart: ChartOfAccounts,
    reference: str,
    entry_date: date,
    owner_name: str,
    amount: Decimal,
    *,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """Dr Bank / Cr Share Capital."""
    amount = _amount(amount, "amount")
    lines = _Lines(chart)
    lines.debit(accounts.bank, amount, f"Capital contribution by {owner_name}")
    lines.credit(accounts.share_capital, amount, f"Investment by {owner_name}")
    return _entry(
        EntryKind.GENERAL, reference, entry_date,
        f"Capital Contribution: {owner_name}", lines,
    )


def owner_drawing_entry(
    chart: ChartOfAccounts,
    reference: str,
    entry_date: date,
    owner_name: str,
    amount: Decimal,
    *,
    accounts: PostingAccounts = _DEFAULT_ACCOUNTS,
) -> JournalEntryData:
    """Dr Drawings / Cr Bank."""
    amount = _amount(amount, "amount")
    lines = _Lines(chart)
    lines.debit(accounts.drawings, amount, f"Drawing by {owner_name}")
    lines.credit(accounts.bank, amount, f"Withdrawal by {owner_name}")
    return _entry(
        EntryKind.GENERAL, reference, entry_date,
        f"Owner's Drawing: {owner_name}", lines,
    )
