"""Business-event posting builders producing balanced ``JournalEntryData``."""

from ledger_modules.postings.builders import (
    PostingAccounts,
    capital_contribution_entry,
    cogs_entry,
    credit_note_entry,
    customer_receipt_entry,
    inventory_adjustment_entry,
    invoice_entry,
    owner_drawing_entry,
    purchase_entry,
    purchase_order_entry,
    purchase_payment_entry,
)

__all__ = [
    "PostingAccounts",
    "capital_contribution_entry",
    "cogs_entry",
    "credit_note_entry",
    "customer_receipt_entry",
    "inventory_adjustment_entry",
    "invoice_entry",
    "owner_drawing_entry",
    "purchase_entry",
    "purchase_order_entry",
    "purchase_payment_entry",
]
