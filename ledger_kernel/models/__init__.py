"""ORM models.  Importing this package registers every table on Base.metadata."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.inventory import InventoryItem, InventoryMovement
from ledger_kernel.models.journal import JournalEntry, JournalLine

__all__ = [
    "Account",
    "InventoryItem",
    "InventoryMovement",
    "JournalEntry",
    "JournalLine",
]
