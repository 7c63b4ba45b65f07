"""Kernel services: flush-only writers over a caller-owned session."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.inventory_costing import (
    InventoryCostingConfig,
    InventoryCostingService,
    InventoryValuation,
    ItemValuation,
)
from ledger_kernel.services.journal_entry_manager import JournalEntryManager
from ledger_kernel.services.retry import retry_transient, run_in_transaction

__all__ = [
    "AccountService",
    "InventoryCostingConfig",
    "InventoryCostingService",
    "InventoryValuation",
    "ItemValuation",
    "JournalEntryManager",
    "retry_transient",
    "run_in_transaction",
]
