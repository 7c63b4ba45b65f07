"""
Config -> runtime bridges.

Functions that turn ``LedgerSettings`` sections into the config objects the
kernel services and modules accept.  They live here because the kernel
must never import ``ledger_config``.

Usage:
    from ledger_config import load_settings
    from ledger_config.bridges import build_reporting_config

    settings = load_settings()
    service = ReportingService(session, config=build_reporting_config(settings))
"""

from __future__ import annotations

from ledger_config.schema import LedgerSettings
from ledger_kernel.services.inventory_costing import InventoryCostingConfig
from ledger_modules.postings.builders import PostingAccounts
from ledger_modules.reporting.config import ReportingConfig


def build_reporting_config(settings: LedgerSettings) -> ReportingConfig:
    if not settings.reporting:
        return ReportingConfig.with_defaults()
    return ReportingConfig.from_dict(settings.reporting)


def build_inventory_config(settings: LedgerSettings) -> InventoryCostingConfig:
    if not settings.inventory:
        return InventoryCostingConfig.with_defaults()
    return InventoryCostingConfig.from_dict(settings.inventory)


def build_posting_accounts(settings: LedgerSettings) -> PostingAccounts:
    """Posting account numbers; keys not given keep their defaults."""
    return PostingAccounts.from_dict(settings.posting_accounts)
