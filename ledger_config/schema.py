"""
Ledger configuration schema.

Typed, frozen records for the YAML files under ``ledger_config/defaults``.
The loader parses YAML into these types; ``bridges`` turns them into the
config objects the services take.

Key distinction:
  AccountDefinition / LedgerSettings = source artifact (human-authored)
  ReportingConfig, InventoryCostingConfig, PostingAccounts = runtime inputs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class AccountDefinition:
    """One account of a configured chart."""

    number: str
    name: str
    type: str  # AccountType value, e.g. "current-asset"
    sub_category: str | None = None
    opening_balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class ChartDefinition:
    """A versioned chart of accounts."""

    version: int
    accounts: tuple[AccountDefinition, ...]
    checksum: str = ""

    def numbers(self) -> tuple[str, ...]:
        return tuple(a.number for a in self.accounts)


@dataclass(frozen=True)
class LedgerSettings:
    """
    Raw settings sections.

    Each section is kept as a mapping so the owning component validates its
    own keys (see ``bridges``).
    """

    reporting: dict[str, Any] = field(default_factory=dict)
    inventory: dict[str, Any] = field(default_factory=dict)
    posting_accounts: dict[str, Any] = field(default_factory=dict)
    checksum: str = ""
