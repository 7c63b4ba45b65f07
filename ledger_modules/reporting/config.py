"""
Reporting Configuration Schema.

Report formatting and inclusion options.  Statement placement comes from
each account's explicit type and sub-category, so there are no
number-prefix rules here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from ledger_kernel.db.types import BALANCE_TOLERANCE
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Controls labelling, zero-balance filtering and the balance tolerance.
    """

    # Entity name shown on reports
    entity_name: str = "Company"

    # Single reporting currency; a label only, no translation is done
    default_currency: str = "USD"

    # Whether to list accounts whose balance is zero
    include_zero_balances: bool = False

    # Whether zero-balance inactive accounts are listed when
    # include_zero_balances is set.  Inactive accounts with a balance are
    # always listed.
    include_inactive: bool = False

    # |assets - (liabilities + equity)| below this counts as balanced
    balance_tolerance: Decimal = BALANCE_TOLERANCE

    def __post_init__(self):
        if len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter ISO 4217 code")
        self.balance_tolerance = Decimal(str(self.balance_tolerance))
        if self.balance_tolerance <= 0:
            raise ValueError("balance_tolerance must be positive")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
