"""
AccountService -- creates chart-of-accounts rows.

Responsibility:
    Validates the type and sub-category of new accounts and seeds a chart
    from configuration definitions (see ``ledger_config.loader``).

Architecture position:
    Kernel > Services.

Invariants enforced:
    - account_type is one of the seven AccountType values.
    - sub_category is resolved through ``taxonomy.classify``; values that do
      not belong to the type are stored as "other".
    - Numbers are unique; a duplicate raises DuplicateAccountNumberError.

Failure modes:
    - InvalidAccountTypeError, DuplicateAccountNumberError.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.types import ZERO, to_decimal
from ledger_kernel.domain.taxonomy import (
    AccountInfo,
    AccountType,
    SubCategory,
    classify,
    parse_account_type,
)
from ledger_kernel.exceptions import DuplicateAccountNumberError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_service")


class AccountDefinitionLike(Protocol):
    """Shape of a chart definition record (see ledger_config.schema)."""

    number: str
    name: str
    type: str
    sub_category: str | None
    opening_balance: Decimal


class AccountService(BaseService[Account]):
    """Writes to the chart of accounts."""

    def create_account(
        self,
        number: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        sub_category: SubCategory | str | None = None,
        opening_balance: Decimal | str | int = ZERO,
        is_default: bool = False,
    ) -> AccountInfo:
        resolved_type = parse_account_type(account_type)
        resolved_sub = classify(resolved_type, sub_category)
        raw_sub = sub_category.value if isinstance(sub_category, SubCategory) else sub_category
        if raw_sub not in (None, resolved_sub.value):
            logger.warning(
                "account_sub_category_unclassified",
                extra={"number": number, "sub_category": str(sub_category)},
            )

        account = Account(
            number=number,
            name=name,
            account_type=resolved_type.value,
            sub_category=resolved_sub.value,
            opening_balance=to_decimal(opening_balance),
            is_active=True,
            is_default=is_default,
            created_by_id=actor_id,
        )
        try:
            with self.session.begin_nested():
                self.session.add(account)
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateAccountNumberError(number) from exc

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "number": number,
                "account_type": resolved_type.value,
                "sub_category": resolved_sub.value,
            },
        )
        return account.to_info()

    def seed_chart(
        self,
        definitions: Iterable[AccountDefinitionLike],
        actor_id: UUID,
    ) -> list[AccountInfo]:
        """
        Create every account in ``definitions`` that does not exist yet.

        Each definition carries number, name, type, sub_category and
        opening_balance.  Existing numbers are skipped so
        seeding can be re-run.
        """
        selector = AccountSelector(self.session)
        created: list[AccountInfo] = []
        skipped = 0
        for definition in definitions:
            number = str(definition.number)
            if selector.find_by_number(number) is not None:
                skipped += 1
                continue
            created.append(
                self.create_account(
                    number=number,
                    name=definition.name,
                    account_type=definition.type,
                    actor_id=actor_id,
                    sub_category=definition.sub_category,
                    opening_balance=definition.opening_balance,
                    is_default=True,
                )
            )
        logger.info(
            "chart_seeded",
            extra={"accounts_created": len(created), "accounts_skipped": skipped},
        )
        return created
