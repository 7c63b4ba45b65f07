"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every journal line.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Account numbers are unique (display/sort key only).
    - account_type is stored explicitly at creation and is the only input to
      statement classification.
    - sub_category is stored as given; readers resolve it through
      ``taxonomy.classify`` so custom values land under "Other".

Failure modes:
    - IntegrityError on duplicate number (surfaced by AccountService as
      DuplicateAccountNumberError).
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.taxonomy import (
    AccountInfo,
    AccountType,
    classify,
    parse_account_type,
)


class Account(TrackedBase):
    """
    A ledger account.

    Contract:
        Journal lines reference accounts by id.  The type is fixed when the
        account is created.

    Non-goals:
        - Balances are never stored here; they are derived from posted lines.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("number", name="uq_account_number"),
        Index("idx_account_type", "account_type"),
    )

    number: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    account_type: Mapped[str] = mapped_column(String(30), nullable=False)

    sub_category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Account {self.number} {self.name} ({self.account_type})>"

    @property
    def type(self) -> AccountType:
        return parse_account_type(self.account_type)

    def to_info(self) -> AccountInfo:
        """Convert to the frozen bridge type used by the pure layer."""
        account_type = self.type
        return AccountInfo(
            account_id=self.id,
            number=self.number,
            name=self.name,
            account_type=account_type,
            sub_category=classify(account_type, self.sub_category),
            opening_balance=self.opening_balance or Decimal("0"),
            is_active=self.is_active,
        )
