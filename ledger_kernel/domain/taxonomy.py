"""
ChartOfAccountsTaxonomy -- canonical account classification.

Responsibility:
    Defines the closed set of account types, the closed set of
    sub-categories allowed under each type, their human-readable section
    headers, and the explicit ``ChartOfAccounts`` handle that statement,
    KPI and posting code receive as an argument.

Architecture position:
    Kernel > Domain -- pure data and lookup, zero I/O.  Imported by models/,
    services/, the engines and the reporting module.

Invariants enforced:
    - ``AccountType`` is the sole source of truth for statement placement.
      Account numbers are a sort/display key and are never parsed.
    - Every account resolves to exactly one sub-category; anything
      unknown or not allowed for the type resolves to ``SubCategory.OTHER``
      so it still lands in totals.
    - No process-wide "current chart": callers pass a ``ChartOfAccounts``.

Failure modes:
    - InvalidAccountTypeError from ``parse_account_type`` on unknown types.
    - AccountNotFoundError from ``ChartOfAccounts.require``/``by_number``.
    - DuplicateAccountNumberError when a chart is built with two accounts
      sharing a number.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateAccountNumberError,
    InvalidAccountTypeError,
)


class AccountType(str, Enum):
    """Statement classification of an account, fixed at creation."""

    CURRENT_ASSET = "current-asset"
    NON_CURRENT_ASSET = "non-current-asset"
    CURRENT_LIABILITY = "current-liability"
    NON_CURRENT_LIABILITY = "non-current-liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance naturally increases."""

    DEBIT = "debit"
    CREDIT = "credit"


class SubCategory(str, Enum):
    """Finer classification used for section grouping and KPI selection."""

    # current-asset
    BANK_CASH = "bank-cash"
    ACCOUNTS_RECEIVABLE = "accounts-receivable"
    INVENTORIES = "inventories"
    PREPAYMENTS = "prepayments"
    SHORT_TERM_INVESTMENTS = "short-term-investments"
    # non-current-asset
    PROPERTY_PLANT_EQUIPMENT = "property-plant-equipment"
    INTANGIBLE_ASSETS = "intangible-assets"
    LONG_TERM_INVESTMENTS = "long-term-investments"
    DEFERRED_TAX_ASSETS = "deferred-tax-assets"
    # current-liability
    TRADE_PAYABLES = "trade-payables"
    ACCRUED_EXPENSES = "accrued-expenses"
    TAX_PAYABLES = "tax-payables"
    PROVISIONS = "provisions"
    SHORT_TERM_BORROWINGS = "short-term-borrowings"
    DEFERRED_INCOME = "deferred-income"
    # non-current-liability
    LONG_TERM_BORROWINGS = "long-term-borrowings"
    LEASE_LIABILITIES = "lease-liabilities"
    DEFERRED_TAX_LIABILITIES = "deferred-tax-liabilities"
    # equity
    SHARE_CAPITAL = "share-capital"
    RETAINED_EARNINGS = "retained-earnings"
    RESERVES = "reserves"
    DRAWINGS = "drawings"
    # revenue
    SALES_REVENUE = "sales-revenue"
    OTHER_INCOME = "other-income"
    # expense
    COST_OF_SALES = "cost-of-sales"
    OPERATING_EXPENSES = "operating-expenses"
    FINANCE_COSTS = "finance-costs"
    INCOME_TAX = "income-tax"
    # fallback, valid under every type
    OTHER = "other"


TAXONOMY: dict[AccountType, tuple[SubCategory, ...]] = {
    AccountType.CURRENT_ASSET: (
        SubCategory.BANK_CASH,
        SubCategory.ACCOUNTS_RECEIVABLE,
        SubCategory.INVENTORIES,
        SubCategory.PREPAYMENTS,
        SubCategory.SHORT_TERM_INVESTMENTS,
    ),
    AccountType.NON_CURRENT_ASSET: (
        SubCategory.PROPERTY_PLANT_EQUIPMENT,
        SubCategory.INTANGIBLE_ASSETS,
        SubCategory.LONG_TERM_INVESTMENTS,
        SubCategory.DEFERRED_TAX_ASSETS,
    ),
    AccountType.CURRENT_LIABILITY: (
        SubCategory.TRADE_PAYABLES,
        SubCategory.ACCRUED_EXPENSES,
        SubCategory.TAX_PAYABLES,
        SubCategory.PROVISIONS,
        SubCategory.SHORT_TERM_BORROWINGS,
        SubCategory.DEFERRED_INCOME,
    ),
    AccountType.NON_CURRENT_LIABILITY: (
        SubCategory.LONG_TERM_BORROWINGS,
        SubCategory.LEASE_LIABILITIES,
        SubCategory.DEFERRED_TAX_LIABILITIES,
    ),
    AccountType.EQUITY: (
        SubCategory.SHARE_CAPITAL,
        SubCategory.RETAINED_EARNINGS,
        SubCategory.RESERVES,
        SubCategory.DRAWINGS,
    ),
    AccountType.REVENUE: (
        SubCategory.SALES_REVENUE,
        SubCategory.OTHER_INCOME,
    ),
    AccountType.EXPENSE: (
        SubCategory.COST_OF_SALES,
        SubCategory.OPERATING_EXPENSES,
        SubCategory.FINANCE_COSTS,
        SubCategory.INCOME_TAX,
    ),
}

SECTION_LABELS: dict[SubCategory, str] = {
    SubCategory.BANK_CASH: "Bank and Cash",
    SubCategory.ACCOUNTS_RECEIVABLE: "Accounts Receivable",
    SubCategory.INVENTORIES: "Inventories",
    SubCategory.PREPAYMENTS: "Prepayments",
    SubCategory.SHORT_TERM_INVESTMENTS: "Short-Term Investments",
    SubCategory.PROPERTY_PLANT_EQUIPMENT: "Property, Plant & Equipment",
    SubCategory.INTANGIBLE_ASSETS: "Intangible Assets",
    SubCategory.LONG_TERM_INVESTMENTS: "Long-Term Investments",
    SubCategory.DEFERRED_TAX_ASSETS: "Deferred Tax Assets",
    SubCategory.TRADE_PAYABLES: "Trade and Other Payables",
    SubCategory.ACCRUED_EXPENSES: "Accrued Expenses",
    SubCategory.TAX_PAYABLES: "Tax Payables",
    SubCategory.PROVISIONS: "Provisions",
    SubCategory.SHORT_TERM_BORROWINGS: "Short-Term Borrowings",
    SubCategory.DEFERRED_INCOME: "Deferred Income",
    SubCategory.LONG_TERM_BORROWINGS: "Long-Term Borrowings",
    SubCategory.LEASE_LIABILITIES: "Lease Liabilities",
    SubCategory.DEFERRED_TAX_LIABILITIES: "Deferred Tax Liabilities",
    SubCategory.SHARE_CAPITAL: "Share Capital",
    SubCategory.RETAINED_EARNINGS: "Retained Earnings",
    SubCategory.RESERVES: "Reserves",
    SubCategory.DRAWINGS: "Drawings",
    SubCategory.SALES_REVENUE: "Sales Revenue",
    SubCategory.OTHER_INCOME: "Other Income",
    SubCategory.COST_OF_SALES: "Cost of Sales",
    SubCategory.OPERATING_EXPENSES: "Operating Expenses",
    SubCategory.FINANCE_COSTS: "Finance Costs",
    SubCategory.INCOME_TAX: "Income Tax",
    SubCategory.OTHER: "Other",
}

_DEBIT_NORMAL = frozenset({
    AccountType.CURRENT_ASSET,
    AccountType.NON_CURRENT_ASSET,
    AccountType.EXPENSE,
})


def parse_account_type(value: str | AccountType) -> AccountType:
    """Resolve a raw type string, raising InvalidAccountTypeError if unknown."""
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(value)
    except ValueError:
        raise InvalidAccountTypeError(str(value)) from None


def classify(
    account_type: AccountType,
    sub_category: str | SubCategory | None,
) -> SubCategory:
    """
    Resolve the sub-category for an account of ``account_type``.

    Unknown values, custom values, and values belonging to a different
    type all fall back to ``SubCategory.OTHER``.
    """
    if sub_category is None:
        return SubCategory.OTHER
    try:
        resolved = SubCategory(sub_category)
    except ValueError:
        return SubCategory.OTHER
    if resolved in TAXONOMY[account_type]:
        return resolved
    return SubCategory.OTHER


def section_label(sub_category: SubCategory) -> str:
    return SECTION_LABELS[sub_category]


def normal_balance_for(account_type: AccountType) -> NormalBalance:
    if account_type in _DEBIT_NORMAL:
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


def is_asset(account_type: AccountType) -> bool:
    return account_type in (AccountType.CURRENT_ASSET, AccountType.NON_CURRENT_ASSET)


def is_liability(account_type: AccountType) -> bool:
    return account_type in (
        AccountType.CURRENT_LIABILITY,
        AccountType.NON_CURRENT_LIABILITY,
    )


def is_current(account_type: AccountType) -> bool:
    return account_type in (AccountType.CURRENT_ASSET, AccountType.CURRENT_LIABILITY)


def is_balance_sheet(account_type: AccountType) -> bool:
    return account_type not in (AccountType.REVENUE, AccountType.EXPENSE)


@dataclass(frozen=True)
class AccountInfo:
    """
    Snapshot of account metadata for the pure layer.

    The bridge between the ORM ``Account`` row and pure statement/KPI
    functions.  ``sub_category`` is always already resolved via
    ``classify``.
    """

    account_id: UUID
    number: str
    name: str
    account_type: AccountType
    sub_category: SubCategory = SubCategory.OTHER
    opening_balance: Decimal = Decimal("0")
    is_active: bool = True

    @property
    def normal_balance(self) -> NormalBalance:
        return normal_balance_for(self.account_type)

    @property
    def section_label(self) -> str:
        return SECTION_LABELS[self.sub_category]

    def natural_balance(self, debit_total: Decimal, credit_total: Decimal) -> Decimal:
        """Balance signed so that the normal side is positive."""
        if self.normal_balance == NormalBalance.DEBIT:
            return debit_total - credit_total
        return credit_total - debit_total


def account_sort_key(number: str) -> tuple[int, int, str]:
    """Numeric numbers by value first, then any non-numeric numbers as text."""
    if number.isdigit():
        return (0, int(number), number)
    return (1, 0, number)


class ChartOfAccounts:
    """
    Explicit, immutable chart-of-accounts handle.

    Contract:
        Built once from ``AccountInfo`` records and passed into every
        statement, KPI and posting call.

    Guarantees:
        - Iteration yields accounts ordered by number, numerically where the
          number is all digits ("9900" before "10000").
        - Account numbers are unique within a chart.

    Non-goals:
        - No persistence; see ``AccountSelector.load_chart``.
    """

    def __init__(self, accounts: Iterable[AccountInfo]):
        by_id: dict[UUID, AccountInfo] = {}
        by_number: dict[str, AccountInfo] = {}
        for acct in accounts:
            if acct.number in by_number:
                raise DuplicateAccountNumberError(acct.number)
            by_id[acct.account_id] = acct
            by_number[acct.number] = acct
        self._by_id = by_id
        self._by_number = by_number
        self._ordered = tuple(sorted(by_id.values(), key=lambda a: account_sort_key(a.number)))

    def __iter__(self) -> Iterator[AccountInfo]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._by_id

    def get(self, account_id: UUID) -> AccountInfo | None:
        return self._by_id.get(account_id)

    def require(self, account_id: UUID) -> AccountInfo:
        acct = self._by_id.get(account_id)
        if acct is None:
            raise AccountNotFoundError(str(account_id))
        return acct

    def by_number(self, number: str) -> AccountInfo:
        acct = self._by_number.get(number)
        if acct is None:
            raise AccountNotFoundError(number)
        return acct

    def by_type(self, *account_types: AccountType) -> tuple[AccountInfo, ...]:
        return tuple(a for a in self._ordered if a.account_type in account_types)

    def by_sub_category(self, sub_category: SubCategory) -> tuple[AccountInfo, ...]:
        return tuple(a for a in self._ordered if a.sub_category == sub_category)
