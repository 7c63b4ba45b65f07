"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects representing statement outputs: trial
balance, income statement, balance sheet, statement of changes in equity and
cash flow statement, plus the reporting period and report metadata.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
functions in ``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``ReportPeriod`` rejects an end date before its start date.

Audit relevance
---------------
* ``ReportMetadata`` carries the generation timestamp (from the injected
  clock) and the parameters, so a report can be regenerated.
* ``BalanceSheet.balance_check`` is exposed as data; a nonzero value is
  never hidden or forced to zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.taxonomy import AccountType, SubCategory


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Types of financial reports."""

    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    INCOME_STATEMENT = "income_statement"
    EQUITY_STATEMENT = "equity_statement"
    CASH_FLOW_STATEMENT = "cash_flow_statement"
    KPI = "kpi"


# =========================================================================
# Period and metadata
# =========================================================================


@dataclass(frozen=True)
class ReportPeriod:
    """Inclusive date window."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"period end {self.end} is before start {self.start}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report produced by ReportingService."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO format timestamp from injected clock
    period_start: date | None = None
    period_end: date | None = None


# =========================================================================
# Lines and sections
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """
    One account on a statement, amount signed to its normal side.

    ``account_id`` is None only for synthetic lines such as
    "Current Period Earnings".
    """

    account_id: UUID | None
    account_number: str
    account_name: str
    account_type: AccountType
    sub_category: SubCategory
    amount: Decimal


@dataclass(frozen=True)
class StatementSection:
    """Lines sharing one sub-category, under its section header."""

    label: str
    sub_category: SubCategory
    lines: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class StatementGroup:
    """
    A statement block (e.g. Current Assets, Operating Expenses).

    ``lines`` is the flat list in account-number order; ``sections`` is the
    same lines grouped by sub-category.
    """

    label: str
    lines: tuple[StatementLine, ...]
    sections: tuple[StatementSection, ...]
    total: Decimal


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLine:
    """Debit/credit totals of one account."""

    account_id: UUID
    account_number: str
    account_name: str
    account_type: AccountType
    debit_total: Decimal
    credit_total: Decimal
    natural_balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """Per-account totals over posted lines up to ``as_of_date``."""

    as_of_date: date
    lines: tuple[TrialBalanceLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    metadata: ReportMetadata | None = None


# =========================================================================
# Income Statement
# =========================================================================


@dataclass(frozen=True)
class IncomeStatement:
    """
    Multi-step income statement.

    Revenue - Cost of Sales = Gross Profit - Operating Expenses = Net Income
    """

    period: ReportPeriod
    revenue: StatementGroup
    cost_of_sales: StatementGroup
    operating_expenses: StatementGroup
    total_revenue: Decimal
    total_cost_of_sales: Decimal
    gross_profit: Decimal
    total_operating_expenses: Decimal
    net_income: Decimal
    metadata: ReportMetadata | None = None


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheet:
    """
    Classified balance sheet as of a date.

    Equity includes a synthetic "Current Period Earnings" line carrying
    cumulative revenue minus expenses, so that a balanced ledger yields
    ``balance_check == 0``.
    """

    as_of_date: date
    current_assets: StatementGroup
    non_current_assets: StatementGroup
    current_liabilities: StatementGroup
    non_current_liabilities: StatementGroup
    equity: StatementGroup
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    current_period_earnings: Decimal
    balance_check: Decimal
    is_balanced: bool
    metadata: ReportMetadata | None = None

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return self.total_liabilities + self.total_equity


# =========================================================================
# Statement of Changes in Equity
# =========================================================================


@dataclass(frozen=True)
class EquityMovement:
    """A single movement line in the equity statement."""

    description: str
    amount: Decimal


@dataclass(frozen=True)
class EquityStatement:
    """
    Opening equity + net income - drawings + other movements = closing equity.

    ``reconciles`` is True when the closing figure agrees with total equity
    on the balance sheet at period end.
    """

    period: ReportPeriod
    opening_equity: Decimal
    net_income: Decimal
    drawings: Decimal
    other_movements: Decimal
    closing_equity: Decimal
    movements: tuple[EquityMovement, ...]
    reconciles: bool
    metadata: ReportMetadata | None = None


# =========================================================================
# Cash Flow Statement
# =========================================================================


@dataclass(frozen=True)
class CashFlowStatement:
    """
    Indirect-method cash flow statement.

    Operating = net income + working capital changes.  Each line amount is
    the cash effect of the account's movement in the period: an increase
    in a non-cash asset is an outflow, an increase in a liability or
    equity account an inflow.

    ``reconciles`` is True when ``net_cash_flow`` equals the movement on
    bank-cash accounts over the period.
    """

    period: ReportPeriod
    net_income: Decimal
    working_capital: StatementGroup
    investing: StatementGroup
    financing: StatementGroup
    net_cash_from_operating: Decimal
    net_cash_from_investing: Decimal
    net_cash_from_financing: Decimal
    net_cash_flow: Decimal
    opening_cash: Decimal
    closing_cash: Decimal
    reconciles: bool
    metadata: ReportMetadata | None = None
