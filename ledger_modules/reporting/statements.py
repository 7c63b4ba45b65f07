"""
Pure financial statement transformation functions.

These functions turn a ``ChartOfAccounts`` and a sequence of ``LedgerEntry``
views into structured financial statements. ZERO I/O. ZERO side effects.

All monetary values are Decimal. All inputs/outputs are frozen dataclasses.

Conventions:
- Entries whose status is not POSTED are skipped, always.
- Placement uses the account's explicit AccountType and sub-category only.
  Account numbers are a sort key.
- A posted line referencing an account that is not in the chart raises
  AccountNotFoundError rather than vanishing from the totals.  The
  chart handed in is expected to be the full chart, inactive accounts
  included.
- Deterministic: same inputs always produce same outputs.
"""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.journal import LedgerEntry
from ledger_kernel.domain.taxonomy import (
    AccountInfo,
    AccountType,
    ChartOfAccounts,
    SubCategory,
    account_sort_key,
    section_label,
)
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheet,
    CashFlowStatement,
    EquityMovement,
    EquityStatement,
    IncomeStatement,
    ReportMetadata,
    ReportPeriod,
    StatementGroup,
    StatementLine,
    StatementSection,
    TrialBalance,
    TrialBalanceLine,
)

CURRENT_PERIOD_EARNINGS_LABEL = "Current Period Earnings"

_SUB_CATEGORY_ORDER = {sub: index for index, sub in enumerate(SubCategory)}


# =========================================================================
# Helpers
# =========================================================================


def _accumulate(
    accounts: ChartOfAccounts,
    entries: Iterable[LedgerEntry],
    start: date | None = None,
    end: date | None = None,
) -> dict[UUID, tuple[Decimal, Decimal]]:
    """
    Debit and credit totals per account over posted entries in [start, end].

    Raises:
        AccountNotFoundError: a posted line names an account that is not in
            ``accounts``.
    """
    debits: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    credits: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        if not entry.is_posted:
            continue
        if start is not None and entry.entry_date < start:
            continue
        if end is not None and entry.entry_date > end:
            continue
        for line in entry.lines:
            if line.account_id not in accounts:
                raise AccountNotFoundError(str(line.account_id))
            debits[line.account_id] += line.debit
            credits[line.account_id] += line.credit
    return {
        account_id: (debits[account_id], credits[account_id])
        for account_id in set(debits) | set(credits)
    }


def _natural(acct: AccountInfo, totals: dict[UUID, tuple[Decimal, Decimal]]) -> Decimal:
    debit, credit = totals.get(acct.account_id, (ZERO, ZERO))
    return acct.natural_balance(debit, credit)


def _listed(acct: AccountInfo, amount: Decimal, config: ReportingConfig) -> bool:
    if amount != ZERO:
        return True
    if not config.include_zero_balances:
        return False
    return acct.is_active or config.include_inactive


def _line(acct: AccountInfo, amount: Decimal) -> StatementLine:
    return StatementLine(
        account_id=acct.account_id,
        account_number=acct.number,
        account_name=acct.name,
        account_type=acct.account_type,
        sub_category=acct.sub_category,
        amount=amount,
    )


def _make_group(
    label: str,
    lines: Sequence[StatementLine],
    trailing: Sequence[StatementLine] = (),
) -> StatementGroup:
    """
    Build a statement block.

    ``lines`` are ordered by account number; ``trailing`` lines (synthetic
    ones) follow them unsorted.
    """
    ordered = tuple(sorted(lines, key=lambda x: account_sort_key(x.account_number))) + tuple(trailing)

    by_sub: dict[SubCategory, list[StatementLine]] = defaultdict(list)
    for line in ordered:
        by_sub[line.sub_category].append(line)
    sections = tuple(
        StatementSection(
            label=section_label(sub),
            sub_category=sub,
            lines=tuple(by_sub[sub]),
            total=sum((x.amount for x in by_sub[sub]), ZERO),
        )
        for sub in sorted(by_sub, key=_SUB_CATEGORY_ORDER.__getitem__)
    )
    return StatementGroup(
        label=label,
        lines=ordered,
        sections=sections,
        total=sum((x.amount for x in ordered), ZERO),
    )


def _earnings(accounts: ChartOfAccounts, totals: dict[UUID, tuple[Decimal, Decimal]]) -> Decimal:
    """Revenue minus expenses over ``totals``."""
    revenue = sum((_natural(a, totals) for a in accounts.by_type(AccountType.REVENUE)), ZERO)
    expense = sum((_natural(a, totals) for a in accounts.by_type(AccountType.EXPENSE)), ZERO)
    return revenue - expense


def _equity_total(accounts: ChartOfAccounts, totals: dict[UUID, tuple[Decimal, Decimal]]) -> Decimal:
    """Equity accounts (with opening balances) plus accumulated earnings."""
    equity = sum(
        (_natural(a, totals) + a.opening_balance for a in accounts.by_type(AccountType.EQUITY)),
        ZERO,
    )
    return equity + _earnings(accounts, totals)


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def generate_trial_balance(
    accounts: ChartOfAccounts,
    entries: Iterable[LedgerEntry],
    as_of_date: date,
    *,
    config: ReportingConfig | None = None,
    metadata: ReportMetadata | None = None,
) -> TrialBalance:
    """Per-account debit/credit totals over posted entries dated <= as_of_date."""
    config = config or ReportingConfig()
    totals = _accumulate(accounts, entries, end=as_of_date)

    lines: list[TrialBalanceLine] = []
    for acct in accounts:
        debit, credit = totals.get(acct.account_id, (ZERO, ZERO))
        has_activity = acct.account_id in totals
        if not has_activity and not _listed(acct, ZERO, config):
            continue
        lines.append(
            TrialBalanceLine(
                account_id=acct.account_id,
                account_number=acct.number,
                account_name=acct.name,
                account_type=acct.account_type,
                debit_total=debit,
                credit_total=credit,
                natural_balance=acct.natural_balance(debit, credit),
            )
        )

    total_debits = sum((x.debit_total for x in lines), ZERO)
    total_credits = sum((x.credit_total for x in lines), ZERO)
    return TrialBalance(
        as_of_date=as_of_date,
        lines=tuple(lines),
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=abs(total_debits - total_credits) < config.balance_tolerance,
        metadata=metadata,
    )


# =========================================================================
# 2. INCOME STATEMENT
# =========================================================================


def generate_income_statement(
    accounts: ChartOfAccounts,
    entries: Iterable[LedgerEntry],
    period: ReportPeriod,
    *,
    config: ReportingConfig | None = None,
    metadata: ReportMetadata | None = None,
) -> IncomeStatement:
    """
    Income statement over posted entries dated within ``period``.

    Revenue net = credits - debits; expense net = debits - credits.
    Expense accounts in sub-category cost-of-sales form Cost of Sales;
    every other expense account is an operating expense, grouped by
    sub-category section ("Other" for unclassified accounts).
    """
    config = config or ReportingConfig()
    totals = _accumulate(accounts, entries, start=period.start, end=period.end)

    revenue: list[StatementLine] = []
    cost_of_sales: list[StatementLine] = []
    operating: list[StatementLine] = []

    for acct in accounts.by_type(AccountType.REVENUE):
        amount = _natural(acct, totals)
        if _listed(acct, amount, config):
            revenue.append(_line(acct, amount))

    for acct in accounts.by_type(AccountType.EXPENSE):
        amount = _natural(acct, totals)
        if not _listed(acct, amount, config):
            continue
        if acct.sub_category == SubCategory.COST_OF_SALES:
            cost_of_sales.append(_line(acct, amount))
        else:
            operating.append(_line(acct, amount))

    revenue_group = _make_group("Revenue", revenue)
    cos_group = _make_group("Cost of Sales", cost_of_sales)
    opex_group = _make_group("Operating Expenses", operating)

    gross_profit = revenue_group.total - cos_group.total
    return IncomeStatement(
        period=period,
        revenue=revenue_group,
        cost_of_sales=cos_group,
        operating_expenses=opex_group,
        total_revenue=revenue_group.total,
        total_cost_of_sales=cos_group.total,
        gross_profit=gross_profit,
        total_operating_expenses=opex_group.total,
        net_income=gross_profit - opex_group.total,
        metadata=metadata,
    )


# =========================================================================
# 3. BALANCE SHEET
# =========================================================================


_BALANCE_SHEET_BLOCKS = (
    (AccountType.CURRENT_ASSET, "Current Assets"),
    (AccountType.NON_CURRENT_ASSET, "Non-Current Assets"),
    (AccountType.CURRENT_LIABILITY, "Current Liabilities"),
    (AccountType.NON_CURRENT_LIABILITY, "Non-Current Liabilities"),
    (AccountType.EQUITY, "Equity"),
)


def generate_balance_sheet(
    accounts: ChartOfAccounts,
    entries: Iterable[LedgerEntry],
    as_of_date: date,
    *,
    config: ReportingConfig | None = None,
    metadata: ReportMetadata | None = None,
) -> BalanceSheet:
    """
    Cumulative balance sheet over posted entries dated <= as_of_date.

    Each balance-sheet account carries its opening balance plus its
    natural-side movement.  Cumulative revenue minus expenses is shown as
    a synthetic "Current Period Earnings" equity line.
    """
    config = config or ReportingConfig()
    totals = _accumulate(accounts, entries, end=as_of_date)

    blocks: dict[AccountType, list[StatementLine]] = {t: [] for t, _ in _BALANCE_SHEET_BLOCKS}
    for acct in accounts:
        if acct.account_type not in blocks:
            continue
        amount = _natural(acct, totals) + acct.opening_balance
        if _listed(acct, amount, config):
            blocks[acct.account_type].append(_line(acct, amount))

    earnings = _earnings(accounts, totals)
    earnings_line = StatementLine(
        account_id=None,
        account_number="",
        account_name=CURRENT_PERIOD_EARNINGS_LABEL,
        account_type=AccountType.EQUITY,
        sub_category=SubCategory.RETAINED_EARNINGS,
        amount=earnings,
    )

    groups = {
        account_type: _make_group(
            label,
            blocks[account_type],
            trailing=(earnings_line,) if account_type == AccountType.EQUITY else (),
        )
        for account_type, label in _BALANCE_SHEET_BLOCKS
    }

    current_assets = groups[AccountType.CURRENT_ASSET]
    non_current_assets = groups[AccountType.NON_CURRENT_ASSET]
    current_liabilities = groups[AccountType.CURRENT_LIABILITY]
    non_current_liabilities = groups[AccountType.NON_CURRENT_LIABILITY]
    equity = groups[AccountType.EQUITY]

    total_assets = current_assets.total + non_current_assets.total
    total_liabilities = current_liabilities.total + non_current_liabilities.total
    total_equity = equity.total
    balance_check = total_assets - (total_liabilities + total_equity)

    return BalanceSheet(
        as_of_date=as_of_date,
        current_assets=current_assets,
        non_current_assets=non_current_assets,
        current_liabilities=current_liabilities,
        non_current_liabilities=non_current_liabilities,
        equity=equity,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        current_period_earnings=earnings,
        balance_check=balance_check,
        is_balanced=abs(balance_check) < config.balance_tolerance,
        metadata=metadata,
    )


# =========================================================================
# 4. STATEMENT OF CHANGES IN EQUITY
# =========================================================================


def generate_equity_statement(
    accounts: ChartOfAccounts,
    entries: Sequence[LedgerEntry],
    period: ReportPeriod,
    *,
    config: ReportingConfig | None = None,
    metadata: ReportMetadata | None = None,
) -> EquityStatement:
    """
    Statement of changes in equity for ``period``.

    Opening equity (day before period start, earnings included)
    + Net income
    - Drawings (equity accounts in sub-category drawings)
    +/- Other movements on equity accounts
    = Closing equity
    """
    config = config or ReportingConfig()
    opening_totals = _accumulate(accounts, entries, end=period.start - timedelta(days=1))
    period_totals = _accumulate(accounts, entries, start=period.start, end=period.end)
    closing_totals = _accumulate(accounts, entries, end=period.end)

    opening_equity = _equity_total(accounts, opening_totals)
    net_income = _earnings(accounts, period_totals)

    drawings = ZERO
    other_movements = ZERO
    for acct in accounts.by_type(AccountType.EQUITY):
        debit, credit = period_totals.get(acct.account_id, (ZERO, ZERO))
        if acct.sub_category == SubCategory.DRAWINGS:
            drawings += debit - credit
        else:
            other_movements += credit - debit

    closing_equity = opening_equity + net_income - drawings + other_movements

    movements = [EquityMovement(description="Net Income", amount=net_income)]
    if drawings != ZERO:
        movements.append(EquityMovement(description="Drawings", amount=-drawings))
    if other_movements != ZERO:
        movements.append(EquityMovement(description="Other Movements", amount=other_movements))

    reconciles = (
        abs(closing_equity - _equity_total(accounts, closing_totals))
        < config.balance_tolerance
    )
    return EquityStatement(
        period=period,
        opening_equity=opening_equity,
        net_income=net_income,
        drawings=drawings,
        other_movements=other_movements,
        closing_equity=closing_equity,
        movements=tuple(movements),
        reconciles=reconciles,
        metadata=metadata,
    )


# =========================================================================
# 5. CASH FLOW STATEMENT
# =========================================================================


class CashFlowActivity(str, Enum):
    WORKING_CAPITAL = "working_capital"
    INVESTING = "investing"
    FINANCING = "financing"


_INVESTING_CURRENT = frozenset({SubCategory.SHORT_TERM_INVESTMENTS})
_FINANCING_CURRENT = frozenset({SubCategory.SHORT_TERM_BORROWINGS})


def cash_flow_activity(acct: AccountInfo) -> CashFlowActivity | None:
    """
    Activity an account's movements are reported under.

    None for bank-cash accounts (their movement is the cash flow itself)
    and for revenue and expense accounts (summarised as net income).
    """
    account_type = acct.account_type
    if account_type in (AccountType.REVENUE, AccountType.EXPENSE):
        return None
    if acct.sub_category == SubCategory.BANK_CASH:
        return None
    if account_type == AccountType.CURRENT_ASSET:
        if acct.sub_category in _INVESTING_CURRENT:
            return CashFlowActivity.INVESTING
        return CashFlowActivity.WORKING_CAPITAL
    if account_type == AccountType.CURRENT_LIABILITY:
        if acct.sub_category in _FINANCING_CURRENT:
            return CashFlowActivity.FINANCING
        return CashFlowActivity.WORKING_CAPITAL
    if account_type == AccountType.NON_CURRENT_ASSET:
        return CashFlowActivity.INVESTING
    return CashFlowActivity.FINANCING


def _cash_effect(acct: AccountInfo, totals: dict[UUID, tuple[Decimal, Decimal]]) -> Decimal:
    """Credits minus debits: what the account's movement did to cash."""
    debit, credit = totals.get(acct.account_id, (ZERO, ZERO))
    return credit - debit


def _cash_balance(accounts: ChartOfAccounts, totals: dict[UUID, tuple[Decimal, Decimal]]) -> Decimal:
    return sum(
        (
            _natural(a, totals) + a.opening_balance
            for a in accounts.by_sub_category(SubCategory.BANK_CASH)
        ),
        ZERO,
    )


def generate_cash_flow_statement(
    accounts: ChartOfAccounts,
    entries: Sequence[LedgerEntry],
    period: ReportPeriod,
    *,
    config: ReportingConfig | None = None,
    metadata: ReportMetadata | None = None,
) -> CashFlowStatement:
    """
    Cash flow statement for ``period`` by the indirect method.

    Net income
    +/- Working capital: current assets and liabilities other than cash,
        short-term investments and short-term borrowings
    = Net cash from operating activities
    +/- Investing: non-current assets and short-term investments
    +/- Financing: borrowings, non-current liabilities and equity
        (drawings show as an outflow)
    = Net cash flow

    Each block is grouped into sub-category sections.  Opening and closing
    cash are the bank-cash balances, opening balances included, on the day
    before the period and at its end.
    """
    config = config or ReportingConfig()
    period_totals = _accumulate(accounts, entries, start=period.start, end=period.end)
    opening_totals = _accumulate(accounts, entries, end=period.start - timedelta(days=1))
    closing_totals = _accumulate(accounts, entries, end=period.end)

    blocks: dict[CashFlowActivity, list[StatementLine]] = {a: [] for a in CashFlowActivity}
    for acct in accounts:
        activity = cash_flow_activity(acct)
        if activity is None:
            continue
        amount = _cash_effect(acct, period_totals)
        if _listed(acct, amount, config):
            blocks[activity].append(_line(acct, amount))

    net_income = _earnings(accounts, period_totals)
    working_capital = _make_group(
        "Changes in Working Capital", blocks[CashFlowActivity.WORKING_CAPITAL]
    )
    investing = _make_group("Investing Activities", blocks[CashFlowActivity.INVESTING])
    financing = _make_group("Financing Activities", blocks[CashFlowActivity.FINANCING])

    net_cash_from_operating = net_income + working_capital.total
    net_cash_flow = net_cash_from_operating + investing.total + financing.total
    opening_cash = _cash_balance(accounts, opening_totals)
    closing_cash = _cash_balance(accounts, closing_totals)

    return CashFlowStatement(
        period=period,
        net_income=net_income,
        working_capital=working_capital,
        investing=investing,
        financing=financing,
        net_cash_from_operating=net_cash_from_operating,
        net_cash_from_investing=investing.total,
        net_cash_from_financing=financing.total,
        net_cash_flow=net_cash_flow,
        opening_cash=opening_cash,
        closing_cash=closing_cash,
        reconciles=(
            abs(net_cash_flow - (closing_cash - opening_cash)) < config.balance_tolerance
        ),
        metadata=metadata,
    )


# =========================================================================
# 6. RENDERER (dict/JSON output)
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - date -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    - None preserved
    """
    if obj is None:
        return None
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
