"""
Module: ledger_engines.kpi
Responsibility:
    Derive profitability, liquidity, leverage and efficiency ratios from an
    income statement and a balance sheet, and compare two periods.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Builds its statements
    with the pure functions in ``ledger_modules.reporting.statements``.

Invariants enforced:
    - Margins, ROA and ROE are percentages (x100); other ratios are plain.
    - A zero denominator yields 0 and never raises.  The ratio is named in
      ``KPISet.zero_denominators`` so a true 0 can be told apart from an
      undefined one.
    - Professional-services companies hold no stock: inventory is 0 in the
      quick ratio.
    - Decimal-only arithmetic; ratios are rounded to 4 places.

Failure modes:
    - ValueError from ``KPIComparison.change`` for an unknown metric name.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum

from ledger_engines.tracer import traced_engine
from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.journal import LedgerEntry
from ledger_kernel.domain.taxonomy import ChartOfAccounts, SubCategory
from ledger_kernel.logging_config import get_logger
from ledger_modules.reporting.models import (
    BalanceSheet,
    IncomeStatement,
    ReportPeriod,
    StatementGroup,
)
from ledger_modules.reporting.statements import (
    generate_balance_sheet,
    generate_income_statement,
)

logger = get_logger("engines.kpi")

RATIO_PLACES = 4
_HUNDRED = Decimal("100")


class CompanyType(str, Enum):
    """Business model; affects which balances count as stock."""

    MANUFACTURER = "manufacturer"
    TRADING = "trading"
    CONTRACTOR = "contractor"
    PROFESSIONAL_SERVICES = "professional-services"

    @property
    def holds_inventory(self) -> bool:
        return self != CompanyType.PROFESSIONAL_SERVICES


@dataclass(frozen=True)
class PeriodInput:
    """A reporting period and the ledger entries visible to it."""

    period: ReportPeriod
    entries: tuple[LedgerEntry, ...]


@dataclass(frozen=True)
class KPISet:
    """Ratios and the raw figures they were derived from."""

    gross_margin: Decimal
    net_profit_margin: Decimal
    current_ratio: Decimal
    quick_ratio: Decimal
    working_capital: Decimal
    debt_to_equity: Decimal
    debt_ratio: Decimal
    roa: Decimal
    roe: Decimal
    asset_turnover: Decimal
    revenue: Decimal
    net_income: Decimal
    accounts_receivable: Decimal
    accounts_payable: Decimal
    inventory: Decimal
    zero_denominators: tuple[str, ...] = ()


@dataclass(frozen=True)
class KPIComparison:
    """Current and prior KPI sets."""

    current: KPISet
    prior: KPISet
    company_type: CompanyType

    def change(self, name: str) -> Decimal:
        """current - prior for metric ``name``."""
        numeric = {f.name for f in fields(KPISet)} - {"zero_denominators"}
        if name not in numeric:
            raise ValueError(f"unknown KPI: {name}")
        return getattr(self.current, name) - getattr(self.prior, name)


class _Ratios:
    """Division helper that records zero denominators."""

    def __init__(self) -> None:
        self.zero: list[str] = []

    def ratio(self, name: str, numerator: Decimal, denominator: Decimal, pct: bool = False) -> Decimal:
        if denominator == ZERO:
            self.zero.append(name)
            return ZERO
        value = numerator / denominator
        if pct:
            value *= _HUNDRED
        return round_money(value, RATIO_PLACES)


def _sub_total(group: StatementGroup, sub_category: SubCategory) -> Decimal:
    return sum(
        (line.amount for line in group.lines if line.sub_category == sub_category),
        ZERO,
    )


def calculate_kpi_set(
    income_statement: IncomeStatement,
    balance_sheet: BalanceSheet,
    company_type: CompanyType = CompanyType.TRADING,
) -> KPISet:
    """Derive one KPI set from a statement pair."""
    company_type = CompanyType(company_type)
    r = _Ratios()

    revenue = income_statement.total_revenue
    net_income = income_statement.net_income
    current_assets = balance_sheet.current_assets.total
    current_liabilities = balance_sheet.current_liabilities.total
    total_assets = balance_sheet.total_assets
    total_liabilities = balance_sheet.total_liabilities
    total_equity = balance_sheet.total_equity

    inventory = ZERO
    if company_type.holds_inventory:
        inventory = _sub_total(balance_sheet.current_assets, SubCategory.INVENTORIES)

    kpis = KPISet(
        gross_margin=r.ratio("gross_margin", income_statement.gross_profit, revenue, pct=True),
        net_profit_margin=r.ratio("net_profit_margin", net_income, revenue, pct=True),
        current_ratio=r.ratio("current_ratio", current_assets, current_liabilities),
        quick_ratio=r.ratio("quick_ratio", current_assets - inventory, current_liabilities),
        working_capital=current_assets - current_liabilities,
        debt_to_equity=r.ratio("debt_to_equity", total_liabilities, total_equity),
        debt_ratio=r.ratio("debt_ratio", total_liabilities, total_assets),
        roa=r.ratio("roa", net_income, total_assets, pct=True),
        roe=r.ratio("roe", net_income, total_equity, pct=True),
        asset_turnover=r.ratio("asset_turnover", revenue, total_assets),
        revenue=revenue,
        net_income=net_income,
        accounts_receivable=_sub_total(
            balance_sheet.current_assets, SubCategory.ACCOUNTS_RECEIVABLE,
        ),
        accounts_payable=_sub_total(
            balance_sheet.current_liabilities, SubCategory.TRADE_PAYABLES,
        ),
        inventory=inventory,
        zero_denominators=tuple(r.zero),
    )
    if kpis.zero_denominators:
        logger.debug(
            "kpi_zero_denominators",
            extra={"ratios": list(kpis.zero_denominators)},
        )
    return kpis


def _kpis_for(
    accounts: ChartOfAccounts,
    period_input: PeriodInput,
    company_type: CompanyType,
) -> KPISet:
    income_statement = generate_income_statement(
        accounts, period_input.entries, period_input.period,
    )
    balance_sheet = generate_balance_sheet(
        accounts, period_input.entries, period_input.period.end,
    )
    return calculate_kpi_set(income_statement, balance_sheet, company_type)


@traced_engine("kpi", "1.0", fingerprint_fields=("current_period", "prior_period", "company_type"))
def calculate_enhanced_kpis(
    accounts: ChartOfAccounts,
    current_period: PeriodInput,
    prior_period: PeriodInput,
    company_type: CompanyType = CompanyType.TRADING,
) -> KPIComparison:
    """
    KPIs for the current and prior periods.

    Each side builds an income statement over its window and a cumulative
    balance sheet as of its period end.
    """
    company_type = CompanyType(company_type)
    return KPIComparison(
        current=_kpis_for(accounts, current_period, company_type),
        prior=_kpis_for(accounts, prior_period, company_type),
        company_type=company_type,
    )
