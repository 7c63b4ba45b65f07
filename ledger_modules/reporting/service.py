"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Orchestrates statement generation -- trial balance, income statement,
balance sheet, statement of changes in equity, cash flow statement and KPI
comparison -- by bridging the kernel selectors (``AccountSelector``,
``LedgerSelector``) to the pure functions in ``statements.py`` and
``ledger_engines.kpi``.  This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``session`` + ``clock`` +
``config``.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal.
* Only POSTED entries reach the pure functions.
* Every report carries ``ReportMetadata`` stamped by the injected clock.

Failure modes
-------------
* Selector query failure -> exception propagates (read-only, nothing to
  roll back).
* ``ReportPeriod`` with end before start -> ``ValueError`` before any query.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from ledger_engines.kpi import (
    CompanyType,
    KPIComparison,
    PeriodInput,
    calculate_enhanced_kpis,
)
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.taxonomy import ChartOfAccounts
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheet,
    CashFlowStatement,
    EquityStatement,
    IncomeStatement,
    ReportMetadata,
    ReportPeriod,
    ReportType,
    TrialBalance,
)
from ledger_modules.reporting.statements import (
    generate_balance_sheet,
    generate_cash_flow_statement,
    generate_equity_statement,
    generate_income_statement,
    generate_trial_balance,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Financial statement generation service.

    Contract
    --------
    * Every public method returns a typed, frozen report DTO.
    * All methods are read-only.

    Guarantees
    ----------
    * No financial logic lives in this class; it loads data and delegates.
    * The chart is loaded with inactive accounts so historical balances
      still land in totals.

    Non-goals
    ---------
    * Does NOT post journal entries.
    * Does NOT translate currencies; ``default_currency`` is a label.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._accounts = AccountSelector(session)
        self._ledger = LedgerSelector(session)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load_chart(self) -> ChartOfAccounts:
        chart = self._accounts.load_chart(include_inactive=True)
        logger.debug("accounts_loaded_for_reporting", extra={"account_count": len(chart)})
        return chart

    def _build_metadata(
        self,
        report_type: ReportType,
        as_of_date: date,
        period: ReportPeriod | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.default_currency,
            as_of_date=as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_start=period.start if period else None,
            period_end=period.end if period else None,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def trial_balance(self, as_of_date: date) -> TrialBalance:
        report = generate_trial_balance(
            self._load_chart(),
            self._ledger.posted_entries(as_of_date=as_of_date),
            as_of_date,
            config=self._config,
            metadata=self._build_metadata(ReportType.TRIAL_BALANCE, as_of_date),
        )
        logger.info(
            "trial_balance_generated",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "line_count": len(report.lines),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def income_statement(self, period: ReportPeriod) -> IncomeStatement:
        """Income statement for the inclusive ``period``."""
        report = generate_income_statement(
            self._load_chart(),
            self._ledger.posted_entries(as_of_date=period.end, start_date=period.start),
            period,
            config=self._config,
            metadata=self._build_metadata(ReportType.INCOME_STATEMENT, period.end, period),
        )
        logger.info(
            "income_statement_generated",
            extra={
                "period_start": period.start.isoformat(),
                "period_end": period.end.isoformat(),
                "total_revenue": report.total_revenue,
                "net_income": report.net_income,
            },
        )
        return report

    def balance_sheet(self, as_of_date: date) -> BalanceSheet:
        """Cumulative balance sheet as of ``as_of_date``."""
        report = generate_balance_sheet(
            self._load_chart(),
            self._ledger.posted_entries(as_of_date=as_of_date),
            as_of_date,
            config=self._config,
            metadata=self._build_metadata(ReportType.BALANCE_SHEET, as_of_date),
        )
        log = logger.info if report.is_balanced else logger.warning
        log(
            "balance_sheet_generated",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "total_assets": report.total_assets,
                "total_liabilities": report.total_liabilities,
                "total_equity": report.total_equity,
                "balance_check": report.balance_check,
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def equity_statement(self, period: ReportPeriod) -> EquityStatement:
        report = generate_equity_statement(
            self._load_chart(),
            self._ledger.posted_entries(as_of_date=period.end),
            period,
            config=self._config,
            metadata=self._build_metadata(ReportType.EQUITY_STATEMENT, period.end, period),
        )
        logger.info(
            "equity_statement_generated",
            extra={
                "period_start": period.start.isoformat(),
                "period_end": period.end.isoformat(),
                "opening_equity": report.opening_equity,
                "closing_equity": report.closing_equity,
                "reconciles": report.reconciles,
            },
        )
        return report

    def cash_flow_statement(self, period: ReportPeriod) -> CashFlowStatement:
        """Indirect-method cash flow for ``period``; opening cash needs earlier entries."""
        report = generate_cash_flow_statement(
            self._load_chart(),
            self._ledger.posted_entries(as_of_date=period.end),
            period,
            config=self._config,
            metadata=self._build_metadata(ReportType.CASH_FLOW_STATEMENT, period.end, period),
        )
        log = logger.info if report.reconciles else logger.warning
        log(
            "cash_flow_statement_generated",
            extra={
                "period_start": period.start.isoformat(),
                "period_end": period.end.isoformat(),
                "net_cash_from_operating": report.net_cash_from_operating,
                "net_cash_flow": report.net_cash_flow,
                "closing_cash": report.closing_cash,
                "reconciles": report.reconciles,
            },
        )
        return report

    def kpis(
        self,
        current_period: ReportPeriod,
        prior_period: ReportPeriod,
        company_type: CompanyType = CompanyType.TRADING,
    ) -> KPIComparison:
        """
        KPI comparison of two periods.

        Each side sees every posted entry up to its period end: the income
        statement windows on the period, the balance sheet is cumulative.
        """
        chart = self._load_chart()
        comparison = calculate_enhanced_kpis(
            chart,
            PeriodInput(current_period, self._ledger.posted_entries(as_of_date=current_period.end)),
            PeriodInput(prior_period, self._ledger.posted_entries(as_of_date=prior_period.end)),
            company_type=company_type,
        )
        logger.info(
            "kpis_generated",
            extra={
                "current_period_end": current_period.end.isoformat(),
                "prior_period_end": prior_period.end.isoformat(),
                "company_type": comparison.company_type.value,
                "zero_denominators": list(comparison.current.zero_denominators),
            },
        )
        return comparison
