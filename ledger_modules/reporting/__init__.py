"""
Financial Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only module that generates financial statements from the posted
ledger: trial balance, classified balance sheet, multi-step income
statement, statement of changes in equity and cash flow statement.

Architecture position
---------------------
**Modules layer**.  Statement generation is implemented as pure functions
in ``statements.py``; ``ledger_modules.reporting.service.ReportingService``
loads the chart and ledger and delegates to them.  The service is imported
from its own module because it depends on ``ledger_engines.kpi``, which in
turn builds on the pure functions exported here.

Invariants enforced
-------------------
* No journal entries are created by this module.
* Statements derive entirely from posted journal lines and account
  opening balances; no balance is stored.
"""

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheet,
    CashFlowStatement,
    EquityMovement,
    EquityStatement,
    IncomeStatement,
    ReportMetadata,
    ReportPeriod,
    ReportType,
    StatementGroup,
    StatementLine,
    StatementSection,
    TrialBalance,
    TrialBalanceLine,
)
from ledger_modules.reporting.statements import (
    CURRENT_PERIOD_EARNINGS_LABEL,
    CashFlowActivity,
    cash_flow_activity,
    generate_balance_sheet,
    generate_cash_flow_statement,
    generate_equity_statement,
    generate_income_statement,
    generate_trial_balance,
    render_to_dict,
)

__all__ = [
    # Config
    "ReportingConfig",
    # Models
    "BalanceSheet",
    "CashFlowStatement",
    "EquityMovement",
    "EquityStatement",
    "IncomeStatement",
    "ReportMetadata",
    "ReportPeriod",
    "ReportType",
    "StatementGroup",
    "StatementLine",
    "StatementSection",
    "TrialBalance",
    "TrialBalanceLine",
    # Pure functions
    "CURRENT_PERIOD_EARNINGS_LABEL",
    "CashFlowActivity",
    "cash_flow_activity",
    "generate_balance_sheet",
    "generate_cash_flow_statement",
    "generate_equity_statement",
    "generate_income_statement",
    "generate_trial_balance",
    "render_to_dict",
]
