"""
Tests for the KPI engine.

Covers:
- Margin percentages from the income statement
- Liquidity, leverage and return ratios from the balance sheet
- Zero denominators resolve to 0 and are reported
- Company type controls what counts as inventory
- Period comparison
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_engines.kpi import (
    CompanyType,
    KPIComparison,
    PeriodInput,
    calculate_enhanced_kpis,
    calculate_kpi_set,
)
from ledger_modules.reporting.models import ReportPeriod
from ledger_modules.reporting.statements import (
    generate_balance_sheet,
    generate_income_statement,
)
from tests.factories import TradingChart, make_ledger_entry

FY2024 = ReportPeriod(date(2024, 1, 1), date(2024, 12, 31))
FY2023 = ReportPeriod(date(2023, 1, 1), date(2023, 12, 31))


@pytest.fixture
def books():
    coa = TradingChart()
    entries = (
        make_ledger_entry(date(2024, 1, 1), (coa.cash, "50000", "0"), (coa.capital, "0", "50000")),
        make_ledger_entry(date(2024, 2, 1), (coa.inventory, "80000", "0"), (coa.payables, "0", "80000")),
        make_ledger_entry(date(2024, 3, 1), (coa.receivables, "100000", "0"), (coa.revenue, "0", "100000")),
        make_ledger_entry(date(2024, 3, 1), (coa.cogs, "60000", "0"), (coa.inventory, "0", "60000")),
        make_ledger_entry(date(2024, 4, 1), (coa.rent, "20000", "0"), (coa.cash, "0", "20000")),
    )
    return coa, entries


def _kpis(coa, entries, company_type=CompanyType.TRADING):
    chart = coa.chart()
    return calculate_kpi_set(
        generate_income_statement(chart, entries, FY2024),
        generate_balance_sheet(chart, entries, FY2024.end),
        company_type,
    )


class TestMargins:
    def test_gross_and_net_margin_percentages(self, books):
        """Revenue 100000, COS 60000, opex 20000 -> 40% gross, 20% net."""
        kpis = _kpis(*books)
        assert kpis.revenue == Decimal("100000")
        assert kpis.net_income == Decimal("20000")
        assert kpis.gross_margin == Decimal("40.0")
        assert kpis.net_profit_margin == Decimal("20.0")


class TestBalanceSheetRatios:
    def test_liquidity(self, books):
        kpis = _kpis(*books)
        assert kpis.current_ratio == Decimal("1.875")
        assert kpis.quick_ratio == Decimal("1.625")
        assert kpis.working_capital == Decimal("70000")

    def test_leverage(self, books):
        kpis = _kpis(*books)
        assert kpis.debt_to_equity == Decimal("1.1429")
        assert kpis.debt_ratio == Decimal("0.5333")

    def test_returns(self, books):
        kpis = _kpis(*books)
        assert kpis.roa == Decimal("13.3333")
        assert kpis.roe == Decimal("28.5714")
        assert kpis.asset_turnover == Decimal("0.6667")

    def test_raw_figures(self, books):
        kpis = _kpis(*books)
        assert kpis.accounts_receivable == Decimal("100000")
        assert kpis.accounts_payable == Decimal("80000")
        assert kpis.inventory == Decimal("20000")
        assert kpis.zero_denominators == ()


class TestCompanyType:
    def test_professional_services_holds_no_inventory(self, books):
        kpis = _kpis(*books, company_type=CompanyType.PROFESSIONAL_SERVICES)
        assert kpis.inventory == Decimal("0")
        assert kpis.quick_ratio == kpis.current_ratio

    def test_company_type_from_string(self, books):
        kpis = _kpis(*books, company_type="manufacturer")
        assert kpis.inventory == Decimal("20000")

    def test_holds_inventory(self):
        assert CompanyType.CONTRACTOR.holds_inventory
        assert not CompanyType.PROFESSIONAL_SERVICES.holds_inventory


class TestZeroDenominators:
    def test_empty_ledger_yields_zeros(self):
        kpis = _kpis(TradingChart(), ())
        assert kpis.gross_margin == Decimal("0")
        assert kpis.current_ratio == Decimal("0")
        assert kpis.roe == Decimal("0")
        assert set(kpis.zero_denominators) == {
            "gross_margin",
            "net_profit_margin",
            "current_ratio",
            "quick_ratio",
            "debt_to_equity",
            "debt_ratio",
            "roa",
            "roe",
            "asset_turnover",
        }

    def test_no_liabilities_only_flags_liquidity(self):
        coa = TradingChart()
        entries = (
            make_ledger_entry(date(2024, 1, 1), (coa.cash, "100", "0"), (coa.revenue, "0", "100")),
        )
        kpis = _kpis(coa, entries)
        assert set(kpis.zero_denominators) == {"current_ratio", "quick_ratio"}
        assert kpis.debt_to_equity == Decimal("0")
        assert kpis.gross_margin == Decimal("100")


class TestComparison:
    def test_current_and_prior(self, books):
        coa, entries = books
        comparison = calculate_enhanced_kpis(
            coa.chart(),
            PeriodInput(FY2024, entries),
            PeriodInput(FY2023, entries),
        )
        assert isinstance(comparison, KPIComparison)
        assert comparison.company_type is CompanyType.TRADING
        assert comparison.current.gross_margin == Decimal("40")
        assert comparison.prior.revenue == Decimal("0")
        assert comparison.change("gross_margin") == Decimal("40")
        assert comparison.change("working_capital") == Decimal("70000")

    def test_unknown_metric(self, books):
        coa, entries = books
        comparison = calculate_enhanced_kpis(
            coa.chart(), PeriodInput(FY2024, entries), PeriodInput(FY2023, entries),
        )
        with pytest.raises(ValueError):
            comparison.change("zero_denominators")

    def test_trace_emitted(self, books, captured_logs):
        coa, entries = books
        calculate_enhanced_kpis(
            coa.chart(), PeriodInput(FY2024, entries), PeriodInput(FY2023, entries),
            company_type=CompanyType.CONTRACTOR,
        )
        traces = [r for r in captured_logs() if r["message"] == "LEDGER_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "kpi"
        assert len(traces[0]["input_fingerprint"]) == 16
