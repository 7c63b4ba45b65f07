"""
Module: ledger_engines
Responsibility:
    Pure calculation engines: weighted-average costing, KPI ratios and
    receivables and payables aging.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import ledger_kernel.domain / db.types and the pure statement
    builders of ledger_modules.reporting.  MUST NOT import kernel services.

Invariants enforced:
    - Engines never read the clock; dates are passed in explicitly.
    - Decimal-only arithmetic; floats are rejected at the boundary.
    - Identical inputs always produce identical outputs.

Usage:
    from ledger_engines.costing import apply_movement_to_state, CostingState
    from ledger_engines.kpi import calculate_enhanced_kpis, CompanyType
    from ledger_engines.aging import bucketize, bucketize_payables, GroupBy
"""

from ledger_engines.aging import (
    AgedInvoice,
    AgingBucket,
    AgingResult,
    AgingRow,
    BillRecord,
    CounterpartyKind,
    DocumentType,
    GroupBy,
    InvoiceRecord,
    PaymentRecord,
    age_bucket_for,
    bucketize,
    bucketize_payables,
    calculate_outstanding,
)
from ledger_engines.costing import (
    CostingState,
    MovementType,
    apply_movement_to_state,
    cost_of_issue,
    valuation,
)
from ledger_engines.kpi import (
    CompanyType,
    KPIComparison,
    KPISet,
    PeriodInput,
    calculate_enhanced_kpis,
    calculate_kpi_set,
)
from ledger_engines.tracer import traced_engine

__all__ = [
    "AgedInvoice",
    "AgingBucket",
    "AgingResult",
    "AgingRow",
    "BillRecord",
    "CompanyType",
    "CostingState",
    "CounterpartyKind",
    "DocumentType",
    "GroupBy",
    "InvoiceRecord",
    "KPIComparison",
    "KPISet",
    "MovementType",
    "PaymentRecord",
    "PeriodInput",
    "age_bucket_for",
    "apply_movement_to_state",
    "bucketize",
    "bucketize_payables",
    "calculate_enhanced_kpis",
    "calculate_kpi_set",
    "calculate_outstanding",
    "cost_of_issue",
    "traced_engine",
    "valuation",
]
