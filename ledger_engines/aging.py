"""
Module: ledger_engines.aging
Responsibility:
    Receivables and payables aging.  Computes each open document's
    outstanding amount net of payments and linked credit notes, classifies
    it into a fixed age bucket relative to an as-at date, and aggregates the
    buckets per counterparty (customer or supplier) or per counterparty
    group.

Architecture position:
    Engines -- pure calculation layer, zero I/O, no clock access.  The
    caller supplies ``as_at_date``.

Invariants enforced:
    - outstanding = max(0, total - sum(payments) - sum(|linked credit notes|)).
      Credit-note documents themselves have 0 outstanding.
    - Documents with outstanding <= 0 are excluded from every row.
    - Buckets: Current (<= 30 days, including future-dated documents),
      31-60, 61-90, 91-120, 120+.
    - ``AgingResult.totals`` equals the sum of every row's buckets.
    - Decimal-only arithmetic.

Failure modes:
    - ValueError from ``InvoiceRecord``/``BillRecord``/``PaymentRecord`` on
      malformed input, or when a customer grouping is asked of payables
      (and the reverse).

Audit relevance:
    Each call to ``bucketize`` / ``bucketize_payables`` is traced via
    ``@traced_engine``.

Usage:
    from ledger_engines.aging import bucketize, bucketize_payables, GroupBy

    receivables = bucketize(invoices, as_at_date=date(2024, 6, 30))
    payables = bucketize_payables(bills, as_at_date=date(2024, 6, 30))
    payables.totals.over_120
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_engines.tracer import traced_engine
from ledger_kernel.db.types import ZERO, to_decimal
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.aging")

UNGROUPED = "Ungrouped"
TOTAL_ROW_NAME = "Total"


class DocumentType(str, Enum):
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"


class CounterpartyKind(str, Enum):
    """Who owes whom: customers owe us (AR), we owe suppliers (AP)."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"

    @property
    def log_prefix(self) -> str:
        return "ar" if self == CounterpartyKind.CUSTOMER else "ap"


class GroupBy(str, Enum):
    """Row dimension of an aging report."""

    CUSTOMER = "customer"
    CUSTOMER_GROUP = "customer_group"
    SUPPLIER = "supplier"
    SUPPLIER_GROUP = "supplier_group"

    @property
    def counterparty_kind(self) -> CounterpartyKind:
        if self in (GroupBy.CUSTOMER, GroupBy.CUSTOMER_GROUP):
            return CounterpartyKind.CUSTOMER
        return CounterpartyKind.SUPPLIER

    @property
    def by_group(self) -> bool:
        return self in (GroupBy.CUSTOMER_GROUP, GroupBy.SUPPLIER_GROUP)


_DEFAULT_GROUP_BY: dict[CounterpartyKind, GroupBy] = {
    CounterpartyKind.CUSTOMER: GroupBy.CUSTOMER,
    CounterpartyKind.SUPPLIER: GroupBy.SUPPLIER,
}


class AgingBucket(str, Enum):
    """Fixed age buckets, shared by AR and AP."""

    CURRENT = "current"
    DAYS_31_60 = "31-60"
    DAYS_61_90 = "61-90"
    DAYS_91_120 = "91-120"
    OVER_120 = "120+"

    @property
    def label(self) -> str:
        return BUCKET_LABELS[self]


BUCKET_LABELS: dict[AgingBucket, str] = {
    AgingBucket.CURRENT: "Current",
    AgingBucket.DAYS_31_60: "31-60 days",
    AgingBucket.DAYS_61_90: "61-90 days",
    AgingBucket.DAYS_91_120: "91-120 days",
    AgingBucket.OVER_120: "120+ days",
}


@dataclass(frozen=True)
class PaymentRecord:
    amount: Decimal
    payment_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


@dataclass(frozen=True)
class InvoiceRecord:
    """
    An AR document as seen by the aging engine.

    ``credit_note_ids`` links an invoice to credit-note documents (by their
    ``invoice_id``) in the same input set.
    """

    invoice_id: str
    invoice_number: str
    customer_name: str
    issue_date: date
    total: Decimal
    payments: tuple[PaymentRecord, ...] = ()
    credit_note_ids: tuple[str, ...] = ()
    customer_group: str | None = None
    document_type: DocumentType = DocumentType.INVOICE

    counterparty_kind = CounterpartyKind.CUSTOMER

    def __post_init__(self) -> None:
        if not self.invoice_id:
            raise ValueError("invoice_id is required")
        if not self.customer_name:
            raise ValueError("customer_name is required")
        object.__setattr__(self, "total", to_decimal(self.total))
        object.__setattr__(self, "document_type", DocumentType(self.document_type))

    @property
    def is_credit_note(self) -> bool:
        return self.document_type == DocumentType.CREDIT_NOTE

    @property
    def document_id(self) -> str:
        return self.invoice_id

    @property
    def document_number(self) -> str:
        return self.invoice_number

    @property
    def document_date(self) -> date:
        return self.issue_date

    @property
    def counterparty(self) -> str:
        return self.customer_name

    @property
    def counterparty_group(self) -> str | None:
        return self.customer_group


@dataclass(frozen=True)
class BillRecord:
    """
    An AP document: a supplier bill, or a supplier credit note.

    ``credit_note_ids`` links a bill to the supplier's credit notes (by
    their ``bill_id``) in the same input set.
    """

    bill_id: str
    bill_number: str
    supplier_name: str
    bill_date: date
    total: Decimal
    payments: tuple[PaymentRecord, ...] = ()
    credit_note_ids: tuple[str, ...] = ()
    supplier_group: str | None = None
    document_type: DocumentType = DocumentType.INVOICE

    counterparty_kind = CounterpartyKind.SUPPLIER

    def __post_init__(self) -> None:
        if not self.bill_id:
            raise ValueError("bill_id is required")
        if not self.supplier_name:
            raise ValueError("supplier_name is required")
        object.__setattr__(self, "total", to_decimal(self.total))
        object.__setattr__(self, "document_type", DocumentType(self.document_type))

    @property
    def is_credit_note(self) -> bool:
        return self.document_type == DocumentType.CREDIT_NOTE

    @property
    def document_id(self) -> str:
        return self.bill_id

    @property
    def document_number(self) -> str:
        return self.bill_number

    @property
    def document_date(self) -> date:
        return self.bill_date

    @property
    def counterparty(self) -> str:
        return self.supplier_name

    @property
    def counterparty_group(self) -> str | None:
        return self.supplier_group


AgingDocument = InvoiceRecord | BillRecord


@dataclass(frozen=True)
class AgedInvoice:
    """Per-document drill-down detail (an invoice, or a bill for AP)."""

    invoice_id: str
    invoice_number: str
    counterparty_name: str
    counterparty_group: str
    issue_date: date
    age_days: int
    bucket: AgingBucket
    outstanding: Decimal


@dataclass(frozen=True)
class AgingRow:
    """Bucketed outstanding amounts for one counterparty, group, or the total."""

    name: str
    current: Decimal = ZERO
    days_31_60: Decimal = ZERO
    days_61_90: Decimal = ZERO
    days_91_120: Decimal = ZERO
    over_120: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.current + self.days_31_60 + self.days_61_90 + self.days_91_120 + self.over_120

    def amount(self, bucket: AgingBucket) -> Decimal:
        return getattr(self, _BUCKET_FIELDS[bucket])


_BUCKET_FIELDS: dict[AgingBucket, str] = {
    AgingBucket.CURRENT: "current",
    AgingBucket.DAYS_31_60: "days_31_60",
    AgingBucket.DAYS_61_90: "days_61_90",
    AgingBucket.DAYS_91_120: "days_91_120",
    AgingBucket.OVER_120: "over_120",
}


@dataclass(frozen=True)
class AgingResult:
    as_at_date: date
    group_by: GroupBy
    rows: tuple[AgingRow, ...]
    totals: AgingRow
    items: tuple[AgedInvoice, ...]

    @property
    def counterparty_kind(self) -> CounterpartyKind:
        return self.group_by.counterparty_kind


def calculate_outstanding(
    document: AgingDocument,
    credit_notes_by_id: Mapping[str, AgingDocument],
) -> Decimal:
    """Amount still owed on an invoice or bill; never negative."""
    if document.is_credit_note:
        return ZERO
    paid = sum((p.amount for p in document.payments), ZERO)
    credited = ZERO
    for note_id in document.credit_note_ids:
        note = credit_notes_by_id.get(note_id)
        if note is not None:
            credited += abs(note.total)
    return max(ZERO, document.total - paid - credited)


def age_bucket_for(age_days: int) -> AgingBucket:
    """Bucket for an age in days; negative ages are Current."""
    if age_days <= 30:
        return AgingBucket.CURRENT
    if age_days <= 60:
        return AgingBucket.DAYS_31_60
    if age_days <= 90:
        return AgingBucket.DAYS_61_90
    if age_days <= 120:
        return AgingBucket.DAYS_91_120
    return AgingBucket.OVER_120


def _row(name: str, amounts: Mapping[AgingBucket, Decimal]) -> AgingRow:
    return AgingRow(
        name=name,
        **{_BUCKET_FIELDS[b]: amounts.get(b, ZERO) for b in AgingBucket},
    )


def _age_documents(
    documents: Iterable[AgingDocument],
    as_at_date: date,
    kind: CounterpartyKind,
    group_by: GroupBy | None,
    counterparties: Collection[str] | None,
) -> AgingResult:
    group_by = GroupBy(group_by) if group_by is not None else _DEFAULT_GROUP_BY[kind]
    if group_by.counterparty_kind != kind:
        raise ValueError(f"{group_by.value} grouping does not apply to {kind.value} aging")

    documents = tuple(documents)
    for doc in documents:
        if doc.counterparty_kind != kind:
            raise ValueError(
                f"{type(doc).__name__} {doc.document_id} is not a {kind.value} document"
            )
    wanted = set(counterparties) if counterparties is not None else None
    credit_notes = {doc.document_id: doc for doc in documents if doc.is_credit_note}

    buckets: dict[str, dict[AgingBucket, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
    grand: dict[AgingBucket, Decimal] = defaultdict(lambda: ZERO)
    items: list[AgedInvoice] = []

    for doc in documents:
        if doc.is_credit_note:
            continue
        if wanted is not None and doc.counterparty not in wanted:
            continue
        outstanding = calculate_outstanding(doc, credit_notes)
        if outstanding <= ZERO:
            continue

        age_days = (as_at_date - doc.document_date).days
        bucket = age_bucket_for(age_days)
        group = doc.counterparty_group or UNGROUPED
        key = group if group_by.by_group else doc.counterparty

        buckets[key][bucket] += outstanding
        grand[bucket] += outstanding
        items.append(
            AgedInvoice(
                invoice_id=doc.document_id,
                invoice_number=doc.document_number,
                counterparty_name=doc.counterparty,
                counterparty_group=group,
                issue_date=doc.document_date,
                age_days=age_days,
                bucket=bucket,
                outstanding=outstanding,
            )
        )

    rows = tuple(_row(name, buckets[name]) for name in sorted(buckets))
    totals = _row(TOTAL_ROW_NAME, grand)

    logger.info(
        f"{kind.log_prefix}_aging_calculated",
        extra={
            "as_at_date": as_at_date.isoformat(),
            "counterparty_kind": kind.value,
            "group_by": group_by.value,
            "document_count": len(documents),
            "open_items": len(items),
            "row_count": len(rows),
            "total_outstanding": totals.total,
        },
    )
    return AgingResult(
        as_at_date=as_at_date,
        group_by=group_by,
        rows=rows,
        totals=totals,
        items=tuple(
            sorted(items, key=lambda i: (i.counterparty_name, i.issue_date, i.invoice_number))
        ),
    )


@traced_engine("ar_aging", "1.0", fingerprint_fields=("as_at_date", "group_by", "customers"))
def bucketize(
    invoices: Iterable[InvoiceRecord],
    as_at_date: date,
    group_by: GroupBy | None = None,
    customers: Collection[str] | None = None,
) -> AgingResult:
    """
    Age every open customer invoice as at ``as_at_date``.

    Args:
        invoices: Invoices and credit notes.  Credit notes are used only to
            reduce the invoices that reference them.
        as_at_date: Reference date for ages.
        group_by: CUSTOMER (default) or CUSTOMER_GROUP.  Grouped rows
            replace the per-customer rows.
        customers: Optional customer names to restrict the report to.

    Returns:
        AgingResult with rows sorted by name and a grand-total row.
    """
    return _age_documents(invoices, as_at_date, CounterpartyKind.CUSTOMER, group_by, customers)


@traced_engine("ap_aging", "1.0", fingerprint_fields=("as_at_date", "group_by", "suppliers"))
def bucketize_payables(
    bills: Iterable[BillRecord],
    as_at_date: date,
    group_by: GroupBy | None = None,
    suppliers: Collection[str] | None = None,
) -> AgingResult:
    """
    Age every open supplier bill as at ``as_at_date``.

    Same buckets and exclusion rules as ``bucketize``; rows are per
    supplier (default) or per SUPPLIER_GROUP.
    """
    return _age_documents(bills, as_at_date, CounterpartyKind.SUPPLIER, group_by, suppliers)
