"""
Tests for AR and AP aging.

Covers:
- Outstanding net of payments and linked credit notes
- Bucket boundaries, including future-dated invoices
- Grouping by customer and customer group
- Customer filter and drill-down items
- Payables by supplier, supplier credit notes, kind checks
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from ledger_engines.aging import (
    TOTAL_ROW_NAME,
    UNGROUPED,
    AgingBucket,
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

AS_AT = date(2024, 6, 30)


def _invoice(
    invoice_id: str,
    customer: str,
    days_old: int,
    total: str,
    payments: tuple[str, ...] = (),
    credit_note_ids: tuple[str, ...] = (),
    group: str | None = None,
) -> InvoiceRecord:
    return InvoiceRecord(
        invoice_id=invoice_id,
        invoice_number=f"INV-{invoice_id}",
        customer_name=customer,
        issue_date=AS_AT - timedelta(days=days_old),
        total=Decimal(total),
        payments=tuple(PaymentRecord(Decimal(p)) for p in payments),
        credit_note_ids=credit_note_ids,
        customer_group=group,
    )


def _credit_note(note_id: str, customer: str, total: str) -> InvoiceRecord:
    return InvoiceRecord(
        invoice_id=note_id,
        invoice_number=f"CN-{note_id}",
        customer_name=customer,
        issue_date=AS_AT,
        total=Decimal(total),
        document_type=DocumentType.CREDIT_NOTE,
    )


class TestOutstanding:
    def test_payment_reduces_outstanding(self):
        invoice = _invoice("1", "Acme", 10, "1000", payments=("300",))
        assert calculate_outstanding(invoice, {}) == Decimal("700")

    def test_linked_credit_note_absolute_value(self):
        invoice = _invoice("1", "Acme", 10, "1000", credit_note_ids=("c1",))
        note = _credit_note("c1", "Acme", "-250")
        assert calculate_outstanding(invoice, {"c1": note}) == Decimal("750")

    def test_never_negative(self):
        invoice = _invoice("1", "Acme", 10, "100", payments=("150",))
        assert calculate_outstanding(invoice, {}) == Decimal("0")

    def test_unknown_credit_note_ignored(self):
        invoice = _invoice("1", "Acme", 10, "100", credit_note_ids=("missing",))
        assert calculate_outstanding(invoice, {}) == Decimal("100")

    def test_credit_note_has_nothing_outstanding(self):
        assert calculate_outstanding(_credit_note("c1", "Acme", "500"), {}) == Decimal("0")


class TestBuckets:
    @pytest.mark.parametrize(
        "age,bucket",
        [
            (-5, AgingBucket.CURRENT),
            (0, AgingBucket.CURRENT),
            (30, AgingBucket.CURRENT),
            (31, AgingBucket.DAYS_31_60),
            (60, AgingBucket.DAYS_31_60),
            (61, AgingBucket.DAYS_61_90),
            (90, AgingBucket.DAYS_61_90),
            (91, AgingBucket.DAYS_91_120),
            (120, AgingBucket.DAYS_91_120),
            (121, AgingBucket.OVER_120),
        ],
    )
    def test_boundaries(self, age, bucket):
        assert age_bucket_for(age) is bucket

    def test_labels(self):
        assert AgingBucket.OVER_120.label == "120+ days"
        assert AgingBucket.CURRENT.label == "Current"


class TestBucketize:
    def test_partially_paid_invoice_at_45_days(self):
        """1000 invoice, 300 paid, 45 days old -> 700 in 31-60."""
        result = bucketize([_invoice("1", "Acme", 45, "1000", payments=("300",))], AS_AT)
        assert len(result.rows) == 1
        row = result.rows[0]
        assert row.name == "Acme"
        assert row.days_31_60 == Decimal("700")
        assert row.current == Decimal("0")
        assert row.total == Decimal("700")
        assert result.totals.name == TOTAL_ROW_NAME

    def test_future_dated_invoice_is_current(self):
        result = bucketize([_invoice("1", "Acme", -10, "100")], AS_AT)
        assert result.rows[0].current == Decimal("100")
        assert result.items[0].age_days == -10

    def test_settled_invoices_excluded(self):
        result = bucketize(
            [
                _invoice("1", "Acme", 10, "100", payments=("100",)),
                _invoice("2", "Beta", 10, "100", credit_note_ids=("c1",)),
                _credit_note("c1", "Beta", "100"),
            ],
            AS_AT,
        )
        assert result.rows == ()
        assert result.items == ()
        assert result.totals.total == Decimal("0")

    def test_rows_sorted_and_totals_sum(self):
        invoices = [
            _invoice("1", "Zeta", 5, "100"),
            _invoice("2", "Acme", 40, "200"),
            _invoice("3", "Acme", 200, "50"),
            _invoice("4", "Mid", 95, "25"),
        ]
        result = bucketize(invoices, AS_AT)
        assert [r.name for r in result.rows] == ["Acme", "Mid", "Zeta"]
        for bucket in AgingBucket:
            assert result.totals.amount(bucket) == sum(
                (r.amount(bucket) for r in result.rows), Decimal("0")
            )
        assert result.totals.total == Decimal("375")
        assert result.totals.over_120 == Decimal("50")

    def test_group_by_customer_group(self):
        invoices = [
            _invoice("1", "Acme", 5, "100", group="Retail"),
            _invoice("2", "Beta", 5, "50", group="Retail"),
            _invoice("3", "Gamma", 70, "30"),
        ]
        result = bucketize(invoices, AS_AT, group_by=GroupBy.CUSTOMER_GROUP)
        assert result.group_by is GroupBy.CUSTOMER_GROUP
        assert [r.name for r in result.rows] == ["Retail", UNGROUPED]
        assert result.rows[0].current == Decimal("150")
        assert result.rows[1].days_61_90 == Decimal("30")

    def test_customer_filter(self):
        invoices = [
            _invoice("1", "Acme", 5, "100"),
            _invoice("2", "Beta", 5, "50"),
        ]
        result = bucketize(invoices, AS_AT, customers=["Beta"])
        assert [r.name for r in result.rows] == ["Beta"]
        assert result.totals.total == Decimal("50")

    def test_items_sorted_for_drill_down(self):
        invoices = [
            _invoice("2", "Beta", 5, "50"),
            _invoice("3", "Acme", 5, "10"),
            _invoice("1", "Acme", 50, "20"),
        ]
        result = bucketize(invoices, AS_AT)
        assert [i.invoice_id for i in result.items] == ["1", "3", "2"]
        assert result.items[0].bucket is AgingBucket.DAYS_31_60
        assert result.items[0].counterparty_group == UNGROUPED

    def test_logs_trace_and_summary(self, captured_logs):
        bucketize([_invoice("1", "Acme", 5, "100")], AS_AT)
        messages = [r["message"] for r in captured_logs()]
        assert "ar_aging_calculated" in messages
        assert "LEDGER_ENGINE_TRACE" in messages


class TestRecordValidation:
    def test_customer_required(self):
        with pytest.raises(ValueError):
            _invoice("1", "", 5, "100")

    def test_invoice_id_required(self):
        with pytest.raises(ValueError):
            _invoice("", "Acme", 5, "100")

    def test_document_type_coerced(self):
        record = InvoiceRecord(
            invoice_id="c",
            invoice_number="CN-1",
            customer_name="Acme",
            issue_date=AS_AT,
            total=Decimal("1"),
            document_type="credit_note",
        )
        assert record.is_credit_note


def _bill(
    bill_id: str,
    supplier: str,
    days_old: int,
    total: str,
    payments: tuple[str, ...] = (),
    credit_note_ids: tuple[str, ...] = (),
    group: str | None = None,
) -> BillRecord:
    return BillRecord(
        bill_id=bill_id,
        bill_number=f"PUR-{bill_id}",
        supplier_name=supplier,
        bill_date=AS_AT - timedelta(days=days_old),
        total=Decimal(total),
        payments=tuple(PaymentRecord(Decimal(p)) for p in payments),
        credit_note_ids=credit_note_ids,
        supplier_group=group,
    )


class TestPayables:
    def test_rows_per_supplier(self):
        bills = [
            _bill("1", "Widgets Ltd", 45, "1000", payments=("400",)),
            _bill("2", "Boxes plc", 10, "250"),
            _bill("3", "Widgets Ltd", 150, "80"),
        ]
        result = bucketize_payables(bills, AS_AT)
        assert result.group_by is GroupBy.SUPPLIER
        assert result.counterparty_kind is CounterpartyKind.SUPPLIER
        assert [r.name for r in result.rows] == ["Boxes plc", "Widgets Ltd"]
        widgets = result.rows[1]
        assert widgets.days_31_60 == Decimal("600")
        assert widgets.over_120 == Decimal("80")
        assert result.totals.total == Decimal("930")

    def test_supplier_credit_note_reduces_bill(self):
        note = BillRecord(
            bill_id="c1",
            bill_number="SCN-1",
            supplier_name="Widgets Ltd",
            bill_date=AS_AT,
            total=Decimal("-300"),
            document_type=DocumentType.CREDIT_NOTE,
        )
        bill = _bill("1", "Widgets Ltd", 5, "500", credit_note_ids=("c1",))
        assert calculate_outstanding(bill, {"c1": note}) == Decimal("200")
        result = bucketize_payables([bill, note], AS_AT)
        assert result.totals.current == Decimal("200")
        assert [i.invoice_number for i in result.items] == ["PUR-1"]

    def test_paid_bills_excluded(self):
        result = bucketize_payables([_bill("1", "Widgets Ltd", 5, "100", payments=("100",))], AS_AT)
        assert result.rows == ()

    def test_group_and_filter(self):
        bills = [
            _bill("1", "Widgets Ltd", 5, "100", group="Materials"),
            _bill("2", "Boxes plc", 5, "50", group="Materials"),
            _bill("3", "Power Co", 70, "30"),
        ]
        grouped = bucketize_payables(bills, AS_AT, group_by=GroupBy.SUPPLIER_GROUP)
        assert [(r.name, r.total) for r in grouped.rows] == [
            ("Materials", Decimal("150")),
            (UNGROUPED, Decimal("30")),
        ]
        filtered = bucketize_payables(bills, AS_AT, suppliers=["Power Co"])
        assert [r.name for r in filtered.rows] == ["Power Co"]
        assert filtered.items[0].counterparty_name == "Power Co"

    def test_customer_grouping_rejected(self):
        with pytest.raises(ValueError):
            bucketize_payables([_bill("1", "Widgets Ltd", 5, "100")], AS_AT, group_by=GroupBy.CUSTOMER)

    def test_documents_of_other_kind_rejected(self):
        with pytest.raises(ValueError):
            bucketize([_bill("1", "Widgets Ltd", 5, "100")], AS_AT)
        with pytest.raises(ValueError):
            bucketize_payables([_invoice("1", "Acme", 5, "100")], AS_AT)

    def test_supplier_required(self):
        with pytest.raises(ValueError):
            _bill("1", "", 5, "100")

    def test_logs_ap_summary_and_trace(self, captured_logs):
        bucketize_payables([_bill("1", "Widgets Ltd", 5, "100")], AS_AT)
        records = captured_logs()
        summary = [r for r in records if r["message"] == "ap_aging_calculated"]
        assert summary[0]["counterparty_kind"] == "supplier"
        traces = [r for r in records if r["message"] == "LEDGER_ENGINE_TRACE"]
        assert traces[0]["engine_name"] == "ap_aging"
