"""Tests for the @traced_engine decorator and input fingerprints."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_engines.tracer import compute_input_fingerprint, traced_engine


@dataclass(frozen=True)
class _Params:
    rate: Decimal
    as_of: date


@traced_engine("demo", "2.1", fingerprint_fields=("amount", "params"))
def _demo_engine(amount: Decimal, params: _Params, note: str = "") -> Decimal:
    return amount * params.rate


def _traces(captured_logs) -> list[dict]:
    return [r for r in captured_logs() if r["message"] == "LEDGER_ENGINE_TRACE"]


class TestFingerprint:
    def test_deterministic(self):
        args = {"amount": Decimal("10"), "when": date(2024, 1, 1)}
        first = compute_input_fingerprint(("amount", "when"), args)
        second = compute_input_fingerprint(("amount", "when"), dict(args))
        assert first == second
        assert len(first) == 16

    def test_sensitive_to_values(self):
        a = compute_input_fingerprint(("amount",), {"amount": Decimal("10")})
        b = compute_input_fingerprint(("amount",), {"amount": Decimal("11")})
        assert a != b

    def test_dict_key_order_irrelevant(self):
        a = compute_input_fingerprint(("d",), {"d": {"x": 1, "y": 2}})
        b = compute_input_fingerprint(("d",), {"d": {"y": 2, "x": 1}})
        assert a == b

    def test_missing_field_recorded_as_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})


class TestTracedEngine:
    def test_result_unchanged(self):
        params = _Params(Decimal("2"), date(2024, 1, 1))
        assert _demo_engine(Decimal("5"), params) == Decimal("10")

    def test_trace_fields(self, captured_logs):
        _demo_engine(Decimal("5"), _Params(Decimal("2"), date(2024, 1, 1)))
        (trace,) = _traces(captured_logs)
        assert trace["trace_type"] == "LEDGER_ENGINE_TRACE"
        assert trace["engine_name"] == "demo"
        assert trace["engine_version"] == "2.1"
        assert trace["function"] == "_demo_engine"
        assert trace["duration_ms"] >= 0

    def test_positional_and_keyword_calls_fingerprint_alike(self, captured_logs):
        params = _Params(Decimal("2"), date(2024, 1, 1))
        _demo_engine(Decimal("5"), params)
        _demo_engine(amount=Decimal("5"), params=params, note="ignored")
        first, second = _traces(captured_logs)
        assert first["input_fingerprint"] == second["input_fingerprint"]
