"""
Tests for the pure weighted-average costing engine.

Covers:
- Inbound weighted average and last cost
- Outbound movements keep the average
- Receipts into negative stock
- Invalid quantities and costs
"""

from decimal import Decimal

import pytest

from ledger_engines.costing import (
    CostingState,
    MovementType,
    apply_movement_to_state,
    cost_of_issue,
    valuation,
)
from ledger_kernel.exceptions import InvalidMovementError


class TestWeightedAverage:
    def test_receipts_then_issue(self):
        """IN 10@5, IN 10@7, OUT 5 -> qty 15 at average 6."""
        state = CostingState()
        state = apply_movement_to_state(state, MovementType.IN, Decimal("10"), Decimal("5"))
        assert state.quantity == Decimal("10")
        assert state.average_cost == Decimal("5")

        state = apply_movement_to_state(state, MovementType.IN, Decimal("10"), Decimal("7"))
        assert state.quantity == Decimal("20")
        assert state.average_cost == Decimal("6")
        assert state.last_cost == Decimal("7")

        state = apply_movement_to_state(state, MovementType.OUT, Decimal("5"), Decimal("0"))
        assert state.quantity == Decimal("15")
        assert state.average_cost == Decimal("6")

    def test_average_rounded_to_money_precision(self):
        state = CostingState(quantity=Decimal("3"), average_cost=Decimal("10"))
        state = apply_movement_to_state(state, MovementType.IN, Decimal("3"), Decimal("11"))
        assert state.average_cost == Decimal("10.500000000")

        state = apply_movement_to_state(state, MovementType.IN, Decimal("1"), Decimal("0"))
        assert state.average_cost == Decimal("9.000000000")

    @pytest.mark.parametrize(
        "movement_type",
        [MovementType.OUT, MovementType.ADJ_OUT, MovementType.RETURN_OUT],
    )
    def test_outbound_keeps_cost(self, movement_type):
        state = CostingState(Decimal("10"), Decimal("4.25"), Decimal("4.50"))
        after = apply_movement_to_state(state, movement_type, Decimal("3"), Decimal("99"))
        assert after.quantity == Decimal("7")
        assert after.average_cost == Decimal("4.25")
        assert after.last_cost == Decimal("4.50")

    @pytest.mark.parametrize(
        "movement_type",
        [MovementType.IN, MovementType.ADJ_IN, MovementType.RETURN_IN],
    )
    def test_inbound_types_average(self, movement_type):
        state = CostingState(Decimal("10"), Decimal("2"))
        after = apply_movement_to_state(state, movement_type, Decimal("10"), Decimal("4"))
        assert after.average_cost == Decimal("3")

    def test_outbound_may_go_negative(self):
        state = CostingState(Decimal("2"), Decimal("5"))
        after = apply_movement_to_state(state, MovementType.OUT, Decimal("5"), Decimal("0"))
        assert after.quantity == Decimal("-3")
        assert after.is_negative

    def test_receipt_into_hole_still_negative_uses_unit_cost(self):
        state = CostingState(Decimal("-10"), Decimal("5"))
        after = apply_movement_to_state(state, MovementType.IN, Decimal("4"), Decimal("8"))
        assert after.quantity == Decimal("-6")
        assert after.average_cost == Decimal("8")

    def test_receipt_into_hole_exactly_zero_uses_unit_cost(self):
        state = CostingState(Decimal("-4"), Decimal("5"))
        after = apply_movement_to_state(state, MovementType.IN, Decimal("4"), Decimal("8"))
        assert after.quantity == Decimal("0")
        assert after.average_cost == Decimal("8")

    def test_movement_type_from_string(self):
        after = apply_movement_to_state(CostingState(), "IN", Decimal("1"), Decimal("2"))
        assert after.quantity == Decimal("1")


class TestValidation:
    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
    def test_non_positive_quantity(self, quantity):
        with pytest.raises(InvalidMovementError):
            apply_movement_to_state(CostingState(), MovementType.IN, quantity, Decimal("1"))

    def test_negative_cost(self):
        with pytest.raises(InvalidMovementError) as exc_info:
            apply_movement_to_state(CostingState(), MovementType.IN, Decimal("1"), Decimal("-1"))
        assert exc_info.value.code == "INVALID_MOVEMENT"

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            apply_movement_to_state(CostingState(), MovementType.IN, 1.5, Decimal("1"))


class TestIssueAndValuation:
    def test_cost_of_issue(self):
        state = CostingState(Decimal("15"), Decimal("6.333333333"))
        assert cost_of_issue(state, Decimal("3")) == Decimal("19.00")

    def test_valuation(self):
        state = CostingState(Decimal("15"), Decimal("6"))
        assert valuation(state) == Decimal("90.00")
