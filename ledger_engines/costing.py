"""
Module: ledger_engines.costing
Responsibility:
    Weighted-average inventory costing.  Given an item's current state and
    one movement, compute the next state; price an issue at the running
    average; value stock on hand.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Persistence, locking and idempotency live in
    ``ledger_kernel.services.inventory_costing``.

Invariants enforced:
    - Inbound: new_cost = (old_cost * old_qty + unit_cost * qty) / new_qty
      when new_qty > 0, otherwise unit_cost.  last_cost = unit_cost.
    - Outbound: quantity decreases, average cost is unchanged.
    - Decimal-only arithmetic; average cost is carried at 9 places.

Failure modes:
    - InvalidMovementError for quantity <= 0 or a negative unit cost.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.db.types import (
    MONEY_DECIMAL_PLACES,
    ZERO,
    round_money,
    to_decimal,
)
from ledger_kernel.domain.inventory import MovementType
from ledger_kernel.exceptions import InvalidMovementError

__all__ = [
    "CostingState",
    "MovementType",
    "apply_movement_to_state",
    "cost_of_issue",
    "valuation",
]


@dataclass(frozen=True)
class CostingState:
    """Running quantity and costs of one item."""

    quantity: Decimal = ZERO
    average_cost: Decimal = ZERO
    last_cost: Decimal = ZERO

    @property
    def is_negative(self) -> bool:
        return self.quantity < ZERO


def apply_movement_to_state(
    state: CostingState,
    movement_type: MovementType,
    quantity: Decimal,
    unit_cost: Decimal,
) -> CostingState:
    """
    Apply one movement to ``state`` and return the new state.

    No stock-level policy is applied here: an outbound movement may leave
    the quantity negative.  The service decides whether that is allowed.
    """
    quantity = to_decimal(quantity)
    unit_cost = to_decimal(unit_cost)
    movement_type = MovementType(movement_type)

    if quantity <= ZERO:
        raise InvalidMovementError(f"quantity must be positive, got {quantity}")
    if unit_cost < ZERO:
        raise InvalidMovementError(f"unit_cost cannot be negative, got {unit_cost}")

    if not movement_type.is_inbound:
        return CostingState(
            quantity=state.quantity - quantity,
            average_cost=state.average_cost,
            last_cost=state.last_cost,
        )

    new_quantity = state.quantity + quantity
    if new_quantity > ZERO:
        total_value = state.average_cost * state.quantity + unit_cost * quantity
        new_cost = round_money(total_value / new_quantity, MONEY_DECIMAL_PLACES)
    else:
        # Receipt into a stock hole that is still non-positive afterwards.
        new_cost = unit_cost
    return CostingState(
        quantity=new_quantity,
        average_cost=new_cost,
        last_cost=unit_cost,
    )


def cost_of_issue(state: CostingState, quantity: Decimal) -> Decimal:
    """COGS amount for issuing ``quantity`` at the running average."""
    return round_money(to_decimal(quantity) * state.average_cost)


def valuation(state: CostingState) -> Decimal:
    """Stock value on hand at the running average."""
    return round_money(state.quantity * state.average_cost)
