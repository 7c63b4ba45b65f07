"""
Inventory domain values -- movement types, idempotency key, item state.

Responsibility:
    Shared vocabulary between the pure costing engine
    (``ledger_engines.costing``) and the persistence service
    (``ledger_kernel.services.inventory_costing``).

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class MovementType(str, Enum):
    """Kinds of stock movement."""

    IN = "IN"
    OUT = "OUT"
    ADJ_IN = "ADJ_IN"
    ADJ_OUT = "ADJ_OUT"
    RETURN_IN = "RETURN_IN"
    RETURN_OUT = "RETURN_OUT"

    @property
    def is_inbound(self) -> bool:
        return self in (MovementType.IN, MovementType.ADJ_IN, MovementType.RETURN_IN)

    @property
    def is_adjustment(self) -> bool:
        return self in (MovementType.ADJ_IN, MovementType.ADJ_OUT)


class NegativeStockPolicy(str, Enum):
    """What to do when a non-adjustment outbound movement overdraws stock."""

    REJECT = "reject"
    FLAG = "flag"


@dataclass(frozen=True)
class MovementKey:
    """
    Business-event identity of a movement.

    Together with item id and movement type this is the storage-level
    uniqueness key: re-submitting the same key is a no-op.
    """

    reference_id: str
    reference_type: str

    def __post_init__(self) -> None:
        if not self.reference_id or not self.reference_type:
            raise ValueError("reference_id and reference_type are required")


@dataclass(frozen=True)
class InventoryItemState:
    """
    Item state returned by ``apply_movement``.

    ``applied`` is False when the movement key had already been applied and
    the call was a no-op.  ``negative_stock`` is True when the movement left
    quantity below zero.
    """

    item_id: UUID
    quantity: Decimal
    average_cost: Decimal
    last_cost: Decimal
    applied: bool = True
    negative_stock: bool = False

    @property
    def value(self) -> Decimal:
        return self.quantity * self.average_cost
