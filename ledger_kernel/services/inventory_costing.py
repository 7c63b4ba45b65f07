"""
InventoryCostingService -- idempotent, serialized weighted-average costing.

Responsibility:
    Persists inventory items and the append-only movement log, applying
    each movement through the pure ``ledger_engines.costing`` engine.

Architecture position:
    Kernel > Services -- imperative shell around ledger_engines.costing.

Invariants enforced:
    - Idempotency: (item_id, movement_type, reference_id, reference_type) is
      unique in storage.  The movement row is inserted inside a SAVEPOINT;
      an IntegrityError on that key means it was already applied and the
      call returns the current state with ``applied=False``.  There is no
      prior SELECT.
    - Serialization: the item row is read with SELECT ... FOR UPDATE, and
      the item's version column turns any interleaved write into a
      StaleDataError, which is retried a bounded number of times.  A
      collision on (item_id, sequence) with no row for the key is the same
      interleaving seen from the movement log and is raised as
      StaleDataError too.
    - Item state and movement row are written in the same savepoint, so a
      movement is never recorded without its effect (or vice versa).
    - Negative stock: ADJ_OUT may go negative.  OUT and RETURN_OUT are
      rejected under policy ``reject`` and applied-and-flagged under
      ``flag``.

Failure modes:
    - InvalidMovementError for bad quantity or cost.
    - ItemNotFoundError for an unknown item.
    - NegativeStockError under the ``reject`` policy.
    - PersistenceError when version conflicts outlast max_lock_retries.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Self
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_engines.costing import CostingState, apply_movement_to_state, valuation
from ledger_kernel.db.types import ZERO, to_decimal
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.inventory import (
    InventoryItemState,
    MovementKey,
    MovementType,
    NegativeStockPolicy,
)
from ledger_kernel.exceptions import ItemNotFoundError, NegativeStockError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.inventory import InventoryItem, InventoryMovement
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.retry import retry_transient

logger = get_logger("services.inventory_costing")


@dataclass
class InventoryCostingConfig:
    """Configuration for inventory costing."""

    negative_stock_policy: NegativeStockPolicy = NegativeStockPolicy.REJECT

    # Attempts per movement when the item's version check fails.
    max_lock_retries: int = 3

    def __post_init__(self):
        self.negative_stock_policy = NegativeStockPolicy(self.negative_stock_policy)
        if self.max_lock_retries < 1:
            raise ValueError("max_lock_retries must be at least 1")

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "inventory_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)


@dataclass(frozen=True)
class ItemValuation:
    """Stock value of one item at its running average."""

    item_id: UUID
    sku: str
    name: str
    quantity: Decimal
    average_cost: Decimal
    value: Decimal


@dataclass(frozen=True)
class InventoryValuation:
    """Valuation of every item plus the grand total."""

    items: tuple[ItemValuation, ...]
    total_value: Decimal


class InventoryCostingService(BaseService[InventoryItem]):
    """
    Applies stock movements to items.

    Contract:
        ``apply_movement`` returns the item state after the call.  Replaying
        a movement key is a no-op that returns the unchanged state.

    Non-goals:
        - Does not post COGS journal entries; the caller feeds
          ``cost_of_issue`` into ``ledger_modules.postings.cogs_entry``.
        - Does not commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: InventoryCostingConfig | None = None,
    ):
        super().__init__(session, clock)
        self.config = config or InventoryCostingConfig.with_defaults()

    def create_item(self, sku: str, name: str, actor_id: UUID) -> UUID:
        item = InventoryItem(
            sku=sku,
            name=name,
            quantity=ZERO,
            average_cost=ZERO,
            last_cost=ZERO,
            created_by_id=actor_id,
        )
        self.session.add(item)
        self.session.flush()
        logger.info("inventory_item_created", extra={"item_id": str(item.id), "sku": sku})
        return item.id

    def apply_movement(
        self,
        item_id: UUID,
        movement_type: MovementType | str,
        quantity: Decimal,
        unit_cost: Decimal,
        movement_key: MovementKey,
        actor_id: UUID,
    ) -> InventoryItemState:
        """
        Apply one movement and return the item's resulting state.

        Args:
            item_id: Item to move.
            movement_type: IN, OUT, ADJ_IN, ADJ_OUT, RETURN_IN or RETURN_OUT.
            quantity: Positive quantity.
            unit_cost: Non-negative cost per unit (used by inbound movements).
            movement_key: Business-event identity of the movement.
            actor_id: Who is recording the movement.
        """
        movement_type = MovementType(movement_type)
        quantity = to_decimal(quantity)
        unit_cost = to_decimal(unit_cost)

        with LogContext.bind(actor_id=actor_id, item_id=item_id):
            return retry_transient(
                lambda: self._apply_once(
                    item_id, movement_type, quantity, unit_cost, movement_key, actor_id,
                ),
                operation_name="inventory_apply_movement",
                max_attempts=self.config.max_lock_retries,
            )

    def _lock_item(self, item_id: UUID) -> InventoryItem:
        item = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(str(item_id))
        return item

    def _movement_recorded(
        self, item_id: UUID, movement_type: MovementType, movement_key: MovementKey,
    ) -> bool:
        return self.session.execute(
            select(InventoryMovement.id).where(
                InventoryMovement.item_id == item_id,
                InventoryMovement.movement_type == movement_type.value,
                InventoryMovement.reference_id == movement_key.reference_id,
                InventoryMovement.reference_type == movement_key.reference_type,
            )
        ).first() is not None

    def _apply_once(
        self,
        item_id: UUID,
        movement_type: MovementType,
        quantity: Decimal,
        unit_cost: Decimal,
        movement_key: MovementKey,
        actor_id: UUID,
    ) -> InventoryItemState:
        with self.session.begin_nested():
            item = self._lock_item(item_id)
            current = CostingState(
                quantity=item.quantity,
                average_cost=item.average_cost,
                last_cost=item.last_cost,
            )
            new_state = apply_movement_to_state(current, movement_type, quantity, unit_cost)

            negative = new_state.is_negative
            movement = InventoryMovement(
                item_id=item_id,
                sequence=item.version,
                movement_type=movement_type.value,
                quantity=quantity,
                unit_cost=unit_cost,
                reference_id=movement_key.reference_id,
                reference_type=movement_key.reference_type,
                quantity_after=new_state.quantity,
                average_cost_after=new_state.average_cost,
                negative_stock=negative,
                created_by_id=actor_id,
            )
            # Insert before the stock check so a replayed key is a no-op even
            # when the original movement emptied the item.
            try:
                with self.session.begin_nested():
                    self.session.add(movement)
                    self.session.flush()
            except IntegrityError:
                if not self._movement_recorded(item_id, movement_type, movement_key):
                    # The sequence was taken by a writer that moved the item after it was read.
                    raise StaleDataError(
                        f"inventory item {item_id} changed after version {item.version} was read"
                    )
                logger.info(
                    "inventory_movement_duplicate",
                    extra={
                        "movement_type": movement_type.value,
                        "reference_id": movement_key.reference_id,
                        "reference_type": movement_key.reference_type,
                    },
                )
                return item.to_state(applied=False)

            if negative and not movement_type.is_inbound and not movement_type.is_adjustment:
                if self.config.negative_stock_policy == NegativeStockPolicy.REJECT:
                    logger.warning(
                        "negative_stock_rejected",
                        extra={
                            "movement_type": movement_type.value,
                            "on_hand": current.quantity,
                            "requested": quantity,
                        },
                    )
                    # Leaving the outer savepoint by exception discards the row.
                    raise NegativeStockError(
                        str(item_id), current.quantity, quantity, movement_type.value,
                    )
                logger.warning(
                    "negative_stock_flagged",
                    extra={
                        "movement_type": movement_type.value,
                        "on_hand": current.quantity,
                        "requested": quantity,
                        "quantity_after": new_state.quantity,
                    },
                )

            item.quantity = new_state.quantity
            item.average_cost = new_state.average_cost
            item.last_cost = new_state.last_cost
            item.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "inventory_movement_applied",
                extra={
                    "movement_id": str(movement.id),
                    "movement_type": movement_type.value,
                    "quantity": quantity,
                    "unit_cost": unit_cost,
                    "quantity_after": new_state.quantity,
                    "average_cost_after": new_state.average_cost,
                    "negative_stock": negative,
                },
            )
            return item.to_state(applied=True, negative_stock=negative)

    def get_state(self, item_id: UUID) -> InventoryItemState:
        item = self.session.get(InventoryItem, item_id)
        if item is None:
            raise ItemNotFoundError(str(item_id))
        return item.to_state()

    def movement_history(self, item_id: UUID) -> list[InventoryMovement]:
        """Movements for an item in the order they were applied."""
        return list(
            self.session.execute(
                select(InventoryMovement)
                .where(InventoryMovement.item_id == item_id)
                .order_by(InventoryMovement.sequence)
            ).scalars()
        )

    def inventory_valuation(self) -> InventoryValuation:
        rows = []
        for item in self.session.execute(
            select(InventoryItem).order_by(InventoryItem.sku)
        ).scalars():
            state = CostingState(item.quantity, item.average_cost, item.last_cost)
            rows.append(
                ItemValuation(
                    item_id=item.id,
                    sku=item.sku,
                    name=item.name,
                    quantity=item.quantity,
                    average_cost=item.average_cost,
                    value=valuation(state),
                )
            )
        return InventoryValuation(
            items=tuple(rows),
            total_value=sum((r.value for r in rows), ZERO),
        )
