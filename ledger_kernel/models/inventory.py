"""
Module: ledger_kernel.models.inventory
Responsibility: ORM persistence for inventory items and the append-only
    movement log that drives weighted-average costing.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - (item_id, movement_type, reference_id, reference_type) is unique.  The
      constraint, not a prior SELECT, is what makes re-submission a no-op.
    - InventoryItem carries a version column (SQLAlchemy version_id_col), so
      an interleaved read-modify-write fails with StaleDataError instead of
      silently corrupting the average.
    - Movements are immutable once inserted (db/immutability.py).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.inventory import InventoryItemState


class InventoryItem(TrackedBase):
    """
    A stock-keeping item with running quantity and weighted-average cost.

    Contract:
        quantity, average_cost and last_cost change only inside
        ``InventoryCostingService.apply_movement``, always together.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_inventory_item_sku"),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    average_cost: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    last_cost: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<InventoryItem {self.sku} qty={self.quantity} avg={self.average_cost}>"

    def to_state(
        self,
        applied: bool = True,
        negative_stock: bool = False,
    ) -> InventoryItemState:
        return InventoryItemState(
            item_id=self.id,
            quantity=self.quantity,
            average_cost=self.average_cost,
            last_cost=self.last_cost,
            applied=applied,
            negative_stock=negative_stock,
        )


class InventoryMovement(TrackedBase):
    """
    One applied stock movement.

    Contract:
        Inserted once per business event.  The resulting quantity and
        average cost are recorded alongside the movement for audit.
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        UniqueConstraint(
            "item_id",
            "movement_type",
            "reference_id",
            "reference_type",
            name="uq_inventory_movement_identity",
        ),
        UniqueConstraint("item_id", "sequence", name="uq_inventory_movement_sequence"),
        Index("idx_movement_item", "item_id"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    # Item version at the time of the movement; orders the log per item.
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    reference_id: Mapped[str] = mapped_column(String(100), nullable=False)

    reference_type: Mapped[str] = mapped_column(String(50), nullable=False)

    quantity_after: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    average_cost_after: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9), nullable=True,
    )

    negative_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<InventoryMovement {self.movement_type} {self.quantity}"
            f" @ {self.unit_cost} ref={self.reference_type}:{self.reference_id}>"
        )
