"""
Append-only enforcement on the production start-up path.

These tests build the engine exactly as an application would
(``init_engine_from_url`` + ``create_tables`` + ``session_scope``) instead
of using the conftest ``db_engine`` fixture, and check both layers:

- ORM listeners, registered by ``init_engine_from_url``
- Database triggers, installed by ``create_tables``, which also stop Core
  ``update()``/``delete()`` statements that never reach a mapper event
"""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy import delete, event, insert, select, update
from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from ledger_kernel.db.immutability import (
    _check_journal_entry_immutability,
    unregister_immutability_listeners,
)
from ledger_kernel.db.triggers import ALL_TRIGGER_NAMES, installed_triggers
from ledger_kernel.domain.inventory import MovementKey, MovementType
from ledger_kernel.domain.journal import JournalEntryData, JournalLineData
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.models.inventory import InventoryMovement
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.inventory_costing import InventoryCostingService
from ledger_kernel.services.journal_entry_manager import JournalEntryManager

ACTOR = uuid4()


@pytest.fixture
def app_engine():
    """Engine built the way an application builds it, with no test hooks."""
    unregister_immutability_listeners()
    reset_engine()
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_engine()
    drop_tables()
    reset_engine()


@pytest.fixture
def posted_purchase(app_engine) -> UUID:
    with session_scope() as session:
        accounts = AccountService(session)
        inventory = accounts.create_account("1110", "Finished Goods", "current-asset", ACTOR, "inventories")
        payables = accounts.create_account("3100", "Trade Creditors", "current-liability", ACTOR, "trade-payables")
        entry_id = JournalEntryManager(session).create_entry(
            JournalEntryData(
                entry_number="PUR-1",
                entry_date=date(2024, 6, 1),
                description="Stock purchase",
                lines=(
                    JournalLineData(inventory.account_id, debit=Decimal("1000")),
                    JournalLineData(payables.account_id, credit=Decimal("1000")),
                ),
            ),
            actor_id=ACTOR,
        )
    return entry_id


def _debits(entry_id: UUID) -> list[Decimal]:
    with session_scope() as session:
        return list(
            session.execute(
                select(JournalLine.debit)
                .where(JournalLine.journal_entry_id == entry_id)
                .order_by(JournalLine.line_seq)
            ).scalars()
        )


class TestStartup:
    def test_init_registers_listeners(self, app_engine):
        assert event.contains(JournalEntry, "before_update", _check_journal_entry_immutability)

    def test_create_tables_installs_triggers(self, app_engine):
        assert installed_triggers(app_engine) == sorted(ALL_TRIGGER_NAMES)

    def test_triggers_optional(self, app_engine):
        drop_tables()
        create_tables(install_triggers=False)
        assert installed_triggers(app_engine) == []


class TestOrmLayer:
    def test_line_edit_blocked(self, posted_purchase):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope() as session:
                line = session.execute(
                    select(JournalLine).where(JournalLine.journal_entry_id == posted_purchase)
                ).scalars().first()
                line.debit = Decimal("5")
        assert _debits(posted_purchase) == [Decimal("1000"), Decimal("0")]

    def test_entry_delete_blocked(self, posted_purchase):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope() as session:
                session.delete(session.get(JournalEntry, posted_purchase))
        with session_scope() as session:
            assert session.get(JournalEntry, posted_purchase) is not None


class TestDatabaseLayer:
    def test_core_line_update_blocked(self, posted_purchase):
        with pytest.raises(IntegrityError):
            with get_engine().begin() as conn:
                conn.execute(update(JournalLine.__table__).values(debit=Decimal("7")))
        assert _debits(posted_purchase) == [Decimal("1000"), Decimal("0")]

    def test_core_entry_update_blocked(self, posted_purchase):
        with pytest.raises(IntegrityError):
            with get_engine().begin() as conn:
                conn.execute(
                    update(JournalEntry.__table__)
                    .where(JournalEntry.__table__.c.id == str(posted_purchase))
                    .values(description="rewritten")
                )

    def test_core_line_delete_blocked(self, posted_purchase):
        with pytest.raises(IntegrityError):
            with get_engine().begin() as conn:
                conn.execute(delete(JournalLine.__table__))
        assert len(_debits(posted_purchase)) == 2

    def test_core_entry_delete_blocked(self, posted_purchase):
        with pytest.raises(IntegrityError):
            with get_engine().begin() as conn:
                conn.execute(delete(JournalEntry.__table__))
        with session_scope() as session:
            assert session.get(JournalEntry, posted_purchase) is not None

    def test_line_insert_into_posted_entry_blocked(self, posted_purchase):
        with session_scope() as session:
            account_id = session.execute(select(JournalLine.account_id)).scalars().first()
        with pytest.raises(IntegrityError):
            with get_engine().begin() as conn:
                conn.execute(
                    insert(JournalLine.__table__).values(
                        id=str(uuid4()),
                        journal_entry_id=str(posted_purchase),
                        account_id=str(account_id),
                        debit=Decimal("1"),
                        credit=Decimal("0"),
                        line_seq=9,
                        created_by_id=str(ACTOR),
                    )
                )
        assert len(_debits(posted_purchase)) == 2

    def test_core_movement_update_blocked(self, app_engine):
        with session_scope() as session:
            service = InventoryCostingService(session)
            item_id = service.create_item("SKU-1", "Widget", actor_id=ACTOR)
            service.apply_movement(
                item_id, MovementType.IN, Decimal("10"), Decimal("5"),
                MovementKey("GRN-1", "receipt"), actor_id=ACTOR,
            )
        with pytest.raises(IntegrityError):
            with get_engine().begin() as conn:
                conn.execute(update(InventoryMovement.__table__).values(unit_cost=Decimal("1")))
        with pytest.raises(IntegrityError):
            with get_engine().begin() as conn:
                conn.execute(delete(InventoryMovement.__table__))
