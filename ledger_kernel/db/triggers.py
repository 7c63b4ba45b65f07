"""
Module: ledger_kernel.db.triggers
Responsibility: Database-level append-only guards.  The second layer under
    the ORM listeners in db/immutability.py: Core ``update()``/``delete()``
    statements, bulk operations and raw SQL never reach a mapper event, so
    the same rules are installed as triggers on the tables themselves.
Architecture position: Kernel > DB.  Imports sqlalchemy only.  Called by
    ``create_tables`` after the tables exist.

Invariants enforced:
    - journal_entries: a POSTED row is never updated or deleted.
    - journal_lines: no UPDATE, DELETE or INSERT once the parent entry is
      POSTED.  Lines are written while the header is DRAFT.
    - inventory_movements: never updated or deleted.

Failure modes:
    - IntegrityError (SQLite RAISE(ABORT), PostgreSQL SQLSTATE 23000) on any
      violating statement.
    - NotImplementedError for a dialect with no trigger set.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

POSTED = "posted"

ALL_TRIGGER_NAMES = (
    "trg_journal_entry_immutability_update",
    "trg_journal_entry_immutability_delete",
    "trg_journal_line_immutability_update",
    "trg_journal_line_immutability_delete",
    "trg_journal_line_no_insert_posted",
    "trg_inventory_movement_immutability_update",
    "trg_inventory_movement_immutability_delete",
)


def _sqlite_trigger(name: str, timing: str, table: str, when: str, message: str) -> str:
    return (
        f"CREATE TRIGGER IF NOT EXISTS {name} {timing} ON {table} FOR EACH ROW "
        f"WHEN {when} BEGIN SELECT RAISE(ABORT, '{message}'); END"
    )


_LINE_PARENT_POSTED = (
    "(SELECT status FROM journal_entries WHERE id = {row}.journal_entry_id) = '" + POSTED + "'"
)

_SQLITE = (
    _sqlite_trigger(
        "trg_journal_entry_immutability_update", "BEFORE UPDATE", "journal_entries",
        f"OLD.status = '{POSTED}'", "posted journal entries are immutable",
    ),
    _sqlite_trigger(
        "trg_journal_entry_immutability_delete", "BEFORE DELETE", "journal_entries",
        f"OLD.status = '{POSTED}'", "posted journal entries cannot be deleted",
    ),
    _sqlite_trigger(
        "trg_journal_line_immutability_update", "BEFORE UPDATE", "journal_lines",
        _LINE_PARENT_POSTED.format(row="OLD"), "lines of a posted entry are immutable",
    ),
    _sqlite_trigger(
        "trg_journal_line_immutability_delete", "BEFORE DELETE", "journal_lines",
        _LINE_PARENT_POSTED.format(row="OLD"), "lines of a posted entry cannot be deleted",
    ),
    _sqlite_trigger(
        "trg_journal_line_no_insert_posted", "BEFORE INSERT", "journal_lines",
        _LINE_PARENT_POSTED.format(row="NEW"), "cannot add lines to a posted entry",
    ),
    _sqlite_trigger(
        "trg_inventory_movement_immutability_update", "BEFORE UPDATE", "inventory_movements",
        "1", "inventory movements are append-only",
    ),
    _sqlite_trigger(
        "trg_inventory_movement_immutability_delete", "BEFORE DELETE", "inventory_movements",
        "1", "inventory movements are append-only",
    ),
)

_POSTGRES_FUNCTIONS = (
    f"""
    CREATE OR REPLACE FUNCTION ledger_guard_journal_entry() RETURNS trigger AS $$
    BEGIN
        IF OLD.status = '{POSTED}' THEN
            RAISE EXCEPTION 'posted journal entry % is immutable (%)', OLD.entry_number, TG_OP
                USING ERRCODE = 'integrity_constraint_violation';
        END IF;
        IF TG_OP = 'DELETE' THEN
            RETURN OLD;
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """,
    f"""
    CREATE OR REPLACE FUNCTION ledger_guard_journal_line() RETURNS trigger AS $$
    DECLARE
        parent_id varchar(36);
    BEGIN
        IF TG_OP = 'INSERT' THEN
            parent_id := NEW.journal_entry_id;
        ELSE
            parent_id := OLD.journal_entry_id;
        END IF;
        IF EXISTS (SELECT 1 FROM journal_entries WHERE id = parent_id AND status = '{POSTED}') THEN
            RAISE EXCEPTION 'journal entry % is posted; % on its lines is blocked', parent_id, TG_OP
                USING ERRCODE = 'integrity_constraint_violation';
        END IF;
        IF TG_OP = 'DELETE' THEN
            RETURN OLD;
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE OR REPLACE FUNCTION ledger_guard_inventory_movement() RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION 'inventory movements are append-only (%)', TG_OP
            USING ERRCODE = 'integrity_constraint_violation';
    END;
    $$ LANGUAGE plpgsql
    """,
)

_POSTGRES_BINDINGS = (
    ("trg_journal_entry_immutability_update", "BEFORE UPDATE", "journal_entries", "ledger_guard_journal_entry"),
    ("trg_journal_entry_immutability_delete", "BEFORE DELETE", "journal_entries", "ledger_guard_journal_entry"),
    ("trg_journal_line_immutability_update", "BEFORE UPDATE", "journal_lines", "ledger_guard_journal_line"),
    ("trg_journal_line_immutability_delete", "BEFORE DELETE", "journal_lines", "ledger_guard_journal_line"),
    ("trg_journal_line_no_insert_posted", "BEFORE INSERT", "journal_lines", "ledger_guard_journal_line"),
    ("trg_inventory_movement_immutability_update", "BEFORE UPDATE", "inventory_movements", "ledger_guard_inventory_movement"),
    ("trg_inventory_movement_immutability_delete", "BEFORE DELETE", "inventory_movements", "ledger_guard_inventory_movement"),
)


def _postgres_statements() -> tuple[str, ...]:
    statements = list(_POSTGRES_FUNCTIONS)
    for name, timing, table, function in _POSTGRES_BINDINGS:
        statements.append(f"DROP TRIGGER IF EXISTS {name} ON {table}")
        statements.append(
            f"CREATE TRIGGER {name} {timing} ON {table} "
            f"FOR EACH ROW EXECUTE FUNCTION {function}()"
        )
    return tuple(statements)


def trigger_statements(dialect: str) -> tuple[str, ...]:
    """DDL installing every guard in ALL_TRIGGER_NAMES for ``dialect``."""
    if dialect == "sqlite":
        return _SQLITE
    if dialect == "postgresql":
        return _postgres_statements()
    raise NotImplementedError(f"No immutability triggers for dialect {dialect!r}")


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install the append-only triggers.  Idempotent.

    Preconditions: tables exist (call after ``Base.metadata.create_all``).
    """
    statements = trigger_statements(engine.dialect.name)
    with engine.begin() as conn:
        # RAISE messages contain '%'; keep the driver from treating them as placeholders.
        raw = conn.execution_options(no_parameters=True)
        for statement in statements:
            raw.exec_driver_sql(statement)
    logger.info(
        "immutability_triggers_installed",
        extra={"dialect": engine.dialect.name, "trigger_count": len(ALL_TRIGGER_NAMES)},
    )


def installed_triggers(engine: Engine) -> list[str]:
    """Names from ALL_TRIGGER_NAMES present in the database, sorted."""
    if engine.dialect.name == "sqlite":
        query = "SELECT name FROM sqlite_master WHERE type = 'trigger' ORDER BY name"
    else:
        query = "SELECT DISTINCT tgname FROM pg_trigger WHERE NOT tgisinternal ORDER BY tgname"
    with engine.connect() as conn:
        present = {row[0] for row in conn.execute(text(query))}
    return sorted(name for name in ALL_TRIGGER_NAMES if name in present)
