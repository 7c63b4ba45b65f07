"""
Engine and session management for the ledger database.

One engine per process, created by ``init_engine_from_url``.  Two backends
are supported:

    PostgreSQL   QueuePool, READ COMMITTED.  Posting and movement services
                 serialize read-modify-write with SELECT ... FOR UPDATE.
    SQLite       Tests and embedded use.  In-memory URLs share a single
                 StaticPool connection; BEGIN is emitted by SQLAlchemy so the
                 SAVEPOINTs used for movement de-duplication nest correctly.
                 SQLite has no FOR UPDATE: transactions open with BEGIN
                 IMMEDIATE, so writers on a file database queue on the
                 busy timeout instead of failing a shared-to-write upgrade.

Append-only rules are enforced twice: ORM listeners are registered by
``init_engine_from_url`` and database triggers are installed by
``create_tables`` (db/immutability.py, db/triggers.py).

Services flush but never commit.  ``session_scope`` (or
``services.retry.run_in_transaction``) owns commit and rollback.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Ledger database not initialized. Call init_engine_from_url() first."


def _sqlite_engine(url: URL, echo: bool) -> Engine:
    in_memory = url.database in (None, "", ":memory:")
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        **({"poolclass": StaticPool} if in_memory else {}),
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's implicit transactions; enforce FKs for reversal links.
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def _server_engine(url: URL, echo: bool, pool_size: int, max_overflow: int, pool_recycle: int) -> Engine:
    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    A second call replaces the first; the previous engine is disposed.

    Args:
        database_url: ``postgresql+psycopg2://...`` or ``sqlite:///...``.
        echo: Log every SQL statement.
        pool_size, max_overflow, pool_recycle: QueuePool settings, ignored
            for SQLite.
    """
    global _engine, _SessionFactory

    reset_engine()
    url = make_url(database_url)
    dialect = url.get_backend_name()
    if dialect == "sqlite":
        _engine = _sqlite_engine(url, echo)
    else:
        _engine = _server_engine(url, echo, pool_size, max_overflow, pool_recycle)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()

    from ledger_kernel.db.immutability import register_immutability_listeners

    register_immutability_listeners()
    logger.info("engine_initialized", extra={"dialect": dialect, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for callers that need one session per attempt or per thread."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on success, roll back and re-raise on failure.

    Usage:
        with session_scope() as session:
            JournalEntryManager(session).create_entry(data, actor_id=actor)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(install_triggers: bool = True) -> None:
    """
    Create accounts, journal and inventory tables.

    With ``install_triggers`` (the default) the append-only triggers from
    db/triggers.py are installed as well.
    """
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  registers tables on Base.metadata

    engine = get_engine()
    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})

    if install_triggers:
        from ledger_kernel.db.triggers import install_immutability_triggers

        install_immutability_triggers(engine)


def drop_tables() -> None:
    from ledger_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
