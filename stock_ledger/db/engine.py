"""
Module: stock_ledger.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  Single point of database connection
    configuration for the whole ledger.
Architecture position: Stock Ledger > DB.  May import from db/base.py
    and config.py.
    MUST NOT import from services/, selectors/ or outer layers (except
    create_tables/drop_tables, which import models so that Base.metadata
    is populated).

Invariants enforced:
    - PostgreSQL is the production backend; sessions run at READ COMMITTED
      with explicit row locks (FOR UPDATE) where the ledger needs them.
    - SQLite is accepted for local runs and tests.  Foreign keys are switched
      on for every SQLite connection, since SQLite leaves them off by default.
    - session_scope() commits on success and rolls back on any exception,
      so no partial mutation is ever visible.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory is called
      before init_engine_from_url() or init_engine().
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from stock_ledger.config import LedgerSettings
from stock_ledger.logging_config import get_logger

logger = get_logger("db.engine")

# Module-level engine and session factory
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _on_sqlite_connect(dbapi_connection, connection_record):
    # Hand transaction control to SQLAlchemy; pysqlite would otherwise
    # delay BEGIN until the first DML statement and break SAVEPOINT.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn):
    # IMMEDIATE takes the write lock up front, so concurrent writers queue on
    # the busy timeout instead of failing on lock upgrade.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create an engine for ``database_url`` without touching module state.

    PostgreSQL gets a sized QueuePool at READ COMMITTED.  SQLite gets a
    30 second busy timeout, cross-thread connections, foreign keys on
    and writer-serializing BEGIN IMMEDIATE transactions.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(engine, "connect", _on_sqlite_connect)
        event.listen(engine, "begin", _on_sqlite_begin)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, **engine_options: Any) -> Engine:
    """
    Install the process-wide engine and session factory.

    ``engine_options`` are passed through to build_engine().  A second call
    disposes the previous engine and replaces it.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = build_engine(database_url, **engine_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, **engine_options},
    )
    return _engine


def init_engine(settings: LedgerSettings) -> Engine:
    """init_engine_from_url() driven by LedgerSettings."""
    return init_engine_from_url(
        settings.database_url,
        echo=settings.echo,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
    )


def _require_initialized() -> tuple[Engine, sessionmaker[Session]]:
    if _engine is None or _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine, _SessionFactory


def get_engine() -> Engine:
    return _require_initialized()[0]


def get_session_factory() -> sessionmaker[Session]:
    """Factory for callers that open one session per unit of work or per thread."""
    return _require_initialized()[1]


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed, and the exception
        is re-raised to the caller.

    Usage:
        with session_scope() as session:
            session.add(entity)
            # Commits on successful exit, rolls back on exception
    """
    session = (factory or get_session_factory())()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from stock_ledger.db.base import Base
    import stock_ledger.models  # noqa: F401  (registers tables on Base.metadata)

    return Base.metadata


def create_tables(engine: Engine | None = None) -> None:
    """Create missing ledger tables on ``engine`` (default: the installed one)."""
    _metadata().create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every ledger table, stock included.  Tests and ``init_db --reset`` only."""
    _metadata().drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the installed engine and forget it."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)

