"""Database layer - engine, base classes and transactional scope."""

from stock_ledger.db.base import Base, SurrogateKey, TrackedBase
from stock_ledger.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "SurrogateKey",
    "TrackedBase",
    "build_engine",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
