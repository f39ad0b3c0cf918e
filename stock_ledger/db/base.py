"""
Module: stock_ledger.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the integer surrogate key type, the type annotation map for
    consistent column types, and the TrackedBase mixin for audit timestamps.
Architecture position: Stock Ledger > DB.  Lowest-level import target; ALL
    model files import from here.  MUST NOT import from models/, services/,
    selectors/ or outer layers.

Invariants enforced:
    - Surrogate keys: Warehouse and Inventory ids are system-assigned
      integers.  They are BIGINT on PostgreSQL and INTEGER on SQLite, where
      only an INTEGER PRIMARY KEY autoincrements.
    - Decimal precision: Python Decimal maps to Numeric(18, 4).  Prices are
      NEVER stored as float.
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BIGINT everywhere except SQLite, which needs INTEGER for rowid aliasing
SurrogateKey = BigInteger().with_variant(Integer(), "sqlite")

# Largest id either backend can store (signed 64-bit)
MAX_SURROGATE_ID = 2**63 - 1

PRICE_PRECISION = 18
PRICE_SCALE = 4


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to Numeric(18, 4).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(PRICE_PRECISION, PRICE_SCALE),
        datetime: DateTime(timezone=True),
    }


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at is set on INSERT and refreshed on every ORM UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
