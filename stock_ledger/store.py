"""
Module: stock_ledger.store
Responsibility: Thin, synchronous access layer over a SQLAlchemy
    ``Session`` for warehouses, inventory items and stock links: lookups by
    surrogate id, by composite StockKey and by each kind's unique field,
    plus delete / query / count.  Everything happens inside the caller's
    transaction: the store flushes, it never commits.
Architecture position: Stock Ledger > Store.  Used by the uniqueness index,
    the validation gateway, the aggregation selectors (read paths) and the
    stock ledger service (the only write path for stock links).

Failure modes:
    - ``KeyError`` from ``find_by_unique_field`` for a kind without a unique
      field.
    - ``IntegrityError`` propagates from ``delete`` flushes.
"""

from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_ledger.db.base import Base
from stock_ledger.models.inventory import Inventory
from stock_ledger.models.stock_link import StockKey, StockLink
from stock_ledger.models.warehouse import Warehouse

EntityT = TypeVar("EntityT", bound=Base)

# Each surrogate-keyed kind has exactly one unique business field
_UNIQUE_FIELDS: dict[type, str] = {
    Warehouse: "name",
    Inventory: "name",
}


class EntityStore:
    """
    Session-backed store for the three entity kinds.

    Contract:
        Reads see the caller's transaction.  ``for_update=True`` takes a row
        lock on PostgreSQL (``SELECT ... FOR UPDATE``) and refreshes the
        identity map from the database; on SQLite the lock clause is not
        rendered and only the refresh applies.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, kind: type[EntityT], entity_id: int, *, for_update: bool = False) -> EntityT | None:
        """Fetch one Warehouse or Inventory by id, or None."""
        if not for_update:
            return self.session.get(kind, entity_id)
        stmt = (
            select(kind)
            .where(kind.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_stock_link(self, key: StockKey, *, for_update: bool = False) -> StockLink | None:
        """Fetch the stock link for a (warehouse, inventory) pair, or None."""
        stmt = (
            select(StockLink)
            .where(
                StockLink.warehouse_id == key.warehouse_id,
                StockLink.inventory_id == key.inventory_id,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def lock_stock_links(self, keys: list[StockKey]) -> dict[StockKey, StockLink]:
        """
        Lock several stock links at once, in StockKey order.

        Locking in a fixed order keeps two commands that touch the same pair
        of links (a transfer A->B racing B->A) from deadlocking.  Missing
        links are simply absent from the result.
        """
        found: dict[StockKey, StockLink] = {}
        for key in sorted(set(keys)):
            link = self.get_stock_link(key, for_update=True)
            if link is not None:
                found[key] = link
        return found

    def find_by_unique_field(self, kind: type[EntityT], value: Any) -> EntityT | None:
        """Find the single entity whose unique field equals ``value`` exactly."""
        column = getattr(kind, _UNIQUE_FIELDS[kind])
        stmt = select(kind).where(column == value)
        return self.session.execute(stmt).scalar_one_or_none()

    def delete(self, entity: Base) -> None:
        """Delete an entity and flush."""
        self.session.delete(entity)
        self.session.flush()

    def query(self, kind: type[EntityT], *criteria: Any, order_by: Any = None) -> list[EntityT]:
        """All entities of ``kind`` matching every criterion."""
        stmt = select(kind).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        return list(self.session.execute(stmt).scalars().all())

    def count(self, kind: type[Base], *criteria: Any) -> int:
        """Number of ``kind`` rows matching every criterion."""
        stmt = select(func.count()).select_from(kind).where(*criteria)
        return int(self.session.execute(stmt).scalar_one())
