"""
Module: stock_ledger.selectors.stock_selector
Responsibility: Read-only stock projections: total quantity per item across
    all warehouses, the stock held in one warehouse, and the per-warehouse
    breakdown of one item.
Architecture position: Stock Ledger > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - No stored totals.  Every sum is computed at query time from
      stock_links rows.
    - Items with no stock link at all are NOT part of total_stock_per_item
      (inner join).  An item whose links all hold 0 IS listed, with 0.

Failure modes:
    - Empty lists when nothing matches; these queries never raise for a
      missing warehouse or item (existence is the caller's check).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from stock_ledger.models.inventory import Inventory
from stock_ledger.models.stock_link import StockLink
from stock_ledger.models.warehouse import Warehouse
from stock_ledger.selectors.base import BaseSelector


@dataclass(frozen=True)
class ItemStockTotal:
    """One item with its quantity summed over every warehouse."""

    id: int
    name: str
    price: Decimal
    quantity_sum: int


@dataclass(frozen=True)
class WarehouseStockRow:
    """One item held in a given warehouse."""

    id: int
    name: str
    price: Decimal
    quantity: int


@dataclass(frozen=True)
class ItemLocationRow:
    """Where one item is held, and how much."""

    warehouse_id: int
    warehouse_name: str
    quantity: int
    last_supply_quantity: int | None
    last_supply_at: datetime | None


class StockSelector(BaseSelector):
    """
    Selector for stock aggregation queries.

    Guarantees:
        - Rows are ordered by item id (warehouse id for stock_for_item),
          so repeated calls over the same state return the same list.
    """

    def total_stock_per_item(self) -> list[ItemStockTotal]:
        """Sum of quantity over all stock links, one row per stocked item."""
        stmt = (
            select(
                Inventory.id,
                Inventory.name,
                Inventory.price,
                func.sum(StockLink.quantity).label("quantity_sum"),
            )
            .join(StockLink, StockLink.inventory_id == Inventory.id)
            .group_by(Inventory.id, Inventory.name, Inventory.price)
            .order_by(Inventory.id)
        )
        return [
            ItemStockTotal(
                id=row.id,
                name=row.name,
                price=Decimal(row.price),
                quantity_sum=int(row.quantity_sum or 0),
            )
            for row in self.session.execute(stmt)
        ]

    def stock_in_warehouse(self, warehouse_id: int) -> list[WarehouseStockRow]:
        """Every item held in ``warehouse_id`` with its quantity there."""
        stmt = (
            select(Inventory.id, Inventory.name, Inventory.price, StockLink.quantity)
            .join(StockLink, StockLink.inventory_id == Inventory.id)
            .where(StockLink.warehouse_id == warehouse_id)
            .order_by(Inventory.id)
        )
        return [
            WarehouseStockRow(
                id=row.id,
                name=row.name,
                price=Decimal(row.price),
                quantity=int(row.quantity),
            )
            for row in self.session.execute(stmt)
        ]

    def stock_for_item(self, inventory_id: int) -> list[ItemLocationRow]:
        """Every warehouse holding ``inventory_id``, with last-supply details."""
        stmt = (
            select(
                Warehouse.id,
                Warehouse.name,
                StockLink.quantity,
                StockLink.last_supply_quantity,
                StockLink.last_supply_at,
            )
            .join(StockLink, StockLink.warehouse_id == Warehouse.id)
            .where(StockLink.inventory_id == inventory_id)
            .order_by(Warehouse.id)
        )
        return [
            ItemLocationRow(
                warehouse_id=row.id,
                warehouse_name=row.name,
                quantity=int(row.quantity),
                last_supply_quantity=row.last_supply_quantity,
                last_supply_at=row.last_supply_at,
            )
            for row in self.session.execute(stmt)
        ]

    def quantity_of(self, warehouse_id: int, inventory_id: int) -> int | None:
        """Current quantity of one link straight from the database, or None."""
        stmt = select(StockLink.quantity).where(
            StockLink.warehouse_id == warehouse_id,
            StockLink.inventory_id == inventory_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()
