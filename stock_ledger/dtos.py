"""
Immutable DTOs returned across the ledger boundary.

Services and the command facade return these instead of ORM instances, so
callers never hold objects bound to a closed session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from stock_ledger.models.inventory import Inventory
from stock_ledger.models.stock_link import StockKey, StockLink
from stock_ledger.models.warehouse import Warehouse


@dataclass(frozen=True)
class WarehouseInfo:
    id: int
    name: str

    @classmethod
    def from_model(cls, warehouse: Warehouse) -> WarehouseInfo:
        return cls(id=warehouse.id, name=warehouse.name)


@dataclass(frozen=True)
class InventoryInfo:
    id: int
    name: str
    price: Decimal

    @classmethod
    def from_model(cls, item: Inventory) -> InventoryInfo:
        return cls(id=item.id, name=item.name, price=Decimal(item.price))


@dataclass(frozen=True)
class StockLinkInfo:
    """State of one stock link right after a ledger operation."""

    warehouse_id: int
    inventory_id: int
    quantity: int
    last_supply_quantity: int | None = None
    last_supply_at: datetime | None = None

    @property
    def key(self) -> StockKey:
        return StockKey(self.warehouse_id, self.inventory_id)

    @classmethod
    def from_model(cls, link: StockLink) -> StockLinkInfo:
        return cls(
            warehouse_id=link.warehouse_id,
            inventory_id=link.inventory_id,
            quantity=link.quantity,
            last_supply_quantity=link.last_supply_quantity,
            last_supply_at=link.last_supply_at,
        )


@dataclass(frozen=True)
class CreatedItem:
    """Result of creating an item together with its first stock link."""

    item: InventoryInfo
    stock: StockLinkInfo


@dataclass(frozen=True)
class TransferResult:
    """Both sides of a transfer, as committed together."""

    inventory_id: int
    quantity: int
    source: StockLinkInfo
    destination: StockLinkInfo
