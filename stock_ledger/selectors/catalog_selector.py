"""
Module: stock_ledger.selectors.catalog_selector
Responsibility: Read access to warehouses and inventory items.
Architecture position: Stock Ledger > Selectors.

Returns DTOs.  ``get_*`` raise the typed not-found errors; ``list_*`` never
raise and are ordered by id.
"""

from stock_ledger.dtos import InventoryInfo, WarehouseInfo
from stock_ledger.exceptions import InventoryNotFoundError, WarehouseNotFoundError
from stock_ledger.models.inventory import Inventory
from stock_ledger.models.warehouse import Warehouse
from stock_ledger.selectors.base import BaseSelector


class CatalogSelector(BaseSelector):
    def get_warehouse(self, warehouse_id: int) -> WarehouseInfo:
        warehouse = self.store.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise WarehouseNotFoundError(warehouse_id)
        return WarehouseInfo.from_model(warehouse)

    def find_warehouse_by_name(self, name: str) -> WarehouseInfo | None:
        warehouse = self.store.find_by_unique_field(Warehouse, name)
        return WarehouseInfo.from_model(warehouse) if warehouse else None

    def list_warehouses(self) -> list[WarehouseInfo]:
        return [
            WarehouseInfo.from_model(w)
            for w in self.store.query(Warehouse, order_by=Warehouse.id)
        ]

    def get_item(self, inventory_id: int) -> InventoryInfo:
        item = self.store.get(Inventory, inventory_id)
        if item is None:
            raise InventoryNotFoundError(inventory_id)
        return InventoryInfo.from_model(item)

    def list_items(self) -> list[InventoryInfo]:
        return [
            InventoryInfo.from_model(i)
            for i in self.store.query(Inventory, order_by=Inventory.id)
        ]
