"""
Module: stock_ledger.selectors.uniqueness_index
Responsibility: Name-uniqueness checks for warehouses and inventory items.
Architecture position: Stock Ledger > Selectors.  Used by the validation
    gateway.

Names are compared exactly (case-sensitive); callers pass names already
trimmed.  A rename to the name the entity already has is always allowed.
"""

from stock_ledger.models.inventory import Inventory
from stock_ledger.models.warehouse import Warehouse
from stock_ledger.selectors.base import BaseSelector


class UniquenessIndex(BaseSelector):
    """Answers "is this name free?" for both named kinds."""

    def is_warehouse_name_free(self, name: str) -> bool:
        return self.store.find_by_unique_field(Warehouse, name) is None

    def is_inventory_name_free(self, name: str) -> bool:
        return self.store.find_by_unique_field(Inventory, name) is None

    def can_rename_warehouse(self, warehouse_id: int, new_name: str) -> bool:
        """True if ``new_name`` is free or already belongs to ``warehouse_id``."""
        holder = self.store.find_by_unique_field(Warehouse, new_name)
        return holder is None or holder.id == warehouse_id

    def can_rename_inventory(self, inventory_id: int, new_name: str) -> bool:
        """True if ``new_name`` is free or already belongs to ``inventory_id``."""
        holder = self.store.find_by_unique_field(Inventory, new_name)
        return holder is None or holder.id == inventory_id
