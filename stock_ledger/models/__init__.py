"""ORM models for the stock ledger."""

from stock_ledger.models.inventory import Inventory
from stock_ledger.models.stock_link import StockKey, StockLink
from stock_ledger.models.warehouse import Warehouse

__all__ = [
    "Inventory",
    "StockKey",
    "StockLink",
    "Warehouse",
]
