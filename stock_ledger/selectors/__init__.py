"""Selectors for the stock ledger (read side)."""

from stock_ledger.selectors.catalog_selector import CatalogSelector
from stock_ledger.selectors.stock_selector import (
    ItemLocationRow,
    ItemStockTotal,
    StockSelector,
    WarehouseStockRow,
)
from stock_ledger.selectors.uniqueness_index import UniquenessIndex

__all__ = [
    "CatalogSelector",
    "ItemLocationRow",
    "ItemStockTotal",
    "StockSelector",
    "UniquenessIndex",
    "WarehouseStockRow",
]
