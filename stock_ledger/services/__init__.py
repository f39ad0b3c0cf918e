"""Write-side services and the command facade for the stock ledger."""

from stock_ledger.services.base import BaseService
from stock_ledger.services.bootstrap import ensure_default_warehouse
from stock_ledger.services.inventory_commands import InventoryCommands
from stock_ledger.services.stock_ledger_service import StockLedgerService
from stock_ledger.services.validation_gateway import ValidationGateway

__all__ = [
    "BaseService",
    "InventoryCommands",
    "StockLedgerService",
    "ValidationGateway",
    "ensure_default_warehouse",
]
