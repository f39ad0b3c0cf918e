"""
Module: stock_ledger.services.inventory_commands
Responsibility: The ledger's external command surface.  Each command opens
    its own transaction, runs the ValidationGateway checks, applies the
    StockLedgerService mutation (or a selector read) and commits.
Architecture position: Stock Ledger > Services (outermost).  The layer an
    HTTP controller, CLI or batch job talks to.  Owns transaction
    boundaries; everything below it only flushes.

Invariants enforced:
    - One command == one transaction.  Any exception rolls the whole
      command back, so no partial mutation is ever visible.
    - Every command runs with LogContext bound to its name and a
      correlation id, so all log lines it emits can be grouped.
    - Results are frozen DTOs, never ORM instances.

Failure modes:
    - StockLedgerError subclasses, logged once as ``command_rejected`` with
      their code and kind, then re-raised unchanged.
    - SQLAlchemy errors that are not ledger failures propagate as-is.
"""

from contextlib import contextmanager
from decimal import Decimal
from typing import Generator
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from stock_ledger.clock import Clock, SystemClock
from stock_ledger.config import LedgerSettings
from stock_ledger.db.engine import session_scope
from stock_ledger.dtos import (
    CreatedItem,
    InventoryInfo,
    StockLinkInfo,
    TransferResult,
    WarehouseInfo,
)
from stock_ledger.exceptions import StockLedgerError
from stock_ledger.logging_config import LogContext, get_logger
from stock_ledger.selectors.catalog_selector import CatalogSelector
from stock_ledger.selectors.stock_selector import (
    ItemLocationRow,
    ItemStockTotal,
    StockSelector,
    WarehouseStockRow,
)
from stock_ledger.services.bootstrap import ensure_default_warehouse
from stock_ledger.services.stock_ledger_service import StockLedgerService
from stock_ledger.services.validation_gateway import ValidationGateway, parse_id

logger = get_logger("services.commands")


class InventoryCommands:
    """
    Command facade over the stock ledger.

    Contract:
        Constructed once per process with a session factory.  Each public
        method is an independent unit of work.

    Guarantees:
        - Validation runs before any write, in the gateway's fixed order.
        - The ledger re-validates at the point of mutation in the same
          transaction, so a concurrent delete surfaces as NotFound.

    Non-goals:
        - Does NOT retry on conflict.
        - Does NOT map failures to wire responses.

    Usage:
        commands = InventoryCommands(get_session_factory(), settings)
        commands.ensure_default_warehouse()
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", Decimal("10.2"), quantity=5)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()

    @contextmanager
    def _command(self, name: str, **context) -> Generator[Session, None, None]:
        """Bind log context, open a transaction, log rejections."""
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())
        with LogContext.bind(command=name, correlation_id=correlation_id, **context):
            try:
                with session_scope(self._session_factory) as session:
                    yield session
            except StockLedgerError as exc:
                logger.warning(
                    "command_rejected",
                    extra={"error_code": exc.code, "error_kind": exc.kind.value},
                )
                raise

    def _gateway(self, session: Session) -> ValidationGateway:
        return ValidationGateway(session, self._settings.default_warehouse_name)

    def _ledger(self, session: Session) -> StockLedgerService:
        return StockLedgerService(session, self._clock)

    # -- bootstrap ---------------------------------------------------------

    def ensure_default_warehouse(self) -> WarehouseInfo:
        """Create the default warehouse if absent.  Call once at startup."""
        with self._command("ensure_default_warehouse") as session:
            return ensure_default_warehouse(session, self._settings.default_warehouse_name)

    # -- warehouses --------------------------------------------------------

    def create_warehouse(self, name: str) -> WarehouseInfo:
        with self._command("create_warehouse") as session:
            name = self._gateway(session).check_create_warehouse(name)
            return self._ledger(session).create_warehouse(name)

    def rename_warehouse(self, warehouse_id: int, name: str) -> WarehouseInfo:
        with self._command("rename_warehouse", warehouse_id=warehouse_id) as session:
            warehouse_id, name = self._gateway(session).check_rename_warehouse(
                warehouse_id, name
            )
            return self._ledger(session).rename_warehouse(warehouse_id, name)

    def delete_warehouse(self, warehouse_id: int) -> None:
        with self._command("delete_warehouse", warehouse_id=warehouse_id) as session:
            warehouse_id = self._gateway(session).check_delete_warehouse(warehouse_id)
            self._ledger(session).delete_warehouse(warehouse_id)

    def get_warehouse(self, warehouse_id: int) -> WarehouseInfo:
        with self._command("get_warehouse", warehouse_id=warehouse_id) as session:
            return CatalogSelector(session).get_warehouse(
                parse_id(warehouse_id, "warehouse_id")
            )

    def list_warehouses(self) -> list[WarehouseInfo]:
        with self._command("list_warehouses") as session:
            return CatalogSelector(session).list_warehouses()

    # -- items -------------------------------------------------------------

    def create_item(
        self,
        name: str,
        price: Decimal | int | str,
        warehouse_id: int | None = None,
        quantity: int = 0,
    ) -> CreatedItem:
        """
        Create an item stocked with ``quantity`` in ``warehouse_id``.

        With no ``warehouse_id`` the item goes to the default warehouse.
        """
        with self._command("create_item", warehouse_id=warehouse_id) as session:
            name, price, warehouse_id, quantity = self._gateway(
                session
            ).check_create_item_and_stock(name, price, warehouse_id, quantity)
            return self._ledger(session).create_item_and_stock(
                name, price, warehouse_id, quantity
            )

    def create_unstocked_item(self, name: str, price: Decimal | int | str) -> InventoryInfo:
        """Create an item that is not held in any warehouse yet."""
        with self._command("create_unstocked_item") as session:
            name, price = self._gateway(session).check_create_item(name, price)
            return self._ledger(session).create_item(name, price)

    def update_item(
        self,
        item_id: int,
        name: str | None = None,
        price: Decimal | int | str | None = None,
    ) -> InventoryInfo:
        with self._command("update_item", inventory_id=item_id) as session:
            item_id, name, price = self._gateway(session).check_update_item(
                item_id, name, price
            )
            return self._ledger(session).update_item(item_id, name=name, price=price)

    def delete_item(self, item_id: int) -> None:
        with self._command("delete_item", inventory_id=item_id) as session:
            item_id = self._gateway(session).check_delete_item(item_id)
            self._ledger(session).delete_item(item_id)

    def get_item(self, item_id: int) -> InventoryInfo:
        with self._command("get_item", inventory_id=item_id) as session:
            return CatalogSelector(session).get_item(parse_id(item_id, "inventory_id"))

    def list_items(self) -> list[InventoryInfo]:
        with self._command("list_items") as session:
            return CatalogSelector(session).list_items()

    # -- stock -------------------------------------------------------------

    def add_item_to_warehouse(
        self,
        item_id: int,
        warehouse_id: int,
        quantity: int,
    ) -> StockLinkInfo:
        with self._command(
            "add_item_to_warehouse", inventory_id=item_id, warehouse_id=warehouse_id
        ) as session:
            item_id, warehouse_id, quantity = self._gateway(
                session
            ).check_add_to_warehouse(item_id, warehouse_id, quantity)
            return self._ledger(session).add_existing_to_warehouse(
                item_id, warehouse_id, quantity
            )

    def remove_item_from_warehouse(self, item_id: int, warehouse_id: int) -> None:
        with self._command(
            "remove_item_from_warehouse", inventory_id=item_id, warehouse_id=warehouse_id
        ) as session:
            item_id, warehouse_id = self._gateway(session).check_remove_from_warehouse(
                item_id, warehouse_id
            )
            self._ledger(session).remove_from_warehouse(item_id, warehouse_id)

    def increase_stock(self, item_id: int, warehouse_id: int, quantity: int) -> StockLinkInfo:
        with self._command(
            "increase_stock", inventory_id=item_id, warehouse_id=warehouse_id
        ) as session:
            item_id, warehouse_id, quantity = self._gateway(session).check_adjust(
                item_id, warehouse_id, quantity
            )
            return self._ledger(session).increase(item_id, warehouse_id, quantity)

    def decrease_stock(self, item_id: int, warehouse_id: int, quantity: int) -> StockLinkInfo:
        """Decrease stock, flooring at zero (never an error for lack of stock)."""
        with self._command(
            "decrease_stock", inventory_id=item_id, warehouse_id=warehouse_id
        ) as session:
            item_id, warehouse_id, quantity = self._gateway(session).check_adjust(
                item_id, warehouse_id, quantity
            )
            return self._ledger(session).decrease(item_id, warehouse_id, quantity)

    def transfer_stock(
        self,
        item_id: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        quantity: int,
    ) -> TransferResult:
        with self._command("transfer_stock", inventory_id=item_id) as session:
            item_id, from_warehouse_id, to_warehouse_id, quantity = self._gateway(
                session
            ).check_transfer(item_id, from_warehouse_id, to_warehouse_id, quantity)
            return self._ledger(session).transfer(
                item_id, from_warehouse_id, to_warehouse_id, quantity
            )

    # -- queries -----------------------------------------------------------

    def total_stock(self) -> list[ItemStockTotal]:
        """Quantity per item over all warehouses; unstocked items are omitted."""
        with self._command("total_stock") as session:
            return StockSelector(session).total_stock_per_item()

    def stock_by_warehouse(self, warehouse_id: int) -> list[WarehouseStockRow]:
        with self._command("stock_by_warehouse", warehouse_id=warehouse_id) as session:
            warehouse = CatalogSelector(session).get_warehouse(
                parse_id(warehouse_id, "warehouse_id")
            )
            return StockSelector(session).stock_in_warehouse(warehouse.id)

    def stock_for_item(self, item_id: int) -> list[ItemLocationRow]:
        with self._command("stock_for_item", inventory_id=item_id) as session:
            item = CatalogSelector(session).get_item(parse_id(item_id, "inventory_id"))
            return StockSelector(session).stock_for_item(item.id)
