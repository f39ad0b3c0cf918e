"""
Module: stock_ledger.services.stock_ledger_service
Responsibility: The only write path for warehouses, items and stock links.
    Applies every ledger mutation: warehouse and item lifecycle, stock link
    creation and removal, and quantity changes (increase, clamped decrease,
    checked transfer).  Re-validates existence and quantity bounds at the
    point of mutation, inside the caller's transaction.
Architecture position: Stock Ledger > Services.  Called by InventoryCommands
    after the ValidationGateway has pre-checked the command.  Flushes, never
    commits.

Invariants enforced:
    - At most one stock link per (warehouse, inventory) pair.  A concurrent
      duplicate insert is caught in a savepoint and raised as a conflict.
    - 0 <= quantity <= MAX_QUANTITY.  Quantity changes are single guarded
      UPDATE statements:
          increase:  quantity = quantity + :d  WHERE quantity <= MAX - :d
          decrease:  quantity = CASE WHEN quantity > :d
                                     THEN quantity - :d ELSE 0 END
          transfer:  quantity = quantity - :q  WHERE quantity >= :q
                     quantity = quantity + :q  WHERE quantity <= MAX - :q
      so concurrent adjustments of one link never lose an update.
    - A transfer's writes (zero destination link, debit, credit) share one
      savepoint, with both links locked in StockKey order.  A failed
      transfer leaves nothing behind.
    - No dangling links: deleting an item deletes its links in the same
      transaction; deleting a warehouse that still holds links is refused.

Failure modes:
    - NotFoundError subclasses when a referenced row vanished between the
      gateway check and the mutation.
    - ConflictError subclasses when a concurrent insert won a unique key.
    - InsufficientStockError when a transfer asks for more than the source
      holds at the moment of the write.
    - StockLimitExceededError when an increase or a transfer would take a
      link past MAX_QUANTITY.
    - WarehouseNotEmptyError when a warehouse gained links before delete.
"""

from decimal import Decimal

from sqlalchemy import case, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_ledger.clock import Clock, SystemClock
from stock_ledger.db.base import Base
from stock_ledger.dtos import (
    CreatedItem,
    InventoryInfo,
    StockLinkInfo,
    TransferResult,
    WarehouseInfo,
)
from stock_ledger.exceptions import (
    InsufficientStockError,
    InventoryNameTakenError,
    InventoryNotFoundError,
    NegativeValueError,
    NotFoundError,
    SameWarehouseTransferError,
    StockLedgerError,
    StockLimitExceededError,
    StockLinkExistsError,
    StockLinkNotFoundError,
    WarehouseNameTakenError,
    WarehouseNotEmptyError,
    WarehouseNotFoundError,
)
from stock_ledger.logging_config import get_logger
from stock_ledger.models.inventory import Inventory
from stock_ledger.models.stock_link import MAX_QUANTITY, StockKey, StockLink
from stock_ledger.models.warehouse import Warehouse
from stock_ledger.services.base import BaseService

logger = get_logger("services.stock_ledger")


def _link_filter(key: StockKey):
    return (
        StockLink.warehouse_id == key.warehouse_id,
        StockLink.inventory_id == key.inventory_id,
    )


class StockLedgerService(BaseService):
    """
    Mutations of the stock ledger.

    Contract:
        Arguments arrive normalized (trimmed names, Decimal prices, integer
        quantities), as returned by the ValidationGateway.  Each method
        flushes its writes and returns a DTO describing the new state.

    Guarantees:
        - Decrease never fails for lack of stock: it floors at zero.
        - Transfer fails with InsufficientStockError instead of flooring.
        - Receipts (create/add with quantity > 0, increase, transfer
          destination) stamp last_supply_quantity / last_supply_at.

    Non-goals:
        - Does NOT commit or roll back the outer transaction.
        - Does NOT retry on conflict; that is the caller's policy.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # -- internals ---------------------------------------------------------

    def _insert(self, entity: Base, on_conflict) -> None:
        """
        Insert ``entity`` inside a savepoint.

        On IntegrityError the savepoint is rolled back (the outer transaction
        stays usable) and ``on_conflict()`` builds the error to raise.
        """
        savepoint = self.session.begin_nested()
        try:
            self.session.add(entity)
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            error = on_conflict()
            logger.warning(
                "concurrent_insert_conflict",
                extra={"entity": type(entity).__name__, "error_code": error.code},
            )
            raise error from None
        savepoint.commit()

    def _flush_update(self, on_conflict) -> None:
        """Flush pending attribute changes in a savepoint, translating IntegrityError."""
        savepoint = self.session.begin_nested()
        try:
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            raise on_conflict() from None
        savepoint.commit()

    def _missing(self, key: StockKey) -> NotFoundError:
        """Work out which part of ``key`` is absent."""
        if self.store.get(Inventory, key.inventory_id) is None:
            return InventoryNotFoundError(key.inventory_id)
        if self.store.get(Warehouse, key.warehouse_id) is None:
            return WarehouseNotFoundError(key.warehouse_id)
        return StockLinkNotFoundError(key.inventory_id, key.warehouse_id)

    def _link_conflict(self, key: StockKey) -> StockLedgerError:
        """A failed link insert is a duplicate unless a parent has vanished."""
        missing = self._missing(key)
        if isinstance(missing, StockLinkNotFoundError):
            return StockLinkExistsError(key.inventory_id, key.warehouse_id)
        return missing

    def _insert_link(self, key: StockKey, quantity: int) -> StockLink:
        link = StockLink(
            warehouse_id=key.warehouse_id,
            inventory_id=key.inventory_id,
            quantity=quantity,
        )
        if quantity > 0:
            link.last_supply_quantity = quantity
            link.last_supply_at = self._clock.now()
        self._insert(link, lambda: self._link_conflict(key))
        return link

    def _reload_link(self, key: StockKey) -> StockLink:
        link = self.store.get_stock_link(key)
        if link is None:
            raise self._missing(key)
        return link

    # -- warehouses --------------------------------------------------------

    def create_warehouse(self, name: str) -> WarehouseInfo:
        warehouse = Warehouse(name=name)
        self._insert(warehouse, lambda: WarehouseNameTakenError(name))
        logger.info(
            "warehouse_created",
            extra={"warehouse_id": warehouse.id, "warehouse_name": name},
        )
        return WarehouseInfo.from_model(warehouse)

    def rename_warehouse(self, warehouse_id: int, name: str) -> WarehouseInfo:
        warehouse = self.store.get(Warehouse, warehouse_id, for_update=True)
        if warehouse is None:
            raise WarehouseNotFoundError(warehouse_id)
        old_name = warehouse.name
        if old_name != name:
            warehouse.name = name
            self._flush_update(lambda: WarehouseNameTakenError(name))
        logger.info(
            "warehouse_renamed",
            extra={
                "warehouse_id": warehouse_id,
                "old_name": old_name,
                "new_name": name,
            },
        )
        return WarehouseInfo.from_model(warehouse)

    def delete_warehouse(self, warehouse_id: int) -> None:
        """
        Delete an empty warehouse.

        The warehouse row is locked first, so a link created concurrently
        either lands before the count (and blocks the delete) or fails its
        foreign key after the delete commits.

        Raises:
            WarehouseNotFoundError: No such warehouse.
            WarehouseNotEmptyError: It still holds stock links.
        """
        warehouse = self.store.get(Warehouse, warehouse_id, for_update=True)
        if warehouse is None:
            raise WarehouseNotFoundError(warehouse_id)
        link_count = self.store.count(StockLink, StockLink.warehouse_id == warehouse_id)
        if link_count:
            raise WarehouseNotEmptyError(warehouse_id, link_count)
        self.store.delete(warehouse)
        logger.info("warehouse_deleted", extra={"warehouse_id": warehouse_id})

    # -- items -------------------------------------------------------------

    def create_item(self, name: str, price: Decimal) -> InventoryInfo:
        """Create an item with no stock link."""
        item = Inventory(name=name, price=price)
        self._insert(item, lambda: InventoryNameTakenError(name))
        logger.info(
            "item_created",
            extra={"inventory_id": item.id, "item_name": name, "price": price},
        )
        return InventoryInfo.from_model(item)

    def create_item_and_stock(
        self,
        name: str,
        price: Decimal,
        target_warehouse_id: int,
        quantity: int,
    ) -> CreatedItem:
        """
        Create an item and its first stock link in one step.

        Preconditions:
            - ``target_warehouse_id`` is already resolved (the default
              warehouse is looked up by the gateway).

        Raises:
            WarehouseNotFoundError: Target warehouse vanished.
            InventoryNameTakenError: Name taken concurrently.
        """
        if self.store.get(Warehouse, target_warehouse_id) is None:
            raise WarehouseNotFoundError(target_warehouse_id)
        item = self.create_item(name, price)
        link = self._insert_link(StockKey(target_warehouse_id, item.id), quantity)
        logger.info(
            "item_stocked",
            extra={
                "inventory_id": item.id,
                "warehouse_id": target_warehouse_id,
                "quantity": quantity,
            },
        )
        return CreatedItem(item=item, stock=StockLinkInfo.from_model(link))

    def update_item(
        self,
        inventory_id: int,
        name: str | None = None,
        price: Decimal | None = None,
    ) -> InventoryInfo:
        """Change only the supplied fields.  Stock links are untouched."""
        item = self.store.get(Inventory, inventory_id, for_update=True)
        if item is None:
            raise InventoryNotFoundError(inventory_id)
        changed = []
        if name is not None and name != item.name:
            item.name = name
            changed.append("name")
        if price is not None and price != item.price:
            item.price = price
            changed.append("price")
        if "name" in changed:
            self._flush_update(lambda: InventoryNameTakenError(name))
        elif changed:
            # only ck_inventory_price_non_negative can fire
            self._flush_update(lambda: NegativeValueError("price", price))
        logger.info(
            "item_updated",
            extra={"inventory_id": inventory_id, "changed_fields": changed},
        )
        return InventoryInfo.from_model(item)

    def delete_item(self, inventory_id: int) -> int:
        """
        Delete an item and every stock link that references it.

        Returns:
            Number of stock links removed with the item.
        """
        item = self.store.get(Inventory, inventory_id, for_update=True)
        if item is None:
            raise InventoryNotFoundError(inventory_id)
        result = self.session.execute(
            delete(StockLink)
            .where(StockLink.inventory_id == inventory_id)
            .execution_options(synchronize_session=False)
        )
        self.store.delete(item)
        logger.info(
            "item_deleted",
            extra={"inventory_id": inventory_id, "links_removed": result.rowcount},
        )
        return result.rowcount

    # -- stock links -------------------------------------------------------

    def add_existing_to_warehouse(
        self,
        inventory_id: int,
        warehouse_id: int,
        quantity: int,
    ) -> StockLinkInfo:
        """
        Stock an existing item in another warehouse.

        Raises:
            StockLinkExistsError: The item is already held there.
            InventoryNotFoundError / WarehouseNotFoundError: A parent vanished.
        """
        key = StockKey(warehouse_id, inventory_id)
        if self.store.get_stock_link(key) is not None:
            raise StockLinkExistsError(inventory_id, warehouse_id)
        link = self._insert_link(key, quantity)
        logger.info(
            "item_stocked",
            extra={
                "inventory_id": inventory_id,
                "warehouse_id": warehouse_id,
                "quantity": quantity,
            },
        )
        return StockLinkInfo.from_model(link)

    def remove_from_warehouse(self, inventory_id: int, warehouse_id: int) -> None:
        """Delete the whole stock link, whatever quantity it holds."""
        key = StockKey(warehouse_id, inventory_id)
        result = self.session.execute(
            delete(StockLink)
            .where(*_link_filter(key))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise self._missing(key)
        logger.info(
            "stock_link_removed",
            extra={"inventory_id": inventory_id, "warehouse_id": warehouse_id},
        )

    def increase(self, inventory_id: int, warehouse_id: int, delta: int) -> StockLinkInfo:
        """
        Add ``delta`` to a link and stamp it as the latest supply.

        Raises:
            StockLimitExceededError: The sum would pass MAX_QUANTITY.
        """
        key = StockKey(warehouse_id, inventory_id)
        if self.store.get_stock_link(key, for_update=True) is None:
            raise self._missing(key)
        result = self.session.execute(
            update(StockLink)
            .where(*_link_filter(key), StockLink.quantity <= MAX_QUANTITY - delta)
            .values(
                quantity=StockLink.quantity + delta,
                last_supply_quantity=delta,
                last_supply_at=self._clock.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if self.store.get_stock_link(key) is None:
                raise self._missing(key)
            raise StockLimitExceededError(inventory_id, warehouse_id, delta, MAX_QUANTITY)
        link = self._reload_link(key)
        logger.info(
            "stock_increased",
            extra={
                "inventory_id": inventory_id,
                "warehouse_id": warehouse_id,
                "delta": delta,
                "quantity": link.quantity,
            },
        )
        return StockLinkInfo.from_model(link)

    def decrease(self, inventory_id: int, warehouse_id: int, delta: int) -> StockLinkInfo:
        """
        Take ``delta`` away from a link, flooring at zero.

        Decreasing by more than is held is not an error: the quantity simply
        becomes 0.  Repeating a decrease can never produce negative stock.
        """
        key = StockKey(warehouse_id, inventory_id)
        before = self.store.get_stock_link(key, for_update=True)
        if before is None:
            raise self._missing(key)
        before_quantity = before.quantity
        result = self.session.execute(
            update(StockLink)
            .where(*_link_filter(key))
            .values(
                quantity=case(
                    (StockLink.quantity > delta, StockLink.quantity - delta),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise self._missing(key)
        link = self._reload_link(key)
        logger.info(
            "stock_decreased",
            extra={
                "inventory_id": inventory_id,
                "warehouse_id": warehouse_id,
                "delta": delta,
                "quantity": link.quantity,
                "clamped": delta > before_quantity,
            },
        )
        return StockLinkInfo.from_model(link)

    def transfer(
        self,
        inventory_id: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        quantity: int,
    ) -> TransferResult:
        """
        Move ``quantity`` of an item from one warehouse to another.

        A missing destination link is created with quantity 0 first.  Both
        links are then locked in StockKey order and updated; the source
        update only matches while it still holds enough stock.

        Postconditions:
            source.before + destination.before
                == source.after + destination.after

        All writes run in one savepoint.  On any failure it is rolled back,
        so a refused transfer leaves no zero destination link behind.

        Raises:
            SameWarehouseTransferError: Source and destination are equal.
            InsufficientStockError: Source holds less than ``quantity``.
            StockLimitExceededError: Destination would pass MAX_QUANTITY.
            NotFoundError subclasses: Item, warehouse or source link absent.
        """
        if from_warehouse_id == to_warehouse_id:
            raise SameWarehouseTransferError(from_warehouse_id)

        savepoint = self.session.begin_nested()
        try:
            result = self._move(inventory_id, from_warehouse_id, to_warehouse_id, quantity)
        except StockLedgerError:
            savepoint.rollback()
            raise
        savepoint.commit()

        logger.info(
            "stock_transferred",
            extra={
                "inventory_id": inventory_id,
                "from_warehouse_id": from_warehouse_id,
                "to_warehouse_id": to_warehouse_id,
                "quantity": quantity,
            },
        )
        return result

    def _move(
        self,
        inventory_id: int,
        from_warehouse_id: int,
        to_warehouse_id: int,
        quantity: int,
    ) -> TransferResult:
        source_key = StockKey(from_warehouse_id, inventory_id)
        dest_key = StockKey(to_warehouse_id, inventory_id)

        if self.store.get_stock_link(source_key) is None:
            raise self._missing(source_key)
        if self.store.get_stock_link(dest_key) is None:
            try:
                self._insert_link(dest_key, 0)
            except StockLinkExistsError:
                # created concurrently; fine, it is locked below
                pass

        locked = self.store.lock_stock_links([source_key, dest_key])
        for key in (source_key, dest_key):
            if key not in locked:
                raise self._missing(key)

        result = self.session.execute(
            update(StockLink)
            .where(*_link_filter(source_key), StockLink.quantity >= quantity)
            .values(quantity=StockLink.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            source = self.store.get_stock_link(source_key)
            if source is None:
                raise self._missing(source_key)
            raise InsufficientStockError(
                inventory_id, from_warehouse_id, quantity, source.quantity
            )

        result = self.session.execute(
            update(StockLink)
            .where(*_link_filter(dest_key), StockLink.quantity <= MAX_QUANTITY - quantity)
            .values(
                quantity=StockLink.quantity + quantity,
                last_supply_quantity=quantity,
                last_supply_at=self._clock.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if self.store.get_stock_link(dest_key) is None:
                raise self._missing(dest_key)
            raise StockLimitExceededError(inventory_id, to_warehouse_id, quantity, MAX_QUANTITY)

        source = self._reload_link(source_key)
        destination = self._reload_link(dest_key)
        return TransferResult(
            inventory_id=inventory_id,
            quantity=quantity,
            source=StockLinkInfo.from_model(source),
            destination=StockLinkInfo.from_model(destination),
        )
