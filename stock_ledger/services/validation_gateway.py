"""
Module: stock_ledger.services.validation_gateway
Responsibility: Pre-mutation checks for every ledger command, in a fixed
    order, returning the normalized arguments the ledger should apply.
Architecture position: Stock Ledger > Services.  Read-only: uses the
    EntityStore and the UniquenessIndex, never flushes.  Called by
    InventoryCommands inside the command's transaction, before the
    StockLedgerService mutates anything.

Invariants enforced:
    Checks run in this order, so the error a caller sees is deterministic
    when several things are wrong at once:
        1. Argument shape     -> InvalidArgumentError (no store access yet)
        2. Name uniqueness    -> ConflictError
        3. Existence          -> NotFoundError (inventory before warehouse)
        4. Relationship       -> ConflictError / NotFoundError /
                                 PreconditionFailedError /
                                 InsufficientQuantityError
    Names are trimmed here and travel trimmed from then on.

Failure modes:
    - Every failure is a StockLedgerError subclass; nothing else is raised
      for bad input.
    - The checks are advisory: the ledger re-validates at the point of
      mutation, because a concurrent command can invalidate them.
"""

from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from stock_ledger.config import DEFAULT_WAREHOUSE_NAME
from stock_ledger.db.base import MAX_SURROGATE_ID, PRICE_PRECISION, PRICE_SCALE
from stock_ledger.exceptions import (
    BlankNameError,
    InsufficientStockError,
    InventoryNameTakenError,
    InventoryNotFoundError,
    MalformedNumberError,
    NegativeValueError,
    NonPositiveQuantityError,
    SameWarehouseTransferError,
    StockLinkExistsError,
    StockLinkNotFoundError,
    WarehouseNameTakenError,
    WarehouseNotEmptyError,
    WarehouseNotFoundError,
)
from stock_ledger.models.inventory import Inventory
from stock_ledger.models.stock_link import MAX_QUANTITY, StockKey, StockLink
from stock_ledger.models.warehouse import Warehouse
from stock_ledger.selectors.base import BaseSelector
from stock_ledger.selectors.uniqueness_index import UniquenessIndex

_PRICE_QUANTUM = Decimal(1).scaleb(-PRICE_SCALE)
_PRICE_CEILING = Decimal(10) ** (PRICE_PRECISION - PRICE_SCALE)


# Argument shape


def normalize_name(value: object, field: str = "name") -> str:
    """Trim a name; reject non-strings and names blank after trimming."""
    if not isinstance(value, str):
        raise BlankNameError(field)
    name = value.strip()
    if not name:
        raise BlankNameError(field)
    return name


def parse_price(value: object, field: str = "price") -> Decimal:
    """
    Parse a price into a non-negative, finite Decimal the column can hold.

    Accepts Decimal, int, float (via its shortest repr) and numeric strings.
    The result is quantized to PRICE_SCALE places, so it equals what a later
    read returns.  Prices needing more places, or more integer digits than
    PRICE_PRECISION - PRICE_SCALE, are rejected rather than rounded.
    """
    if isinstance(value, bool):
        raise MalformedNumberError(field, value)
    if isinstance(value, Decimal):
        price = value
    elif isinstance(value, int):
        price = Decimal(value)
    elif isinstance(value, float):
        price = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            price = Decimal(value.strip())
        except InvalidOperation:
            raise MalformedNumberError(field, value) from None
    else:
        raise MalformedNumberError(field, value)

    if not price.is_finite():
        raise MalformedNumberError(field, value)
    if price < 0:
        raise NegativeValueError(field, price)
    if price >= _PRICE_CEILING:
        raise MalformedNumberError(field, value)
    stored = price.quantize(_PRICE_QUANTUM)
    if stored != price:
        raise MalformedNumberError(field, value)
    return stored


def parse_int(value: object, field: str = "quantity", limit: int = MAX_QUANTITY) -> int:
    """Parse an integer count from an int or an integer string, at most ``limit``."""
    if isinstance(value, bool):
        raise MalformedNumberError(field, value)
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            raise MalformedNumberError(field, value) from None
    else:
        raise MalformedNumberError(field, value)
    if number > limit:
        raise MalformedNumberError(field, value)
    return number


def parse_quantity(value: object, field: str = "quantity") -> int:
    """A stored quantity: integer, zero allowed."""
    quantity = parse_int(value, field)
    if quantity < 0:
        raise NegativeValueError(field, quantity)
    return quantity


def parse_delta(value: object, field: str = "quantity") -> int:
    """An increase/decrease/transfer amount: integer, strictly positive."""
    delta = parse_int(value, field)
    if delta <= 0:
        raise NonPositiveQuantityError(field, delta)
    return delta


def parse_id(value: object, field: str) -> int:
    """A surrogate id must be an actual integer."""
    if isinstance(value, bool) or not isinstance(value, int) or abs(value) > MAX_SURROGATE_ID:
        raise MalformedNumberError(field, value)
    return value


class ValidationGateway(BaseSelector):
    """
    Pre-checks for every command the ledger accepts.

    Contract:
        Each ``check_*`` method either returns the normalized arguments or
        raises the first failure in the fixed check order.

    Guarantees:
        - Shape failures are raised before any query is issued.
        - No writes: nothing is added, flushed or deleted.
    """

    def __init__(
        self,
        session: Session,
        default_warehouse_name: str = DEFAULT_WAREHOUSE_NAME,
    ):
        super().__init__(session)
        self.names = UniquenessIndex(session)
        self.default_warehouse_name = default_warehouse_name.strip()

    # -- existence helpers -------------------------------------------------

    def _require_inventory(self, inventory_id: int) -> Inventory:
        item = self.store.get(Inventory, inventory_id)
        if item is None:
            raise InventoryNotFoundError(inventory_id)
        return item

    def _require_warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self.store.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise WarehouseNotFoundError(warehouse_id)
        return warehouse

    def _require_link(self, inventory_id: int, warehouse_id: int) -> StockLink:
        link = self.store.get_stock_link(StockKey(warehouse_id, inventory_id))
        if link is None:
            raise StockLinkNotFoundError(inventory_id, warehouse_id)
        return link

    def resolve_default_warehouse(self) -> int:
        """Id of the default warehouse, looked up by its configured name."""
        warehouse = self.store.find_by_unique_field(Warehouse, self.default_warehouse_name)
        if warehouse is None:
            raise WarehouseNotFoundError(self.default_warehouse_name)
        return warehouse.id

    # -- warehouses --------------------------------------------------------

    def check_create_warehouse(self, name: object) -> str:
        name = normalize_name(name)
        if not self.names.is_warehouse_name_free(name):
            raise WarehouseNameTakenError(name)
        return name

    def check_rename_warehouse(self, warehouse_id: object, name: object) -> tuple[int, str]:
        warehouse_id = parse_id(warehouse_id, "warehouse_id")
        name = normalize_name(name)
        if not self.names.can_rename_warehouse(warehouse_id, name):
            raise WarehouseNameTakenError(name)
        self._require_warehouse(warehouse_id)
        return warehouse_id, name

    def check_delete_warehouse(self, warehouse_id: object) -> int:
        warehouse_id = parse_id(warehouse_id, "warehouse_id")
        self._require_warehouse(warehouse_id)
        link_count = self.store.count(StockLink, StockLink.warehouse_id == warehouse_id)
        if link_count:
            raise WarehouseNotEmptyError(warehouse_id, link_count)
        return warehouse_id

    # -- items -------------------------------------------------------------

    def check_create_item(self, name: object, price: object) -> tuple[str, Decimal]:
        """A standalone item, with no stock anywhere yet."""
        name = normalize_name(name)
        price = parse_price(price)
        if not self.names.is_inventory_name_free(name):
            raise InventoryNameTakenError(name)
        return name, price

    def check_create_item_and_stock(
        self,
        name: object,
        price: object,
        warehouse_id: object | None,
        quantity: object,
    ) -> tuple[str, Decimal, int, int]:
        """
        An item plus its first stock link.

        ``warehouse_id=None`` targets the default warehouse, resolved by name.

        Returns:
            (name, price, warehouse_id, quantity), normalized.
        """
        name = normalize_name(name)
        price = parse_price(price)
        quantity = parse_quantity(quantity)
        if warehouse_id is not None:
            warehouse_id = parse_id(warehouse_id, "warehouse_id")
        if not self.names.is_inventory_name_free(name):
            raise InventoryNameTakenError(name)
        if warehouse_id is None:
            warehouse_id = self.resolve_default_warehouse()
        else:
            self._require_warehouse(warehouse_id)
        return name, price, warehouse_id, quantity

    def check_update_item(
        self,
        inventory_id: object,
        name: object | None,
        price: object | None,
    ) -> tuple[int, str | None, Decimal | None]:
        inventory_id = parse_id(inventory_id, "inventory_id")
        if name is not None:
            name = normalize_name(name)
        if price is not None:
            price = parse_price(price)
        if name is not None and not self.names.can_rename_inventory(inventory_id, name):
            raise InventoryNameTakenError(name)
        self._require_inventory(inventory_id)
        return inventory_id, name, price

    def check_delete_item(self, inventory_id: object) -> int:
        inventory_id = parse_id(inventory_id, "inventory_id")
        self._require_inventory(inventory_id)
        return inventory_id

    # -- stock links -------------------------------------------------------

    def check_add_to_warehouse(
        self,
        inventory_id: object,
        warehouse_id: object,
        quantity: object,
    ) -> tuple[int, int, int]:
        inventory_id = parse_id(inventory_id, "inventory_id")
        warehouse_id = parse_id(warehouse_id, "warehouse_id")
        quantity = parse_quantity(quantity)
        self._require_inventory(inventory_id)
        self._require_warehouse(warehouse_id)
        if self.store.get_stock_link(StockKey(warehouse_id, inventory_id)) is not None:
            raise StockLinkExistsError(inventory_id, warehouse_id)
        return inventory_id, warehouse_id, quantity

    def check_remove_from_warehouse(
        self,
        inventory_id: object,
        warehouse_id: object,
    ) -> tuple[int, int]:
        inventory_id = parse_id(inventory_id, "inventory_id")
        warehouse_id = parse_id(warehouse_id, "warehouse_id")
        self._require_inventory(inventory_id)
        self._require_warehouse(warehouse_id)
        self._require_link(inventory_id, warehouse_id)
        return inventory_id, warehouse_id

    def check_adjust(
        self,
        inventory_id: object,
        warehouse_id: object,
        delta: object,
    ) -> tuple[int, int, int]:
        """Shared by increase and decrease: positive delta, existing link."""
        inventory_id = parse_id(inventory_id, "inventory_id")
        warehouse_id = parse_id(warehouse_id, "warehouse_id")
        delta = parse_delta(delta)
        self._require_inventory(inventory_id)
        self._require_warehouse(warehouse_id)
        self._require_link(inventory_id, warehouse_id)
        return inventory_id, warehouse_id, delta

    def check_transfer(
        self,
        inventory_id: object,
        from_warehouse_id: object,
        to_warehouse_id: object,
        quantity: object,
    ) -> tuple[int, int, int, int]:
        inventory_id = parse_id(inventory_id, "inventory_id")
        from_warehouse_id = parse_id(from_warehouse_id, "from_warehouse_id")
        to_warehouse_id = parse_id(to_warehouse_id, "to_warehouse_id")
        quantity = parse_delta(quantity)
        if from_warehouse_id == to_warehouse_id:
            raise SameWarehouseTransferError(from_warehouse_id)
        self._require_inventory(inventory_id)
        self._require_warehouse(from_warehouse_id)
        self._require_warehouse(to_warehouse_id)
        source = self._require_link(inventory_id, from_warehouse_id)
        if quantity > source.quantity:
            raise InsufficientStockError(
                inventory_id, from_warehouse_id, quantity, source.quantity
            )
        return inventory_id, from_warehouse_id, to_warehouse_id, quantity
