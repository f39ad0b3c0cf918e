"""
Typed Exception Hierarchy for the Stock Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (an HTTP layer, a CLI, a batch importer) have to turn
every failure into a response of their own. If they had to parse message
strings to tell "warehouse not found" from "stock link not found", every
rewording would break them. So:

  1. Every failure has its own exception class (catch by type)
  2. Every class has a CODE attribute (machine-readable, API-safe)
  3. Every class belongs to exactly one KIND (the five failure categories)
  4. Exceptions carry structured DATA (ids, names, quantities)

Example - mapping failures to a wire status:

    try:
        commands.transfer_stock(item_id, src, dst, 5)
    except NotFoundError as e:
        return problem(404, code=e.code, detail=str(e))
    except StockLedgerError as e:
        return problem(400, code=e.code, kind=e.kind.value, detail=str(e))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from StockLedgerError:

    StockLedgerError (base)
    |
    +-- InvalidArgumentError
    |   +-- BlankNameError
    |   +-- MalformedNumberError
    |   +-- NegativeValueError
    |   +-- NonPositiveQuantityError
    |   +-- SameWarehouseTransferError
    |   +-- StockLimitExceededError
    |
    +-- ConflictError
    |   +-- WarehouseNameTakenError
    |   +-- InventoryNameTakenError
    |   +-- StockLinkExistsError
    |
    +-- NotFoundError
    |   +-- WarehouseNotFoundError
    |   +-- InventoryNotFoundError
    |   +-- StockLinkNotFoundError
    |
    +-- PreconditionFailedError
    |   +-- WarehouseNotEmptyError
    |
    +-- InsufficientQuantityError
        +-- InsufficientStockError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind                  | Code                     | When Raised
----------------------|--------------------------|------------------------------
INVALID_ARGUMENT      | BLANK_NAME               | Name empty after trimming
                      | MALFORMED_NUMBER         | Not a number, or out of range
                      | NEGATIVE_VALUE           | Price or quantity below zero
                      | NON_POSITIVE_QUANTITY    | Delta of 0 or less
                      | SAME_WAREHOUSE_TRANSFER  | Transfer source == destination
                      | STOCK_LIMIT_EXCEEDED     | Link quantity would overflow
----------------------|--------------------------|------------------------------
CONFLICT              | WAREHOUSE_NAME_TAKEN     | Another warehouse has the name
                      | INVENTORY_NAME_TAKEN     | Another item has the name
                      | STOCK_LINK_EXISTS        | Item already in that warehouse
----------------------|--------------------------|------------------------------
NOT_FOUND             | WAREHOUSE_NOT_FOUND      | Warehouse id doesn't exist
                      | INVENTORY_NOT_FOUND      | Item id doesn't exist
                      | STOCK_LINK_NOT_FOUND     | Item not held in warehouse
----------------------|--------------------------|------------------------------
PRECONDITION_FAILED   | WAREHOUSE_NOT_EMPTY      | Delete of a warehouse with stock
----------------------|--------------------------|------------------------------
INSUFFICIENT_QUANTITY | INSUFFICIENT_STOCK       | Transfer exceeds source stock

===============================================================================
DESIGN DECISIONS
===============================================================================

1. The KIND lives on the category base class, so ``isinstance(e, NotFoundError)``
   and ``e.kind is ErrorKind.NOT_FOUND`` always agree.

2. A clamped decrease is NOT an error and has no exception here.

===============================================================================
"""

from decimal import Decimal
from enum import Enum


class ErrorKind(str, Enum):
    """The five failure categories a caller has to distinguish."""

    INVALID_ARGUMENT = "invalid_argument"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    PRECONDITION_FAILED = "precondition_failed"
    INSUFFICIENT_QUANTITY = "insufficient_quantity"


class StockLedgerError(Exception):
    """
    Base exception for all stock ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification, and inherit `kind` from their category.
    """

    code: str = "STOCK_LEDGER_ERROR"
    kind: ErrorKind


# Invalid argument exceptions


class InvalidArgumentError(StockLedgerError):
    """Malformed input, rejected before any store access."""

    code: str = "INVALID_ARGUMENT"
    kind = ErrorKind.INVALID_ARGUMENT


class BlankNameError(InvalidArgumentError):
    """A name is empty or whitespace only."""

    code: str = "BLANK_NAME"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Invalid {field}: must not be blank")


class MalformedNumberError(InvalidArgumentError):
    """A price or quantity is not a usable number."""

    code: str = "MALFORMED_NUMBER"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}: {value!r} is not a valid number")


class NegativeValueError(InvalidArgumentError):
    """A price or quantity is below zero."""

    code: str = "NEGATIVE_VALUE"

    def __init__(self, field: str, value: int | Decimal):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}: {value} is negative")


class NonPositiveQuantityError(InvalidArgumentError):
    """A quantity delta is zero or negative."""

    code: str = "NON_POSITIVE_QUANTITY"

    def __init__(self, field: str, value: int):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}: {value} must be greater than zero")


class SameWarehouseTransferError(InvalidArgumentError):
    """Transfer source and destination are the same warehouse."""

    code: str = "SAME_WAREHOUSE_TRANSFER"

    def __init__(self, warehouse_id: int):
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Cannot transfer stock from warehouse {warehouse_id} to itself"
        )


class StockLimitExceededError(InvalidArgumentError):
    """Adding to a link would take its quantity past what a link can hold."""

    code: str = "STOCK_LIMIT_EXCEEDED"

    def __init__(
        self,
        inventory_id: int,
        warehouse_id: int,
        quantity: int,
        limit: int,
    ):
        self.inventory_id = inventory_id
        self.warehouse_id = warehouse_id
        self.quantity = quantity
        self.limit = limit
        super().__init__(
            f"Cannot add {quantity} of inventory {inventory_id} to warehouse "
            f"{warehouse_id}: a stock link holds at most {limit}"
        )


# Conflict exceptions


class ConflictError(StockLedgerError):
    """The command would break a uniqueness invariant."""

    code: str = "CONFLICT"
    kind = ErrorKind.CONFLICT


class WarehouseNameTakenError(ConflictError):
    """Another warehouse already has this name."""

    code: str = "WAREHOUSE_NAME_TAKEN"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"There is already a warehouse named {name!r}")


class InventoryNameTakenError(ConflictError):
    """Another inventory item already has this name."""

    code: str = "INVENTORY_NAME_TAKEN"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Inventory with name {name!r} already exists")


class StockLinkExistsError(ConflictError):
    """The item is already stocked in the warehouse."""

    code: str = "STOCK_LINK_EXISTS"

    def __init__(self, inventory_id: int, warehouse_id: int):
        self.inventory_id = inventory_id
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Inventory {inventory_id} already exists in warehouse {warehouse_id}"
        )


# Not-found exceptions


class NotFoundError(StockLedgerError):
    """A referenced warehouse, item or stock link is absent."""

    code: str = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND


class WarehouseNotFoundError(NotFoundError):
    """Warehouse was not found."""

    code: str = "WAREHOUSE_NOT_FOUND"

    def __init__(self, warehouse_ref: int | str):
        self.warehouse_ref = warehouse_ref
        super().__init__(f"Warehouse not found: {warehouse_ref}")


class InventoryNotFoundError(NotFoundError):
    """Inventory item was not found."""

    code: str = "INVENTORY_NOT_FOUND"

    def __init__(self, inventory_id: int):
        self.inventory_id = inventory_id
        super().__init__(f"Inventory not found: {inventory_id}")


class StockLinkNotFoundError(NotFoundError):
    """The item is not stocked in the warehouse."""

    code: str = "STOCK_LINK_NOT_FOUND"

    def __init__(self, inventory_id: int, warehouse_id: int):
        self.inventory_id = inventory_id
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Inventory {inventory_id} does not exist in warehouse {warehouse_id}"
        )


# Precondition exceptions


class PreconditionFailedError(StockLedgerError):
    """The target is in a state that forbids the command."""

    code: str = "PRECONDITION_FAILED"
    kind = ErrorKind.PRECONDITION_FAILED


class WarehouseNotEmptyError(PreconditionFailedError):
    """
    Warehouse still holds stock links and cannot be deleted.

    Deleting it would orphan the stock it holds. Stock must be removed or
    transferred first; warehouse deletion never cascades.
    """

    code: str = "WAREHOUSE_NOT_EMPTY"

    def __init__(self, warehouse_id: int, link_count: int):
        self.warehouse_id = warehouse_id
        self.link_count = link_count
        super().__init__(
            f"Warehouse {warehouse_id} holds {link_count} stock link(s) and "
            "cannot be deleted. Remove or transfer its inventory first."
        )


# Quantity exceptions


class InsufficientQuantityError(StockLedgerError):
    """A checked quantity operation asks for more than is available."""

    code: str = "INSUFFICIENT_QUANTITY"
    kind = ErrorKind.INSUFFICIENT_QUANTITY


class InsufficientStockError(InsufficientQuantityError):
    """Transfer quantity exceeds the stock held at the source."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        inventory_id: int,
        warehouse_id: int,
        requested: int,
        available: int,
    ):
        self.inventory_id = inventory_id
        self.warehouse_id = warehouse_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient inventory {inventory_id} in warehouse {warehouse_id}: "
            f"requested {requested}, available {available}"
        )
