"""
Module: stock_ledger.services.bootstrap
Responsibility: Process bootstrap; make sure the default warehouse exists.
Architecture position: Stock Ledger > Services.  Called once at startup by
    InventoryCommands.ensure_default_warehouse() and scripts/init_db.py.

Items created without a target warehouse are stocked in the default
warehouse (named ``"None"`` unless configured otherwise).  Request handling
never creates it implicitly.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_ledger.config import DEFAULT_WAREHOUSE_NAME
from stock_ledger.dtos import WarehouseInfo
from stock_ledger.logging_config import get_logger
from stock_ledger.models.warehouse import Warehouse
from stock_ledger.store import EntityStore

logger = get_logger("services.bootstrap")


def ensure_default_warehouse(
    session: Session,
    name: str = DEFAULT_WAREHOUSE_NAME,
) -> WarehouseInfo:
    """
    Return the default warehouse, creating it if absent.

    Idempotent: calling it any number of times, from any number of
    processes, leaves exactly one warehouse with ``name``.  Flushes only;
    the caller commits.
    """
    name = name.strip()
    store = EntityStore(session)
    warehouse = store.find_by_unique_field(Warehouse, name)
    if warehouse is not None:
        logger.debug("default_warehouse_present", extra={"warehouse_id": warehouse.id})
        return WarehouseInfo.from_model(warehouse)

    savepoint = session.begin_nested()
    try:
        warehouse = Warehouse(name=name)
        session.add(warehouse)
        session.flush()
    except IntegrityError:
        # Another process bootstrapped first
        savepoint.rollback()
        warehouse = store.find_by_unique_field(Warehouse, name)
        if warehouse is None:
            raise
        return WarehouseInfo.from_model(warehouse)
    savepoint.commit()

    logger.info(
        "default_warehouse_created",
        extra={"warehouse_id": warehouse.id, "warehouse_name": name},
    )
    return WarehouseInfo.from_model(warehouse)
