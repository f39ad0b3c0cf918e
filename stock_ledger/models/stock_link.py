"""
Module: stock_ledger.models.stock_link
Responsibility: ORM persistence for the association between one inventory item
    and one warehouse, holding the quantity of that item stored there.
Architecture position: Stock Ledger > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one stock link per (warehouse, inventory) pair: the pair IS the
      primary key.  In Python the pair travels as the StockKey value type.
    - quantity <= MAX_QUANTITY, checked by the validation gateway and by
      the guarded UPDATEs of the ledger service.
    - quantity >= 0 (ck_stock_link_quantity_non_negative).  The ledger
      clamps decreases and checks transfers, so the constraint should never
      fire; it is the last line if it does.
    - Both foreign keys are ON DELETE RESTRICT.  Parent deletion removes
      dependent links explicitly in the ledger service, in the same
      transaction, and the database refuses a parent delete that skipped it.

Lifecycle:
    NonExistent -> Active(quantity >= 0) -> NonExistent
    Quantity only changes while Active.

Failure modes:
    - IntegrityError on a duplicate (warehouse_id, inventory_id) pair.
    - IntegrityError if quantity would go negative.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from stock_ledger.db.base import SurrogateKey, TrackedBase

# stock_links.quantity is a 32-bit INTEGER on PostgreSQL
MAX_QUANTITY = 2**31 - 1


@dataclass(frozen=True, order=True)
class StockKey:
    """
    Composite identity of a stock link.

    Ordering is (warehouse_id, inventory_id), which is also the order rows
    are locked in when one command touches several links.
    """

    warehouse_id: int
    inventory_id: int


class StockLink(TrackedBase):
    """
    Quantity of one inventory item held in one warehouse.

    Contract:
        Only the stock ledger service mutates rows of this table.

    Guarantees:
        - quantity is never negative.
        - last_supply_quantity / last_supply_at record the most recent
          receipt into this link (bookkeeping only, not invariant-bearing).
    """

    __tablename__ = "stock_links"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_link_quantity_non_negative"),
        Index("idx_stock_link_inventory", "inventory_id"),
    )

    warehouse_id: Mapped[int] = mapped_column(
        SurrogateKey,
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        primary_key=True,
        autoincrement=False,
    )

    inventory_id: Mapped[int] = mapped_column(
        SurrogateKey,
        ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        primary_key=True,
        autoincrement=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    last_supply_quantity: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    last_supply_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<StockLink warehouse={self.warehouse_id} "
            f"inventory={self.inventory_id} qty={self.quantity}>"
        )
