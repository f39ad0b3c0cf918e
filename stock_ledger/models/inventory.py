"""
Module: stock_ledger.models.inventory
Responsibility: ORM persistence for inventory items (the things being stocked).
Architecture position: Stock Ledger > Models.  May import from db/base.py only.

Invariants enforced:
    - name is unique across all items (uq_inventory_name).
    - price is non-negative (ck_inventory_price_non_negative).

Failure modes:
    - IntegrityError on duplicate name or negative price.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_ledger.db.base import SurrogateKey, TrackedBase


class Inventory(TrackedBase):
    """
    An inventory item with a unit price.

    Non-goals:
        - Does NOT know how much of it is stocked; quantities live on
          StockLink rows only.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("name", name="uq_inventory_name"),
        CheckConstraint("price >= 0", name="ck_inventory_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(
        SurrogateKey,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    price: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return f"<Inventory {self.id}: {self.name} @ {self.price}>"
