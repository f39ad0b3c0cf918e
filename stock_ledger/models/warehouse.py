"""
Module: stock_ledger.models.warehouse
Responsibility: ORM persistence for warehouses, the places stock is held in.
Architecture position: Stock Ledger > Models.  May import from db/base.py only.

Invariants enforced:
    - name is unique across all warehouses (uq_warehouse_name), compared
      exactly (case-sensitive).  Names are stored trimmed.
    - A warehouse with stock links cannot be deleted.  This is enforced by
      the ledger service (it re-counts links under lock) and backed by the
      RESTRICT foreign key on stock_links.warehouse_id.

Failure modes:
    - IntegrityError on duplicate name.
    - IntegrityError on deleting a warehouse still referenced by stock links.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_ledger.db.base import SurrogateKey, TrackedBase


class Warehouse(TrackedBase):
    """
    A named storage location.

    Guarantees:
        - id is system-assigned and never changes.
        - name is globally unique.
    """

    __tablename__ = "warehouses"

    __table_args__ = (
        UniqueConstraint("name", name="uq_warehouse_name"),
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

    def __repr__(self) -> str:
        return f"<Warehouse {self.id}: {self.name}>"
