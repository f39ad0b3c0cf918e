"""
Module: stock_ledger.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Stock Ledger > Selectors.  May import from db/, models/
    and store.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit() or session.flush().
    - DTO return convention: selectors return frozen dataclasses or plain
      values, not ORM instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session

from stock_ledger.store import EntityStore


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Guarantees:
        - ``session`` and a read-side ``store`` are available to subclasses.
        - No commit, flush, add or delete is performed.
    """

    def __init__(self, session: Session):
        self.session = session
        self.store = EntityStore(session)
