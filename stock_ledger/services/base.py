"""
Module: stock_ledger.services.base
Responsibility: Common constructor and session-handling contract for every
    service that mutates ledger state.  Services receive a SQLAlchemy
    ``Session`` and use ``session.flush()``, never ``session.commit()``.
Architecture position: Stock Ledger > Services.  The command facade
    (InventoryCommands) or a test harness owns the transaction; services
    only flush inside it.

Invariants enforced:
    - Transaction boundaries: services never commit or roll back the outer
      transaction.  Savepoints (``session.begin_nested()``) may contain a
      failing flush or a failing multi-step operation.

Failure modes:
    - If a subclass calls ``session.commit()``, a multi-step command (such
      as a transfer) can leave one side applied.
"""

from abc import ABC

from sqlalchemy.orm import Session

from stock_ledger.store import EntityStore


class BaseService(ABC):
    """
    Abstract base class for write-side services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and persists
        changes with ``flush()`` within the active transaction.

    Guarantees:
        - ``session`` and an ``EntityStore`` over it are available to
          subclasses.
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Does NOT manage transaction lifecycle.
        - Does NOT provide query-only methods; those live in
          ``stock_ledger/selectors/``.
    """

    def __init__(self, session: Session):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
        self.store = EntityStore(session)
