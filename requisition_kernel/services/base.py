"""
BaseService -- abstract base for kernel write-side collaborators.

Responsibility:
    Common constructor and session-handling contract for the persistence
    collaborators (store, document store, sequence allocation).  They use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  The facades
    (RequisitionService, BudgetService) own the transaction and are the
    only services that commit or roll back.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for flush-only kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; the caller controls transaction
          boundaries so a transition and its decision row land atomically.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
