"""
Gap-tolerant, strictly increasing counters stored one row per name.

``RequisitionService`` draws requisition numbers (``REQ-000042``) from the
``requisition`` counter; ``AuditLogService`` draws chain positions from
``audit_log``.  A value is claimed by locking the counter row with
``SELECT ... FOR UPDATE`` and bumping it inside the caller's transaction;
``MAX(column) + 1`` is never used.  Rolling back the caller's transaction
hands the value back.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from requisition_kernel.logging_config import get_logger
from requisition_kernel.models.sequence_counter import SequenceCounter
from requisition_kernel.services.base import BaseService

logger = get_logger("services.sequence")


def format_sequence_number(prefix: str, value: int, width: int = 6) -> str:
    """Human-readable number, e.g. ``REQ-000001``."""
    return f"{prefix}-{value:0{width}d}"


class SequenceService(BaseService):
    """Named counters.  Flushes but never commits."""

    REQUISITION = "requisition"
    AUDIT_LOG = "audit_log"

    def _lock(self, name: str) -> SequenceCounter | None:
        stmt = (
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _create(self, name: str) -> SequenceCounter | None:
        """Insert the counter at 1; None when a concurrent writer got there first."""
        savepoint = self.session.begin_nested()
        try:
            self.session.add(SequenceCounter(name=name, current_value=1))
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_counter_create_lost", extra={"sequence_name": name})
            return None
        savepoint.commit()
        return self._lock(name)

    def next_value(self, sequence_name: str) -> int:
        """Claim and return the next value of ``sequence_name`` (first value is 1)."""
        self.session.expire_all()

        counter = self._lock(sequence_name)
        if counter is None:
            created = self._create(sequence_name)
            if created is not None:
                value = created.current_value
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": value},
                )
                return value
            self.session.expire_all()
            counter = self._lock(sequence_name)
            if counter is None:
                raise RuntimeError(f"sequence counter {sequence_name!r} vanished")

        counter.current_value += 1
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Last claimed value, or None if the counter was never used."""
        return self.session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()
