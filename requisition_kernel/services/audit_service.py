"""
AuditLogService -- tamper-evident, append-only audit log.

Responsibility:
    Implements the ``AuditSink`` collaborator.  Every recorded entry is
    stored with a hash that covers the previous row's hash, so removing or
    editing any earlier row is detectable by ``validate_chain()``.

Architecture position:
    Kernel > Services -- imperative shell.  Subscribed to the event bus;
    runs after the requisition transaction has committed and writes in a
    session of its own, so an audit failure never undoes a transition.

Invariants enforced:
    - Audit positions come from SequenceService (locked counter row, never
      max+1); the lock also serializes prev_hash reads.
    - Append-only: the AuditLogModel is protected by ORM listeners.

Failure modes:
    - record(): database errors are logged and swallowed (best-effort sink).
    - validate_chain(): AuditChainBrokenError on any hash or link mismatch.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from requisition_kernel.domain.clock import Clock, SystemClock
from requisition_kernel.domain.events import AuditActionType, AuditEntry
from requisition_kernel.exceptions import AuditChainBrokenError
from requisition_kernel.logging_config import get_logger
from requisition_kernel.models.audit_log import AuditLogModel
from requisition_kernel.services.sequence_service import SequenceService
from requisition_kernel.utils.hashing import hash_audit_entry, hash_payload

logger = get_logger("services.audit")


@dataclass(frozen=True)
class AuditLogRecord:
    """A stored audit entry as returned to readers."""

    seq: int
    actor_id: UUID
    actor_name: str
    action_type: AuditActionType
    requisition_id: UUID | None
    details: str | None
    occurred_at: datetime
    hash: str


def _payload(entry_details: str | None, actor_name: str, occurred_at: datetime) -> dict:
    return {
        "actor_name": actor_name,
        "details": entry_details,
        "occurred_at": occurred_at.astimezone(timezone.utc),
    }


class AuditLogService:
    """
    Hash-chained audit log.

    Contract:
        Takes a session factory rather than a session; each ``record``
        call is its own short transaction.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def record(self, entry: AuditEntry) -> None:
        """Append ``entry``.  Failures are logged, never raised."""
        try:
            with self._session_factory() as session, session.begin():
                self._append(session, entry)
        except SQLAlchemyError:
            logger.error(
                "audit_record_failed",
                extra={
                    "action_type": AuditActionType(entry.action_type).value,
                    "requisition_id": str(entry.requisition_id) if entry.requisition_id else None,
                },
                exc_info=True,
            )

    def _append(self, session: Session, entry: AuditEntry) -> AuditLogModel:
        seq = SequenceService(session).next_value(SequenceService.AUDIT_LOG)

        last = session.execute(
            select(AuditLogModel).order_by(AuditLogModel.seq.desc()).limit(1)
        ).scalar_one_or_none()
        prev_hash = last.hash if last is not None else None

        action = AuditActionType(entry.action_type)
        occurred_at = entry.occurred_at or self._clock.now()
        payload_hash = hash_payload(_payload(entry.details, entry.actor_name, occurred_at))
        row_hash = hash_audit_entry(
            seq=seq,
            actor_id=str(entry.actor_id),
            action_type=action.value,
            requisition_id=str(entry.requisition_id) if entry.requisition_id else None,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        row = AuditLogModel(
            seq=seq,
            actor_id=entry.actor_id,
            actor_name=entry.actor_name,
            action_type=action.value,
            requisition_id=entry.requisition_id,
            details=entry.details,
            occurred_at=occurred_at,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=row_hash,
        )
        session.add(row)
        session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "seq": seq,
                "action_type": action.value,
                "requisition_id": str(entry.requisition_id) if entry.requisition_id else None,
            },
        )
        return row

    # Chain validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Recomputes each row's payload hash and chained hash and checks the
        link to its predecessor.

        Raises:
            AuditChainBrokenError: If chain validation fails at any point.
        """
        with self._session_factory() as session:
            rows = session.execute(
                select(AuditLogModel).order_by(AuditLogModel.seq)
            ).scalars().all()

            if not rows:
                return True

            if rows[0].prev_hash is not None:
                logger.critical("audit_chain_broken", extra={"seq": rows[0].seq})
                raise AuditChainBrokenError(str(rows[0].id), "None", rows[0].prev_hash)

            for i, row in enumerate(rows):
                payload_hash = hash_payload(_payload(row.details, row.actor_name, row.occurred_at))
                if payload_hash != row.payload_hash:
                    logger.critical("audit_chain_broken", extra={"seq": row.seq})
                    raise AuditChainBrokenError(str(row.id), payload_hash, row.payload_hash)

                expected_hash = hash_audit_entry(
                    seq=row.seq,
                    actor_id=str(row.actor_id),
                    action_type=row.action_type,
                    requisition_id=str(row.requisition_id) if row.requisition_id else None,
                    payload_hash=row.payload_hash,
                    prev_hash=row.prev_hash,
                )
                if row.hash != expected_hash:
                    logger.critical("audit_chain_broken", extra={"seq": row.seq})
                    raise AuditChainBrokenError(str(row.id), expected_hash, row.hash)

                if i > 0 and row.prev_hash != rows[i - 1].hash:
                    logger.critical("audit_chain_broken", extra={"seq": row.seq})
                    raise AuditChainBrokenError(
                        str(row.id), rows[i - 1].hash, row.prev_hash or "None",
                    )

            logger.info("audit_chain_valid", extra={"entry_count": len(rows)})
            return True

    # Queries

    def get_trail(self, requisition_id: UUID) -> list[AuditLogRecord]:
        """All entries for one requisition, oldest first."""
        return self._records(AuditLogModel.requisition_id == requisition_id)

    def get_recent(self, limit: int = 100) -> list[AuditLogRecord]:
        """Most recent entries, newest first."""
        with self._session_factory() as session:
            rows = session.execute(
                select(AuditLogModel).order_by(AuditLogModel.seq.desc()).limit(limit)
            ).scalars().all()
            return [_to_record(r) for r in rows]

    def _records(self, *criteria) -> list[AuditLogRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(AuditLogModel).where(*criteria).order_by(AuditLogModel.seq)
            ).scalars().all()
            return [_to_record(r) for r in rows]


def _to_record(row: AuditLogModel) -> AuditLogRecord:
    return AuditLogRecord(
        seq=row.seq,
        actor_id=row.actor_id,
        actor_name=row.actor_name,
        action_type=AuditActionType(row.action_type),
        requisition_id=row.requisition_id,
        details=row.details,
        occurred_at=row.occurred_at,
        hash=row.hash,
    )
