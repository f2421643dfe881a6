"""
Module: requisition_kernel.models.audit_log
Responsibility: ORM persistence for the tamper-evident audit log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit rows are append-only; no UPDATE or DELETE (ORM listeners in
      db/immutability.py).
    - Hash chain: hash = H(seq | actor_id | action_type | requisition_id |
      payload_hash | prev_hash).  Validated by AuditLogService.
    - seq is strictly increasing, allocated by SequenceService.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - AuditChainBrokenError when chain validation detects a hash mismatch.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from requisition_kernel.db.base import Base, UUIDString


class AuditLogModel(Base):
    """
    One audit log row, chained to the previous row by hash.

    Non-goals:
        - The model does NOT check hash correctness at INSERT time;
          that is AuditLogService's job.
    """

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_log_requisition", "requisition_id"),
        Index("idx_audit_log_action", "action_type"),
        Index("idx_audit_log_occurred", "occurred_at"),
    )

    seq: Mapped[int] = mapped_column(nullable=False, unique=True)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    requisition_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLog #{self.seq} {self.action_type} by {self.actor_name}>"

    @property
    def is_genesis(self) -> bool:
        """True for the first row of the chain."""
        return self.prev_hash is None
