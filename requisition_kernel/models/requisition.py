"""
Module: requisition_kernel.models.requisition
Responsibility: ORM persistence for requisitions and their decision history.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only (domain types are imported lazily for DTO conversion).

Invariants enforced:
    - status is one of the five lifecycle values (check constraint).
    - amount and usd_equivalent are non-negative (check constraint).
    - version increases by exactly one per applied transition; the store's
      compare-and-set UPDATE relies on it.
    - Decisions are append-only: no UPDATE, no DELETE.
    - (requisition_id, position) is unique, so two writers cannot both
      append the n-th decision.

Failure modes:
    - IntegrityError on duplicate sequence_number or decision position.
    - ImmutabilityViolationError on decision UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from requisition_kernel.db.base import Base, UUIDString
from requisition_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from requisition_kernel.domain.requisition import DecisionRecord, Requisition


class RequisitionModel(Base):
    """Persistent requisition row.

    The mutable lifecycle columns (status, approved_by_*, approver_comments,
    approved_date, payment_date, version) only change through
    ``SqlRequisitionStore.save_transition``.
    """

    __tablename__ = "requisitions"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'approved_wait', 'completed', 'rejected')",
            name="ck_requisitions_valid_status",
        ),
        CheckConstraint("amount >= 0", name="ck_requisitions_amount_non_negative"),
        CheckConstraint(
            "usd_equivalent >= 0",
            name="ck_requisitions_usd_equivalent_non_negative",
        ),
        Index("ix_requisitions_department_status", "department", "status"),
        Index("ix_requisitions_status", "status"),
    )

    sequence_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    budget_code: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    department: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    usd_equivalent: Mapped[Decimal] = mapped_column(nullable=False)
    requisition_type: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")
    deviation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    submitted_by_actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    submitted_date: Mapped[datetime] = mapped_column(nullable=False)
    approved_by_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    approved_by_actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approver_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_date: Mapped[datetime | None] = mapped_column(nullable=True)
    payment_date: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(nullable=False, default=1)

    decisions: Mapped[list["RequisitionDecisionModel"]] = relationship(
        "RequisitionDecisionModel",
        back_populates="requisition",
        order_by="RequisitionDecisionModel.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Requisition {self.sequence_number} status={self.status} v{self.version}>"

    def to_dto(self) -> Requisition:
        """Convert ORM model to frozen domain snapshot."""
        from requisition_kernel.domain.currency import Currency
        from requisition_kernel.domain.requisition import (
            Department,
            Requisition as RequisitionDTO,
            RequisitionStatus,
            RequisitionType,
            Role,
        )

        return RequisitionDTO(
            id=self.id,
            sequence_number=self.sequence_number,
            title=self.title,
            department=Department(self.department),
            amount=self.amount,
            currency=Currency(self.currency),
            usd_equivalent=self.usd_equivalent,
            submitted_by_actor_id=self.submitted_by_actor_id,
            submitted_date=self.submitted_date,
            requisition_type=RequisitionType(self.requisition_type),
            status=RequisitionStatus(self.status),
            budget_code=self.budget_code,
            description=self.description,
            deviation_reason=self.deviation_reason,
            approved_by_role=Role(self.approved_by_role) if self.approved_by_role else None,
            approved_by_actor_id=self.approved_by_actor_id,
            approver_comments=self.approver_comments,
            approved_date=self.approved_date,
            payment_date=self.payment_date,
            version=self.version,
            decisions=tuple(d.to_dto() for d in self.decisions),
        )

    @classmethod
    def from_dto(cls, dto: Requisition) -> RequisitionModel:
        """Create ORM model from a domain snapshot (decisions excluded)."""
        return cls(
            id=dto.id,
            sequence_number=dto.sequence_number,
            title=dto.title,
            description=dto.description,
            budget_code=dto.budget_code,
            department=dto.department.value,
            amount=dto.amount,
            currency=dto.currency.value,
            usd_equivalent=dto.usd_equivalent,
            requisition_type=dto.requisition_type.value,
            deviation_reason=dto.deviation_reason,
            status=dto.status.value,
            submitted_by_actor_id=dto.submitted_by_actor_id,
            submitted_date=dto.submitted_date,
            approved_by_role=dto.approved_by_role.value if dto.approved_by_role else None,
            approved_by_actor_id=dto.approved_by_actor_id,
            approver_comments=dto.approver_comments,
            approved_date=dto.approved_date,
            payment_date=dto.payment_date,
            version=dto.version,
        )


class RequisitionDecisionModel(Base):
    """One applied approve/reject/wait action. Append-only."""

    __tablename__ = "requisition_decisions"

    __table_args__ = (
        Index("ix_requisition_decisions_requisition_id", "requisition_id"),
        Index("ix_requisition_decisions_actor_id", "actor_id"),
        UniqueConstraint(
            "requisition_id", "position",
            name="uq_requisition_decisions_position",
        ),
    )

    decision_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    requisition_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("requisitions.id"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    from_status: Mapped[str] = mapped_column(String(20), nullable=False)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime] = mapped_column(nullable=False)

    requisition: Mapped["RequisitionModel"] = relationship(
        "RequisitionModel",
        back_populates="decisions",
    )

    def __repr__(self) -> str:
        return (
            f"<RequisitionDecision {self.decision_id} "
            f"requisition={self.requisition_id} action={self.action}>"
        )

    def to_dto(self) -> DecisionRecord:
        """Convert ORM model to frozen domain DTO."""
        from requisition_kernel.domain.requisition import (
            DecisionRecord as DecisionDTO,
            RequisitionAction,
            RequisitionStatus,
            Role,
        )

        return DecisionDTO(
            decision_id=self.decision_id,
            requisition_id=self.requisition_id,
            actor_id=self.actor_id,
            actor_role=Role(self.actor_role),
            action=RequisitionAction(self.action),
            from_status=RequisitionStatus(self.from_status),
            to_status=RequisitionStatus(self.to_status),
            comment=self.comment,
            decided_at=self.decided_at,
        )

    @classmethod
    def from_dto(cls, dto: DecisionRecord, position: int) -> RequisitionDecisionModel:
        """Create ORM model from domain DTO at ``position`` in the history."""
        return cls(
            decision_id=dto.decision_id,
            requisition_id=dto.requisition_id,
            position=position,
            actor_id=dto.actor_id,
            actor_role=dto.actor_role.value,
            action=dto.action.value,
            from_status=dto.from_status.value,
            to_status=dto.to_status.value,
            comment=dto.comment,
            decided_at=dto.decided_at,
        )


# =============================================================================
# ORM-Level Immutability for Decisions (Append-Only)
# =============================================================================


@event.listens_for(RequisitionDecisionModel, "before_update")
def prevent_decision_update(mapper, connection, target):
    """Prevent updates to requisition decision records."""
    raise ImmutabilityViolationError(
        entity_type="RequisitionDecision",
        entity_id=str(target.decision_id),
        reason="Requisition decisions are immutable -- cannot modify",
    )


@event.listens_for(RequisitionDecisionModel, "before_delete")
def prevent_decision_delete(mapper, connection, target):
    """Prevent deletion of requisition decision records."""
    raise ImmutabilityViolationError(
        entity_type="RequisitionDecision",
        entity_id=str(target.decision_id),
        reason="Requisition decisions are immutable -- cannot delete",
    )
