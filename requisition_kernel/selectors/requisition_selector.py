"""
Module: requisition_kernel.selectors.requisition_selector
Responsibility: Read-side requisition queries -- lookups, approver queues,
    stuck-at reports, dashboard counts and the payment schedule.
Architecture position: Kernel > Selectors.  Read-only.  Routing answers
    come from domain.routing so queues and labels use the same tier rule as
    the state machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from requisition_kernel.domain.currency import Currency
from requisition_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from requisition_kernel.domain.requisition import (
    TERMINAL_STATUSES,
    Actor,
    Department,
    Requisition,
    RequisitionStatus,
    Role,
)
from requisition_kernel.domain.routing import is_awaiting, stuck_at
from requisition_kernel.exceptions import RequisitionNotFoundError
from requisition_kernel.models.proof_of_payment import ProofOfPaymentModel
from requisition_kernel.models.requisition import RequisitionModel
from requisition_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StuckAtRow:
    requisition_id: UUID
    sequence_number: str
    title: str
    status: RequisitionStatus
    stuck_at: str


@dataclass(frozen=True)
class PaymentScheduleRow:
    """One proof of payment on a completed requisition."""

    requisition_id: UUID
    sequence_number: str
    title: str
    department: Department
    amount: Decimal
    currency: Currency
    payment_date: datetime
    processed_by_actor_id: UUID
    file_ref: str


class RequisitionSelector(BaseSelector):

    def __init__(self, session, policy: WorkflowPolicy = DEFAULT_POLICY):
        super().__init__(session)
        self._policy = policy

    def get(self, requisition_id: UUID) -> Requisition:
        model = self.session.get(RequisitionModel, requisition_id, populate_existing=True)
        if model is None:
            raise RequisitionNotFoundError(str(requisition_id))
        return model.to_dto()

    def get_by_sequence_number(self, sequence_number: str) -> Requisition | None:
        model = self.session.execute(
            select(RequisitionModel).where(RequisitionModel.sequence_number == sequence_number)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def _select(self, *criteria) -> list[Requisition]:
        models = self.session.execute(
            select(RequisitionModel)
            .where(*criteria)
            .order_by(RequisitionModel.submitted_date, RequisitionModel.sequence_number)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def approver_queue(self, actor: Actor) -> list[Requisition]:
        """Requisitions waiting on ``actor`` right now, oldest first.

        HODs only see their own department and nobody sees a requisition
        they have already approved.
        """
        criteria = [RequisitionModel.status.not_in([s.value for s in TERMINAL_STATUSES])]
        if actor.department is not None and actor.role is Role.HOD:
            criteria.append(RequisitionModel.department == actor.department.value)
        return [
            r for r in self._select(*criteria)
            if is_awaiting(r, actor, self._policy.thresholds)
        ]

    def submitted_by(self, actor_id: UUID) -> list[Requisition]:
        return self._select(RequisitionModel.submitted_by_actor_id == actor_id)

    def by_department(self, department: Department) -> list[Requisition]:
        return self._select(RequisitionModel.department == Department(department).value)

    def stuck_at_report(self, submitted_by_actor_id: UUID) -> list[StuckAtRow]:
        return [
            StuckAtRow(
                requisition_id=r.id,
                sequence_number=r.sequence_number,
                title=r.title,
                status=r.status,
                stuck_at=stuck_at(r, self._policy.thresholds),
            )
            for r in self.submitted_by(submitted_by_actor_id)
        ]

    def status_counts(self, department: Department | None = None) -> dict[RequisitionStatus, int]:
        """Requisition count per status; every status is present."""
        stmt = select(RequisitionModel.status, func.count()).group_by(RequisitionModel.status)
        if department is not None:
            stmt = stmt.where(RequisitionModel.department == Department(department).value)
        counts = {status: 0 for status in RequisitionStatus}
        for status, count in self.session.execute(stmt).all():
            counts[RequisitionStatus(status)] = count
        return counts

    def completed_spend(self, department: Department | None = None) -> Decimal:
        """Sum of native amounts on completed requisitions."""
        stmt = select(func.coalesce(func.sum(RequisitionModel.amount), 0)).where(
            RequisitionModel.status == RequisitionStatus.COMPLETED.value,
        )
        if department is not None:
            stmt = stmt.where(RequisitionModel.department == Department(department).value)
        return Decimal(str(self.session.execute(stmt).scalar_one()))

    def payment_schedule(self, department: Department | None = None) -> list[PaymentScheduleRow]:
        """Payments made, newest first.

        One row per attached proof of payment; the processor is the
        Accountant whose approval completed the requisition.
        """
        stmt = (
            select(RequisitionModel, ProofOfPaymentModel.file_ref)
            .join(ProofOfPaymentModel, ProofOfPaymentModel.requisition_id == RequisitionModel.id)
            .where(RequisitionModel.status == RequisitionStatus.COMPLETED.value)
            .order_by(
                RequisitionModel.payment_date.desc(),
                RequisitionModel.sequence_number.desc(),
                ProofOfPaymentModel.attached_at,
            )
        )
        if department is not None:
            stmt = stmt.where(RequisitionModel.department == Department(department).value)
        return [
            PaymentScheduleRow(
                requisition_id=model.id,
                sequence_number=model.sequence_number,
                title=model.title,
                department=Department(model.department),
                amount=model.amount,
                currency=Currency(model.currency),
                payment_date=model.payment_date,
                processed_by_actor_id=model.approved_by_actor_id,
                file_ref=file_ref,
            )
            for model, file_ref in self.session.execute(stmt).all()
        ]
