"""
Domain events (``requisition_kernel.domain.events``).

Responsibility
--------------
Value objects published after a requisition is created or transitions,
and the pure mappings from those events to the two collaborator payloads:
notifications (who must hear about it) and audit entries (what happened).

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and functions.  ZERO I/O.
The event bus carries ``RequisitionEvent``; subscribers translate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from requisition_kernel.domain.requisition import (
    Actor,
    Department,
    Requisition,
    RequisitionStatus,
    Role,
)
from requisition_kernel.domain.state_machine import TransitionOutcome


class RequisitionEventType(str, Enum):
    SUBMITTED = "requisition_submitted"
    HOD_APPROVED = "hod_approved"
    TIER_APPROVED = "tier_approved"
    PLACED_ON_HOLD = "placed_on_hold"
    REJECTED = "requisition_rejected"
    COMPLETED = "payment_completed"
    PROOF_ATTACHED = "proof_of_payment_attached"


class AuditActionType(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ON_HOLD = "on_hold"
    PAYMENT = "payment"


@dataclass(frozen=True)
class RequisitionEvent:
    """Something that happened to a requisition, after commit."""

    event_type: RequisitionEventType
    requisition: Requisition
    actor: Actor
    occurred_at: datetime
    next_role: Role | None = None
    comment: str | None = None
    details: str | None = None


@dataclass(frozen=True)
class Notification:
    """Payload handed to the notification dispatcher."""

    type: str
    requisition_id: UUID
    target_role: Role
    sequence_number: str = ""
    department: Department | None = None
    recipient_actor_id: UUID | None = None


@dataclass(frozen=True)
class AuditEntry:
    """Payload handed to the audit sink."""

    actor_id: UUID
    actor_name: str
    action_type: AuditActionType
    requisition_id: UUID | None = None
    details: str | None = None
    occurred_at: datetime | None = None


def event_type_for(outcome: TransitionOutcome) -> RequisitionEventType:
    """Classify an applied transition."""
    to_state = outcome.after.status
    if to_state is RequisitionStatus.REJECTED:
        return RequisitionEventType.REJECTED
    if to_state is RequisitionStatus.APPROVED_WAIT:
        return RequisitionEventType.PLACED_ON_HOLD
    if to_state is RequisitionStatus.COMPLETED:
        return RequisitionEventType.COMPLETED
    if outcome.decision.actor_role is Role.HOD:
        return RequisitionEventType.HOD_APPROVED
    return RequisitionEventType.TIER_APPROVED


def event_from_outcome(outcome: TransitionOutcome, actor: Actor) -> RequisitionEvent:
    return RequisitionEvent(
        event_type=event_type_for(outcome),
        requisition=outcome.after,
        actor=actor,
        occurred_at=outcome.decision.decided_at,
        next_role=outcome.next_role,
        comment=outcome.decision.comment,
    )


def notifications_for(event: RequisitionEvent) -> tuple[Notification, ...]:
    """Who must be told about ``event``.

    Submitted -> department HOD; HOD approved -> tier approver; tier
    approved -> Accountant; hold and rejection -> the submitter;
    completion -> the submitter and the department HOD.
    """
    req = event.requisition

    def _to(role: Role, recipient: UUID | None = None) -> Notification:
        return Notification(
            type=event.event_type.value,
            requisition_id=req.id,
            target_role=role,
            sequence_number=req.sequence_number,
            department=req.department,
            recipient_actor_id=recipient,
        )

    kind = event.event_type
    if kind is RequisitionEventType.SUBMITTED:
        return (_to(Role.HOD),)
    if kind in (RequisitionEventType.HOD_APPROVED, RequisitionEventType.TIER_APPROVED):
        return (_to(event.next_role),) if event.next_role is not None else ()
    if kind in (RequisitionEventType.PLACED_ON_HOLD, RequisitionEventType.REJECTED):
        return (_to(Role.PREPARER, req.submitted_by_actor_id),)
    if kind is RequisitionEventType.COMPLETED:
        return (
            _to(Role.PREPARER, req.submitted_by_actor_id),
            _to(Role.HOD),
        )
    return ()


_AUDIT_ACTIONS: dict[RequisitionEventType, AuditActionType] = {
    RequisitionEventType.SUBMITTED: AuditActionType.SUBMIT,
    RequisitionEventType.HOD_APPROVED: AuditActionType.APPROVE,
    RequisitionEventType.TIER_APPROVED: AuditActionType.APPROVE,
    RequisitionEventType.PLACED_ON_HOLD: AuditActionType.ON_HOLD,
    RequisitionEventType.REJECTED: AuditActionType.REJECT,
    RequisitionEventType.COMPLETED: AuditActionType.PAYMENT,
    RequisitionEventType.PROOF_ATTACHED: AuditActionType.PAYMENT,
}


def audit_entry_for(event: RequisitionEvent) -> AuditEntry:
    req = event.requisition
    role_label = event.actor.role.label
    if event.details is not None:
        details = event.details
    elif event.event_type is RequisitionEventType.SUBMITTED:
        details = (
            f"Submitted {req.sequence_number} for {req.department.value}: "
            f"{req.amount} {req.currency.value} (USD {req.usd_equivalent})"
        )
    elif event.event_type is RequisitionEventType.COMPLETED:
        details = f"{role_label} marked {req.sequence_number} as paid"
    else:
        verb = {
            RequisitionEventType.HOD_APPROVED: "approved",
            RequisitionEventType.TIER_APPROVED: "approved",
            RequisitionEventType.PLACED_ON_HOLD: "placed on hold",
            RequisitionEventType.REJECTED: "rejected",
        }.get(event.event_type, event.event_type.value)
        details = f"{role_label} {verb} {req.sequence_number}"
        if event.comment:
            details = f"{details}: {event.comment}"

    return AuditEntry(
        actor_id=event.actor.id,
        actor_name=event.actor.name or role_label,
        action_type=_AUDIT_ACTIONS[event.event_type],
        requisition_id=req.id,
        details=details,
        occurred_at=event.occurred_at,
    )
