"""
Approval Router (``requisition_kernel.domain.routing``).

Responsibility
--------------
Decides, from a requisition's USD amount and current approval state, which
single role must act next, which review stage the requisition is in, and
the human-readable "stuck at" label used for reporting.  Also performs the
fine-grained authorization check for an acting ``Actor``.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.  Every place that
needs a routing answer (state machine, approver queues, labels,
notifications) calls into this module so one boundary convention is
applied everywhere.

Invariants enforced
-------------------
* Tier boundaries: Finance Manager owns ``usd <= 100``, Technical
  Director ``100 < usd <= 500``, CEO ``usd > 500`` (values configurable
  through ``ApprovalThresholds``).
* ``pending`` always routes to HOD regardless of amount.
* Terminal requisitions route to nobody.
* ``approved_wait`` routes back to the role that placed the hold.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from requisition_kernel.domain.requisition import (
    TIER_ROLES,
    Actor,
    Requisition,
    RequisitionStatus,
    Role,
)
from requisition_kernel.exceptions import UnauthorizedTransitionError


class ApprovalStage(str, Enum):
    """Which review step a non-terminal requisition is in."""

    HOD_REVIEW = "hod_review"
    TIER_REVIEW = "tier_review"
    PAYMENT = "payment"


@dataclass(frozen=True)
class ApprovalThresholds:
    """USD amount tiers for the approver that follows the HOD.

    Both bounds are inclusive upper limits: an amount equal to
    ``finance_manager_max`` belongs to the Finance Manager, an amount
    equal to ``technical_director_max`` to the Technical Director.
    """

    finance_manager_max: Decimal = Decimal("100")
    technical_director_max: Decimal = Decimal("500")

    def __post_init__(self) -> None:
        if self.finance_manager_max < 0:
            raise ValueError("finance_manager_max must be non-negative")
        if self.technical_director_max <= self.finance_manager_max:
            raise ValueError(
                "technical_director_max must be greater than finance_manager_max"
            )

    def tier_for(self, usd_amount: Decimal) -> Role:
        if usd_amount <= self.finance_manager_max:
            return Role.FINANCE_MANAGER
        if usd_amount <= self.technical_director_max:
            return Role.TECHNICAL_DIRECTOR
        return Role.CEO


DEFAULT_THRESHOLDS = ApprovalThresholds()


def approval_stage(requisition: Requisition) -> ApprovalStage | None:
    """Return the review stage, or None once the requisition is terminal."""
    status = requisition.status
    if requisition.is_terminal:
        return None
    if status is RequisitionStatus.PENDING:
        return ApprovalStage.HOD_REVIEW

    acted = requisition.approved_by_role
    if status is RequisitionStatus.APPROVED:
        if acted is None or acted is Role.HOD:
            return ApprovalStage.TIER_REVIEW
        return ApprovalStage.PAYMENT

    # approved_wait: whoever placed the hold decides which stage resumes
    if acted is Role.ACCOUNTANT:
        return ApprovalStage.PAYMENT
    return ApprovalStage.TIER_REVIEW


def next_approver_role(
    requisition: Requisition,
    thresholds: ApprovalThresholds = DEFAULT_THRESHOLDS,
) -> Role | None:
    """The single role whose action the requisition is waiting for."""
    stage = approval_stage(requisition)
    if stage is None:
        return None
    if stage is ApprovalStage.HOD_REVIEW:
        return Role.HOD
    if stage is ApprovalStage.PAYMENT:
        return Role.ACCOUNTANT

    if (
        requisition.status is RequisitionStatus.APPROVED_WAIT
        and requisition.approved_by_role in TIER_ROLES
    ):
        return requisition.approved_by_role
    return thresholds.tier_for(requisition.usd_equivalent)


def stuck_at(
    requisition: Requisition,
    thresholds: ApprovalThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Human-readable label naming whose action is awaited."""
    status = requisition.status
    if status is RequisitionStatus.COMPLETED:
        return "Completed"
    if status is RequisitionStatus.REJECTED:
        return "Rejected"
    if status is RequisitionStatus.PENDING:
        return "Awaiting HOD Approval"
    if status is RequisitionStatus.APPROVED_WAIT:
        return "On Hold"

    role = next_approver_role(requisition, thresholds)
    return f"Awaiting {role.label}"


def authorize(
    requisition: Requisition,
    actor: Actor,
    thresholds: ApprovalThresholds = DEFAULT_THRESHOLDS,
) -> Role:
    """
    Check that ``actor`` is the one the router currently authorizes.

    HODs may only act on requisitions from their own department.

    Returns:
        The authorized role.

    Raises:
        UnauthorizedTransitionError: role mismatch or foreign department.
    """
    required = next_approver_role(requisition, thresholds)
    if required is None or actor.role is not required:
        raise UnauthorizedTransitionError(
            str(requisition.id),
            actor.role.value,
            required.value if required else None,
        )
    if required is Role.HOD and actor.department is not requisition.department:
        raise UnauthorizedTransitionError(
            str(requisition.id),
            actor.role.value,
            required.value,
            reason=(
                f"HOD of {actor.department.value if actor.department else 'no department'} "
                f"cannot act for {requisition.department.value}"
            ),
        )
    return required


def is_awaiting(
    requisition: Requisition,
    actor: Actor,
    thresholds: ApprovalThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """True when ``actor`` could act on ``requisition`` right now.

    Used for approver queues; excludes requisitions the actor already
    approved, and approved ones resting on the actor's own decision, so one
    person never sees the same item at two stages.
    """
    required = next_approver_role(requisition, thresholds)
    if required is None or actor.role is not required:
        return False
    if required is Role.HOD and actor.department is not requisition.department:
        return False
    if (
        requisition.status is RequisitionStatus.APPROVED
        and requisition.approved_by_actor_id == actor.id
    ):
        return False
    return actor.id not in requisition.approvers()
