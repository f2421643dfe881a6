"""
Requisition State Machine (``requisition_kernel.domain.state_machine``).

Responsibility
--------------
The canonical lifecycle controller.  Given a requisition snapshot, an
actor and a decision, validates every precondition and computes the next
snapshot plus the decision record to append.  Persisting the result (with
compare-and-set) is the service layer's job.

Architecture position
---------------------
**Kernel domain layer** -- pure function.  ZERO I/O.  Time and the
proof-of-payment fact are passed in by the caller.

Check order
-----------
1. Terminal status                         -> InvalidStateError
2. Comment missing on reject/wait          -> ValidationError
3. Same actor, role and action as the
   latest decision (duplicate/retried call) -> InvalidStateError
4. Actor is not the routed role            -> UnauthorizedTransitionError
5. No edge for (status, stage, action)     -> InvalidStateError
6. Actor already approved this requisition,
   or gave the approval it rests on        -> SelfApprovalError
7. Completion without proof of payment     -> ProofOfPaymentRequiredError
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID, uuid4

from requisition_kernel.domain.requisition import (
    COMMENT_REQUIRED_ACTIONS,
    Actor,
    DecisionRecord,
    Requisition,
    RequisitionAction,
    RequisitionStatus,
    Role,
)
from requisition_kernel.domain.routing import (
    DEFAULT_THRESHOLDS,
    ApprovalThresholds,
    approval_stage,
    authorize,
    next_approver_role,
)
from requisition_kernel.domain.workflow import (
    DISTINCT_APPROVER,
    NOT_LATEST_APPROVER,
    PROOF_OF_PAYMENT_ATTACHED,
    REQUISITION_WORKFLOW,
    Transition,
    Workflow,
)
from requisition_kernel.exceptions import (
    InvalidStateError,
    ProofOfPaymentRequiredError,
    SelfApprovalError,
    ValidationError,
)


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of applying one action to a requisition."""

    before: Requisition
    after: Requisition
    transition: Transition
    decision: DecisionRecord
    next_role: Role | None


def parse_action(value: RequisitionAction | str) -> RequisitionAction:
    try:
        return RequisitionAction(value)
    except ValueError:
        raise ValidationError(f"Unknown action: {value!r}", field="action") from None


def _normalize_comment(comment: str | None) -> str | None:
    if comment is None:
        return None
    stripped = comment.strip()
    return stripped or None


def apply_action(
    requisition: Requisition,
    actor: Actor,
    action: RequisitionAction,
    comment: str | None = None,
    *,
    now: datetime,
    proof_of_payment_attached: bool = False,
    thresholds: ApprovalThresholds = DEFAULT_THRESHOLDS,
    workflow: Workflow = REQUISITION_WORKFLOW,
    decision_id: UUID | None = None,
) -> TransitionOutcome:
    """
    Validate and compute a single requisition transition.

    Effects on the returned snapshot: ``status``; ``approver_comments``
    (cleared on approve, set on reject/wait); on non-reject transitions
    ``approved_by_role``, ``approved_by_actor_id`` and ``approved_date``;
    ``payment_date`` on completion; ``version + 1``; one decision record
    appended.
    """
    action = parse_action(action)
    req_id = str(requisition.id)
    status = requisition.status

    if requisition.is_terminal:
        raise InvalidStateError(req_id, status.value, action.value, reason="requisition is closed")

    note = _normalize_comment(comment)
    if action in COMMENT_REQUIRED_ACTIONS and note is None:
        raise ValidationError("comment required", field="comment")

    latest = requisition.latest_decision
    if (
        latest is not None
        and latest.actor_id == actor.id
        and latest.actor_role is actor.role
        and latest.action is action
    ):
        raise InvalidStateError(req_id, status.value, action.value, reason="already actioned")

    authorize(requisition, actor, thresholds)

    stage = approval_stage(requisition)
    transition = workflow.find_transition(status, stage, action)
    if transition is None:
        raise InvalidStateError(
            req_id, status.value, action.value,
            reason=f"no {action.value} transition at {stage.value} stage",
        )

    if (
        NOT_LATEST_APPROVER in transition.guards
        and requisition.approved_by_actor_id == actor.id
    ) or (
        DISTINCT_APPROVER in transition.guards
        and actor.id in requisition.approvers()
    ):
        raise SelfApprovalError(req_id, str(actor.id), actor.role.value)

    if PROOF_OF_PAYMENT_ATTACHED in transition.guards and not proof_of_payment_attached:
        raise ProofOfPaymentRequiredError(req_id)

    decision = DecisionRecord(
        decision_id=decision_id or uuid4(),
        requisition_id=requisition.id,
        actor_id=actor.id,
        actor_role=actor.role,
        action=action,
        from_status=status,
        to_status=transition.to_state,
        comment=note,
        decided_at=now,
    )

    changes: dict = {
        "status": transition.to_state,
        "approver_comments": None if action is RequisitionAction.APPROVE else note,
        "version": requisition.version + 1,
        "decisions": requisition.decisions + (decision,),
    }
    if action is not RequisitionAction.REJECT:
        changes["approved_by_role"] = actor.role
        changes["approved_by_actor_id"] = actor.id
        changes["approved_date"] = now
    if transition.to_state is RequisitionStatus.COMPLETED:
        changes["payment_date"] = now

    after = replace(requisition, **changes)
    return TransitionOutcome(
        before=requisition,
        after=after,
        transition=transition,
        decision=decision,
        next_role=next_approver_role(after, thresholds),
    )
