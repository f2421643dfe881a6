"""
Requisition workflow definition (``requisition_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the requisition state machine: guards, transitions
and the single ``REQUISITION_WORKFLOW`` table that lists every legal
``(from_state, stage, action) -> to_state`` edge.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  The state
machine looks transitions up here; it never hard-codes an edge.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* At most one transition per ``(from_state, stage, action)``.
"""

from __future__ import annotations

from dataclasses import dataclass

from requisition_kernel.domain.requisition import RequisitionAction, RequisitionStatus
from requisition_kernel.domain.routing import ApprovalStage


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Descriptive only -- the state machine evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in the requisition workflow."""
    from_state: RequisitionStatus
    to_state: RequisitionStatus
    action: RequisitionAction
    stage: ApprovalStage
    guards: tuple[Guard, ...] = ()


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: RequisitionStatus
    states: tuple[RequisitionStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[RequisitionStatus, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"initial_state {self.initial_state} not in states")
        seen: set[tuple] = set()
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"transition {t} references an unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(f"terminal state {t.from_state} has an outgoing transition")
            key = (t.from_state, t.stage, t.action)
            if key in seen:
                raise ValueError(f"ambiguous transition for {key}")
            seen.add(key)

    def find_transition(
        self,
        from_state: RequisitionStatus,
        stage: ApprovalStage,
        action: RequisitionAction,
    ) -> Transition | None:
        for t in self.transitions:
            if t.from_state is from_state and t.stage is stage and t.action is action:
                return t
        return None


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

DEPARTMENT_MATCH = Guard(
    name="department_match",
    description="HOD belongs to the requisition's department",
)

COMMENT_REQUIRED = Guard(
    name="comment_required",
    description="A non-empty comment explains the rejection or hold",
)

DISTINCT_APPROVER = Guard(
    name="distinct_approver",
    description="Actor has not already approved this requisition",
)

NOT_LATEST_APPROVER = Guard(
    name="not_latest_approver",
    description="Actor did not give the approval the requisition is resting on",
)

PROOF_OF_PAYMENT_ATTACHED = Guard(
    name="proof_of_payment_attached",
    description="Accountant has attached a proof of payment",
)


# -----------------------------------------------------------------------------
# Requisition Workflow
# -----------------------------------------------------------------------------

_S = RequisitionStatus
_A = RequisitionAction
_G = ApprovalStage

REQUISITION_WORKFLOW = Workflow(
    name="requisition_approval",
    description="Purchase requisition approval and payment lifecycle",
    initial_state=_S.PENDING,
    states=(
        _S.PENDING,
        _S.APPROVED,
        _S.APPROVED_WAIT,
        _S.COMPLETED,
        _S.REJECTED,
    ),
    transitions=(
        # HOD review
        Transition(_S.PENDING, _S.APPROVED, _A.APPROVE, _G.HOD_REVIEW,
                   guards=(DEPARTMENT_MATCH, DISTINCT_APPROVER)),
        Transition(_S.PENDING, _S.REJECTED, _A.REJECT, _G.HOD_REVIEW,
                   guards=(DEPARTMENT_MATCH, COMMENT_REQUIRED)),
        # Tier review (Finance Manager / Technical Director / CEO)
        Transition(_S.APPROVED, _S.APPROVED, _A.APPROVE, _G.TIER_REVIEW,
                   guards=(NOT_LATEST_APPROVER, DISTINCT_APPROVER)),
        Transition(_S.APPROVED, _S.REJECTED, _A.REJECT, _G.TIER_REVIEW,
                   guards=(NOT_LATEST_APPROVER, COMMENT_REQUIRED)),
        Transition(_S.APPROVED, _S.APPROVED_WAIT, _A.WAIT, _G.TIER_REVIEW,
                   guards=(NOT_LATEST_APPROVER, COMMENT_REQUIRED)),
        Transition(_S.APPROVED_WAIT, _S.APPROVED, _A.APPROVE, _G.TIER_REVIEW,
                   guards=(DISTINCT_APPROVER,)),
        Transition(_S.APPROVED_WAIT, _S.REJECTED, _A.REJECT, _G.TIER_REVIEW,
                   guards=(COMMENT_REQUIRED,)),
        # Payment (Accountant)
        Transition(_S.APPROVED, _S.COMPLETED, _A.APPROVE, _G.PAYMENT,
                   guards=(NOT_LATEST_APPROVER, DISTINCT_APPROVER, PROOF_OF_PAYMENT_ATTACHED)),
        Transition(_S.APPROVED, _S.APPROVED_WAIT, _A.WAIT, _G.PAYMENT,
                   guards=(NOT_LATEST_APPROVER, COMMENT_REQUIRED)),
        Transition(_S.APPROVED_WAIT, _S.COMPLETED, _A.APPROVE, _G.PAYMENT,
                   guards=(DISTINCT_APPROVER, PROOF_OF_PAYMENT_ATTACHED)),
    ),
    terminal_states=(_S.COMPLETED, _S.REJECTED),
)
