"""
Requisition domain types (``requisition_kernel.domain.requisition``).

Responsibility
--------------
Pure value objects for the requisition approval workflow: lifecycle
statuses, roles, departments, actions, actors, the requisition snapshot
itself and its append-only decision history.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or ``selectors/``.

Invariants enforced
-------------------
* ``usd_equivalent`` is always present and non-negative on a
  ``Requisition`` (it equals ``amount`` for USD requisitions).
* ``approver_comments`` is non-empty whenever ``status`` is
  ``rejected`` or ``approved_wait``.
* ``decisions`` is ordered oldest first and only ever appended to.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from requisition_kernel.domain.currency import Currency


class RequisitionStatus(str, Enum):
    """Requisition lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    APPROVED_WAIT = "approved_wait"
    COMPLETED = "completed"
    REJECTED = "rejected"


TERMINAL_STATUSES: frozenset[RequisitionStatus] = frozenset({
    RequisitionStatus.COMPLETED,
    RequisitionStatus.REJECTED,
})

# Statuses whose amounts count against the department budget.
BUDGET_CONSUMING_STATUSES: frozenset[RequisitionStatus] = frozenset({
    RequisitionStatus.APPROVED,
    RequisitionStatus.COMPLETED,
})

COMMENT_REQUIRED_STATUSES: frozenset[RequisitionStatus] = frozenset({
    RequisitionStatus.REJECTED,
    RequisitionStatus.APPROVED_WAIT,
})


class RequisitionType(str, Enum):
    STANDARD = "standard"
    DEVIATION = "deviation"


class Department(str, Enum):
    """The fixed set of departments that raise requisitions."""

    EDUCATION = "Education"
    IT = "IT"
    MARKETING_AND_PR = "Marketing and PR"
    TECHNICAL = "Technical"
    HR = "HR"
    FINANCE = "Finance"
    CEO = "CEO"
    REGISTRY = "Registry"


class Role(str, Enum):
    """Application roles."""

    PREPARER = "preparer"
    HOD = "hod"
    FINANCE_MANAGER = "finance_manager"
    TECHNICAL_DIRECTOR = "technical_director"
    ACCOUNTANT = "accountant"
    CEO = "ceo"
    ADMIN = "admin"
    HR = "hr"

    @property
    def label(self) -> str:
        """Human-readable role name used in labels and audit details."""
        return _ROLE_LABELS[self]


_ROLE_LABELS: dict[Role, str] = {
    Role.PREPARER: "Preparer",
    Role.HOD: "HOD",
    Role.FINANCE_MANAGER: "Finance Manager",
    Role.TECHNICAL_DIRECTOR: "Technical Director",
    Role.ACCOUNTANT: "Accountant",
    Role.CEO: "CEO",
    Role.ADMIN: "Admin",
    Role.HR: "HR",
}

TIER_ROLES: frozenset[Role] = frozenset({
    Role.FINANCE_MANAGER,
    Role.TECHNICAL_DIRECTOR,
    Role.CEO,
})

SUBMITTER_ROLES: frozenset[Role] = frozenset({Role.PREPARER, Role.HOD})


class RequisitionAction(str, Enum):
    """Decisions an approver can make."""

    APPROVE = "approve"
    REJECT = "reject"
    WAIT = "wait"


COMMENT_REQUIRED_ACTIONS: frozenset[RequisitionAction] = frozenset({
    RequisitionAction.REJECT,
    RequisitionAction.WAIT,
})


@dataclass(frozen=True)
class Actor:
    """An authenticated user acting in one role.

    The kernel trusts ``role`` and ``department`` as already established
    by the identity layer; fine-grained authorization is the router's job.
    """

    id: UUID
    role: Role
    department: Department | None = None
    name: str = ""


@dataclass(frozen=True)
class DecisionRecord:
    """One applied action on a requisition. Immutable."""

    decision_id: UUID
    requisition_id: UUID
    actor_id: UUID
    actor_role: Role
    action: RequisitionAction
    from_status: RequisitionStatus
    to_status: RequisitionStatus
    comment: str | None = None
    decided_at: datetime | None = None


@dataclass(frozen=True)
class Requisition:
    """Immutable snapshot of a purchase requisition."""

    id: UUID
    sequence_number: str
    title: str
    department: Department
    amount: Decimal
    currency: Currency
    usd_equivalent: Decimal
    submitted_by_actor_id: UUID
    submitted_date: datetime
    requisition_type: RequisitionType = RequisitionType.STANDARD
    status: RequisitionStatus = RequisitionStatus.PENDING
    budget_code: str = ""
    description: str = ""
    deviation_reason: str | None = None
    approved_by_role: Role | None = None
    approved_by_actor_id: UUID | None = None
    approver_comments: str | None = None
    approved_date: datetime | None = None
    payment_date: datetime | None = None
    version: int = 1
    decisions: tuple[DecisionRecord, ...] = ()

    def __post_init__(self) -> None:
        if self.usd_equivalent is None or self.usd_equivalent < 0:
            raise ValueError(
                f"usd_equivalent must be defined and non-negative, got {self.usd_equivalent}"
            )
        if self.status in COMMENT_REQUIRED_STATUSES and not (
            self.approver_comments and self.approver_comments.strip()
        ):
            raise ValueError(
                f"approver_comments required when status is {self.status.value}"
            )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def latest_decision(self) -> DecisionRecord | None:
        return self.decisions[-1] if self.decisions else None

    def approvers(self) -> frozenset[UUID]:
        """Actors who recorded an ``approve`` decision on this requisition."""
        return frozenset(
            d.actor_id for d in self.decisions
            if d.action is RequisitionAction.APPROVE
        )
