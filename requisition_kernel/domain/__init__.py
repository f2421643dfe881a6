"""
Pure domain layer.

Value objects and decision functions with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time
- I/O

All domain objects are immutable and deterministic.
"""

from requisition_kernel.domain.budget import BudgetAlert, BudgetPosition
from requisition_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from requisition_kernel.domain.currency import Currency, to_usd
from requisition_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from requisition_kernel.domain.requisition import (
    Actor,
    DecisionRecord,
    Department,
    Requisition,
    RequisitionAction,
    RequisitionStatus,
    RequisitionType,
    Role,
)
from requisition_kernel.domain.routing import (
    ApprovalStage,
    ApprovalThresholds,
    approval_stage,
    next_approver_role,
    stuck_at,
)
from requisition_kernel.domain.state_machine import TransitionOutcome, apply_action

__all__ = [
    "Actor",
    "ApprovalStage",
    "ApprovalThresholds",
    "BudgetAlert",
    "BudgetPosition",
    "Clock",
    "Currency",
    "DEFAULT_POLICY",
    "DecisionRecord",
    "Department",
    "DeterministicClock",
    "Requisition",
    "RequisitionAction",
    "RequisitionStatus",
    "RequisitionType",
    "Role",
    "SystemClock",
    "TransitionOutcome",
    "WorkflowPolicy",
    "apply_action",
    "approval_stage",
    "next_approver_role",
    "stuck_at",
    "to_usd",
]
