"""
Module: requisition_kernel.selectors.budget_selector
Responsibility: Budget Ledger read side -- remaining budget, submission gate
    and utilization per department.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Used amounts are derived from requisition rows on every call; no
      running balance is stored.
    - Used = sum of native ``amount`` for statuses approved and completed.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select

from requisition_kernel.domain.budget import BudgetPosition, can_submit, remaining_budget
from requisition_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from requisition_kernel.domain.requisition import BUDGET_CONSUMING_STATUSES, Department
from requisition_kernel.models.budget import DepartmentBudgetModel
from requisition_kernel.models.requisition import RequisitionModel
from requisition_kernel.selectors.base import BaseSelector

_ZERO = Decimal("0")


class BudgetLedger(BaseSelector):
    """Per-department budget queries."""

    def __init__(self, session, policy: WorkflowPolicy = DEFAULT_POLICY):
        super().__init__(session)
        self._policy = policy

    def total_budget(self, department: Department) -> Decimal:
        total = self.session.execute(
            select(DepartmentBudgetModel.total_budget).where(
                DepartmentBudgetModel.department == Department(department).value,
            )
        ).scalar_one_or_none()
        return total if total is not None else _ZERO

    def used_amount(self, department: Department) -> Decimal:
        used = self.session.execute(
            select(func.coalesce(func.sum(RequisitionModel.amount), 0)).where(
                RequisitionModel.department == Department(department).value,
                RequisitionModel.status.in_([s.value for s in BUDGET_CONSUMING_STATUSES]),
            )
        ).scalar_one()
        return Decimal(str(used))

    def remaining_budget(self, department: Department) -> Decimal:
        return remaining_budget(self.total_budget(department), self.used_amount(department))

    def can_submit(self, department: Department, requested_amount: Decimal | None = None) -> bool:
        """Whether a new requisition may be raised.

        ``requested_amount`` does not influence the answer: once the
        remaining budget is at or below the low-water mark every request
        is refused until an administrator tops up.
        """
        return can_submit(self.remaining_budget(department), self._policy.low_water_mark)

    def budget_position(self, department: Department) -> BudgetPosition:
        return BudgetPosition.compute(
            department=Department(department),
            total_budget=self.total_budget(department),
            used=self.used_amount(department),
            low_water_mark=self._policy.low_water_mark,
            warning_percent=self._policy.warning_percent,
        )

    def budget_positions(self) -> list[BudgetPosition]:
        """One position per department, in declaration order."""
        return [self.budget_position(d) for d in Department]
