"""
BudgetService -- administrative writes to department budgets.

Responsibility:
    Setting, topping up and resetting department budget totals.  The
    read side (used, remaining, gate, alert) is ``selectors.BudgetLedger``.

Architecture position:
    Kernel > Services -- owns its transaction boundary (commit on
    success, rollback on failure).

Invariants enforced:
    - Only ``admin`` actors may change a budget.
    - Totals are never negative; top-ups are strictly positive.
    - reset_all_budgets zeroes every department in one statement.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from requisition_kernel.domain.budget import BudgetPosition
from requisition_kernel.domain.clock import Clock, SystemClock
from requisition_kernel.domain.currency import parse_amount
from requisition_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from requisition_kernel.domain.ports import RequisitionStore
from requisition_kernel.domain.requisition import Actor, Department, Role
from requisition_kernel.exceptions import UnauthorizedOperationError, ValidationError
from requisition_kernel.logging_config import LogContext, get_logger
from requisition_kernel.selectors.budget_selector import BudgetLedger
from requisition_kernel.services.requisition_service import parse_department
from requisition_kernel.services.requisition_store import SqlRequisitionStore

logger = get_logger("services.budget")


class BudgetService:
    """Admin-only budget administration."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Clock | None = None,
        policy: WorkflowPolicy = DEFAULT_POLICY,
        store: RequisitionStore | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._store = store or SqlRequisitionStore(session)
        self._ledger = BudgetLedger(session, policy)

    def _require_admin(self, actor: Actor, operation: str) -> None:
        if actor.role is not Role.ADMIN:
            logger.warning(
                "budget_operation_denied",
                extra={"operation": operation, "actor_role": actor.role.value},
            )
            raise UnauthorizedOperationError(operation, actor.role.value, Role.ADMIN.value)

    def set_total_budget(
        self,
        actor: Actor,
        department: Department | str,
        total: Decimal | int | str,
    ) -> BudgetPosition:
        """Replace a department's total budget; returns the new position."""
        with LogContext.bind(actor_id=str(actor.id)):
            self._require_admin(actor, "set_total_budget")
            dept = parse_department(department)
            new_total = parse_amount(total, "total_budget")
            try:
                self._store.save_department_budget(
                    dept, new_total, updated_by=actor.id, updated_at=self._clock.now(),
                )
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "department_budget_set",
                extra={"department": dept.value, "total_budget": str(new_total)},
            )
        return self._ledger.budget_position(dept)

    def top_up(
        self,
        actor: Actor,
        department: Department | str,
        amount: Decimal | int | str,
    ) -> BudgetPosition:
        """Add ``amount`` to a department's total budget."""
        with LogContext.bind(actor_id=str(actor.id)):
            self._require_admin(actor, "top_up")
            dept = parse_department(department)
            increment = parse_amount(amount, "amount")
            if increment <= 0:
                raise ValidationError("top-up amount must be positive", field="amount")
            try:
                current = self._store.load_department_budget(dept, for_update=True)
                new_total = current + increment
                self._store.save_department_budget(
                    dept, new_total, updated_by=actor.id, updated_at=self._clock.now(),
                )
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "department_budget_topped_up",
                extra={
                    "department": dept.value,
                    "amount": str(increment),
                    "total_budget": str(new_total),
                },
            )
        return self._ledger.budget_position(dept)

    def reset_all_budgets(self, actor: Actor) -> int:
        """Zero every department's total (period close).  Returns rows reset."""
        with LogContext.bind(actor_id=str(actor.id)):
            self._require_admin(actor, "reset_all_budgets")
            try:
                count = self._store.reset_all_budgets()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.warning("department_budgets_reset", extra={"departments_reset": count})
        return count
