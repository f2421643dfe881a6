"""
SqlRequisitionStore -- SQLAlchemy implementation of ``RequisitionStore``.

Responsibility:
    Maps frozen ``Requisition`` snapshots to and from the ``requisitions``,
    ``requisition_decisions`` and ``department_budgets`` tables.

Architecture position:
    Kernel > Services -- persistence collaborator.  Flush-only; the
    facade that calls it owns commit/rollback.

Invariants enforced:
    - save_transition is a compare-and-set: the UPDATE matches only when
      id, version and status still equal the ``before`` snapshot.  A lost
      race updates no row and raises ConflictError.
    - Decisions are only ever inserted, at the next free position.

Failure modes:
    - RequisitionNotFoundError from load_requisition.
    - ConflictError from save_transition.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update

from requisition_kernel.domain.requisition import (
    Department,
    Requisition,
    RequisitionStatus,
)
from requisition_kernel.exceptions import ConflictError, RequisitionNotFoundError
from requisition_kernel.logging_config import get_logger
from requisition_kernel.models.budget import DepartmentBudgetModel
from requisition_kernel.models.requisition import (
    RequisitionDecisionModel,
    RequisitionModel,
)
from requisition_kernel.services.base import BaseService

logger = get_logger("services.requisition_store")

_ZERO = Decimal("0")


class SqlRequisitionStore(BaseService):
    """Requisition and budget persistence over one SQLAlchemy session."""

    # -------------------------------------------------------------------------
    # Requisitions
    # -------------------------------------------------------------------------

    def load_requisition(self, requisition_id: UUID) -> Requisition:
        model = self.session.execute(
            select(RequisitionModel)
            .where(RequisitionModel.id == requisition_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RequisitionNotFoundError(str(requisition_id))
        return model.to_dto()

    def add_requisition(self, requisition: Requisition) -> None:
        self.session.add(RequisitionModel.from_dto(requisition))
        self.session.flush()
        for position, decision in enumerate(requisition.decisions, start=1):
            self.session.add(RequisitionDecisionModel.from_dto(decision, position))
        self.session.flush()

    def save_transition(self, before: Requisition, after: Requisition) -> None:
        """
        Persist ``after`` if the stored row still matches ``before``.

        Raises:
            ConflictError: Another writer changed the row first.
        """
        result = self.session.execute(
            update(RequisitionModel)
            .where(
                RequisitionModel.id == before.id,
                RequisitionModel.version == before.version,
                RequisitionModel.status == before.status.value,
            )
            .values(
                status=after.status.value,
                approved_by_role=after.approved_by_role.value if after.approved_by_role else None,
                approved_by_actor_id=after.approved_by_actor_id,
                approver_comments=after.approver_comments,
                approved_date=after.approved_date,
                payment_date=after.payment_date,
                version=after.version,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "requisition_cas_failed",
                extra={
                    "requisition_id": str(before.id),
                    "expected_version": before.version,
                    "expected_status": before.status.value,
                },
            )
            raise ConflictError(str(before.id), before.version, before.status.value)

        start = len(before.decisions)
        for offset, decision in enumerate(after.decisions[start:], start=1):
            self.session.add(RequisitionDecisionModel.from_dto(decision, start + offset))
        self.session.flush()
        # Cached rows are stale after the bulk UPDATE.
        self.session.expire_all()

    def list_requisitions_by_department(self, department: Department) -> Sequence[Requisition]:
        return self._list(RequisitionModel.department == Department(department).value)

    def list_requisitions(
        self, statuses: Iterable[RequisitionStatus] | None = None,
    ) -> Sequence[Requisition]:
        if statuses is None:
            return self._list()
        values = [RequisitionStatus(s).value for s in statuses]
        return self._list(RequisitionModel.status.in_(values))

    def _list(self, *criteria) -> list[Requisition]:
        models = self.session.execute(
            select(RequisitionModel)
            .where(*criteria)
            .order_by(RequisitionModel.submitted_date, RequisitionModel.sequence_number)
        ).scalars().all()
        return [m.to_dto() for m in models]

    # -------------------------------------------------------------------------
    # Department budgets
    # -------------------------------------------------------------------------

    def _budget_row(self, department: Department, for_update: bool) -> DepartmentBudgetModel | None:
        stmt = select(DepartmentBudgetModel).where(
            DepartmentBudgetModel.department == Department(department).value,
        ).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def load_department_budget(self, department: Department, for_update: bool = False) -> Decimal:
        row = self._budget_row(department, for_update)
        return row.total_budget if row is not None else _ZERO

    def save_department_budget(
        self,
        department: Department,
        total: Decimal,
        *,
        updated_by: UUID | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        row = self._budget_row(department, for_update=True)
        if row is None:
            row = DepartmentBudgetModel(department=Department(department).value)
            self.session.add(row)
        row.total_budget = total
        row.updated_by_id = updated_by
        row.updated_at = updated_at
        self.session.flush()

    def reset_all_budgets(self) -> int:
        result = self.session.execute(
            update(DepartmentBudgetModel)
            .values(total_budget=_ZERO)
            .execution_options(synchronize_session=False)
        )
        self.session.flush()
        self.session.expire_all()
        return result.rowcount
