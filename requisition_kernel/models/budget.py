"""
Module: requisition_kernel.models.budget
Responsibility: ORM persistence for per-department budget totals.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per department (unique constraint); a department with no row
      has a total of zero.
    - total_budget is non-negative (check constraint).

Used amounts are never stored; the ledger derives them from requisitions.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from requisition_kernel.db.base import Base, UUIDString


class DepartmentBudgetModel(Base):
    """A department's total budget for the current reporting period."""

    __tablename__ = "department_budgets"

    __table_args__ = (
        CheckConstraint("total_budget >= 0", name="ck_department_budgets_non_negative"),
    )

    department: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    total_budget: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<DepartmentBudget {self.department}: {self.total_budget}>"
