"""
Budget arithmetic (``requisition_kernel.domain.budget``).

Responsibility
--------------
Pure computations behind the Budget Ledger: how much of a department's
budget is used, what remains, whether a new submission is allowed and how
close the department is to its limit.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.  The ledger
selector loads totals and requisitions and delegates here.

Invariants enforced
-------------------
* ``used`` sums the native ``amount`` (not the USD equivalent) of
  requisitions whose status is ``approved`` or ``completed``.  Payment
  date is not a separate signal.
* Submission is blocked once ``remaining <= low_water_mark`` regardless
  of the size of the new request.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from requisition_kernel.domain.requisition import (
    BUDGET_CONSUMING_STATUSES,
    Department,
    Requisition,
)

DEFAULT_LOW_WATER_MARK = Decimal("100")
DEFAULT_WARNING_PERCENT = Decimal("80")

_HUNDRED = Decimal("100")


class BudgetAlert(str, Enum):
    """Utilization band shown alongside a department budget."""

    NONE = "none"
    WARNING = "warning"
    EXCEEDED = "exceeded"


def used_amount(requisitions: Iterable[Requisition], department: Department) -> Decimal:
    """Sum of native amounts consuming ``department``'s budget."""
    return sum(
        (
            r.amount for r in requisitions
            if r.department is department and r.status in BUDGET_CONSUMING_STATUSES
        ),
        Decimal("0"),
    )


def remaining_budget(total_budget: Decimal, used: Decimal) -> Decimal:
    return total_budget - used


def can_submit(remaining: Decimal, low_water_mark: Decimal = DEFAULT_LOW_WATER_MARK) -> bool:
    """False once the department is at or below the low-water mark."""
    return remaining > low_water_mark


def utilization_percent(total_budget: Decimal, used: Decimal) -> Decimal | None:
    """Percentage of the budget consumed, or None for a zero budget."""
    if total_budget <= 0:
        return None
    return (used / total_budget * _HUNDRED).quantize(Decimal("0.01"))


def budget_alert(
    total_budget: Decimal,
    used: Decimal,
    warning_percent: Decimal = DEFAULT_WARNING_PERCENT,
) -> BudgetAlert:
    percent = utilization_percent(total_budget, used)
    if percent is None:
        return BudgetAlert.EXCEEDED if used > 0 else BudgetAlert.NONE
    if percent >= _HUNDRED:
        return BudgetAlert.EXCEEDED
    if percent >= warning_percent:
        return BudgetAlert.WARNING
    return BudgetAlert.NONE


@dataclass(frozen=True)
class BudgetPosition:
    """A department's budget as seen by the ledger at one moment."""

    department: Department
    total_budget: Decimal
    used: Decimal
    remaining: Decimal
    utilization_percent: Decimal | None
    alert: BudgetAlert
    can_submit: bool

    @classmethod
    def compute(
        cls,
        department: Department,
        total_budget: Decimal,
        used: Decimal,
        low_water_mark: Decimal = DEFAULT_LOW_WATER_MARK,
        warning_percent: Decimal = DEFAULT_WARNING_PERCENT,
    ) -> BudgetPosition:
        remaining = remaining_budget(total_budget, used)
        return cls(
            department=department,
            total_budget=total_budget,
            used=used,
            remaining=remaining,
            utilization_percent=utilization_percent(total_budget, used),
            alert=budget_alert(total_budget, used, warning_percent),
            can_submit=can_submit(remaining, low_water_mark),
        )
