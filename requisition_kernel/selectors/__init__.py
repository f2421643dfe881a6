"""Read-only query selectors."""

from requisition_kernel.selectors.budget_selector import BudgetLedger
from requisition_kernel.selectors.requisition_selector import (
    PaymentScheduleRow,
    RequisitionSelector,
    StuckAtRow,
)

__all__ = ["BudgetLedger", "PaymentScheduleRow", "RequisitionSelector", "StuckAtRow"]
