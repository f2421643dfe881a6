"""ORM models for the requisition kernel."""

from requisition_kernel.models.audit_log import AuditLogModel
from requisition_kernel.models.budget import DepartmentBudgetModel
from requisition_kernel.models.proof_of_payment import ProofOfPaymentModel
from requisition_kernel.models.requisition import (
    RequisitionDecisionModel,
    RequisitionModel,
)
from requisition_kernel.models.sequence_counter import SequenceCounter

__all__ = [
    "AuditLogModel",
    "DepartmentBudgetModel",
    "ProofOfPaymentModel",
    "RequisitionDecisionModel",
    "RequisitionModel",
    "SequenceCounter",
]
