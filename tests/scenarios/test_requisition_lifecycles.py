"""
End-to-end requisition lifecycles through the service layer.

Each scenario drives RequisitionService and BudgetService exactly as an
HTTP layer would and checks status, routing labels, budget effects and
the audit trail.
"""

from decimal import Decimal

import pytest

from requisition_kernel.domain.events import AuditActionType
from requisition_kernel.domain.requisition import (
    Department,
    RequisitionAction,
    RequisitionStatus,
    Role,
)
from requisition_kernel.domain.routing import next_approver_role, stuck_at
from requisition_kernel.exceptions import BudgetExhaustedError, InvalidStateError

APPROVE = RequisitionAction.APPROVE
REJECT = RequisitionAction.REJECT
WAIT = RequisitionAction.WAIT


def test_small_purchase_paid_and_completed(
    submit, requisition_service, requisition_selector, budget_ledger, audit_trail, audit_service,
    it_hod, finance_manager, accountant,
):
    req = submit("50", "USD")
    assert stuck_at(req) == "Awaiting HOD Approval"

    after_hod = requisition_service.apply_action(req.id, it_hod, APPROVE)
    assert stuck_at(after_hod) == "Awaiting Finance Manager"

    after_fm = requisition_service.apply_action(req.id, finance_manager, APPROVE)
    assert after_fm.status is RequisitionStatus.APPROVED
    assert stuck_at(after_fm) == "Awaiting Accountant"
    assert budget_ledger.used_amount(Department.IT) == Decimal("50")

    requisition_service.attach_proof_of_payment(accountant, req.id, "receipts/charger.pdf")
    done = requisition_service.apply_action(req.id, accountant, APPROVE)

    assert done.status is RequisitionStatus.COMPLETED
    assert stuck_at(done) == "Completed"
    assert requisition_selector.completed_spend(Department.IT) == Decimal("50")
    assert budget_ledger.remaining_budget(Department.IT) == Decimal("9950")

    trail = audit_trail(req.id)
    assert [e.action_type for e in trail] == [
        AuditActionType.SUBMIT,
        AuditActionType.APPROVE,
        AuditActionType.APPROVE,
        AuditActionType.PAYMENT,
        AuditActionType.PAYMENT,
    ]
    assert audit_service.validate_chain()


def test_large_purchase_rejected_by_ceo(
    submit, requisition_service, requisition_selector, budget_ledger, audit_trail, it_hod, ceo,
):
    req = submit("800")
    after_hod = requisition_service.apply_action(req.id, it_hod, APPROVE)
    assert next_approver_role(after_hod) is Role.CEO

    rejected = requisition_service.apply_action(req.id, ceo, REJECT, comment="over budget")
    assert rejected.status is RequisitionStatus.REJECTED
    assert rejected.approver_comments == "over budget"
    assert budget_ledger.used_amount(Department.IT) == Decimal("0")

    with pytest.raises(InvalidStateError):
        requisition_service.apply_action(req.id, ceo, APPROVE)
    assert requisition_selector.get(req.id).version == rejected.version

    last = audit_trail(req.id)[-1]
    assert last.action_type is AuditActionType.REJECT
    assert last.details == "CEO rejected REQ-000001: over budget"


def test_exhausted_budget_blocks_new_requisitions(
    budget_service, requisition_service, admin, actor_factory, budget_ledger, requisition_selector,
):
    hr_hod = actor_factory(Role.HOD, Department.HR)
    hr_preparer = actor_factory(Role.PREPARER, Department.HR)
    budget_service.set_total_budget(admin, Department.HR, "200")

    first = requisition_service.create_requisition(hr_preparer, "Chairs", Department.HR, "150", "USD")
    requisition_service.apply_action(first.id, hr_hod, APPROVE)
    assert budget_ledger.remaining_budget(Department.HR) == Decimal("50")

    with pytest.raises(BudgetExhaustedError) as exc_info:
        requisition_service.create_requisition(hr_preparer, "Desk", Department.HR, "20", "USD")
    assert exc_info.value.remaining == Decimal("50")
    assert exc_info.value.low_water_mark == Decimal("100")
    assert requisition_selector.status_counts(Department.HR)[RequisitionStatus.PENDING] == 0


def test_technical_director_hold_then_approve(
    submit, requisition_service, requisition_selector, published_events, it_hod,
    technical_director, accountant,
):
    req = submit("300")
    requisition_service.apply_action(req.id, it_hod, APPROVE)

    held = requisition_service.apply_action(
        req.id, technical_director, WAIT, comment="pending clarification",
    )
    assert held.status is RequisitionStatus.APPROVED_WAIT
    assert held.approved_by_role is Role.TECHNICAL_DIRECTOR
    assert held.approver_comments == "pending clarification"
    assert stuck_at(held) == "On Hold"
    assert next_approver_role(held) is Role.TECHNICAL_DIRECTOR
    assert [r.id for r in requisition_selector.approver_queue(technical_director)] == [req.id]

    approved = requisition_service.apply_action(req.id, technical_director, APPROVE)
    assert approved.status is RequisitionStatus.APPROVED
    assert stuck_at(approved) == "Awaiting Accountant"
    assert published_events[-1].next_role is Role.ACCOUNTANT
    assert [r.id for r in requisition_selector.approver_queue(accountant)] == [req.id]
