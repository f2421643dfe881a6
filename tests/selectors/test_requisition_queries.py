"""
Tests for RequisitionSelector -- approver queues, stuck-at report and
dashboard aggregates.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from requisition_kernel.domain.requisition import Department, RequisitionAction, RequisitionStatus, Role
from requisition_kernel.exceptions import RequisitionNotFoundError

APPROVE = RequisitionAction.APPROVE


@pytest.fixture
def funded_hr(budget_service, admin):
    budget_service.set_total_budget(admin, Department.HR, "5000")
    return Department.HR


class TestLookups:

    def test_get_missing(self, requisition_selector):
        with pytest.raises(RequisitionNotFoundError):
            requisition_selector.get(uuid4())

    def test_by_sequence_number(self, submit, requisition_selector):
        req = submit("10")
        assert requisition_selector.get_by_sequence_number("REQ-000001").id == req.id
        assert requisition_selector.get_by_sequence_number("REQ-999999") is None

    def test_submitted_by_and_department(self, submit, requisition_selector, preparer, it_hod):
        mine = submit("10")
        submit("20", actor=it_hod)
        assert [r.id for r in requisition_selector.submitted_by(preparer.id)] == [mine.id]
        assert len(requisition_selector.by_department(Department.IT)) == 2


class TestApproverQueue:

    def test_hod_sees_only_own_department(
        self, submit, funded_hr, requisition_selector, it_hod, actor_factory,
    ):
        it_req = submit("10")
        hr_req = submit("10", department=funded_hr)
        hr_hod = actor_factory(Role.HOD, Department.HR)

        assert [r.id for r in requisition_selector.approver_queue(it_hod)] == [it_req.id]
        assert [r.id for r in requisition_selector.approver_queue(hr_hod)] == [hr_req.id]

    def test_tier_queues_follow_amount(
        self, submit, requisition_service, requisition_selector, it_hod,
        finance_manager, technical_director, ceo,
    ):
        small = submit("100")
        medium = submit("500")
        large = submit("500.01")
        for req in (small, medium, large):
            requisition_service.apply_action(req.id, it_hod, APPROVE)

        assert [r.id for r in requisition_selector.approver_queue(finance_manager)] == [small.id]
        assert [r.id for r in requisition_selector.approver_queue(technical_director)] == [medium.id]
        assert [r.id for r in requisition_selector.approver_queue(ceo)] == [large.id]
        assert requisition_selector.approver_queue(it_hod) == []

    def test_hold_stays_with_holder(
        self, submit, requisition_service, requisition_selector, it_hod, finance_manager,
    ):
        req = submit("50")
        requisition_service.apply_action(req.id, it_hod, APPROVE)
        requisition_service.apply_action(req.id, finance_manager, RequisitionAction.WAIT, comment="?")
        assert [r.id for r in requisition_selector.approver_queue(finance_manager)] == [req.id]

    def test_accountant_queue(
        self, submit, requisition_service, requisition_selector, it_hod, finance_manager, accountant,
    ):
        req = submit("50")
        requisition_service.apply_action(req.id, it_hod, APPROVE)
        assert requisition_selector.approver_queue(accountant) == []
        requisition_service.apply_action(req.id, finance_manager, APPROVE)
        assert [r.id for r in requisition_selector.approver_queue(accountant)] == [req.id]


class TestReports:

    def test_stuck_at_report(
        self, submit, requisition_service, requisition_selector, preparer, it_hod, finance_manager,
    ):
        waiting = submit("10")
        tiered = submit("300")
        held = submit("20")
        rejected = submit("30")
        requisition_service.apply_action(tiered.id, it_hod, APPROVE)
        requisition_service.apply_action(held.id, it_hod, APPROVE)
        requisition_service.apply_action(held.id, finance_manager, RequisitionAction.WAIT, comment="?")
        requisition_service.apply_action(rejected.id, it_hod, RequisitionAction.REJECT, comment="no")

        labels = {row.requisition_id: row.stuck_at for row in requisition_selector.stuck_at_report(preparer.id)}
        assert labels == {
            waiting.id: "Awaiting HOD Approval",
            tiered.id: "Awaiting Technical Director",
            held.id: "On Hold",
            rejected.id: "Rejected",
        }

    def test_status_counts(self, submit, requisition_service, requisition_selector, it_hod, funded_hr):
        a = submit("10")
        submit("10")
        submit("10", department=funded_hr)
        requisition_service.apply_action(a.id, it_hod, APPROVE)

        counts = requisition_selector.status_counts()
        assert counts[RequisitionStatus.PENDING] == 2
        assert counts[RequisitionStatus.APPROVED] == 1
        assert counts[RequisitionStatus.COMPLETED] == 0
        assert requisition_selector.status_counts(Department.HR)[RequisitionStatus.PENDING] == 1

    def test_completed_spend(
        self, submit, requisition_service, requisition_selector, it_hod, finance_manager, accountant,
    ):
        req = submit("45.50")
        submit("99")
        requisition_service.apply_action(req.id, it_hod, APPROVE)
        requisition_service.apply_action(req.id, finance_manager, APPROVE)
        requisition_service.attach_proof_of_payment(accountant, req.id, "pop.pdf")
        requisition_service.apply_action(req.id, accountant, APPROVE)

        assert requisition_selector.completed_spend() == Decimal("45.50")
        assert requisition_selector.completed_spend(Department.HR) == Decimal("0")

    def test_payment_schedule_newest_first(
        self, submit, requisition_service, requisition_selector, deterministic_clock,
        it_hod, finance_manager, accountant, funded_hr, actor_factory,
    ):
        hr_hod = actor_factory(Role.HOD, Department.HR)
        first = submit("40", title="Toner")
        second = submit("60", currency="GBP", usd_equivalent="75", department=funded_hr, title="Chairs")
        unpaid = submit("20")

        for req, hod in ((first, it_hod), (second, hr_hod), (unpaid, it_hod)):
            requisition_service.apply_action(req.id, hod, APPROVE)
            requisition_service.apply_action(req.id, finance_manager, APPROVE)
        requisition_service.attach_proof_of_payment(accountant, unpaid.id, "draft.pdf")

        requisition_service.attach_proof_of_payment(accountant, first.id, "pop/toner.pdf")
        requisition_service.apply_action(first.id, accountant, APPROVE)
        deterministic_clock.advance(3600)
        requisition_service.attach_proof_of_payment(accountant, second.id, "pop/chairs.pdf")
        requisition_service.apply_action(second.id, accountant, APPROVE)

        schedule = requisition_selector.payment_schedule()
        assert [row.requisition_id for row in schedule] == [second.id, first.id]

        latest = schedule[0]
        assert latest.title == "Chairs"
        assert latest.department is Department.HR
        assert latest.amount == Decimal("60")
        assert latest.currency.value == "GBP"
        assert latest.processed_by_actor_id == accountant.id
        assert latest.file_ref == "pop/chairs.pdf"
        assert latest.payment_date > schedule[1].payment_date

        assert [row.file_ref for row in requisition_selector.payment_schedule(Department.IT)] == [
            "pop/toner.pdf",
        ]
