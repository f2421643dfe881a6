"""
Tests for SqlRequisitionStore -- snapshot persistence and compare-and-set.

Concurrency is exercised deterministically: two writers that both read
version N are simulated by saving two transitions computed from the same
stale snapshot.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from requisition_kernel.domain.requisition import (
    Department,
    RequisitionAction,
    RequisitionStatus,
)
from requisition_kernel.domain.state_machine import apply_action
from requisition_kernel.exceptions import ConflictError, RequisitionNotFoundError


@pytest.fixture
def pending(submit):
    return submit("60")


class TestCompareAndSet:

    def test_second_writer_with_stale_snapshot_conflicts(
        self, pending, requisition_store, it_hod, deterministic_clock,
    ):
        before = requisition_store.load_requisition(pending.id)
        approve = apply_action(before, it_hod, RequisitionAction.APPROVE, now=deterministic_clock.now())
        reject = apply_action(
            before, it_hod, RequisitionAction.REJECT, "duplicate", now=deterministic_clock.now(),
        )

        requisition_store.save_transition(approve.before, approve.after)
        with pytest.raises(ConflictError) as exc_info:
            requisition_store.save_transition(reject.before, reject.after)

        assert exc_info.value.expected_version == 1
        stored = requisition_store.load_requisition(pending.id)
        assert stored.status is RequisitionStatus.APPROVED
        assert len(stored.decisions) == 1

    def test_conflict_logged(
        self, pending, requisition_store, it_hod, deterministic_clock, captured_logs,
    ):
        before = requisition_store.load_requisition(pending.id)
        outcome = apply_action(before, it_hod, RequisitionAction.APPROVE, now=deterministic_clock.now())
        requisition_store.save_transition(outcome.before, outcome.after)

        with pytest.raises(ConflictError):
            requisition_store.save_transition(outcome.before, outcome.after)
        assert any(r["message"] == "requisition_cas_failed" for r in captured_logs())

    def test_decisions_appended_in_order(
        self, pending, requisition_store, it_hod, finance_manager, deterministic_clock,
    ):
        first = apply_action(
            requisition_store.load_requisition(pending.id), it_hod,
            RequisitionAction.APPROVE, now=deterministic_clock.now(),
        )
        requisition_store.save_transition(first.before, first.after)
        deterministic_clock.advance(60)
        second = apply_action(
            requisition_store.load_requisition(pending.id), finance_manager,
            RequisitionAction.WAIT, "need a second quote", now=deterministic_clock.now(),
        )
        requisition_store.save_transition(second.before, second.after)

        stored = requisition_store.load_requisition(pending.id)
        assert stored == second.after
        assert [d.decision_id for d in stored.decisions] == [
            first.decision.decision_id, second.decision.decision_id,
        ]


class TestQueries:

    def test_load_missing(self, requisition_store):
        with pytest.raises(RequisitionNotFoundError):
            requisition_store.load_requisition(uuid4())

    def test_list_by_department_and_status(self, submit, requisition_store):
        a = submit("10")
        b = submit("20")
        assert [r.id for r in requisition_store.list_requisitions_by_department(Department.IT)] == [a.id, b.id]
        assert requisition_store.list_requisitions_by_department(Department.HR) == []
        assert len(requisition_store.list_requisitions([RequisitionStatus.PENDING])) == 2
        assert requisition_store.list_requisitions([RequisitionStatus.APPROVED]) == []
        assert len(requisition_store.list_requisitions()) == 2


class TestBudgets:

    def test_missing_budget_is_zero(self, requisition_store):
        assert requisition_store.load_department_budget(Department.CEO) == Decimal("0")

    def test_upsert(self, requisition_store, admin, deterministic_clock):
        requisition_store.save_department_budget(
            Department.HR, Decimal("500"), updated_by=admin.id, updated_at=deterministic_clock.now(),
        )
        requisition_store.save_department_budget(Department.HR, Decimal("750"))
        assert requisition_store.load_department_budget(Department.HR, for_update=True) == Decimal("750")

    def test_reset_all(self, requisition_store):
        requisition_store.save_department_budget(Department.HR, Decimal("500"))
        requisition_store.save_department_budget(Department.IT, Decimal("900"))
        assert requisition_store.reset_all_budgets() == 2
        assert requisition_store.load_department_budget(Department.IT) == Decimal("0")
