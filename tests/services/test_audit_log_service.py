"""
Tests for AuditLogService -- the hash-chained audit log.

In-memory SQLite gives every session the same connection, so tests that
also use the ``session`` fixture commit it before touching the audit log.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from requisition_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from requisition_kernel.domain.events import AuditActionType, AuditEntry
from requisition_kernel.domain.requisition import RequisitionAction
from requisition_kernel.exceptions import AuditChainBrokenError, ImmutabilityViolationError
from requisition_kernel.models.audit_log import AuditLogModel


def entry(action=AuditActionType.APPROVE, requisition_id=None, details="ok", name="Hana"):
    return AuditEntry(
        actor_id=uuid4(),
        actor_name=name,
        action_type=action,
        requisition_id=requisition_id,
        details=details,
    )


class TestRecord:

    def test_first_entry_is_genesis(self, audit_service, session_factory):
        audit_service.record(entry())

        with session_factory() as s:
            row = s.execute(select(AuditLogModel)).scalar_one()
            assert row.seq == 1
            assert row.is_genesis
            assert len(row.hash) == 64

    def test_entries_chain(self, audit_service, session_factory):
        for _ in range(3):
            audit_service.record(entry())

        with session_factory() as s:
            rows = s.execute(select(AuditLogModel).order_by(AuditLogModel.seq)).scalars().all()
            assert [r.seq for r in rows] == [1, 2, 3]
            assert rows[1].prev_hash == rows[0].hash
            assert rows[2].prev_hash == rows[1].hash

    def test_clock_supplies_missing_timestamp(self, audit_service, deterministic_clock):
        audit_service.record(entry())
        (record,) = audit_service.get_recent()
        assert record.occurred_at == deterministic_clock.now()

    def test_trail_and_recent(self, audit_service):
        rid = uuid4()
        audit_service.record(entry(AuditActionType.SUBMIT, rid, "first"))
        audit_service.record(entry(AuditActionType.APPROVE, uuid4(), "other"))
        audit_service.record(entry(AuditActionType.REJECT, rid, "second"))

        trail = audit_service.get_trail(rid)
        assert [r.details for r in trail] == ["first", "second"]
        assert [r.action_type for r in trail] == [AuditActionType.SUBMIT, AuditActionType.REJECT]
        assert [r.seq for r in audit_service.get_recent(limit=2)] == [3, 2]

    def test_recorded_entry_logged(self, audit_service, captured_logs):
        audit_service.record(entry(AuditActionType.ON_HOLD))
        records = [r for r in captured_logs() if r["message"] == "audit_entry_recorded"]
        assert records and records[0]["action_type"] == "on_hold"


class TestChainValidation:

    def test_empty_chain_is_valid(self, audit_service):
        assert audit_service.validate_chain() is True

    def test_full_lifecycle_chain_is_valid(
        self, submit, requisition_service, session, audit_service, it_hod,
        finance_manager, accountant,
    ):
        req = submit("50")
        requisition_service.apply_action(req.id, it_hod, RequisitionAction.APPROVE)
        requisition_service.apply_action(
            req.id, finance_manager, RequisitionAction.WAIT, comment="quote",
        )
        requisition_service.apply_action(req.id, finance_manager, RequisitionAction.APPROVE)
        requisition_service.attach_proof_of_payment(accountant, req.id, "pop.pdf")
        requisition_service.apply_action(req.id, accountant, RequisitionAction.APPROVE)
        session.commit()

        assert audit_service.validate_chain() is True
        assert len(audit_service.get_trail(req.id)) == 6

    def test_edited_row_detected(self, audit_service, session_factory):
        for i in range(3):
            audit_service.record(entry(details=f"entry {i}"))

        unregister_immutability_listeners()
        try:
            with session_factory() as s:
                row = s.execute(
                    select(AuditLogModel).where(AuditLogModel.seq == 2)
                ).scalar_one()
                row.details = "rewritten"
                s.commit()
        finally:
            register_immutability_listeners()

        with pytest.raises(AuditChainBrokenError):
            audit_service.validate_chain()

    def test_deleted_row_detected(self, audit_service, session_factory):
        for i in range(3):
            audit_service.record(entry(details=f"entry {i}"))

        unregister_immutability_listeners()
        try:
            with session_factory() as s:
                row = s.execute(
                    select(AuditLogModel).where(AuditLogModel.seq == 2)
                ).scalar_one()
                s.delete(row)
                s.commit()
        finally:
            register_immutability_listeners()

        with pytest.raises(AuditChainBrokenError):
            audit_service.validate_chain()


class TestImmutability:

    def test_update_blocked(self, audit_service, session_factory):
        audit_service.record(entry())
        with session_factory() as s:
            row = s.execute(select(AuditLogModel)).scalar_one()
            row.details = "changed"
            with pytest.raises(ImmutabilityViolationError):
                s.flush()
            s.rollback()

        (record,) = audit_service.get_recent()
        assert record.details == "ok"

    def test_delete_blocked(self, audit_service, session_factory):
        audit_service.record(entry())
        with session_factory() as s:
            s.delete(s.execute(select(AuditLogModel)).scalar_one())
            with pytest.raises(ImmutabilityViolationError):
                s.flush()
            s.rollback()

        assert len(audit_service.get_recent()) == 1
