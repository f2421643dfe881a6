"""
Tests for SqlDocumentStore (proof-of-payment references) and SequenceService.
"""

import pytest
from sqlalchemy import select

from requisition_kernel.exceptions import ImmutabilityViolationError
from requisition_kernel.models.proof_of_payment import ProofOfPaymentModel
from requisition_kernel.services.sequence_service import SequenceService, format_sequence_number


class TestDocumentStore:

    def test_no_proof_initially(self, submit, document_store):
        req = submit("10")
        assert not document_store.has_proof_of_payment(req.id)
        assert document_store.list_proofs_of_payment(req.id) == []

    def test_multiple_proofs_listed_oldest_first(
        self, submit, document_store, accountant, deterministic_clock,
    ):
        req = submit("10")
        document_store.attach_proof_of_payment(req.id, "bank/slip-1.pdf", accountant.id)
        deterministic_clock.advance(30)
        document_store.attach_proof_of_payment(req.id, "bank/slip-2.pdf", accountant.id)

        assert document_store.has_proof_of_payment(req.id)
        assert document_store.list_proofs_of_payment(req.id) == [
            "bank/slip-1.pdf", "bank/slip-2.pdf",
        ]

    def test_proof_rows_immutable(self, submit, document_store, session, accountant):
        req = submit("10")
        document_store.attach_proof_of_payment(req.id, "pop.pdf", accountant.id)
        row = session.execute(select(ProofOfPaymentModel)).scalar_one()

        row.file_ref = "other.pdf"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_proof_rows_cannot_be_deleted(self, submit, document_store, session, accountant):
        req = submit("10")
        document_store.attach_proof_of_payment(req.id, "pop.pdf", accountant.id)
        session.delete(session.execute(select(ProofOfPaymentModel)).scalar_one())
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestSequenceService:

    def test_first_value_is_one(self, session):
        sequences = SequenceService(session)
        assert sequences.current_value("widgets") is None
        assert sequences.next_value("widgets") == 1
        assert sequences.next_value("widgets") == 2
        assert sequences.current_value("widgets") == 2

    def test_sequences_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value(SequenceService.REQUISITION)
        sequences.next_value(SequenceService.REQUISITION)
        assert sequences.next_value(SequenceService.AUDIT_LOG) == 1

    def test_rollback_returns_value(self, session):
        sequences = SequenceService(session)
        sequences.next_value("widgets")
        session.commit()
        sequences.next_value("widgets")
        session.rollback()
        assert sequences.next_value("widgets") == 2

    @pytest.mark.parametrize(
        ("prefix", "value", "expected"),
        [("REQ", 1, "REQ-000001"), ("PR", 123456, "PR-123456"), ("REQ", 1234567, "REQ-1234567")],
    )
    def test_format(self, prefix, value, expected):
        assert format_sequence_number(prefix, value) == expected
