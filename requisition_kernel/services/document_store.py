"""
SqlDocumentStore -- proof-of-payment references in the ``proofs_of_payment`` table.

Only the reference string is stored; content handling is out of scope.
Flush-only; the caller owns the transaction.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from requisition_kernel.domain.clock import Clock, SystemClock
from requisition_kernel.logging_config import get_logger
from requisition_kernel.models.proof_of_payment import ProofOfPaymentModel
from requisition_kernel.services.base import BaseService

logger = get_logger("services.document_store")


class SqlDocumentStore(BaseService):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def attach_proof_of_payment(
        self,
        requisition_id: UUID,
        file_ref: str,
        attached_by: UUID,
        attached_at: datetime | None = None,
    ) -> None:
        self.session.add(ProofOfPaymentModel(
            requisition_id=requisition_id,
            file_ref=file_ref,
            attached_by_id=attached_by,
            attached_at=attached_at or self._clock.now(),
        ))
        self.session.flush()
        logger.info(
            "proof_of_payment_stored",
            extra={"requisition_id": str(requisition_id), "file_ref": file_ref},
        )

    def has_proof_of_payment(self, requisition_id: UUID) -> bool:
        return bool(self.session.execute(
            select(exists().where(ProofOfPaymentModel.requisition_id == requisition_id))
        ).scalar())

    def list_proofs_of_payment(self, requisition_id: UUID) -> list[str]:
        """File references attached to a requisition, oldest first."""
        return list(self.session.execute(
            select(ProofOfPaymentModel.file_ref)
            .where(ProofOfPaymentModel.requisition_id == requisition_id)
            .order_by(ProofOfPaymentModel.attached_at)
        ).scalars().all())
