"""
Module: requisition_kernel.models.proof_of_payment
Responsibility: ORM persistence for proof-of-payment attachment references.
Architecture position: Kernel > Models.  May import from db/base.py only.

Only the reference is stored; the document itself lives wherever
``file_ref`` points.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from requisition_kernel.db.base import Base, UUIDString


class ProofOfPaymentModel(Base):
    """One attached proof of payment for a requisition."""

    __tablename__ = "proofs_of_payment"

    __table_args__ = (
        Index("ix_proofs_of_payment_requisition_id", "requisition_id"),
    )

    requisition_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("requisitions.id"),
        nullable=False,
    )
    file_ref: Mapped[str] = mapped_column(String(500), nullable=False)
    attached_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    attached_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ProofOfPayment requisition={self.requisition_id} ref={self.file_ref}>"
