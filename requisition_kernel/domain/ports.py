"""
Collaborator interfaces (``requisition_kernel.domain.ports``).

Responsibility
--------------
Narrow protocols for the services the core calls but does not own:
persistence, notification delivery, audit persistence and the document
store.  Identity is not a protocol -- callers pass an authenticated
``Actor`` into every operation.

Architecture position
---------------------
**Kernel domain layer** -- protocols only.  Concrete implementations
live in ``requisition_kernel.services``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from requisition_kernel.domain.events import AuditEntry, Notification
from requisition_kernel.domain.requisition import (
    Department,
    Requisition,
    RequisitionStatus,
)


class RequisitionStore(Protocol):
    """Persistence, transactional at the single-row level."""

    def load_requisition(self, requisition_id: UUID) -> Requisition:
        """Load a requisition with its decision history."""
        ...

    def add_requisition(self, requisition: Requisition) -> None:
        """Insert a newly created requisition."""
        ...

    def save_transition(self, before: Requisition, after: Requisition) -> None:
        """Persist ``after`` only if the stored row still matches ``before``."""
        ...

    def list_requisitions_by_department(self, department: Department) -> Sequence[Requisition]:
        ...

    def list_requisitions(
        self, statuses: Iterable[RequisitionStatus] | None = None,
    ) -> Sequence[Requisition]:
        ...

    def load_department_budget(self, department: Department, for_update: bool = False) -> Decimal:
        """Total budget for ``department``; zero when none was ever set."""
        ...

    def save_department_budget(
        self,
        department: Department,
        total: Decimal,
        *,
        updated_by: UUID | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        """Create or replace the department's total."""
        ...

    def reset_all_budgets(self) -> int:
        """Set every department's total to zero; return rows touched."""
        ...


class NotificationDispatcher(Protocol):
    """Fire-and-forget delivery of notifications."""

    def notify(self, notification: Notification) -> None:
        ...


class AuditSink(Protocol):
    """Append-only, best-effort audit recording."""

    def record(self, entry: AuditEntry) -> None:
        ...


class DocumentStore(Protocol):
    """Proof-of-payment attachments.  Only presence is checked."""

    def attach_proof_of_payment(
        self, requisition_id: UUID, file_ref: str, attached_by: UUID,
    ) -> None:
        ...

    def has_proof_of_payment(self, requisition_id: UUID) -> bool:
        ...
