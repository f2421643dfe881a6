"""
ORM-Level Immutability Enforcement.

Audit log rows and proof-of-payment records are append-only.  SQLAlchemy
fires mapper events before UPDATE/DELETE statements reach the database;
the listeners here intercept them and raise ImmutabilityViolationError so
the flush is aborted and nothing is written.

    flush -> before_update / before_delete -> _check_*() -> raise, or emit SQL

Requisition decisions carry their own listeners in models/requisition.py
because they are never legitimately mutable, not even in tests.

Usage:

    from requisition_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # at startup, safe to repeat

Tests that tamper with rows on purpose switch them off with:

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from requisition_kernel.exceptions import ImmutabilityViolationError
from requisition_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_audit_log_update(mapper, connection, target):
    """Audit log rows are always immutable."""
    _blocked(
        "AuditLog", str(target.id), "UPDATE",
        "Audit log entries are immutable and cannot be modified",
    )


def _check_audit_log_delete(mapper, connection, target):
    _blocked(
        "AuditLog", str(target.id), "DELETE",
        "Audit log entries cannot be deleted",
    )


def _check_proof_of_payment_update(mapper, connection, target):
    _blocked(
        "ProofOfPayment", str(target.id), "UPDATE",
        "Proof of payment records are immutable -- attach a new one instead",
    )


def _check_proof_of_payment_delete(mapper, connection, target):
    _blocked(
        "ProofOfPayment", str(target.id), "DELETE",
        "Proof of payment records cannot be deleted",
    )


def register_immutability_listeners():
    """
    Attach the audit-log and proof-of-payment guards; repeat calls are no-ops.
    """
    from requisition_kernel.models.audit_log import AuditLogModel
    from requisition_kernel.models.proof_of_payment import ProofOfPaymentModel

    for target, event_name, listener_fn in _listeners(AuditLogModel, ProofOfPaymentModel):
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Detach the guards.  Test-only: lets a test corrupt rows to prove
    that chain validation notices.
    """
    from requisition_kernel.models.audit_log import AuditLogModel
    from requisition_kernel.models.proof_of_payment import ProofOfPaymentModel

    for target, event_name, listener_fn in _listeners(AuditLogModel, ProofOfPaymentModel):
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)


def _listeners(audit_model, proof_model):
    return (
        (audit_model, "before_update", _check_audit_log_update),
        (audit_model, "before_delete", _check_audit_log_delete),
        (proof_model, "before_update", _check_proof_of_payment_update),
        (proof_model, "before_delete", _check_proof_of_payment_delete),
    )
