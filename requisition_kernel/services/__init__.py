"""Write-side services: facades that own transactions and the flush-only collaborators they compose."""

from requisition_kernel.services.audit_service import AuditLogRecord, AuditLogService
from requisition_kernel.services.budget_service import BudgetService
from requisition_kernel.services.document_store import SqlDocumentStore
from requisition_kernel.services.event_bus import EventBus
from requisition_kernel.services.notification import (
    AuditSubscriber,
    LoggingNotificationDispatcher,
    NotificationSubscriber,
    subscribe_collaborators,
)
from requisition_kernel.services.requisition_service import RequisitionService
from requisition_kernel.services.requisition_store import SqlRequisitionStore
from requisition_kernel.services.sequence_service import SequenceService, format_sequence_number

__all__ = [
    "AuditLogRecord",
    "AuditLogService",
    "AuditSubscriber",
    "BudgetService",
    "EventBus",
    "LoggingNotificationDispatcher",
    "NotificationSubscriber",
    "RequisitionService",
    "SequenceService",
    "SqlDocumentStore",
    "SqlRequisitionStore",
    "format_sequence_number",
    "subscribe_collaborators",
]
