"""
Notification and audit subscribers for the event bus.

``LoggingNotificationDispatcher`` is the shipped ``NotificationDispatcher``:
it records each notification as a structured log line.  E-mail templating
and delivery sit behind the same protocol and are not part of this package.

``subscribe_collaborators`` wires a bus to a dispatcher and an audit sink
using the pure mappings in ``domain.events``.
"""

from requisition_kernel.domain.events import (
    Notification,
    RequisitionEvent,
    audit_entry_for,
    notifications_for,
)
from requisition_kernel.domain.ports import AuditSink, NotificationDispatcher
from requisition_kernel.logging_config import get_logger
from requisition_kernel.services.event_bus import EventBus

logger = get_logger("services.notification")


class LoggingNotificationDispatcher:
    """Writes one ``notification_dispatched`` log entry per notification."""

    def notify(self, notification: Notification) -> None:
        logger.info(
            "notification_dispatched",
            extra={
                "notification_type": notification.type,
                "requisition_id": str(notification.requisition_id),
                "sequence_number": notification.sequence_number,
                "target_role": notification.target_role.value,
                "department": notification.department.value if notification.department else None,
                "recipient_actor_id": (
                    str(notification.recipient_actor_id)
                    if notification.recipient_actor_id else None
                ),
            },
        )


class NotificationSubscriber:
    """Bus handler translating events into notifications."""

    def __init__(self, dispatcher: NotificationDispatcher):
        self._dispatcher = dispatcher

    def __call__(self, event: RequisitionEvent) -> None:
        for notification in notifications_for(event):
            try:
                self._dispatcher.notify(notification)
            except Exception:
                # One failed recipient must not stop the others.
                logger.error(
                    "notification_failed",
                    extra={
                        "notification_type": notification.type,
                        "requisition_id": str(notification.requisition_id),
                        "target_role": notification.target_role.value,
                    },
                    exc_info=True,
                )


class AuditSubscriber:
    """Bus handler translating events into audit entries."""

    def __init__(self, sink: AuditSink):
        self._sink = sink

    def __call__(self, event: RequisitionEvent) -> None:
        self._sink.record(audit_entry_for(event))


def subscribe_collaborators(
    bus: EventBus,
    dispatcher: NotificationDispatcher | None = None,
    audit_sink: AuditSink | None = None,
) -> None:
    """Attach the notification and audit handlers to ``bus``."""
    if dispatcher is not None:
        bus.subscribe(NotificationSubscriber(dispatcher))
    if audit_sink is not None:
        bus.subscribe(AuditSubscriber(audit_sink))
