"""
EventBus -- in-process publish/subscribe for requisition events.

Responsibility:
    Delivers ``RequisitionEvent`` values to subscribed handlers after the
    originating transaction has committed.  Handlers are keyed by event
    type; ``None`` subscribes to every type.

Failure isolation:
    A handler that raises is logged (with the exception) and skipped; the
    remaining handlers still run and the publisher never sees the error.
    Notification and audit delivery are best-effort by contract.
"""

from collections.abc import Callable

from requisition_kernel.domain.events import RequisitionEvent, RequisitionEventType
from requisition_kernel.logging_config import get_logger

logger = get_logger("services.event_bus")

EventHandler = Callable[[RequisitionEvent], None]


class EventBus:
    """Server-owned event fan-out."""

    def __init__(self):
        # Map of event_type (None = all) -> handlers in subscription order
        self._handlers: dict[RequisitionEventType | None, list[EventHandler]] = {}

    def subscribe(
        self,
        handler: EventHandler,
        event_type: RequisitionEventType | None = None,
    ) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(
        self,
        handler: EventHandler,
        event_type: RequisitionEventType | None = None,
    ) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: RequisitionEvent) -> int:
        """
        Deliver ``event`` to its subscribers.

        Returns:
            Number of handlers that completed without raising.
        """
        delivered = 0
        targets = self._handlers.get(event.event_type, []) + self._handlers.get(None, [])
        for handler in targets:
            try:
                handler(event)
            except Exception:
                logger.error(
                    "event_handler_failed",
                    extra={
                        "event_type": event.event_type.value,
                        "requisition_id": str(event.requisition.id),
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                    },
                    exc_info=True,
                )
                continue
            delivered += 1

        logger.debug(
            "event_published",
            extra={
                "event_type": event.event_type.value,
                "requisition_id": str(event.requisition.id),
                "delivered": delivered,
                "subscribers": len(targets),
            },
        )
        return delivered
