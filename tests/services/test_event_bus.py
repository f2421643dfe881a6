"""
Tests for the event bus and its notification and audit subscribers.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from requisition_kernel.domain.currency import Currency
from requisition_kernel.domain.events import RequisitionEvent, RequisitionEventType
from requisition_kernel.domain.requisition import Actor, Department, Requisition, Role
from requisition_kernel.services.event_bus import EventBus
from requisition_kernel.services.notification import (
    AuditSubscriber,
    LoggingNotificationDispatcher,
    NotificationSubscriber,
    subscribe_collaborators,
)

NOW = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def requisition():
    return Requisition(
        id=uuid4(),
        sequence_number="REQ-000042",
        title="Router",
        department=Department.IT,
        amount=Decimal("90"),
        currency=Currency.USD,
        usd_equivalent=Decimal("90"),
        submitted_by_actor_id=uuid4(),
        submitted_date=NOW,
    )


@pytest.fixture
def hod():
    return Actor(id=uuid4(), role=Role.HOD, department=Department.IT, name="Hana")


def make_event(requisition, actor, kind=RequisitionEventType.HOD_APPROVED, **kwargs):
    kwargs.setdefault("next_role", Role.FINANCE_MANAGER)
    return RequisitionEvent(
        event_type=kind, requisition=requisition, actor=actor, occurred_at=NOW, **kwargs,
    )


class RecordingDispatcher:

    def __init__(self, fail_on=()):
        self.sent = []
        self._fail_on = fail_on

    def notify(self, notification):
        if notification.target_role in self._fail_on:
            raise RuntimeError("smtp down")
        self.sent.append(notification)


class RecordingSink:

    def __init__(self):
        self.entries = []

    def record(self, entry):
        self.entries.append(entry)


class TestEventBus:

    def test_type_filtered_and_catch_all_handlers(self, requisition, hod):
        bus = EventBus()
        rejected, everything = [], []
        bus.subscribe(rejected.append, RequisitionEventType.REJECTED)
        bus.subscribe(everything.append)

        assert bus.publish(make_event(requisition, hod)) == 1
        assert rejected == []
        assert len(everything) == 1

    def test_duplicate_subscription_ignored(self, requisition, hod):
        bus = EventBus()
        seen = []
        bus.subscribe(seen.append)
        bus.subscribe(seen.append)
        bus.publish(make_event(requisition, hod))
        assert len(seen) == 1

    def test_unsubscribe(self, requisition, hod):
        bus = EventBus()
        seen = []
        bus.subscribe(seen.append)
        bus.unsubscribe(seen.append)
        assert bus.publish(make_event(requisition, hod)) == 0
        assert seen == []

    def test_failing_handler_isolated(self, requisition, hod, captured_logs):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(seen.append)

        assert bus.publish(make_event(requisition, hod)) == 1
        assert len(seen) == 1
        failures = [r for r in captured_logs() if r["message"] == "event_handler_failed"]
        assert failures[0]["event_type"] == "hod_approved"
        assert failures[0]["exc_type"] == "RuntimeError"


class TestSubscribers:

    def test_notification_subscriber_dispatches(self, requisition, hod):
        dispatcher = RecordingDispatcher()
        NotificationSubscriber(dispatcher)(make_event(requisition, hod))
        (note,) = dispatcher.sent
        assert note.target_role is Role.FINANCE_MANAGER
        assert note.sequence_number == "REQ-000042"

    def test_one_failed_recipient_does_not_stop_others(self, requisition, hod, captured_logs):
        dispatcher = RecordingDispatcher(fail_on=(Role.PREPARER,))
        NotificationSubscriber(dispatcher)(
            make_event(requisition, hod, RequisitionEventType.COMPLETED, next_role=None)
        )
        assert [n.target_role for n in dispatcher.sent] == [Role.HOD]
        assert any(r["message"] == "notification_failed" for r in captured_logs())

    def test_audit_subscriber_records(self, requisition, hod):
        sink = RecordingSink()
        AuditSubscriber(sink)(make_event(requisition, hod))
        (entry,) = sink.entries
        assert entry.requisition_id == requisition.id
        assert entry.actor_name == "Hana"

    def test_logging_dispatcher(self, requisition, hod, captured_logs):
        bus = EventBus()
        subscribe_collaborators(bus, dispatcher=LoggingNotificationDispatcher())
        bus.publish(make_event(requisition, hod))
        (record,) = [r for r in captured_logs() if r["message"] == "notification_dispatched"]
        assert record["target_role"] == "finance_manager"
        assert record["sequence_number"] == "REQ-000042"

    def test_audit_failure_does_not_reach_publisher(self, requisition, hod):
        class BrokenSink:
            def record(self, entry):
                raise RuntimeError("disk full")

        bus = EventBus()
        dispatcher = RecordingDispatcher()
        subscribe_collaborators(bus, dispatcher=dispatcher, audit_sink=BrokenSink())
        assert bus.publish(make_event(requisition, hod)) == 1
        assert len(dispatcher.sent) == 1
