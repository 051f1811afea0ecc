"""Unit tests for the expiry reminder sweep."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from subscription_service.models import (
    EXPIRY_ALERT,
    EXPIRY_REMINDER,
    SubscriptionRecord,
    SubscriptionStatus,
)
from subscription_service.repositories.subscription_store import SubscriptionStore, SubscriptionStoreError
from subscription_service.services.clock import Clock
from subscription_service.services.event_dispatcher import NotificationDispatchError
from subscription_service.services.reminders import ExpiryReminderService, compute_reminder_window

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class RecordingPublisher:
    """Collects published events; fails for the given subscription ids."""

    def __init__(self, fail_for=()):
        self.events = []
        self.fail_for = set(fail_for)

    def send_push(self, event):
        if event.subscription_id in self.fail_for:
            raise NotificationDispatchError(f"broker unavailable for {event.subscription_id}")
        self.events.append(event)
        return True


def make_record(subscription_id, end_date, status=SubscriptionStatus.ACTIVE):
    return SubscriptionRecord(
        id=subscription_id,
        user_id=f"user-{subscription_id}",
        plan_id="basic-monthly",
        status=status,
        start_date=NOW - timedelta(days=28),
        end_date=end_date,
        created_at=NOW - timedelta(days=28),
    )


@pytest.fixture
def store():
    return SubscriptionStore()


@pytest.fixture
def clock():
    return Clock(time_source=lambda: NOW)


def make_service(store, clock, publisher):
    return ExpiryReminderService(store=store, publisher=publisher, clock=clock, days_ahead=2)


class TestReminderWindow:
    """Test the reminder window computation."""

    def test_window_is_full_day_two_days_ahead(self):
        start, end = compute_reminder_window(NOW, days_ahead=2)

        assert start == datetime(2024, 1, 3, 0, 0, tzinfo=timezone.utc)
        assert end == datetime(2024, 1, 3, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_window_does_not_depend_on_time_of_day(self):
        late = NOW.replace(hour=23, minute=59)

        assert compute_reminder_window(late) == compute_reminder_window(NOW)

    def test_window_uses_clock_timezone(self):
        tz = ZoneInfo("America/New_York")
        now = datetime(2024, 1, 1, 22, 0, tzinfo=tz)

        start, end = compute_reminder_window(now)

        assert start == datetime(2024, 1, 3, 0, 0, tzinfo=tz)
        assert end.date() == start.date()


class TestSendExpiryReminders:
    """Test reminder publishing."""

    def test_sends_one_event_per_subscription_in_window(self, store, clock):
        store.add(make_record("in-window", datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)))
        store.add(make_record("tomorrow", datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc)))
        store.add(make_record("later", datetime(2024, 1, 4, 0, 0, tzinfo=timezone.utc)))
        publisher = RecordingPublisher()

        result = make_service(store, clock, publisher).send_expiry_reminders()

        assert result.affected_ids == ["in-window"]
        assert result.selected == 1
        assert result.ok
        event = publisher.events[0]
        assert event.user_id == "user-in-window"
        assert event.event_type == EXPIRY_REMINDER
        assert event.notification_type == EXPIRY_ALERT
        assert event.message == "Your subscription will expire in 2 days"

    def test_window_bounds_are_inclusive(self, store, clock):
        store.add(make_record("first", datetime(2024, 1, 3, 0, 0, tzinfo=timezone.utc)))
        store.add(make_record("last", datetime(2024, 1, 3, 23, 59, 59, 999999, tzinfo=timezone.utc)))
        publisher = RecordingPublisher()

        result = make_service(store, clock, publisher).send_expiry_reminders()

        assert sorted(result.affected_ids) == ["first", "last"]

    def test_status_is_not_filtered(self, store, clock):
        """Cancelled subscriptions ending in the window are reminded too."""
        store.add(
            make_record(
                "cancelled",
                datetime(2024, 1, 3, 8, 0, tzinfo=timezone.utc),
                status=SubscriptionStatus.CANCELLED,
            )
        )
        publisher = RecordingPublisher()

        result = make_service(store, clock, publisher).send_expiry_reminders()

        assert result.affected_ids == ["cancelled"]

    def test_failed_publish_does_not_stop_the_sweep(self, store, clock):
        for subscription_id in ("a", "b", "c"):
            store.add(make_record(subscription_id, datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)))
        publisher = RecordingPublisher(fail_for={"b"})

        result = make_service(store, clock, publisher).send_expiry_reminders()

        assert [e.subscription_id for e in publisher.events] == ["a", "c"]
        assert result.affected_ids == ["a", "c"]
        assert len(result.failures) == 1
        assert result.failures[0].subscription_id == "b"
        assert result.failures[0].error_type == "NotificationDispatchError"
        assert result.error is None
        assert not result.ok

    def test_rerun_sends_again(self, store, clock):
        store.add(make_record("a", datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)))
        publisher = RecordingPublisher()
        service = make_service(store, clock, publisher)

        service.send_expiry_reminders()
        service.send_expiry_reminders()

        assert len(publisher.events) == 2

    def test_store_failure_aborts_run(self, clock):
        store = MagicMock()
        store.find_expiring_between.side_effect = SubscriptionStoreError("storage offline")
        publisher = RecordingPublisher()

        result = make_service(store, clock, publisher).send_expiry_reminders()

        assert result.error == "storage offline"
        assert result.affected == 0
        assert publisher.events == []

    def test_nothing_in_window(self, store, clock):
        result = make_service(store, clock, RecordingPublisher()).send_expiry_reminders()

        assert result.selected == 0
        assert result.ok
        assert result.finished_at == NOW
