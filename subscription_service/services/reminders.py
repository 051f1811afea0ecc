"""Expiry reminder sweep.

Selects subscriptions whose end date falls on the calendar day
``days_ahead`` days from now and publishes one EXPIRY_REMINDER push event
for each. Status is not filtered and no sent-marker is kept: a manual re-run
on the same day sends the reminders again.
"""

from datetime import datetime, time, timedelta

from subscription_service.logging_config import get_logger
from subscription_service.models import (
    EXPIRY_ALERT,
    EXPIRY_REMINDER,
    SubscriptionPushEvent,
    SubscriptionRecord,
    SweepResult,
)
from subscription_service.repositories.subscription_store import (
    SubscriptionStore,
    SubscriptionStoreError,
)
from subscription_service.services.clock import Clock
from subscription_service.services.event_dispatcher import (
    NotificationDispatchError,
    NotificationPublisher,
)

logger = get_logger(__name__)

# Smallest step of datetime; the window end is the last representable instant of the day
RESOLUTION = timedelta(microseconds=1)


def compute_reminder_window(now: datetime, days_ahead: int = 2) -> tuple[datetime, datetime]:
    """Full calendar day ``days_ahead`` days after now, both ends inclusive.

    Args:
        now: Current time; its tzinfo decides where the day starts
        days_ahead: Days between now and the reminder day

    Returns:
        (window_start, window_end)

    Examples:
        >>> compute_reminder_window(datetime(2024, 1, 1, 10, 0))
        (datetime.datetime(2024, 1, 3, 0, 0), datetime.datetime(2024, 1, 3, 23, 59, 59, 999999))
    """
    reminder_day = (now + timedelta(days=days_ahead)).date()
    window_start = datetime.combine(reminder_day, time.min, tzinfo=now.tzinfo)
    window_end = window_start + timedelta(days=1) - RESOLUTION
    return window_start, window_end


class ExpiryReminderService:
    """Publishes expiry reminders for subscriptions ending soon.

    Args:
        store: Subscription storage
        publisher: Notification publisher
        clock: Source of "now"
        days_ahead: Days before the end date to remind
        message: Human-readable reminder text
    """

    def __init__(
            self,
            store: SubscriptionStore,
            publisher: NotificationPublisher,
            clock: Clock,
            days_ahead: int = 2,
            message: str = "Your subscription will expire in 2 days",
    ):
        self.store = store
        self.publisher = publisher
        self.clock = clock
        self.days_ahead = days_ahead
        self.message = message

    def build_event(self, subscription: SubscriptionRecord) -> SubscriptionPushEvent:
        return SubscriptionPushEvent(
            user_id=subscription.user_id,
            subscription_id=subscription.id,
            event_type=EXPIRY_REMINDER,
            message=self.message,
            notification_type=EXPIRY_ALERT,
        )

    def send_expiry_reminders(self) -> SweepResult:
        """Publish one reminder per subscription ending inside the window.

        A failed publish is logged and recorded for that subscription only;
        the remaining subscriptions are still processed. A store failure
        aborts the run.

        Returns:
            SweepResult with the notified subscription ids and per-item failures
        """
        now = self.clock.now()
        window_start, window_end = compute_reminder_window(now, self.days_ahead)
        result = SweepResult(sweep="send_expiry_reminders", started_at=now)

        try:
            expiring = self.store.find_expiring_between(window_start, window_end)
        except SubscriptionStoreError as e:
            result.error = str(e)
            result.finished_at = self.clock.now()
            logger.error(
                "expiry_reminders_aborted",
                error=str(e),
                error_type=type(e).__name__,
            )
            return result

        result.selected = len(expiring)
        logger.info(
            "expiring_subscriptions_found",
            count=len(expiring),
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
        )

        for subscription in expiring:
            try:
                self.publisher.send_push(self.build_event(subscription))
            except NotificationDispatchError as e:
                result.record_failure(subscription.id, e)
                logger.error(
                    "expiry_reminder_failed",
                    subscription_id=subscription.id,
                    user_id=subscription.user_id,
                    error=str(e),
                )
                continue

            result.affected_ids.append(subscription.id)
            logger.info(
                "expiry_reminder_sent",
                subscription_id=subscription.id,
                user_id=subscription.user_id,
                status=subscription.status.value,
            )

        result.finished_at = self.clock.now()
        logger.info(
            "expiry_reminders_completed",
            selected=result.selected,
            sent=result.affected,
            failed=len(result.failures),
        )
        return result
