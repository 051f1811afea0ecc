"""Subscription lifecycle state machine and bulk transitions.

Responsibilities:
- Create subscriptions for a plan
- Activate, cancel and renew individual subscriptions
- Expire ACTIVE subscriptions whose billing period has ended
- Cancel PENDING subscriptions abandoned before activation
- Hand expiry reminders to the reminder sweep
- Award plan points when a subscription becomes ACTIVE
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from subscription_service.logging_config import get_logger
from subscription_service.models import (
    InvalidTransitionError,
    LifecycleConfig,
    SubscriptionPlan,
    SubscriptionRecord,
    SubscriptionStatus,
    SweepResult,
)
from subscription_service.repositories.plan_repository import PlanRepository
from subscription_service.repositories.subscription_store import (
    StaleSubscriptionError,
    SubscriptionStore,
    SubscriptionStoreError,
)
from subscription_service.services.clock import Clock
from subscription_service.services.event_dispatcher import NotificationPublisher
from subscription_service.services.points_service import PointsService
from subscription_service.services.reminders import ExpiryReminderService
from subscription_service.utils.billing_cycle import end_of_billing_cycle

logger = get_logger(__name__)

__all__ = [
    "InvalidTransitionError",
    "StaleSubscriptionError",
    "SubscriptionEngine",
    "SubscriptionError",
]


class SubscriptionError(Exception):
    """Raised when a lifecycle request breaks a business rule."""

    pass


class SubscriptionEngine:
    """Subscription lifecycle management engine.

    Owns every status change after a subscription is created. All
    collaborators are passed in; the engine holds no global state.

    Args:
        store: Subscription storage
        plans: Plan definitions
        publisher: Notification publisher used by the reminder sweep
        clock: Source of "now"
        lifecycle: Lifecycle rule settings (defaults if missing)
        points: Points wallet service credited on activation (optional)
    """

    def __init__(
            self,
            store: SubscriptionStore,
            plans: PlanRepository,
            publisher: NotificationPublisher,
            clock: Clock,
            lifecycle: Optional[LifecycleConfig] = None,
            points: Optional[PointsService] = None,
    ):
        self.store = store
        self.points = points
        self.plans = plans
        self.clock = clock
        self.lifecycle = lifecycle or LifecycleConfig()
        self.reminders = ExpiryReminderService(
            store=store,
            publisher=publisher,
            clock=clock,
            days_ahead=self.lifecycle.reminder_days_ahead,
            message=self.lifecycle.reminder_message,
        )

        logger.info(
            "subscription_engine_initialized",
            pending_timeout_hours=self.lifecycle.pending_timeout_hours,
            reminder_days_ahead=self.lifecycle.reminder_days_ahead,
        )

    @property
    def pending_timeout(self) -> timedelta:
        return timedelta(hours=self.lifecycle.pending_timeout_hours)

    def create_subscription(
            self,
            user_id: str,
            plan_id: str,
            activate: bool = False,
            start_date: Optional[datetime] = None,
            stripe_subscription_id: Optional[str] = None,
    ) -> SubscriptionRecord:
        """Create a subscription for a plan.

        Args:
            user_id: Owning user
            plan_id: Plan to subscribe to
            activate: Create in ACTIVE instead of PENDING
            start_date: Billing period start (defaults to now)
            stripe_subscription_id: Payment provider reference

        Returns:
            Created SubscriptionRecord

        Raises:
            PlanNotFoundError: If plan_id is unknown
            SubscriptionError: If the plan is retired or the user already has
                an ACTIVE or PENDING subscription
        """
        plan = self.plans.get_by_id(plan_id)
        if not plan.is_active:
            raise SubscriptionError(f"Plan {plan_id} is not available for new subscriptions")

        for status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING):
            if self.store.find_by_user_and_status(user_id, status):
                raise SubscriptionError(
                    f"User {user_id} already has a {status.value} subscription"
                )

        now = self.clock.now()
        start_date = start_date or now
        subscription = SubscriptionRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            plan_id=plan_id,
            status=SubscriptionStatus.ACTIVE if activate else SubscriptionStatus.PENDING,
            auto_renew=True,
            start_date=start_date,
            end_date=end_of_billing_cycle(start_date, plan.billing_cycle),
            created_at=now,
            updated_at=now,
            stripe_subscription_id=stripe_subscription_id,
        )
        self.store.add(subscription)

        logger.info(
            "subscription_created",
            subscription_id=subscription.id,
            user_id=user_id,
            plan_id=plan_id,
            status=subscription.status.value,
            end_date=subscription.end_date.isoformat(),
        )
        if activate:
            self._award_activation_points(subscription, plan)
        return subscription

    def activate_subscription(self, subscription_id: str) -> SubscriptionRecord:
        """Move a PENDING subscription to ACTIVE and award the plan's points.

        Activating an ACTIVE subscription is a no-op and awards nothing.

        Raises:
            SubscriptionNotFoundError: If id not found
            InvalidTransitionError: If the subscription is EXPIRED or CANCELLED
            StaleSubscriptionError: If the status changed while activating
        """
        subscription = self.store.get_by_id(subscription_id)

        if subscription.status == SubscriptionStatus.ACTIVE:
            logger.info("subscription_already_active", subscription_id=subscription_id)
            return subscription

        now = self.clock.now()
        old_status = subscription.status
        plan = self.plans.get_by_id(subscription.plan_id)
        subscription.set_status(SubscriptionStatus.ACTIVE, at=now, reason="Activated")
        if subscription.end_date is None:
            subscription.extend_end_date(
                end_of_billing_cycle(subscription.start_date, plan.billing_cycle),
                at=now,
                reason="Activation",
            )
        subscription = self.store.save(subscription, expected_status=old_status)

        logger.info(
            "subscription_activated",
            subscription_id=subscription_id,
            user_id=subscription.user_id,
            end_date=subscription.end_date.isoformat(),
        )
        self._award_activation_points(subscription, plan)
        return subscription

    def _award_activation_points(self, subscription: SubscriptionRecord, plan: SubscriptionPlan) -> None:
        """Credit the plan's points. A wallet failure never undoes the activation."""
        if self.points is None or plan.points_awarded <= 0:
            return

        try:
            self.points.award_points(
                subscription.user_id,
                plan.points_awarded,
                description=f"Subscribed to {plan.name} plan",
                reference_type="SUBSCRIPTION",
                reference_id=subscription.id,
            )
        except Exception as e:
            logger.error(
                "activation_points_award_failed",
                subscription_id=subscription.id,
                user_id=subscription.user_id,
                points=plan.points_awarded,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

    def cancel_subscription(self, subscription_id: str) -> SubscriptionRecord:
        """Cancel a PENDING or ACTIVE subscription and stop auto-renewal.

        Raises:
            SubscriptionNotFoundError: If id not found
            InvalidTransitionError: If the subscription is already terminal
            StaleSubscriptionError: If the status changed while cancelling
        """
        subscription = self.store.get_by_id(subscription_id)

        now = self.clock.now()
        old_status = subscription.status
        subscription.set_status(
            SubscriptionStatus.CANCELLED,
            at=now,
            reason=f"Cancelled while {old_status.value}",
        )
        subscription.set_auto_renew(False, at=now, reason="Cancelled")
        subscription = self.store.save(subscription, expected_status=old_status)

        logger.info(
            "subscription_cancelled",
            subscription_id=subscription_id,
            user_id=subscription.user_id,
            previous_status=old_status.value,
        )
        return subscription

    def renew_subscription(self, subscription_id: str) -> SubscriptionRecord:
        """Extend an ACTIVE, auto-renewing subscription by one billing cycle.

        The new period starts at the current end date. Status is unchanged.

        Raises:
            SubscriptionNotFoundError: If id not found
            SubscriptionError: If the subscription is not ACTIVE or does not auto-renew
            StaleSubscriptionError: If the subscription left ACTIVE while renewing
        """
        subscription = self.store.get_by_id(subscription_id)

        if subscription.status != SubscriptionStatus.ACTIVE:
            raise SubscriptionError(
                f"Cannot renew subscription in {subscription.status.value} status. "
                "Only ACTIVE subscriptions can be renewed."
            )
        if not subscription.auto_renew:
            raise SubscriptionError("Cannot renew subscription with auto_renew disabled")

        plan = self.plans.get_by_id(subscription.plan_id)
        now = self.clock.now()
        period_start = subscription.end_date or now

        subscription.renewal_count += 1
        subscription.start_date = period_start
        subscription.extend_end_date(
            end_of_billing_cycle(period_start, plan.billing_cycle),
            at=now,
            reason=f"Renewal #{subscription.renewal_count}",
        )
        subscription = self.store.save(subscription, expected_status=SubscriptionStatus.ACTIVE)

        logger.info(
            "subscription_renewed",
            subscription_id=subscription_id,
            user_id=subscription.user_id,
            renewal_count=subscription.renewal_count,
            end_date=subscription.end_date.isoformat(),
        )
        return subscription

    def get_subscription(self, subscription_id: str) -> SubscriptionRecord:
        """Get subscription by id.

        Raises:
            SubscriptionNotFoundError: If id not found
        """
        return self.store.get_by_id(subscription_id)

    def get_user_subscriptions(self, user_id: str) -> list[SubscriptionRecord]:
        return self.store.get_by_user(user_id)

    def get_active_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        active = self.store.find_by_user_and_status(user_id, SubscriptionStatus.ACTIVE)
        return active[0] if active else None

    def get_status_counts(self) -> dict[SubscriptionStatus, int]:
        return {status: self.store.count_by_status(status) for status in SubscriptionStatus}

    def expire_subscriptions(self) -> SweepResult:
        """Expire every ACTIVE subscription whose end date is at or before now.

        A store failure aborts the sweep; the result carries the error and the
        subscriptions expired before it. The next run re-selects by status, so
        nothing is lost. A subscription cancelled between selection and save
        keeps its CANCELLED status and is listed in skipped_ids.

        Returns:
            SweepResult
        """
        now = self.clock.now()
        result = SweepResult(sweep="expire_subscriptions", started_at=now)

        try:
            expired = self.store.find_expired(now)
            result.selected = len(expired)

            for subscription in expired:
                subscription.set_status(
                    SubscriptionStatus.EXPIRED,
                    at=now,
                    reason="Billing period ended",
                )
                if self._save_swept(subscription, SubscriptionStatus.ACTIVE, result):
                    result.affected_ids.append(subscription.id)

        except SubscriptionStoreError as e:
            result.error = str(e)
            logger.error(
                "expire_subscriptions_aborted",
                error=str(e),
                error_type=type(e).__name__,
                expired_before_abort=result.affected,
            )

        result.finished_at = self.clock.now()
        logger.info(
            "expire_subscriptions_completed",
            selected=result.selected,
            expired=result.affected,
            skipped=len(result.skipped_ids),
            aborted=result.error is not None,
        )
        return result

    def cleanup_stale_pending(self) -> SweepResult:
        """Cancel PENDING subscriptions created before now - pending timeout.

        Abandoned subscriptions are never billed, so they go to CANCELLED,
        not EXPIRED.

        Returns:
            SweepResult
        """
        now = self.clock.now()
        cutoff = now - self.pending_timeout
        result = SweepResult(sweep="cleanup_stale_pending", started_at=now)

        try:
            stale = [
                s for s in self.store.find_by_status(SubscriptionStatus.PENDING)
                if s.created_at < cutoff
            ]
            result.selected = len(stale)

            for subscription in stale:
                logger.info(
                    "cleaning_up_pending_subscription",
                    subscription_id=subscription.id,
                    created_at=subscription.created_at.isoformat(),
                )
                subscription.set_status(
                    SubscriptionStatus.CANCELLED,
                    at=now,
                    reason="Pending longer than timeout",
                )
                if self._save_swept(subscription, SubscriptionStatus.PENDING, result):
                    result.affected_ids.append(subscription.id)

        except SubscriptionStoreError as e:
            result.error = str(e)
            logger.error(
                "cleanup_stale_pending_aborted",
                error=str(e),
                error_type=type(e).__name__,
                cancelled_before_abort=result.affected,
            )

        result.finished_at = self.clock.now()
        if result.affected:
            logger.info("stale_pending_cleaned_up", count=result.affected, cutoff=cutoff.isoformat())
        return result

    def _save_swept(
            self,
            subscription: SubscriptionRecord,
            selected_status: SubscriptionStatus,
            result: SweepResult,
    ) -> bool:
        """Save a swept record unless it left selected_status since selection.

        Returns:
            True if saved, False if skipped
        """
        try:
            self.store.save(subscription, expected_status=selected_status)
        except StaleSubscriptionError as e:
            result.skipped_ids.append(subscription.id)
            logger.info(
                "subscription_changed_concurrently",
                sweep=result.sweep,
                subscription_id=subscription.id,
                expected_status=e.expected_status.value,
                actual_status=e.actual_status.value,
            )
            return False
        return True

    def send_expiry_reminders(self) -> SweepResult:
        """Notify owners of subscriptions ending on the reminder day."""
        return self.reminders.send_expiry_reminders()
