"""Subscription status and lifecycle models.

Includes the status state machine and the persisted subscription record.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SubscriptionStatus(str, Enum):
    """Subscription status."""

    PENDING = "PENDING"  # Created, not yet paid/activated
    ACTIVE = "ACTIVE"  # Paid and within its billing period
    EXPIRED = "EXPIRED"  # Billing period ended
    CANCELLED = "CANCELLED"  # Cancelled by the user or abandoned while pending


ALLOWED_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    SubscriptionStatus.PENDING: frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.ACTIVE: frozenset({SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED}),
    SubscriptionStatus.EXPIRED: frozenset(),
    SubscriptionStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


class InvalidTransitionError(Exception):
    """Raised when a status change is not an edge of the state machine."""

    def __init__(self, subscription_id: str, old_status: SubscriptionStatus, new_status: SubscriptionStatus):
        self.subscription_id = subscription_id
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(
            f"Cannot move subscription {subscription_id} from {old_status.value} to {new_status.value}"
        )


def can_transition(old_status: SubscriptionStatus, new_status: SubscriptionStatus) -> bool:
    """Check whether old_status -> new_status is a legal edge."""
    return new_status in ALLOWED_TRANSITIONS[old_status]


class SubscriptionRecord(BaseModel):
    """A user's subscription to a plan."""

    id: str = Field(..., description="Unique subscription id")
    user_id: str = Field(..., description="Owning user id")
    plan_id: str = Field(..., description="Subscribed plan id")

    status: SubscriptionStatus = Field(default=SubscriptionStatus.PENDING, description="Current status")
    auto_renew: bool = Field(default=True, description="Whether the subscription renews at period end")

    # Timestamps
    start_date: datetime = Field(..., description="Start of the current billing period")
    end_date: Optional[datetime] = Field(None, description="End of the current billing period")
    created_at: datetime = Field(..., description="Creation time")
    updated_at: Optional[datetime] = Field(None, description="Last mutation time")

    stripe_subscription_id: Optional[str] = Field(None, description="Payment provider subscription reference")
    renewal_count: int = Field(default=0, description="Number of times renewed")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def set_status(
        self,
        new_status: SubscriptionStatus,
        at: datetime,
        reason: Optional[str] = None,
    ) -> bool:
        """Move to new_status and log the transition.

        Args:
            new_status: Target status
            at: Time of the change (stored as updated_at)
            reason: Reason for the change

        Returns:
            True if the status changed, False if it already was new_status

        Raises:
            InvalidTransitionError: If the edge is not allowed
        """
        from subscription_service.state_logger import log_subscription_status_change

        old_status = self.status
        if old_status == new_status:
            return False
        if not can_transition(old_status, new_status):
            raise InvalidTransitionError(self.id, old_status, new_status)

        self.status = new_status
        self.updated_at = at
        log_subscription_status_change(
            subscription_id=self.id,
            old_status=old_status.value,
            new_status=new_status.value,
            reason=reason,
            user_id=self.user_id,
        )
        return True

    def set_auto_renew(self, auto_renew: bool, at: datetime, reason: Optional[str] = None) -> None:
        """Change the auto-renew flag and log the change."""
        from subscription_service.state_logger import log_auto_renew_change

        old_value = self.auto_renew
        if old_value != auto_renew:
            self.auto_renew = auto_renew
            self.updated_at = at
            log_auto_renew_change(
                subscription_id=self.id,
                old_value=old_value,
                new_value=auto_renew,
                reason=reason,
                user_id=self.user_id,
            )

    def extend_end_date(self, new_end_date: datetime, at: datetime, reason: str) -> None:
        """Move the end of the billing period and log the change."""
        from subscription_service.state_logger import log_end_date_change

        old_end_date = self.end_date
        self.end_date = new_end_date
        self.updated_at = at
        log_end_date_change(
            subscription_id=self.id,
            old_end_date=old_end_date,
            new_end_date=new_end_date,
            reason=reason,
            user_id=self.user_id,
            renewal_count=self.renewal_count,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "id": "5b7f1d1e-3a0c-4a4f-9a53-6d2f7f0c1a22",
                "user_id": "user-123",
                "plan_id": "pro-monthly",
                "status": "ACTIVE",
                "auto_renew": True,
                "start_date": "2024-01-01T00:00:00Z",
                "end_date": "2024-02-01T00:00:00Z",
                "created_at": "2024-01-01T00:00:00Z",
                "renewal_count": 0,
            }
        }
