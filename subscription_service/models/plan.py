"""Subscription plan and service configuration models.

Models from service.yaml configuration.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class BillingCycle(str, Enum):
    """How often a plan is billed."""

    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class SubscriptionPlan(BaseModel):
    """Subscription plan definition from configuration."""

    id: str = Field(..., description="Plan identifier")
    name: str = Field(..., description="Human-readable plan name")
    billing_cycle: BillingCycle = Field(..., description="Billing cycle: MONTHLY or YEARLY")
    price: Decimal = Field(..., ge=0, description="Price per billing cycle")
    currency: str = Field(default="USD", description="ISO 4217 currency code")
    points_awarded: int = Field(default=0, ge=0, description="Loyalty points awarded on activation")
    stripe_price_id: Optional[str] = Field(None, description="Payment provider price reference")
    features: list[str] = Field(default_factory=list, description="List of features")
    is_active: bool = Field(default=True, description="Whether new subscriptions may use this plan")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "pro-monthly",
                "name": "Pro",
                "billing_cycle": "MONTHLY",
                "price": "19.99",
                "currency": "USD",
                "points_awarded": 200,
                "stripe_price_id": "price_pro_monthly",
                "features": ["Unlimited courses", "Certificates"],
                "is_active": True,
            }
        }


class PubSubConfig(BaseModel):
    """Pub/Sub configuration for notification events."""

    enabled: bool = Field(default=True, description="Publish notification events")
    project_id: str = Field(..., description="GCP project ID")
    topic: str = Field(..., description="Topic receiving push notification events")
    publish_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Upper bound on waiting for a single publish"
    )


class SchedulerConfig(BaseModel):
    """Sweep cadence settings."""

    enabled: bool = Field(default=True, description="Start the background scheduler")
    timezone: str = Field(default="UTC", description="IANA timezone for cron triggers and day boundaries")
    expiry_interval_minutes: int = Field(default=60, gt=0, description="Expiry sweep interval")
    maintenance_hour: int = Field(default=2, ge=0, le=23)
    maintenance_minute: int = Field(default=0, ge=0, le=59)
    reminder_hour: int = Field(default=9, ge=0, le=23)
    reminder_minute: int = Field(default=0, ge=0, le=59)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


class LifecycleConfig(BaseModel):
    """Lifecycle rule settings."""

    pending_timeout_hours: int = Field(
        default=24, gt=0, description="Age after which a PENDING subscription is abandoned"
    )
    reminder_days_ahead: int = Field(default=2, gt=0, description="Days before expiry to remind")
    reminder_message: str = Field(
        default="Your subscription will expire in 2 days",
        description="Message carried by expiry reminder events",
    )


class ServiceConfig(BaseModel):
    """Complete service.yaml configuration."""

    pubsub: PubSubConfig
    plans: list[SubscriptionPlan] = Field(default_factory=list, description="Subscription plans")
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
