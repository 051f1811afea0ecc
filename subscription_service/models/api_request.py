"""API request and response models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .subscription import SubscriptionRecord, SubscriptionStatus


class CreateSubscriptionRequest(BaseModel):
    """Request to create a subscription."""

    user_id: str = Field(..., description="Owning user id")
    plan_id: str = Field(..., description="Plan to subscribe to")
    activate: bool = Field(default=False, description="Create directly in ACTIVE status")
    stripe_subscription_id: Optional[str] = Field(None, description="Payment provider subscription reference")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "user-123",
                "plan_id": "pro-monthly",
                "activate": False,
            }
        }


class SubscriptionResponse(BaseModel):
    """Subscription as returned by the API."""

    id: str
    user_id: str
    plan_id: str
    status: SubscriptionStatus
    auto_renew: bool
    start_date: datetime
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    renewal_count: int = 0

    @classmethod
    def from_record(cls, record: SubscriptionRecord) -> "SubscriptionResponse":
        return cls(
            id=record.id,
            user_id=record.user_id,
            plan_id=record.plan_id,
            status=record.status,
            auto_renew=record.auto_renew,
            start_date=record.start_date,
            end_date=record.end_date,
            created_at=record.created_at,
            updated_at=record.updated_at,
            renewal_count=record.renewal_count,
        )


class SubscriptionActionResponse(BaseModel):
    """Response after a lifecycle action (activate, cancel, renew)."""

    subscription: SubscriptionResponse
    message: str = Field(..., description="Success message")


class AdvanceTimeRequest(BaseModel):
    """Request to advance the service clock."""

    days: int = Field(default=0, ge=0, description="Days to advance")
    hours: int = Field(default=0, ge=0, description="Hours to advance")
    minutes: int = Field(default=0, ge=0, description="Minutes to advance")

    class Config:
        json_schema_extra = {"example": {"days": 2, "hours": 0, "minutes": 0}}


class SetTimeRequest(BaseModel):
    """Request to set the service clock to a specific time."""

    timestamp: datetime = Field(..., description="New current time (ISO 8601)")

    class Config:
        json_schema_extra = {"example": {"timestamp": "2024-01-01T10:00:00Z"}}


class TimeResponse(BaseModel):
    """Clock state after a time operation."""

    previous_time: Optional[datetime] = Field(None, description="Time before the operation")
    current_time: datetime = Field(..., description="Current service time")
    offset_seconds: float = Field(..., description="Offset from real time")
    message: str = ""


class StatsResponse(BaseModel):
    """Subscription counts per status."""

    total: int
    by_status: dict[SubscriptionStatus, int]
