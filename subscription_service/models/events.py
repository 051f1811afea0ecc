"""Notification event models published for the notification service.

Field names go over the wire in camelCase, matching what the notification
service consumes.
"""

from pydantic import BaseModel, Field

EXPIRY_REMINDER = "EXPIRY_REMINDER"
EXPIRY_ALERT = "EXPIRY_ALERT"


class SubscriptionPushEvent(BaseModel):
    """Push/email notification request for one subscription owner."""

    user_id: str = Field(..., alias="userId", description="Recipient user id")
    subscription_id: str = Field(..., alias="subscriptionId", description="Subscription the event is about")
    event_type: str = Field(..., alias="eventType", description="Event type tag, e.g. EXPIRY_REMINDER")
    message: str = Field(..., description="Human-readable message")
    notification_type: str = Field(
        ..., alias="notificationType", description="Notification category, e.g. EXPIRY_ALERT"
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "userId": "user-123",
                "subscriptionId": "5b7f1d1e-3a0c-4a4f-9a53-6d2f7f0c1a22",
                "eventType": EXPIRY_REMINDER,
                "message": "Your subscription will expire in 2 days",
                "notificationType": EXPIRY_ALERT,
            }
        }

    def to_message(self) -> bytes:
        """Serialize to the JSON payload published on the topic."""
        return self.model_dump_json(by_alias=True).encode("utf-8")
