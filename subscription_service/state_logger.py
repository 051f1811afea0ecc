"""State change logging for subscriptions.

Tracks transitions with before/after values for debugging and auditing.
"""

from datetime import datetime
from typing import Any, Optional

from subscription_service.logging_config import get_logger

logger = get_logger(__name__)


def log_subscription_status_change(
    subscription_id: str,
    old_status: Any,
    new_status: Any,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log subscription status change.

    Args:
        subscription_id: Subscription id
        old_status: Previous status value
        new_status: New status value
        reason: Reason for the change
        **extra_context: Additional context (user_id, etc.)
    """
    logger.info(
        "subscription_status_changed",
        subscription_id=subscription_id,
        old_status=str(old_status),
        new_status=str(new_status),
        reason=reason,
        **extra_context,
    )


def log_auto_renew_change(
    subscription_id: str,
    old_value: bool,
    new_value: bool,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log auto-renew setting change."""
    logger.info(
        "auto_renew_changed",
        subscription_id=subscription_id,
        old_value=old_value,
        new_value=new_value,
        reason=reason,
        **extra_context,
    )


def log_end_date_change(
    subscription_id: str,
    old_end_date: Optional[datetime],
    new_end_date: datetime,
    reason: str,
    **extra_context: Any,
) -> None:
    """Log a change of the billing period end.

    Args:
        subscription_id: Subscription id
        old_end_date: Previous end date (None while it was unset)
        new_end_date: New end date
        reason: Reason for change (activation, renewal, etc.)
        **extra_context: Additional context
    """
    extension_days = None
    if old_end_date is not None:
        extension_days = round((new_end_date - old_end_date).total_seconds() / 86400, 2)

    logger.info(
        "end_date_changed",
        subscription_id=subscription_id,
        old_end_date=old_end_date.isoformat() if old_end_date else None,
        new_end_date=new_end_date.isoformat(),
        extension_days=extension_days,
        reason=reason,
        **extra_context,
    )
