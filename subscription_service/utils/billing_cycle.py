"""Billing cycle date arithmetic.

Periods are calendar based: one month after Jan 31 is the last day of
February, one year after Feb 29 is Feb 28.
"""

import calendar
from datetime import datetime

from subscription_service.models import BillingCycle

MONTHS_PER_CYCLE = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.YEARLY: 12,
}


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by whole calendar months, clamping the day of month.

    Args:
        value: Datetime to shift (time of day and tzinfo are kept)
        months: Number of months, must not be negative

    Returns:
        Shifted datetime

    Examples:
        >>> add_months(datetime(2024, 1, 31), 1)
        datetime.datetime(2024, 2, 29, 0, 0)
    """
    if months < 0:
        raise ValueError(f"Months must not be negative, got: {months}")

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def end_of_billing_cycle(start: datetime, cycle: BillingCycle) -> datetime:
    """End of one billing cycle starting at start."""
    return add_months(start, MONTHS_PER_CYCLE[BillingCycle(cycle)])
