"""Utility functions and helpers for the service."""

from subscription_service.utils.billing_cycle import add_months, end_of_billing_cycle

__all__ = [
    "add_months",
    "end_of_billing_cycle",
]
