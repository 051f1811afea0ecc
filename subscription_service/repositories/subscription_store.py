"""Subscription store - in-memory storage for subscription records.

Records are copied on the way in and out, so a caller's changes only become
visible to others once the record is saved.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional

from subscription_service.models.subscription import SubscriptionRecord, SubscriptionStatus


class SubscriptionStoreError(Exception):
    """Raised when the store cannot complete a read or write."""

    pass


class SubscriptionNotFoundError(SubscriptionStoreError):
    """Raised when a subscription is not found in the store."""

    pass


class StaleSubscriptionError(SubscriptionStoreError):
    """Raised when a conditional save finds the record changed since it was read."""

    def __init__(self, subscription_id: str, expected_status: SubscriptionStatus, actual_status: SubscriptionStatus):
        self.subscription_id = subscription_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Subscription {subscription_id} changed concurrently: "
            f"expected {expected_status.value}, found {actual_status.value}"
        )


class SubscriptionStore:
    """In-memory storage for subscription records.

    Thread-safe storage with lookup by id, user, status and end-date window.
    Each call is atomic; there is no multi-call transaction.
    """

    def __init__(self):
        """Initialize subscription store with empty storage."""
        self._subscriptions: Dict[str, SubscriptionRecord] = {}
        self._lock = threading.RLock()

    def add(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        """Add a new subscription.

        Raises:
            SubscriptionStoreError: If the id already exists
        """
        with self._lock:
            if subscription.id in self._subscriptions:
                raise SubscriptionStoreError(
                    f"Subscription with id '{subscription.id}' already exists"
                )
            self._subscriptions[subscription.id] = subscription.model_copy(deep=True)
            return subscription.model_copy(deep=True)

    def save(
            self,
            subscription: SubscriptionRecord,
            expected_status: Optional[SubscriptionStatus] = None,
    ) -> SubscriptionRecord:
        """Insert or replace a subscription.

        With expected_status the write only happens if the stored record is
        still in that status, so a change made since the record was read is
        never overwritten.

        Returns:
            The stored record

        Raises:
            SubscriptionNotFoundError: If expected_status is given and the id is unknown
            StaleSubscriptionError: If the stored status is no longer expected_status
        """
        with self._lock:
            if expected_status is not None:
                stored = self._subscriptions.get(subscription.id)
                if stored is None:
                    raise SubscriptionNotFoundError(f"Subscription not found: {subscription.id}")
                if stored.status != expected_status:
                    raise StaleSubscriptionError(subscription.id, expected_status, stored.status)

            self._subscriptions[subscription.id] = subscription.model_copy(deep=True)
            return subscription.model_copy(deep=True)

    def get_by_id(self, subscription_id: str) -> SubscriptionRecord:
        """Get subscription by id.

        Raises:
            SubscriptionNotFoundError: If id not found
        """
        with self._lock:
            subscription = self._subscriptions.get(subscription_id)
            if subscription is None:
                raise SubscriptionNotFoundError(f"Subscription not found: {subscription_id}")
            return subscription.model_copy(deep=True)

    def find_by_id(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        """Find subscription by id (returns None if not found)."""
        with self._lock:
            subscription = self._subscriptions.get(subscription_id)
            return subscription.model_copy(deep=True) if subscription else None

    def get_by_user(self, user_id: str) -> List[SubscriptionRecord]:
        """Get all subscriptions of a user, oldest first."""
        with self._lock:
            matches = [s for s in self._subscriptions.values() if s.user_id == user_id]
            return [s.model_copy(deep=True) for s in sorted(matches, key=lambda s: s.created_at)]

    def find_by_user_and_status(self, user_id: str, status: SubscriptionStatus) -> List[SubscriptionRecord]:
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in self._subscriptions.values()
                if s.user_id == user_id and s.status == status
            ]

    def find_by_status(self, status: SubscriptionStatus) -> List[SubscriptionRecord]:
        """Get all subscriptions in a specific status."""
        with self._lock:
            return [s.model_copy(deep=True) for s in self._subscriptions.values() if s.status == status]

    def find_expired(self, at_time: datetime) -> List[SubscriptionRecord]:
        """Get ACTIVE subscriptions whose end date is at or before at_time."""
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in self._subscriptions.values()
                if s.status == SubscriptionStatus.ACTIVE
                and s.end_date is not None
                and s.end_date <= at_time
            ]

    def find_expiring_between(self, start: datetime, end: datetime) -> List[SubscriptionRecord]:
        """Get subscriptions whose end date falls in [start, end], any status."""
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in self._subscriptions.values()
                if s.end_date is not None and start <= s.end_date <= end
            ]

    def count_by_status(self, status: SubscriptionStatus) -> int:
        with self._lock:
            return sum(1 for s in self._subscriptions.values() if s.status == status)

    def get_all(self) -> List[SubscriptionRecord]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._subscriptions.values()]

    def exists(self, subscription_id: str) -> bool:
        with self._lock:
            return subscription_id in self._subscriptions

    def count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def clear(self) -> None:
        """Clear all subscriptions from the store.

        Warning: This removes all data. Use with caution.
        """
        with self._lock:
            self._subscriptions.clear()

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, subscription_id: str) -> bool:
        return self.exists(subscription_id)

    def __repr__(self) -> str:
        return f"SubscriptionStore(subscriptions={self.count()})"
