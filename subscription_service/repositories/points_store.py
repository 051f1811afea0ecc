"""Points store - in-memory storage for wallets and their transactions."""

import threading
from typing import Dict, List, Optional

from subscription_service.models.points import PointsTransaction, PointsWallet


class PointsStoreError(Exception):
    """Raised when the points store cannot complete a read or write."""

    pass


class WalletNotFoundError(PointsStoreError):
    """Raised when a user has no points wallet."""

    pass


class PointsStore:
    """In-memory storage for points wallets, keyed by user id.

    Thread-safe. Wallets and transactions are copied in and out like
    subscription records.
    """

    def __init__(self):
        self._wallets: Dict[str, PointsWallet] = {}
        self._transactions: List[PointsTransaction] = []
        self._lock = threading.RLock()

    def add_wallet(self, wallet: PointsWallet) -> PointsWallet:
        """Add a wallet for a user.

        Raises:
            PointsStoreError: If the user already has a wallet
        """
        with self._lock:
            if wallet.user_id in self._wallets:
                raise PointsStoreError(f"User '{wallet.user_id}' already has a wallet")
            self._wallets[wallet.user_id] = wallet.model_copy(deep=True)
            return wallet.model_copy(deep=True)

    def save_wallet(self, wallet: PointsWallet) -> PointsWallet:
        with self._lock:
            self._wallets[wallet.user_id] = wallet.model_copy(deep=True)
            return wallet.model_copy(deep=True)

    def find_wallet(self, user_id: str) -> Optional[PointsWallet]:
        """Find a user's wallet (returns None if the user has none)."""
        with self._lock:
            wallet = self._wallets.get(user_id)
            return wallet.model_copy(deep=True) if wallet else None

    def get_wallet(self, user_id: str) -> PointsWallet:
        """Get a user's wallet.

        Raises:
            WalletNotFoundError: If the user has no wallet
        """
        wallet = self.find_wallet(user_id)
        if wallet is None:
            raise WalletNotFoundError(f"Wallet not found for user: {user_id}")
        return wallet

    def add_transaction(self, transaction: PointsTransaction) -> PointsTransaction:
        with self._lock:
            self._transactions.append(transaction.model_copy(deep=True))
            return transaction.model_copy(deep=True)

    def get_transactions(self, user_id: str) -> List[PointsTransaction]:
        """Get a user's transactions, newest first."""
        with self._lock:
            matches = [t for t in self._transactions if t.user_id == user_id]
        # Stable sort keeps insertion order for equal timestamps, so reverse it first
        return [t.model_copy(deep=True) for t in sorted(reversed(matches), key=lambda t: t.created_at, reverse=True)]

    def count_wallets(self) -> int:
        with self._lock:
            return len(self._wallets)

    def clear(self) -> None:
        with self._lock:
            self._wallets.clear()
            self._transactions.clear()

    def __repr__(self) -> str:
        return f"PointsStore(wallets={self.count_wallets()}, transactions={len(self._transactions)})"
