"""Points wallet operations: award, validate, redeem and history."""

import threading
import uuid
from typing import List, Optional

from subscription_service.logging_config import get_logger
from subscription_service.models.points import (
    PointsTransaction,
    PointsValidationResponse,
    PointsWallet,
    TransactionType,
)
from subscription_service.repositories.points_store import PointsStore, WalletNotFoundError
from subscription_service.services.clock import Clock

logger = get_logger(__name__)


class InsufficientPointsError(Exception):
    """Raised when a wallet balance cannot cover a redemption."""

    def __init__(self, user_id: str, required: int, available: int):
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(f"Insufficient points. Required: {required}, available: {available}")


class PointsService:
    """Keeps wallet balances and the transaction history in step.

    A balance change and its transaction are written under one lock, so two
    concurrent redemptions can never both spend the same points.

    Args:
        store: Wallet and transaction storage
        clock: Source of transaction timestamps
    """

    def __init__(self, store: PointsStore, clock: Clock):
        self.store = store
        self.clock = clock
        self._lock = threading.RLock()

    def get_or_create_wallet(self, user_id: str) -> PointsWallet:
        with self._lock:
            wallet = self.store.find_wallet(user_id)
            if wallet is not None:
                return wallet

            wallet = PointsWallet(id=str(uuid.uuid4()), user_id=user_id, created_at=self.clock.now())
            self.store.add_wallet(wallet)
            logger.info("points_wallet_created", user_id=user_id, wallet_id=wallet.id)
            return wallet

    def get_wallet(self, user_id: str) -> Optional[PointsWallet]:
        return self.store.find_wallet(user_id)

    def get_balance(self, user_id: str) -> int:
        """Spendable points; 0 for a user without a wallet."""
        wallet = self.store.find_wallet(user_id)
        return wallet.total_points if wallet else 0

    def award_points(
            self,
            user_id: str,
            points: int,
            description: str,
            reference_type: Optional[str] = None,
            reference_id: Optional[str] = None,
    ) -> PointsWallet:
        """Credit points, opening a wallet if the user has none.

        Raises:
            ValueError: If points is not positive
        """
        if points <= 0:
            raise ValueError(f"Points to award must be positive, got {points}")

        with self._lock:
            wallet = self.get_or_create_wallet(user_id)
            now = self.clock.now()
            wallet.total_points += points
            wallet.lifetime_earned += points
            wallet.updated_at = now
            wallet = self.store.save_wallet(wallet)
            self._record(wallet, TransactionType.EARN, points, description, reference_type, reference_id)

        logger.info(
            "points_awarded",
            user_id=user_id,
            points=points,
            reference_type=reference_type,
            reference_id=reference_id,
            balance=wallet.total_points,
        )
        return wallet

    def validate_points(self, user_id: str, required_points: int) -> PointsValidationResponse:
        """Check whether the user's balance covers required_points."""
        wallet = self.store.find_wallet(user_id)
        if wallet is None:
            logger.warning("points_wallet_not_found", user_id=user_id)
        balance = wallet.total_points if wallet else 0
        return PointsValidationResponse.for_balance(balance, required_points)

    def redeem_points(
            self,
            user_id: str,
            points: int,
            description: str,
            reference_type: Optional[str] = None,
            reference_id: Optional[str] = None,
    ) -> PointsWallet:
        """Spend points from the user's wallet.

        Raises:
            WalletNotFoundError: If the user has no wallet
            InsufficientPointsError: If the balance is below points
        """
        with self._lock:
            wallet = self.store.get_wallet(user_id)
            if wallet.total_points < points:
                logger.warning(
                    "points_redeem_rejected",
                    user_id=user_id,
                    required=points,
                    available=wallet.total_points,
                )
                raise InsufficientPointsError(user_id, points, wallet.total_points)

            wallet.total_points -= points
            wallet.lifetime_spent += points
            wallet.updated_at = self.clock.now()
            wallet = self.store.save_wallet(wallet)
            self._record(wallet, TransactionType.REDEEM, points, description, reference_type, reference_id)

        logger.info(
            "points_redeemed",
            user_id=user_id,
            points=points,
            reference_type=reference_type,
            reference_id=reference_id,
            balance=wallet.total_points,
        )
        return wallet

    def get_transactions(self, user_id: str, limit: Optional[int] = None) -> List[PointsTransaction]:
        """Transaction history, newest first."""
        transactions = self.store.get_transactions(user_id)
        return transactions[:limit] if limit is not None else transactions

    def _record(
            self,
            wallet: PointsWallet,
            transaction_type: TransactionType,
            points: int,
            description: str,
            reference_type: Optional[str],
            reference_id: Optional[str],
    ) -> PointsTransaction:
        return self.store.add_transaction(
            PointsTransaction(
                id=str(uuid.uuid4()),
                wallet_id=wallet.id,
                user_id=wallet.user_id,
                transaction_type=transaction_type,
                points=points,
                description=description,
                reference_type=reference_type,
                reference_id=reference_id,
                created_at=self.clock.now(),
            )
        )


__all__ = ["InsufficientPointsError", "PointsService", "WalletNotFoundError"]
