"""Points wallet API.

Implements:
- GET  /api/v1/points/{user_id}/wallet - Get (or open) a user's wallet
- GET  /api/v1/points/{user_id}/balance - Spendable balance
- GET  /api/v1/points/{user_id}/validate - Check a balance covers a cost
- POST /api/v1/points/{user_id}/redeem - Spend points
- POST /api/v1/points/{user_id}/award - Credit points
- GET  /api/v1/points/{user_id}/transactions - Transaction history, newest first
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from subscription_service.api.dependencies import get_points
from subscription_service.logging_config import get_logger
from subscription_service.models import (
    AwardPointsRequest,
    BalanceResponse,
    PointsTransaction,
    PointsValidationResponse,
    PointsWallet,
    RedeemPointsRequest,
)
from subscription_service.repositories.points_store import WalletNotFoundError
from subscription_service.services.points_service import InsufficientPointsError, PointsService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/points", tags=["Points"])


@router.get("/{user_id}/wallet", response_model=PointsWallet, summary="Get points wallet")
async def get_wallet(user_id: str, points: PointsService = Depends(get_points)) -> PointsWallet:
    return points.get_or_create_wallet(user_id)


@router.get("/{user_id}/balance", response_model=BalanceResponse, summary="Get points balance")
async def get_balance(user_id: str, points: PointsService = Depends(get_points)) -> BalanceResponse:
    return BalanceResponse(user_id=user_id, balance=points.get_balance(user_id))


@router.get(
    "/{user_id}/validate",
    response_model=PointsValidationResponse,
    summary="Check a balance covers a cost",
)
async def validate_points(
        user_id: str,
        required_points: int = Query(..., ge=1),
        points: PointsService = Depends(get_points),
) -> PointsValidationResponse:
    """Report whether the user can afford required_points.

    Always 200; the answer is in has_enough_points.
    """
    return points.validate_points(user_id, required_points)


@router.post("/{user_id}/redeem", response_model=PointsWallet, summary="Redeem points")
async def redeem_points(
        user_id: str,
        request: RedeemPointsRequest,
        points: PointsService = Depends(get_points),
) -> PointsWallet:
    """Spend points from the user's wallet.

    Raises:
        404: User has no wallet
        400: Balance too low
    """
    logger.info("redeem_points_request", user_id=user_id, points=request.points)

    try:
        return points.redeem_points(
            user_id,
            request.points,
            description=request.description,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
        )
    except WalletNotFoundError as e:
        raise HTTPException(status_code=404, detail={"error": "Not found", "message": str(e)})
    except InsufficientPointsError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "Insufficient points", "message": str(e), "available": e.available},
        )


@router.post("/{user_id}/award", response_model=PointsWallet, summary="Award points")
async def award_points(
        user_id: str,
        request: AwardPointsRequest,
        points: PointsService = Depends(get_points),
) -> PointsWallet:
    logger.info("award_points_request", user_id=user_id, points=request.points)
    return points.award_points(
        user_id,
        request.points,
        description=request.description,
        reference_type=request.reference_type,
        reference_id=request.reference_id,
    )


@router.get(
    "/{user_id}/transactions",
    response_model=list[PointsTransaction],
    summary="Points transaction history",
)
async def get_transactions(
        user_id: str,
        limit: Optional[int] = Query(None, ge=1),
        points: PointsService = Depends(get_points),
) -> list[PointsTransaction]:
    return points.get_transactions(user_id, limit=limit)
