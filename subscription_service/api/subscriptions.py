"""Subscription and plan API.

Implements:
- GET  /api/v1/plans - List plans open for subscription
- GET  /api/v1/plans/{plan_id} - Get plan
- POST /api/v1/subscriptions - Create subscription
- GET  /api/v1/subscriptions/{subscription_id} - Get subscription
- POST /api/v1/subscriptions/{subscription_id}/activate - Activate
- POST /api/v1/subscriptions/{subscription_id}/cancel - Cancel
- POST /api/v1/subscriptions/{subscription_id}/renew - Renew for one more cycle
- GET  /api/v1/subscriptions/user/{user_id} - List a user's subscriptions
- GET  /api/v1/subscriptions/user/{user_id}/active - Get a user's active subscription
"""

from fastapi import APIRouter, Depends, HTTPException

from subscription_service.api.dependencies import get_engine, get_plans
from subscription_service.logging_config import get_logger
from subscription_service.models import (
    CreateSubscriptionRequest,
    InvalidTransitionError,
    SubscriptionActionResponse,
    SubscriptionPlan,
    SubscriptionResponse,
)
from subscription_service.repositories.plan_repository import PlanNotFoundError, PlanRepository
from subscription_service.repositories.subscription_store import (
    StaleSubscriptionError,
    SubscriptionNotFoundError,
)
from subscription_service.services.subscription_engine import SubscriptionEngine, SubscriptionError

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Subscriptions"])


def _not_found(message: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"error": "Not found", "message": message})


def _conflict(message: str) -> HTTPException:
    return HTTPException(status_code=409, detail={"error": "Invalid state", "message": message})


@router.get("/plans", response_model=list[SubscriptionPlan], summary="List available plans")
async def list_plans(plans: PlanRepository = Depends(get_plans)) -> list[SubscriptionPlan]:
    return plans.get_active_plans()


@router.get("/plans/{plan_id}", response_model=SubscriptionPlan, summary="Get plan")
async def get_plan(plan_id: str, plans: PlanRepository = Depends(get_plans)) -> SubscriptionPlan:
    try:
        return plans.get_by_id(plan_id)
    except PlanNotFoundError:
        raise _not_found(f"Plan '{plan_id}' does not exist")


@router.post(
    "/subscriptions",
    response_model=SubscriptionResponse,
    status_code=201,
    summary="Create subscription",
)
async def create_subscription(
        request: CreateSubscriptionRequest,
        engine: SubscriptionEngine = Depends(get_engine),
) -> SubscriptionResponse:
    """Create a subscription in PENDING (or ACTIVE when requested).

    Raises:
        404: Plan not found
        409: Plan retired or user already subscribed
    """
    logger.info(
        "create_subscription_request",
        user_id=request.user_id,
        plan_id=request.plan_id,
        activate=request.activate,
    )

    try:
        subscription = engine.create_subscription(
            user_id=request.user_id,
            plan_id=request.plan_id,
            activate=request.activate,
            stripe_subscription_id=request.stripe_subscription_id,
        )
    except PlanNotFoundError:
        logger.warning("plan_not_found", plan_id=request.plan_id)
        raise _not_found(f"Plan '{request.plan_id}' does not exist")
    except SubscriptionError as e:
        logger.warning("create_subscription_rejected", user_id=request.user_id, error=str(e))
        raise _conflict(str(e))

    return SubscriptionResponse.from_record(subscription)


@router.get(
    "/subscriptions/{subscription_id}",
    response_model=SubscriptionResponse,
    summary="Get subscription",
)
async def get_subscription(
        subscription_id: str,
        engine: SubscriptionEngine = Depends(get_engine),
) -> SubscriptionResponse:
    try:
        return SubscriptionResponse.from_record(engine.get_subscription(subscription_id))
    except SubscriptionNotFoundError:
        raise _not_found(f"Subscription '{subscription_id}' does not exist")


@router.post(
    "/subscriptions/{subscription_id}/activate",
    response_model=SubscriptionActionResponse,
    summary="Activate subscription",
)
async def activate_subscription(
        subscription_id: str,
        engine: SubscriptionEngine = Depends(get_engine),
) -> SubscriptionActionResponse:
    """Move a PENDING subscription to ACTIVE.

    Raises:
        404: Subscription not found
        409: Subscription already expired or cancelled, or changed concurrently
    """
    try:
        subscription = engine.activate_subscription(subscription_id)
    except SubscriptionNotFoundError:
        raise _not_found(f"Subscription '{subscription_id}' does not exist")
    except (InvalidTransitionError, StaleSubscriptionError) as e:
        raise _conflict(str(e))

    return SubscriptionActionResponse(
        subscription=SubscriptionResponse.from_record(subscription),
        message="Subscription activated successfully",
    )


@router.post(
    "/subscriptions/{subscription_id}/cancel",
    response_model=SubscriptionActionResponse,
    summary="Cancel subscription",
)
async def cancel_subscription(
        subscription_id: str,
        engine: SubscriptionEngine = Depends(get_engine),
) -> SubscriptionActionResponse:
    """Cancel a PENDING or ACTIVE subscription.

    Raises:
        404: Subscription not found
        409: Subscription already expired or cancelled, or changed concurrently
    """
    try:
        subscription = engine.cancel_subscription(subscription_id)
    except SubscriptionNotFoundError:
        raise _not_found(f"Subscription '{subscription_id}' does not exist")
    except (InvalidTransitionError, StaleSubscriptionError) as e:
        raise _conflict(str(e))

    return SubscriptionActionResponse(
        subscription=SubscriptionResponse.from_record(subscription),
        message="Subscription cancelled successfully",
    )


@router.post(
    "/subscriptions/{subscription_id}/renew",
    response_model=SubscriptionActionResponse,
    summary="Renew subscription",
)
async def renew_subscription(
        subscription_id: str,
        engine: SubscriptionEngine = Depends(get_engine),
) -> SubscriptionActionResponse:
    """Extend an ACTIVE subscription by one billing cycle.

    Raises:
        404: Subscription not found
        409: Subscription not ACTIVE or auto-renew disabled
    """
    try:
        subscription = engine.renew_subscription(subscription_id)
    except SubscriptionNotFoundError:
        raise _not_found(f"Subscription '{subscription_id}' does not exist")
    except (SubscriptionError, StaleSubscriptionError) as e:
        raise _conflict(str(e))

    return SubscriptionActionResponse(
        subscription=SubscriptionResponse.from_record(subscription),
        message="Subscription renewed successfully",
    )


@router.get(
    "/subscriptions/user/{user_id}",
    response_model=list[SubscriptionResponse],
    summary="List a user's subscriptions",
)
async def get_user_subscriptions(
        user_id: str,
        engine: SubscriptionEngine = Depends(get_engine),
) -> list[SubscriptionResponse]:
    return [SubscriptionResponse.from_record(s) for s in engine.get_user_subscriptions(user_id)]


@router.get(
    "/subscriptions/user/{user_id}/active",
    response_model=SubscriptionResponse,
    summary="Get a user's active subscription",
)
async def get_active_subscription(
        user_id: str,
        engine: SubscriptionEngine = Depends(get_engine),
) -> SubscriptionResponse:
    subscription = engine.get_active_subscription(user_id)
    if subscription is None:
        raise _not_found(f"User '{user_id}' has no active subscription")
    return SubscriptionResponse.from_record(subscription)
