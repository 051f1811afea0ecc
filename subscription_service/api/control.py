"""Operations API for manual sweeps and clock control.

Implements:
- POST /ops/sweeps/expire - Run the expiry sweep now
- POST /ops/sweeps/maintenance - Run the daily maintenance sweep now
- POST /ops/sweeps/reminders - Run the expiry reminder sweep now
- GET  /ops/time - Current service time
- POST /ops/time/advance - Move the clock forward
- POST /ops/time/set - Set the clock to a specific time
- POST /ops/time/reset - Return to real time
- GET  /ops/stats - Subscription counts per status
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from subscription_service.api.dependencies import get_clock, get_engine, get_scheduler
from subscription_service.logging_config import get_logger
from subscription_service.models import (
    AdvanceTimeRequest,
    SetTimeRequest,
    StatsResponse,
    SweepResult,
    TimeResponse,
)
from subscription_service.services.clock import Clock
from subscription_service.services.scheduler import SubscriptionScheduler
from subscription_service.services.subscription_engine import SubscriptionEngine

logger = get_logger(__name__)
router = APIRouter(prefix="/ops", tags=["Operations"])


def _sweep_response(name: str, result: Optional[SweepResult]) -> SweepResult:
    if result is None:
        raise HTTPException(
            status_code=500,
            detail={"error": "Sweep failed", "message": f"{name} raised an unexpected error, see logs"},
        )
    return result


# Sweeps block on publishes and store locks, so these run in the threadpool
@router.post("/sweeps/expire", response_model=SweepResult, summary="Run expiry sweep")
def run_expiry_sweep(scheduler: SubscriptionScheduler = Depends(get_scheduler)) -> SweepResult:
    logger.info("manual_sweep_request", sweep="expire_subscriptions")
    return _sweep_response("expire_subscriptions", scheduler.expire_subscriptions())


@router.post("/sweeps/maintenance", response_model=SweepResult, summary="Run daily maintenance")
def run_maintenance_sweep(scheduler: SubscriptionScheduler = Depends(get_scheduler)) -> SweepResult:
    logger.info("manual_sweep_request", sweep="daily_maintenance_tasks")
    return _sweep_response("daily_maintenance_tasks", scheduler.daily_maintenance_tasks())


@router.post("/sweeps/reminders", response_model=SweepResult, summary="Run expiry reminders")
def run_reminder_sweep(scheduler: SubscriptionScheduler = Depends(get_scheduler)) -> SweepResult:
    logger.info("manual_sweep_request", sweep="send_expiry_reminders")
    return _sweep_response("send_expiry_reminders", scheduler.send_expiry_reminders())


@router.get("/time", response_model=TimeResponse, summary="Current service time")
async def get_time(clock: Clock = Depends(get_clock)) -> TimeResponse:
    return TimeResponse(
        current_time=clock.now(),
        offset_seconds=clock.offset.total_seconds(),
        message="Current service time",
    )


@router.post("/time/advance", response_model=TimeResponse, summary="Advance service time")
async def advance_time(request: AdvanceTimeRequest, clock: Clock = Depends(get_clock)) -> TimeResponse:
    """Move the clock forward. Sweeps are not triggered; call them explicitly.

    Raises:
        400: Negative values
    """
    logger.info("advance_time_request", days=request.days, hours=request.hours, minutes=request.minutes)

    try:
        changed = clock.advance(days=request.days, hours=request.hours, minutes=request.minutes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"error": "Invalid request", "message": str(e)})

    return TimeResponse(
        previous_time=changed["old_time"],
        current_time=changed["new_time"],
        offset_seconds=clock.offset.total_seconds(),
        message=f"Time advanced by {changed['advanced_by']}",
    )


@router.post("/time/set", response_model=TimeResponse, summary="Set service time")
async def set_time(request: SetTimeRequest, clock: Clock = Depends(get_clock)) -> TimeResponse:
    """Set the clock to a specific time.

    Raises:
        400: Naive timestamp or a time earlier than now
    """
    logger.info("set_time_request", timestamp=request.timestamp.isoformat())

    try:
        changed = clock.set_time(request.timestamp)
    except ValueError as e:
        logger.error("invalid_set_time_request", error=str(e))
        raise HTTPException(status_code=400, detail={"error": "Invalid request", "message": str(e)})

    return TimeResponse(
        previous_time=changed["old_time"],
        current_time=changed["new_time"],
        offset_seconds=clock.offset.total_seconds(),
        message=f"Time set to {changed['new_time'].strftime('%Y-%m-%d %H:%M:%S %Z')}",
    )


@router.post("/time/reset", response_model=TimeResponse, summary="Reset service time")
async def reset_time(clock: Clock = Depends(get_clock)) -> TimeResponse:
    changed = clock.reset()
    return TimeResponse(
        previous_time=changed["old_time"],
        current_time=changed["new_time"],
        offset_seconds=0.0,
        message="Time reset to real current time",
    )


@router.get("/stats", response_model=StatsResponse, summary="Subscription counts per status")
async def get_stats(engine: SubscriptionEngine = Depends(get_engine)) -> StatsResponse:
    counts = engine.get_status_counts()
    return StatsResponse(total=sum(counts.values()), by_status=counts)
