from fastapi import Depends, Request

from subscription_service.container import ServiceContainer
from subscription_service.repositories.plan_repository import PlanRepository
from subscription_service.services.clock import Clock
from subscription_service.services.points_service import PointsService
from subscription_service.services.scheduler import SubscriptionScheduler
from subscription_service.services.subscription_engine import SubscriptionEngine


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Service container not initialised.")
    return container


def get_engine(container: ServiceContainer = Depends(get_container)) -> SubscriptionEngine:
    return container.engine


def get_plans(container: ServiceContainer = Depends(get_container)) -> PlanRepository:
    return container.plans


def get_scheduler(container: ServiceContainer = Depends(get_container)) -> SubscriptionScheduler:
    return container.scheduler


def get_clock(container: ServiceContainer = Depends(get_container)) -> Clock:
    return container.clock


def get_points(container: ServiceContainer = Depends(get_container)) -> PointsService:
    return container.points
