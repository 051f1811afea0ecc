"""Service wiring: one explicit object graph per application."""

from dataclasses import dataclass
from typing import Optional

from subscription_service.config import Config
from subscription_service.logging_config import get_logger
from subscription_service.repositories.plan_repository import PlanRepository
from subscription_service.repositories.points_store import PointsStore
from subscription_service.repositories.subscription_store import SubscriptionStore
from subscription_service.services.clock import Clock
from subscription_service.services.event_dispatcher import EventDispatcher, NotificationPublisher
from subscription_service.services.points_service import PointsService
from subscription_service.services.scheduler import SubscriptionScheduler
from subscription_service.services.subscription_engine import SubscriptionEngine

logger = get_logger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    config: Config
    clock: Clock
    store: SubscriptionStore
    plans: PlanRepository
    publisher: NotificationPublisher
    points: PointsService
    engine: SubscriptionEngine
    scheduler: SubscriptionScheduler

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        if isinstance(self.publisher, EventDispatcher):
            self.publisher.shutdown()


def build_container(
        config: Config,
        clock: Optional[Clock] = None,
        store: Optional[SubscriptionStore] = None,
        publisher: Optional[NotificationPublisher] = None,
        points_store: Optional[PointsStore] = None,
) -> ServiceContainer:
    """Build the service object graph from configuration.

    Overrides are used as given, even when empty.

    Args:
        config: Loaded configuration
        clock: Clock override (defaults to a real-time clock in the scheduler timezone)
        store: Store override (defaults to an empty in-memory store)
        publisher: Publisher override (defaults to a Pub/Sub EventDispatcher)
        points_store: Wallet store override (defaults to an empty in-memory store)
    """
    if clock is None:
        clock = Clock.for_timezone(config.scheduler.timezone)
    # Stores define __len__, so an empty one is falsy
    if store is None:
        store = SubscriptionStore()
    if points_store is None:
        points_store = PointsStore()
    if publisher is None:
        publisher = EventDispatcher(config.pubsub)
    plans = PlanRepository.from_config(config)
    points = PointsService(store=points_store, clock=clock)

    engine = SubscriptionEngine(
        store=store,
        plans=plans,
        publisher=publisher,
        clock=clock,
        lifecycle=config.lifecycle,
        points=points,
    )
    scheduler = SubscriptionScheduler(engine=engine, settings=config.scheduler)

    logger.info("container_built", plans=len(plans), config_path=str(config.config_path))
    return ServiceContainer(
        config=config,
        clock=clock,
        store=store,
        plans=plans,
        publisher=publisher,
        points=points,
        engine=engine,
        scheduler=scheduler,
    )
