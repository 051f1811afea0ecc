"""Notification event publishing to Google Cloud Pub/Sub.

Responsibilities:
- Serialize push notification events
- Publish to the notification topic with a bounded wait
- Manage Pub/Sub client lifecycle
"""

from threading import RLock
from typing import Optional, Protocol

from google.cloud import pubsub_v1

from subscription_service.logging_config import get_logger
from subscription_service.models import PubSubConfig, SubscriptionPushEvent

logger = get_logger(__name__)


class NotificationDispatchError(Exception):
    """Raised when a notification event could not be published."""

    pass


class NotificationPublisher(Protocol):
    """Anything that can deliver a push event to the notification service."""

    def send_push(self, event: SubscriptionPushEvent) -> bool: ...


class EventDispatcher:
    """Publishes push notification events to Google Cloud Pub/Sub.

    ``send_push`` is fire-and-forget from the caller's point of view apart
    from the bounded wait on the publish future: it returns True once the
    message is accepted, False when publishing is disabled, and raises
    NotificationDispatchError otherwise.

    Args:
        settings: Pub/Sub settings
        publisher: optional pre-built PublisherClient (created from settings if missing)
    """

    def __init__(
            self,
            settings: PubSubConfig,
            publisher: Optional[pubsub_v1.PublisherClient] = None,
    ):
        self._lock = RLock()
        self._settings = settings
        self._publisher: Optional[pubsub_v1.PublisherClient] = None
        self._topic_path: Optional[str] = None
        self._enabled = settings.enabled

        self._initialize(publisher)

    def _initialize(self, publisher: Optional[pubsub_v1.PublisherClient]) -> None:
        """Init pub/sub publisher from settings."""
        if not self._enabled:
            logger.info("event_dispatcher_disabled", message="Notification events are disabled in config")
            return

        try:
            self._publisher = publisher or pubsub_v1.PublisherClient()
            self._topic_path = self._publisher.topic_path(self._settings.project_id, self._settings.topic)
            self._ensure_topic_exists()

            logger.info(
                "event_dispatcher_initialized",
                project_id=self._settings.project_id,
                topic=self._settings.topic,
                topic_path=self._topic_path,
            )

        except Exception as e:
            logger.error(
                "event_dispatcher_init_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            # Disable dispatcher if initialization fails
            self._enabled = False
            self._publisher = None

    def _ensure_topic_exists(self) -> None:
        """Create the notification topic if it does not exist yet."""
        try:
            self._publisher.get_topic(request={"topic": self._topic_path})
            logger.info("pubsub_topic_exists", topic_path=self._topic_path)
        except Exception:
            topic = self._publisher.create_topic(request={"name": self._topic_path})
            logger.info("pubsub_topic_created", topic_path=topic.name)

    def is_enabled(self) -> bool:
        """Check if event dispatcher is enabled.

        Returns:
            True if publishing is enabled and the client is initialized
        """
        return self._enabled and self._publisher is not None

    def send_push(self, event: SubscriptionPushEvent) -> bool:
        """Publish one push notification event.

        Args:
            event: Push event to publish

        Returns:
            True if published, False if publishing is disabled

        Raises:
            NotificationDispatchError: If the publish fails or times out
        """
        if not self.is_enabled():
            logger.debug(
                "event_dispatcher_disabled",
                message="Skipping event publication",
                subscription_id=event.subscription_id,
            )
            return False

        with self._lock:
            future = self._publisher.publish(
                self._topic_path,
                event.to_message(),
                # Attributes for subscriber-side filtering
                event_type=event.event_type,
                notification_type=event.notification_type,
            )

        try:
            message_id = future.result(timeout=self._settings.publish_timeout_seconds)
        except Exception as e:
            logger.error(
                "push_event_publish_failed",
                event_type=event.event_type,
                subscription_id=event.subscription_id,
                user_id=event.user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NotificationDispatchError(
                f"Failed to publish {event.event_type} for subscription {event.subscription_id}: {e}"
            ) from e

        logger.info(
            "push_event_published",
            event_type=event.event_type,
            notification_type=event.notification_type,
            subscription_id=event.subscription_id,
            user_id=event.user_id,
            message_id=message_id,
        )
        return True

    def shutdown(self) -> None:
        """Shutdown the event dispatcher and release the client."""
        with self._lock:
            if self._publisher:
                logger.info("event_dispatcher_shutting_down")
                self._publisher = None
                self._topic_path = None
                logger.info("event_dispatcher_shutdown_complete")
