"""Domain event publishing over Redis pub/sub."""

from datetime import datetime
from typing import Any

import redis
import structlog

from barshift.config import settings
from barshift.schemas.events import DomainEvent, EventType

logger = structlog.get_logger(__name__)


class EventPublisher:
    """
    Fire-and-forget publisher for committed domain events.

    Delivery is the dispatcher's job. Publishing runs after the state change
    has committed, so failures are logged and never propagated.
    """

    def __init__(self, redis_client: redis.Redis | None, channel: str | None = None):
        """Initialize publisher with a Redis client and channel."""
        self.redis = redis_client
        self.channel = channel or settings.events_channel

    def publish(self, event: DomainEvent) -> bool:
        """
        Publish an event to the events channel.

        Args:
            event: Event to publish

        Returns:
            True if handed to Redis, False otherwise
        """
        if self.redis is None:
            logger.debug("event_publish_skipped", event_type=event.event_type.value)
            return False

        try:
            self.redis.publish(self.channel, event.model_dump_json())
            logger.debug("event_published", event_type=event.event_type.value)
            return True
        except Exception as e:
            logger.warning(
                "event_publish_failed",
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    def emit(self, event_type: EventType, occurred_at: datetime, **payload: Any) -> bool:
        """Build and publish an event from keyword payload."""
        event = DomainEvent(
            event_type=event_type,
            occurred_at=occurred_at,
            payload={key: _plain(value) for key, value in payload.items()},
        )
        return self.publish(event)


def _plain(value: Any) -> Any:
    if isinstance(value, list | tuple):
        return [_plain(v) for v in value]
    if isinstance(value, str | int | float | bool) or value is None:
        return value
    return str(value)
