"""Real-time event bus on Redis Pub/Sub.

Every envelope is published to the fleet-wide channel and, when it concerns
one drone, to that drone's channel as well. Flat JSON envelopes with a 'type'
discriminator.
"""

import json
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger(__name__)

FLEET_CHANNEL = "fleet:events"


class EventType:
    """Event type constants for the fleet:events and drone:{serial}:events channels."""

    ITEM_STATUS_CHANGED = "item_status_changed"
    DRONE_PROGRESS_UPDATE = "drone_progress_update"
    MILESTONE_REACHED = "milestone_reached"
    ITEM_COMPLETED = "item_completed"
    SYSTEM_COMPLETED = "system_completed"
    DRONE_COMPLETED = "drone_completed"

    # Simulated telemetry
    DRONE_UPDATE = "drone_update"
    SYSTEM_HEALTH = "system_health"
    SYSTEM_ALERT = "system_alert"
    ALERT_ACKNOWLEDGED = "alert_acknowledged"


def drone_channel(serial: str) -> str:
    return f"drone:{serial}:events"


class EventPublisher:
    """Publishes envelopes to Redis with bounded exponential-backoff retries."""

    def __init__(self, redis_client: redis.Redis, max_attempts: int = 3, wait_multiplier: float = 0.2):
        self.redis = redis_client
        self.max_attempts = max_attempts
        self.wait_multiplier = wait_multiplier

    async def publish(self, event: dict[str, Any], serial: str | None = None) -> None:
        """Publish an envelope to the fleet channel and the drone channel.

        Timestamp is added automatically if not present.

        Raises:
            RedisError: after the final failed attempt
        """
        if "timestamp" not in event:
            event["timestamp"] = datetime.now(UTC).isoformat()
        payload = json.dumps(event, default=str)

        channels = [FLEET_CHANNEL]
        if serial:
            channels.append(drone_channel(serial))

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((RedisError, OSError)),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.wait_multiplier, max=5),
            reraise=True,
            before_sleep=lambda rs: logger.warning(
                "event_publish_retrying",
                event_type=event.get("type"),
                attempt=rs.attempt_number,
            ),
        ):
            with attempt:
                for channel in channels:
                    await self.redis.publish(channel, payload)
