"""NotificationDispatcher: fire-and-forget delivery of transition events.

Transitions hand their StatusChangeEvent to publish(), which never blocks and
never raises. A single consumer task turns each event into bus envelopes
(item_status_changed, drone_progress_update and any milestone/completion
notifications) and publishes them to Redis.
"""

import asyncio

import redis.asyncio as redis
import structlog

from fleetbuild.core.config import get_settings
from fleetbuild.core.exceptions import NotificationError
from fleetbuild.db.redis import resolve_redis
from fleetbuild.domain.build_tree import StatusChangeEvent
from fleetbuild.domain.notifications import NotificationPolicy, decide_notifications
from fleetbuild.services.event_bus import EventPublisher, EventType

logger = structlog.get_logger(__name__)


def build_envelopes(event: StatusChangeEvent, policy: NotificationPolicy) -> list[dict]:
    """Bus envelopes for one status change, in publish order."""
    change = event.to_dict()
    envelopes = [
        {"type": EventType.ITEM_STATUS_CHANGED, **change},
        {
            "type": EventType.DRONE_PROGRESS_UPDATE,
            "drone_serial": event.drone_serial,
            "model": event.model,
            "overall_completion": event.overall_completion,
            "previous_completion": event.previous_completion,
            "system_name": event.system_name,
            "system_completion": event.system_completion,
            "timestamp": change["timestamp"],
        },
    ]
    envelopes.extend(n.to_dict() for n in decide_notifications(event, policy))
    return envelopes


class NotificationDispatcher:
    """Bounded in-process queue plus one consumer task."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        policy: NotificationPolicy | None = None,
        queue_size: int | None = None,
        max_attempts: int | None = None,
        retry_wait: float = 0.2,
    ):
        settings = get_settings()
        self._redis = redis_client
        self.policy = policy or NotificationPolicy.from_settings(settings)
        self.max_attempts = max_attempts or settings.notification_max_attempts
        self.retry_wait = retry_wait
        self.queue: asyncio.Queue[StatusChangeEvent] = asyncio.Queue(
            maxsize=queue_size or settings.notification_queue_size
        )
        self._task: asyncio.Task | None = None

    def _publisher(self) -> EventPublisher:
        client = resolve_redis(self._redis)
        return EventPublisher(client, max_attempts=self.max_attempts, wait_multiplier=self.retry_wait)

    def publish(self, event: StatusChangeEvent) -> bool:
        """Enqueue an event without waiting for delivery.

        Returns:
            True if queued, False if the queue was full and the event dropped
        """
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "notification_dropped",
                drone_serial=event.drone_serial,
                item_id=event.item_id,
                reason="queue_full",
            )
            return False
        return True

    async def deliver(self, event: StatusChangeEvent) -> int:
        """Publish every envelope for one event.

        Failures are logged per envelope and never propagate.

        Returns:
            Number of envelopes delivered
        """
        publisher = self._publisher()
        delivered = 0
        for envelope in build_envelopes(event, self.policy):
            try:
                await publisher.publish(envelope, serial=event.drone_serial)
            except Exception as e:
                failure = NotificationError(f"Failed to publish {envelope['type']}: {e}")
                logger.error(
                    "notification_publish_failed",
                    drone_serial=event.drone_serial,
                    event_type=envelope["type"],
                    error=failure.detail,
                    error_type=type(e).__name__,
                )
                continue
            delivered += 1

        logger.debug("notifications_delivered", drone_serial=event.drone_serial, count=delivered)
        return delivered

    async def drain(self) -> int:
        """Deliver everything currently queued. Returns the number of events processed."""
        processed = 0
        while not self.queue.empty():
            event = self.queue.get_nowait()
            try:
                await self.deliver(event)
            finally:
                self.queue.task_done()
            processed += 1
        return processed

    async def run(self) -> None:
        """Consumer loop. Runs until cancelled."""
        while True:
            event = await self.queue.get()
            try:
                await self.deliver(event)
            except Exception as e:
                logger.error(
                    "notification_consumer_error",
                    drone_serial=event.drone_serial,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            finally:
                self.queue.task_done()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="notification-dispatcher")
            logger.info("notification_dispatcher_started", queue_size=self.queue.maxsize)

    async def stop(self, timeout: float = 5.0) -> None:
        """Let the consumer finish queued and in-flight events, then cancel it.

        Anything still queued after timeout seconds is delivered inline by drain().
        """
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self.queue.join(), timeout)
        except TimeoutError:
            logger.warning("notification_dispatcher_stop_timeout", pending=self.queue.qsize())
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        flushed = await self.drain()
        logger.info("notification_dispatcher_stopped", flushed=flushed)


_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    """Get the process-wide NotificationDispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher


def reset_dispatcher() -> None:
    global _dispatcher
    _dispatcher = None
