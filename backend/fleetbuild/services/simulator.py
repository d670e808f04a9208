"""RealtimeSimulator: background task publishing simulated telemetry and alerts."""

import asyncio
import random
import time

import redis.asyncio as redis
import structlog

from fleetbuild.core.config import get_settings
from fleetbuild.db.redis import resolve_redis
from fleetbuild.domain.simulation import simulate_alert, simulate_drone_update, simulate_health_overview
from fleetbuild.services.event_bus import EventPublisher

logger = structlog.get_logger(__name__)


class RealtimeSimulator:
    """Publishes drone_update and system_health on every tick, system_alert on a slower random cadence."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        rng: random.Random | None = None,
        serials: list[str] | None = None,
        update_interval: float | None = None,
        alert_interval: float | None = None,
        alert_probability: float | None = None,
    ):
        settings = get_settings()
        self._redis = redis_client
        self.rng = rng or random.Random()
        self.serials = serials if serials is not None else list(settings.simulation_serials)
        self.update_interval = update_interval or settings.simulation_update_interval
        self.alert_interval = alert_interval or settings.simulation_alert_interval
        self.alert_probability = (
            alert_probability if alert_probability is not None else settings.simulation_alert_probability
        )
        self._task: asyncio.Task | None = None
        self._last_alert = time.monotonic()

    def _publisher(self) -> EventPublisher:
        return EventPublisher(resolve_redis(self._redis), max_attempts=1)

    async def tick(self, include_alert: bool = False) -> list[dict]:
        """Publish one round of simulated events. Returns what was published."""
        events = [(simulate_drone_update(serial, self.rng), serial) for serial in self.serials]
        events.append((simulate_health_overview(self.rng), None))
        if include_alert and self.rng.random() < self.alert_probability:
            alert = simulate_alert(self.rng, self.serials)
            events.append((alert, alert["drone_serial"]))

        publisher = self._publisher()
        for event, serial in events:
            await publisher.publish(event, serial=serial)
        return [event for event, _ in events]

    async def run(self) -> None:
        logger.info("simulator_started", serials=self.serials, interval=self.update_interval)
        while True:
            now = time.monotonic()
            include_alert = now - self._last_alert >= self.alert_interval
            if include_alert:
                self._last_alert = now
            try:
                await self.tick(include_alert=include_alert)
            except Exception as e:
                logger.warning("simulator_tick_failed", error=str(e), error_type=type(e).__name__)
            await asyncio.sleep(self.update_interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="realtime-simulator")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("simulator_stopped")
