"""Per-drone write lock using Redis.

All mutations to one drone's build tree run under this lock so concurrent
status changes on the same serial are applied one after another.

This module provides:
- Lock acquisition with a bounded wait
- Owner-checked release
- Automatic expiry so a crashed holder cannot block a drone forever
"""

import asyncio
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from fleetbuild.core.config import get_settings
from fleetbuild.core.exceptions import DroneBusyError
from fleetbuild.db.redis import resolve_redis

logger = structlog.get_logger(__name__)


class DroneLock:
    """Manages per-serial write locks in Redis."""

    LOCK_PREFIX = "fleetbuild:lock:drone:"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        ttl: int | None = None,
        wait_timeout: float | None = None,
        poll_interval: float | None = None,
    ):
        settings = get_settings()
        self._redis = redis_client
        self.ttl = ttl or settings.drone_lock_ttl
        self.wait_timeout = wait_timeout if wait_timeout is not None else settings.drone_lock_wait_timeout
        self.poll_interval = poll_interval or settings.drone_lock_poll_interval

    def _get_redis(self) -> redis.Redis:
        return resolve_redis(self._redis)

    def _lock_key(self, serial: str) -> str:
        return f"{self.LOCK_PREFIX}{serial}"

    async def acquire(self, serial: str, owner: str) -> bool:
        """Attempt to take the lock once.

        Returns:
            True if acquired, False if held by another owner
        """
        r = self._get_redis()
        lock_value = f"{owner}|{datetime.now(UTC).isoformat()}"
        result = await r.set(self._lock_key(serial), lock_value, nx=True, ex=self.ttl)
        return bool(result)

    async def release(self, serial: str, owner: str) -> bool:
        """Release the lock if this owner holds it.

        Returns:
            True if released, False if not owned by this owner
        """
        r = self._get_redis()
        key = self._lock_key(serial)

        current = await r.get(key)
        if current and current.startswith(f"{owner}|"):
            await r.delete(key)
            return True

        return False

    async def is_locked(self, serial: str) -> dict | None:
        """Return lock info if the drone is locked, None otherwise."""
        r = self._get_redis()
        key = self._lock_key(serial)

        current = await r.get(key)
        if not current:
            return None

        owner, _, locked_at = current.partition("|")
        return {
            "serial": serial,
            "owner": owner,
            "locked_at": locked_at or None,
            "expires_in": await r.ttl(key),
        }

    @asynccontextmanager
    async def hold(self, serial: str) -> AsyncGenerator[str, None]:
        """Hold the write lock for a drone, waiting up to wait_timeout.

        Yields:
            The owner token of this holder

        Raises:
            DroneBusyError: lock not acquired within wait_timeout
            RedisError: lock backend unavailable while acquiring

        Example:
            async with drone_lock.hold("S1"):
                ...  # read, mutate and persist the drone tree
        """
        owner = uuid.uuid4().hex
        deadline = time.monotonic() + self.wait_timeout

        while not await self.acquire(serial, owner):
            if time.monotonic() >= deadline:
                raise DroneBusyError(serial, self.wait_timeout)
            await asyncio.sleep(self.poll_interval)

        try:
            yield owner
        finally:
            try:
                await self.release(serial, owner)
            except RedisError as e:
                # The key still expires after ttl seconds
                logger.warning("drone_lock_release_failed", serial=serial, error=str(e), ttl=self.ttl)


# Singleton instance
_drone_lock: DroneLock | None = None


def get_drone_lock() -> DroneLock:
    """Get the singleton DroneLock instance."""
    global _drone_lock
    if _drone_lock is None:
        _drone_lock = DroneLock()
    return _drone_lock
