"""Shared Redis client for the drone write lock and the build event bus.

Both users compare and relay text payloads, so the shared client always
decodes responses to str.
"""

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from fleetbuild.core.config import get_settings

logger = structlog.get_logger(__name__)

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None, client: redis.Redis | None = None) -> None:
    """Connect the shared client, retrying while Redis comes up.

    Args:
        url: Redis URL (defaults to settings.redis_url)
        client: Ready-made client to install instead of connecting (tests use fakeredis)
    """
    global _redis

    if _redis is not None:
        return

    if client is not None:
        _redis = client
        return

    settings = get_settings()
    candidate = redis.from_url(url or settings.redis_url, encoding="utf-8", decode_responses=True)

    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type((RedisError, OSError)),
        stop=stop_after_attempt(settings.redis_connect_attempts),
        wait=wait_exponential(multiplier=0.5, max=5),
        reraise=True,
        before_sleep=lambda state: logger.warning(
            "redis_connect_retrying", attempt=state.attempt_number, error=str(state.outcome.exception())
        ),
    ):
        with attempt:
            await candidate.ping()

    _redis = candidate


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Return the shared client.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


def resolve_redis(client: redis.Redis | None) -> redis.Redis:
    """An injected client if one was given, else the shared one."""
    return client if client is not None else get_redis()


async def ping_redis() -> bool:
    """True when the shared client answers PING."""
    try:
        return bool(await get_redis().ping())
    except (RedisError, OSError, RuntimeError) as e:
        logger.error("redis_ping_failed", error=str(e), error_type=type(e).__name__)
        return False
