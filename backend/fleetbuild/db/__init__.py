"""Storage for the build tracker.

SQL holds the weight model definitions, each drone's build tree and the
activity log. Redis carries the per-drone write lock and the event bus.
"""

from fleetbuild.db.base import Base, build_engine, close_db, get_session_factory, init_db
from fleetbuild.db.redis import close_redis, get_redis, init_redis, ping_redis

__all__ = [
    "Base",
    "build_engine",
    "close_db",
    "close_redis",
    "get_redis",
    "get_session_factory",
    "init_db",
    "init_redis",
    "ping_redis",
]
