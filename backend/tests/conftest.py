"""Shared test fixtures for all test groups."""

import pytest
from fakeredis import FakeAsyncRedis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetbuild.core.locking import DroneLock
from fleetbuild.db.base import Base, build_engine
from fleetbuild.domain.notifications import NotificationPolicy
from fleetbuild.domain.weight_model import parse_weight_model
from fleetbuild.services.build_service import BuildService
from fleetbuild.services.notification_dispatcher import NotificationDispatcher

# Frame 50 [Structure 40 [Composite 50, Rails 25, Legs 25], Fasteners 60 [Bolts 100]]
# Power 50 [Harness 100 [Wiring 100]]
SMALL_MODEL = {
    "systems": [
        {
            "name": "Frame",
            "weight": 50,
            "assemblies": [
                {
                    "name": "Structure",
                    "weight": 40,
                    "items": [
                        {"name": "Composite", "weight": 50},
                        {"name": "Rails", "weight": 25},
                        {"name": "Legs", "weight": 25},
                    ],
                },
                {"name": "Fasteners", "weight": 60, "items": [{"name": "Bolts", "weight": 100}]},
            ],
        },
        {
            "name": "Power",
            "weight": 50,
            "assemblies": [
                {"name": "Harness", "weight": 100, "items": [{"name": "Wiring", "weight": 100}]},
            ],
        },
    ]
}


@pytest.fixture
def small_model():
    return parse_weight_model(SMALL_MODEL)


@pytest.fixture
async def redis():
    """Provide fakeredis async client."""
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def session_factory(tmp_path):
    """File-backed SQLite database with all tables created."""
    import fleetbuild.db.models  # noqa: F401

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'fleet.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def dispatcher(redis):
    """Dispatcher with every notification kind enabled and no retry delay."""
    return NotificationDispatcher(
        redis_client=redis,
        policy=NotificationPolicy(item_completions=True, system_completions=True),
        queue_size=100,
        max_attempts=1,
        retry_wait=0,
    )


@pytest.fixture
def build_service(session_factory, redis, dispatcher, small_model):
    return BuildService(
        session_factory=session_factory,
        drone_lock=DroneLock(redis, ttl=30, wait_timeout=5.0, poll_interval=0.01),
        dispatcher=dispatcher,
        weight_model=small_model,
    )
