"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import pytest
from fakeredis import FakeAsyncRedis
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture
def api_client(tmp_path):
    """FastAPI test client backed by a temporary SQLite file and fakeredis.

    Initializes the global database, Redis client and dispatcher inside the
    TestClient's own event loop so route handlers can use the singletons.
    """
    from fastapi.middleware.cors import CORSMiddleware

    import fleetbuild.core.locking as locking_mod
    import fleetbuild.db.base as db_mod
    from fleetbuild.api.routes import api_router
    from fleetbuild.core.config import get_settings
    from fleetbuild.db import close_db, close_redis, init_db, init_redis
    from fleetbuild.main import register_exception_handlers
    from fleetbuild.middleware.correlation import setup_correlation_middleware
    from fleetbuild.services.build_service import BuildService
    from fleetbuild.services.notification_dispatcher import get_dispatcher, reset_dispatcher

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize storage in TestClient's event loop."""
        # Reset globals so everything binds to THIS loop
        db_mod._engine = None
        db_mod._session_factory = None
        locking_mod._drone_lock = None
        reset_dispatcher()

        await init_db(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
        await init_redis(client=FakeAsyncRedis(decode_responses=True))

        dispatcher = get_dispatcher()
        dispatcher.start()
        await BuildService().ensure_definitions()
        yield
        await dispatcher.stop()
        reset_dispatcher()
        locking_mod._drone_lock = None
        await close_redis()
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Fleet Build Tracker - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_correlation_middleware(app)

    # Exception handlers (needed for debug_id testing)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    with TestClient(app) as client:
        yield client

