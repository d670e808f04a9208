"""Fleet Build Tracker: FastAPI application entry point."""

import signal
import threading
import uuid
from contextlib import asynccontextmanager

# configure_structlog MUST run before the other fleetbuild imports
# (structlog caches the processor chain on first use).
from fleetbuild.core.logging import configure_structlog
from fleetbuild.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleetbuild.api.routes import api_router
from fleetbuild.core.config import get_settings
from fleetbuild.core.exceptions import BuildTrackerError
from fleetbuild.db import init_db, close_db, init_redis, close_redis
from fleetbuild.middleware.correlation import (
    setup_correlation_middleware,
    get_correlation_id,
)
from fleetbuild.services.build_service import BuildService, get_weight_model
from fleetbuild.services.notification_dispatcher import get_dispatcher, reset_dispatcher
from fleetbuild.services.simulator import RealtimeSimulator

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while draining
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    # Fail fast on an invalid weight model before touching storage
    weight_model = get_weight_model()
    logger.info("weight_model_loaded", systems=len(weight_model.systems), items=weight_model.item_count())

    await init_db()
    logger.info("db_initialized")

    await init_redis()
    logger.info("redis_initialized")

    dispatcher = get_dispatcher()
    dispatcher.start()

    builds = BuildService(weight_model=weight_model, dispatcher=dispatcher)
    await builds.ensure_definitions()
    if settings.seed_demo_fleet:
        await builds.seed_demo_fleet()

    simulator = None
    if settings.simulation_enabled:
        simulator = RealtimeSimulator()
        simulator.start()

    yield

    logger.info("shutdown_begin")
    if simulator is not None:
        await simulator.stop()
    await dispatcher.stop()
    reset_dispatcher()
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


async def build_tracker_exception_handler(request: Request, exc: BuildTrackerError) -> JSONResponse:
    """Map domain errors to their HTTP status with debug_id tracking."""
    debug_id = str(uuid.uuid4())

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "build_tracker_error",
        status_code=exc.status_code,
        error=type(exc).__name__,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__, "debug_id": debug_id},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking.

    Logs errors server-side with full context, returns sanitized response to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors.

    Logs full exception with traceback, returns generic 500 to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(BuildTrackerError)(build_tracker_exception_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Drone fleet build tracking: weighted assembly progress and live build events",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fleetbuild.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
