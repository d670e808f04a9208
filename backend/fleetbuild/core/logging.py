"""Logging setup: structlog over the stdlib, with request and drone context.

Every entry carries the service name and, inside a request, the correlation
id from asgi-correlation-id. Code that works on one drone wraps itself in
drone_log_context() so lock, storage and dispatcher logs all name the serial.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from asgi_correlation_id.context import correlation_id

SERVICE_NAME = "fleet-build-tracker"

# Loggers that emit one line per request or per SQL statement at INFO
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def add_request_context(logger, method, event_dict):
    """Stamp the service name and the current request's correlation id."""
    event_dict.setdefault("service", SERVICE_NAME)
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


@contextmanager
def drone_log_context(serial: str, **extra) -> Iterator[None]:
    """Bind drone_serial (plus any extra keys) to every log entry inside the block.

    Example:
        with drone_log_context("S1", item_id=item_id):
            logger.info("item_status_changed")  # carries drone_serial="S1"
    """
    with structlog.contextvars.bound_contextvars(drone_serial=serial, **extra):
        yield


def shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Route structlog and stdlib loggers through one stdout handler.

    Call this BEFORE any other fleetbuild imports (structlog caches the
    processor chain on first use).

    Args:
        log_level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
        json_logs: True for one JSON object per line, False for ConsoleRenderer
    """
    processors = shared_processors()
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
