"""Tests for log context processors."""

import pytest
import structlog
from asgi_correlation_id.context import correlation_id

from fleetbuild.core.logging import SERVICE_NAME, add_request_context, drone_log_context

pytestmark = pytest.mark.unit


def test_request_context_adds_service_name():
    event = add_request_context(None, "info", {"event": "drone_registered"})

    assert event["service"] == SERVICE_NAME
    assert "correlation_id" not in event


def test_request_context_adds_correlation_id():
    token = correlation_id.set("req-123")
    try:
        event = add_request_context(None, "info", {"event": "drone_registered"})
    finally:
        correlation_id.reset(token)

    assert event["correlation_id"] == "req-123"


def test_drone_context_is_bound_inside_block_only():
    with drone_log_context("S1", item_id="item-9"):
        merged = structlog.contextvars.merge_contextvars(None, "info", {"event": "item_status_changed"})

    assert merged["drone_serial"] == "S1"
    assert merged["item_id"] == "item-9"
    assert "drone_serial" not in structlog.contextvars.get_contextvars()


def test_explicit_keys_win_over_bound_context():
    with drone_log_context("S1"):
        merged = structlog.contextvars.merge_contextvars(None, "info", {"drone_serial": "S7"})

    assert merged["drone_serial"] == "S7"
