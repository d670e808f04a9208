"""Tests for simulated real-time payloads."""

import random
from datetime import UTC, datetime

import pytest

from fleetbuild.domain.simulation import (
    ALERT_TYPES,
    DRONE_UPDATE_KINDS,
    simulate_alert,
    simulate_drone_data,
    simulate_drone_update,
    simulate_health_overview,
)

pytestmark = pytest.mark.unit

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def test_drone_update_is_reproducible():
    first = simulate_drone_update("S1", random.Random(7), NOW)
    second = simulate_drone_update("S1", random.Random(7), NOW)

    assert first == second
    assert first["type"] == "drone_update"
    assert first["serial"] == "S1"
    assert first["kind"] in DRONE_UPDATE_KINDS
    assert first["timestamp"] == NOW.isoformat()


@pytest.mark.parametrize(
    ("kind", "keys"),
    [
        ("status", {"status", "battery", "location"}),
        ("build_progress", {"overall_completion", "current_assembly", "recent_activity"}),
        ("system_health", {"cpu", "memory", "storage", "temperature", "uptime"}),
    ],
)
def test_drone_data_shapes(kind, keys):
    assert set(simulate_drone_data(kind, random.Random(1))) == keys


def test_unknown_kind_is_empty():
    assert simulate_drone_data("weather", random.Random(1)) == {}


def test_health_overview():
    overview = simulate_health_overview(random.Random(3), NOW)

    assert overview["type"] == "system_health"
    assert [s["id"] for s in overview["systems"]] == ["SYS-001", "SYS-002"]
    for system in overview["systems"]:
        assert 0 <= system["health"] < 100


def test_alert():
    alert = simulate_alert(random.Random(5), ["S1", "S2"], NOW)

    assert alert["type"] == "system_alert"
    assert alert["id"].startswith(f"alert-{int(NOW.timestamp() * 1000)}-")
    assert alert["alert_type"] in ALERT_TYPES
    assert alert["drone_serial"] in (None, "S1", "S2")
    assert alert["acknowledged"] is False


def test_alert_without_serials():
    for seed in range(10):
        assert simulate_alert(random.Random(seed), [], NOW)["drone_serial"] is None
