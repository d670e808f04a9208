"""Simulated real-time payloads: drone telemetry, system health and alerts.

Pure generators driven by an injected random.Random so output is
reproducible under a fixed seed.
"""

import random
from datetime import UTC, datetime
from typing import Any

DRONE_UPDATE_KINDS = ("status", "build_progress", "system_health")
ALERT_TYPES = ("warning", "error", "info", "success")
ALERT_SYSTEMS = ("Power", "Avionics", "Propulsion", "Airframe")

ALERT_TEMPLATES = (
    ("System Performance Warning", "System performance has degraded and requires attention."),
    ("Build Milestone Completed", "Build milestone successfully completed ahead of schedule."),
    ("Component Installation Alert", "Component installation requires manual verification."),
    ("Maintenance Schedule Update", "Scheduled maintenance window has been updated."),
    ("Battery Level Critical", "Battery level has dropped below critical threshold."),
    ("Network Connectivity Issue", "Network connectivity issues detected on primary interface."),
    ("Temperature Threshold Exceeded", "System temperature has exceeded normal operating range."),
    ("Assembly Quality Check Passed", "Assembly quality check has passed with no issues found."),
)

HEALTH_NODES = (
    ("SYS-001", "Command Server Alpha", 0.9, "warning"),
    ("SYS-002", "Database Cluster Beta", 0.95, "maintenance"),
)


def _now(now: datetime | None) -> str:
    return (now or datetime.now(UTC)).isoformat()


def simulate_drone_data(kind: str, rng: random.Random) -> dict[str, Any]:
    if kind == "status":
        return {
            "status": "maintenance" if rng.random() > 0.8 else "operational",
            "battery": rng.randrange(100),
            "location": {
                "lat": 37.7749 + (rng.random() - 0.5) * 0.1,
                "lng": -122.4194 + (rng.random() - 0.5) * 0.1,
            },
        }
    if kind == "build_progress":
        return {
            "overall_completion": rng.randrange(100),
            "current_assembly": rng.choice(("Power Distribution", "Flight Control", "Wire Harnessing")),
            "recent_activity": "Assembly work in progress",
        }
    if kind == "system_health":
        return {
            "cpu": rng.randrange(100),
            "memory": rng.randrange(100),
            "storage": rng.randrange(100),
            "temperature": rng.randrange(50) + 20,
            "uptime": rng.randrange(1_000_000),
        }
    return {}


def simulate_drone_update(serial: str, rng: random.Random, now: datetime | None = None) -> dict[str, Any]:
    kind = rng.choice(DRONE_UPDATE_KINDS)
    return {
        "type": "drone_update",
        "serial": serial,
        "kind": kind,
        "data": simulate_drone_data(kind, rng),
        "timestamp": _now(now),
    }


def simulate_health_overview(rng: random.Random, now: datetime | None = None) -> dict[str, Any]:
    systems = []
    for node_id, name, healthy_odds, degraded_status in HEALTH_NODES:
        systems.append({
            "id": node_id,
            "name": name,
            "health": rng.randrange(100),
            "status": degraded_status if rng.random() > healthy_odds else "online",
            "cpu": rng.randrange(100),
            "memory": rng.randrange(100),
        })
    return {"type": "system_health", "systems": systems, "timestamp": _now(now)}


def simulate_alert(
    rng: random.Random,
    serials: list[str],
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.now(UTC)
    title, message = rng.choice(ALERT_TEMPLATES)
    return {
        "type": "system_alert",
        "id": f"alert-{int(now.timestamp() * 1000)}-{rng.randrange(10_000)}",
        "alert_type": rng.choice(ALERT_TYPES),
        "title": title,
        "message": message,
        "drone_serial": rng.choice(serials) if serials and rng.random() > 0.5 else None,
        "system_name": rng.choice(ALERT_SYSTEMS) if rng.random() > 0.5 else None,
        "timestamp": now.isoformat(),
        "acknowledged": False,
    }
