"""Tests for health, readiness and correlation id handling."""

import uuid

import pytest

pytestmark = pytest.mark.integration


def test_health(api_client):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "fleet-build-tracker"}


def test_health_returns_503_while_shutting_down(api_client):
    api_client.app.state.shutting_down = True

    response = api_client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["status"] == "shutting_down"


def test_ready_checks_database_and_redis(api_client):
    response = api_client.get("/api/ready")

    assert response.status_code == 200
    assert response.json()["checks"] == {"database": True, "redis": True}


def test_database_health_reports_counts(api_client):
    api_client.post("/api/drones", json={"serial": "S1", "model": "G1-M"})
    item_count = api_client.get("/api/weight-model").json()["item_count"]

    body = api_client.get("/api/health/database").json()

    assert body["status"] == "healthy"
    assert body["counts"]["drones"] == 1
    assert body["counts"]["item_definitions"] == item_count


def test_response_includes_correlation_id(api_client):
    response = api_client.get("/api/health")
    uuid.UUID(response.headers["x-request-id"])


def test_custom_correlation_id_echoed(api_client):
    custom_id = str(uuid.uuid4())

    response = api_client.get("/api/health", headers={"X-Request-ID": custom_id})

    assert response.headers["x-request-id"] == custom_id


def test_error_debug_id_differs_per_request(api_client):
    first = api_client.get("/api/drones/S404").json()["debug_id"]
    second = api_client.get("/api/drones/S404").json()["debug_id"]

    assert first != second
