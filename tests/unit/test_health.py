"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)

HEALTHY_DB = {
    "healthy": True,
    "service": "database_pool",
    "pool_stats": {"pool_size": 2, "pool_available": 2},
}


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "X-Request-ID" in response.headers


def test_request_id_is_echoed():
    response = client.get("/healthz", headers={"X-Request-ID": "trace-abc"})

    assert response.headers["X-Request-ID"] == "trace-abc"


def test_readyz_endpoint_all_services_healthy():
    with (
        patch("app.routes.health.db_health_check", new=AsyncMock(return_value=HEALTHY_DB)),
        patch("app.routes.health.cache_client.ping", new=AsyncMock(return_value=True)),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["ok"] is True
    assert data["checks"]["database"]["pool_stats"]["pool_size"] == 2
    assert data["checks"]["cache"]["ok"] is True


def test_readyz_cache_down_is_still_ready():
    """The cache is optional: the service keeps answering from the store."""
    with (
        patch("app.routes.health.db_health_check", new=AsyncMock(return_value=HEALTHY_DB)),
        patch("app.routes.health.cache_client.ping", new=AsyncMock(return_value=False)),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["cache"]["ok"] is False
    assert data["checks"]["cache"]["mode"] == "store_only"


def test_readyz_database_unhealthy():
    unhealthy = {"healthy": False, "error": "Pool not initialized"}
    with (
        patch("app.routes.health.db_health_check", new=AsyncMock(return_value=unhealthy)),
        patch("app.routes.health.cache_client.ping", new=AsyncMock(return_value=True)),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not initialized"
