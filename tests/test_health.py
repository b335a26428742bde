"""Tests for the /api/health endpoint."""

import pytest


pytestmark = pytest.mark.asyncio


async def test_health_with_mocked_services(client):
    """Health endpoint returns expected structure when services are up."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200

    data = resp.json()
    assert data["status"] == "ok"

    pool = data["pool"]
    assert set(pool) == {"min", "max", "busy", "open"}

    assert data["store"]["available"] is True
    assert data["janitor"]["running"] is True

    completion = data["completion"]
    assert completion["available"] is True
    assert completion["active_keys"] == 2
    assert completion["today_requests"] == 4

    assert "tables" in data
    assert "schema_version" in data


async def test_health_without_store(client_no_db):
    """Health endpoint returns degraded info when nothing is wired up."""
    resp = await client_no_db.get("/api/health")
    assert resp.status_code == 200

    data = resp.json()
    assert data["status"] == "ok"
    assert data["pool"]["min"] == 0
    assert data["pool"]["max"] == 0
    assert data["store"]["available"] is False
    assert data["janitor"]["running"] is False
    assert data["completion"]["available"] is False


async def test_health_returns_correct_pool_stats(client, app_with_mocks):
    """Pool stats reflect the mock pool values."""
    resp = await client.get("/api/health")
    data = resp.json()

    mock_pool = app_with_mocks.state.pool
    assert data["pool"]["min"] == mock_pool.min
    assert data["pool"]["max"] == mock_pool.max
    # Mock cursor reports no tables
    assert data["tables"] == {"SENSEI_META": False, "SENSEI_DOCUMENTS": False}
    assert data["schema_version"] == "unknown"
