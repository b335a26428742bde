"""Tests for bearer token authentication middleware."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sensei_service.config import SenseiSettings


pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def app_with_token(app_no_db):
    """FastAPI app with bearer token required."""
    app_no_db.state.settings = SenseiSettings(
        store_backend="memory",
        sensei_service_token="test-secret-token",
    )
    yield app_no_db


@pytest_asyncio.fixture
async def client_with_token(app_with_token):
    transport = ASGITransport(app=app_with_token)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_request_without_token_is_rejected(client_with_token):
    """Requests without Authorization header are rejected when token is set."""
    resp = await client_with_token.get("/api/health")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Unauthorized"


async def test_request_with_wrong_token_is_rejected(client_with_token):
    """Requests with wrong token are rejected."""
    resp = await client_with_token.get(
        "/api/health",
        headers={"Authorization": "Bearer wrong-token"},
    )
    assert resp.status_code == 401


async def test_request_with_correct_token_is_allowed(client_with_token):
    """Requests with correct token are allowed through."""
    resp = await client_with_token.get(
        "/api/health",
        headers={"Authorization": "Bearer test-secret-token"},
    )
    assert resp.status_code == 200


async def test_no_token_config_allows_all(client_no_db):
    """When no token is configured, all requests are allowed."""
    resp = await client_no_db.get("/api/health")
    assert resp.status_code == 200
