"""Tests for the /api/agents endpoints and the agent service."""

import pytest

from sensei_service.services.agent_service import AgentService

from conftest import make_agent

pytestmark = pytest.mark.asyncio


async def test_list_agents(client, app_with_mocks):
    resp = await client.get("/api/agents/", params={"active_only": "true"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 1
    assert data["agents"][0]["display_name"] == "Ms. Tanaka"
    app_with_mocks.state.agent_service.list_agents.assert_awaited_once_with(active_only=True)


async def test_get_agent(client):
    resp = await client.get("/api/agents/agent-1")
    assert resp.status_code == 200
    assert resp.json()["id"] == "agent-1"


async def test_get_agent_missing(client, app_with_mocks):
    app_with_mocks.state.agent_service.get_agent.return_value = None
    resp = await client.get("/api/agents/nope")
    assert resp.status_code == 404


async def test_upsert_agent(client, app_with_mocks):
    resp = await client.put("/api/agents/", json=make_agent(display_name="Mr. Sato").model_dump())
    assert resp.status_code == 200
    assert resp.json()["upserted"] is True
    body = app_with_mocks.state.agent_service.upsert_agent.await_args.args[0]
    assert body.display_name == "Mr. Sato"


async def test_delete_agent(client):
    resp = await client.delete("/api/agents/agent-1")
    assert resp.json() == {"deleted": 1}


async def test_agents_without_service(client_no_db):
    assert (await client_no_db.get("/api/agents/")).status_code == 503


# ---------------------------------------------------------------------------
# AgentService against the in-memory store
# ---------------------------------------------------------------------------

async def test_agent_service_roundtrip(memory_store):
    svc = AgentService(memory_store)
    await svc.upsert_agent(make_agent(id="b", display_name="Mr. Sato"))
    await svc.upsert_agent(make_agent(id="a", display_name="Ms. Tanaka", is_active=False))

    assert (await svc.get_agent("b")).display_name == "Mr. Sato"
    assert await svc.get_agent("missing") is None
    assert [a.id for a in await svc.list_agents()] == ["b", "a"]
    assert [a.id for a in await svc.list_agents(active_only=True)] == ["b"]

    assert await svc.delete_agent("a") == {"deleted": 1}
    assert await svc.delete_agent("a") == {"deleted": 0}


async def test_agent_service_skips_malformed(memory_store):
    await memory_store.put("agents", "broken", {"id": "broken"})
    svc = AgentService(memory_store)
    assert await svc.get_agent("broken") is None
    assert await svc.list_agents() == []
