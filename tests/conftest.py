"""Test configuration and shared fixtures for Sensei service tests.

API tests run against mocked services; cache and janitor tests use the
in-memory document store with a controllable clock.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sensei_service.config import SenseiSettings
from sensei_service.db.memory_store import MemoryDocumentStore
from sensei_service.models.agents import AgentProfile
from sensei_service.models.cache import CachedMessage, CacheStats, ConversationCache
from sensei_service.models.chat import ChatResponse
from sensei_service.services.cache_service import ConversationCacheService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_settings(**overrides) -> SenseiSettings:
    defaults = {
        "store_backend": "memory",
        "oracle_mode": "freepdb",
        "oracle_user": "test",
        "oracle_password": "test",
        "oracle_pool_min": 1,
        "oracle_pool_max": 2,
        "gemini_api_keys": "",
        "auto_init": False,
        "auto_cleanup": False,
    }
    defaults.update(overrides)
    return SenseiSettings(**defaults)


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 4, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_agent(**overrides) -> AgentProfile:
    data = {
        "id": "agent-1",
        "display_name": "Ms. Tanaka",
        "personality": "Calm, patient and encouraging",
        "specialties": ["mathematics", "career guidance"],
        "greeting": "Hello! How are you today?",
    }
    data.update(overrides)
    return AgentProfile(**data)


def _cache_doc() -> ConversationCache:
    return ConversationCache(
        agent_id="agent-1",
        session_id="sess-1",
        messages=[
            CachedMessage(
                id="user_1", text="hello", sender="user",
                timestamp="2026-04-01T09:00:00.000Z", importance="low", token_estimate=8,
            ),
        ],
        total_tokens=8,
        last_updated="2026-04-01T09:00:00.000Z",
        expires_at="2026-04-01T09:30:00.000Z",
    )


# ---------------------------------------------------------------------------
# Mock pool
# ---------------------------------------------------------------------------

class MockCursor:
    def __init__(self, rows=None, rowcount=0):
        self._rows = rows or []
        self.rowcount = rowcount
        self.executed = []

    async def execute(self, sql, params=None):
        self.executed.append((sql, params))

    async def fetchall(self):
        return self._rows

    async def fetchone(self):
        return self._rows[0] if self._rows else None


class MockConnection:
    def __init__(self, cursor=None):
        self._cursor = cursor or MockCursor()
        self.commits = 0

    def cursor(self):
        return self._cursor

    async def commit(self):
        self.commits += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class MockPool:
    def __init__(self, cursor=None):
        self.min = 1
        self.max = 2
        self.busy = 0
        self.opened = 1
        self._conn = MockConnection(cursor)

    def acquire(self):
        return self._conn

    async def close(self):
        pass


# ---------------------------------------------------------------------------
# Mock services
# ---------------------------------------------------------------------------

def make_mock_chat_service():
    svc = AsyncMock()
    svc.send_message = AsyncMock(return_value=ChatResponse(
        response="Let's look at it together.",
        agent_id="agent-1",
        timestamp="2026-04-01T09:00:01.000Z",
        message_type="support",
        recommended_length="medium",
    ))
    return svc


def make_mock_cache_service():
    svc = AsyncMock()
    svc.get = AsyncMock(return_value=_cache_doc())
    svc.delete = AsyncMock(return_value=True)
    svc.stats = AsyncMock(return_value=CacheStats(total_caches=3, active_caches=2, expired_caches=1))
    svc.format_history = MagicMock(return_value="● [04/01 18:00] Student: hello")
    return svc


def make_mock_agent_service():
    svc = AsyncMock()
    svc.get_agent = AsyncMock(return_value=make_agent())
    svc.list_agents = AsyncMock(return_value=[make_agent()])
    svc.upsert_agent = AsyncMock(return_value={"agent_id": "agent-1", "upserted": True})
    svc.delete_agent = AsyncMock(return_value={"deleted": 1})
    return svc


def make_mock_completion_service():
    svc = MagicMock()
    svc.complete = AsyncMock(return_value="Let's look at it together.")
    svc.usage_stats = MagicMock(return_value={
        "total_requests": 10,
        "today_requests": 4,
        "active_keys": 2,
        "total_keys": 3,
        "model": "gemini-1.5-flash",
    })
    return svc


def make_mock_janitor():
    janitor = MagicMock()
    janitor.is_running = True
    janitor.run_cleanup = AsyncMock(return_value={"deleted": 2, "duration_ms": 3})
    return janitor


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return _make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return MemoryDocumentStore()


@pytest.fixture
def cache_service(memory_store, settings, clock):
    return ConversationCacheService(memory_store, settings, clock=clock)


@pytest.fixture
def mock_pool():
    return MockPool()


def _reset_state(app, **state):
    defaults = {
        "settings": _make_settings(),
        "pool": None,
        "store": None,
        "completion_service": None,
        "agent_service": None,
        "cache_service": None,
        "chat_service": None,
        "janitor": None,
    }
    defaults.update(state)
    for name, value in defaults.items():
        setattr(app.state, name, value)


@pytest_asyncio.fixture
async def app_no_db():
    """FastAPI app with no store. Services unavailable (503)."""
    from sensei_service.main import app

    _reset_state(app)
    yield app


@pytest_asyncio.fixture
async def app_with_mocks():
    """FastAPI app with all services mocked."""
    from sensei_service.main import app

    _reset_state(
        app,
        pool=MockPool(),
        store=MemoryDocumentStore(),
        completion_service=make_mock_completion_service(),
        agent_service=make_mock_agent_service(),
        cache_service=make_mock_cache_service(),
        chat_service=make_mock_chat_service(),
        janitor=make_mock_janitor(),
    )
    yield app


@pytest_asyncio.fixture
async def client_no_db(app_no_db):
    """AsyncClient hitting the app with no store."""
    transport = ASGITransport(app=app_no_db)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def client(app_with_mocks):
    """AsyncClient hitting the app with mocked services."""
    transport = ASGITransport(app=app_with_mocks)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
