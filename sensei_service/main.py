import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import SenseiSettings
from .db.connection import OracleConnectionManager
from .db.document_store import OracleDocumentStore
from .db.memory_store import MemoryDocumentStore
from .db.schema import init_schema
from .services.agent_service import AgentService
from .services.cache_service import ConversationCacheService
from .services.chat_service import ChatService
from .services.completion_service import CompletionService
from .services.janitor import CacheJanitor
from .api import api_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = SenseiSettings()
    app.state.settings = settings

    conn_mgr = None
    pool = None
    store = None
    if settings.uses_oracle:
        conn_mgr = OracleConnectionManager(settings)
        try:
            pool = await conn_mgr.create_pool()
            store = OracleDocumentStore(pool)
            logger.info("Oracle connection pool created (min=%d, max=%d)", settings.oracle_pool_min, settings.oracle_pool_max)
        except Exception as e:
            logger.error("Failed to create Oracle connection pool: %s", e)
    else:
        store = MemoryDocumentStore()
        logger.info("Using in-memory document store")
    app.state.pool = pool
    app.state.store = store

    # Completion does not depend on the store; the chat flow does
    completion_service = CompletionService(settings)
    agent_service = AgentService(store, settings.agent_collection) if store else None
    cache_service = ConversationCacheService(store, settings) if store else None
    chat_service = ChatService(agent_service, cache_service, completion_service) if store else None
    janitor = CacheJanitor(
        cache_service,
        interval=settings.cleanup_interval_seconds,
        initial_delay=settings.cleanup_initial_delay_seconds,
    ) if cache_service else None

    app.state.completion_service = completion_service
    app.state.agent_service = agent_service
    app.state.cache_service = cache_service
    app.state.chat_service = chat_service
    app.state.janitor = janitor

    if settings.auto_init and pool:
        try:
            result = await init_schema(pool)
            logger.info("Auto-init schema: %s", result)
        except Exception as e:
            logger.warning("Auto-init failed (run POST /api/init manually): %s", e)

    if janitor and settings.auto_cleanup:
        janitor.start_auto_cleanup()

    yield

    # Shutdown
    if chat_service:
        await chat_service.drain()
    if janitor:
        await janitor.shutdown()
    if cache_service:
        await cache_service.drain()
    if conn_mgr and pool:
        await conn_mgr.close_pool()
        logger.info("Oracle connection pool closed")


app = FastAPI(
    title="Sensei Service",
    version="0.1.0",
    description="Conversation-context cache and response-length control for AI teacher chat",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class BearerTokenMiddleware(BaseHTTPMiddleware):
    """Optional bearer token authentication.

    When SENSEI_SERVICE_TOKEN is set, all requests must include
    a matching Authorization: Bearer <token> header.
    When not set, all requests are allowed (local dev mode).
    """

    async def dispatch(self, request: Request, call_next):
        token = request.app.state.settings.sensei_service_token
        if token:
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[7:] != token:
                return JSONResponse(status_code=401, content={"detail": "Unauthorized"})
        return await call_next(request)


app.add_middleware(BearerTokenMiddleware)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    settings = SenseiSettings()
    uvicorn.run(
        "sensei_service.main:app",
        host="0.0.0.0",
        port=settings.sensei_service_port,
        reload=True,
    )
