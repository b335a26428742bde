from fastapi import APIRouter

from .health import router as health_router
from .init import router as init_router
from .chat import router as chat_router
from .cache import router as cache_router
from .agents import router as agents_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(init_router, tags=["init"])
api_router.include_router(chat_router, tags=["chat"])
api_router.include_router(cache_router, tags=["cache"])
api_router.include_router(agents_router, tags=["agents"])
