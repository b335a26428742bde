from fastapi import APIRouter, Request, HTTPException

from ..errors import CacheError, StoreUnavailableError

router = APIRouter(prefix="/api/cache")


def _get_cache_service(request: Request):
    svc = request.app.state.cache_service
    if not svc:
        raise HTTPException(status_code=503, detail="Cache service not available")
    return svc


@router.get("/stats")
async def cache_stats(request: Request):
    svc = _get_cache_service(request)
    try:
        stats = await svc.stats()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return stats.model_dump()


@router.post("/cleanup")
async def run_cleanup(request: Request):
    janitor = request.app.state.janitor
    if not janitor:
        raise HTTPException(status_code=503, detail="Cache janitor not available")
    return await janitor.run_cleanup()


@router.get("/{agent_id}/{session_id}")
async def get_cache(request: Request, agent_id: str, session_id: str):
    svc = _get_cache_service(request)
    cache = await svc.get(agent_id, session_id)
    if not cache:
        raise HTTPException(status_code=404, detail="Cache not found")
    return cache.to_document()


@router.get("/{agent_id}/{session_id}/history")
async def get_history(request: Request, agent_id: str, session_id: str):
    svc = _get_cache_service(request)
    cache = await svc.get(agent_id, session_id)
    messages = cache.messages if cache else []
    return {"history": svc.format_history(messages), "count": len(messages)}


@router.delete("/{agent_id}/{session_id}")
async def delete_cache(request: Request, agent_id: str, session_id: str):
    svc = _get_cache_service(request)
    try:
        deleted = await svc.delete(agent_id, session_id)
    except CacheError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"deleted": 1 if deleted else 0}
