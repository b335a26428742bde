from fastapi import APIRouter, Request

from ..db.schema import ALL_TABLES, check_tables_exist, get_schema_version

router = APIRouter()


@router.get("/api/health")
async def health(request: Request):
    pool = request.app.state.pool
    settings = request.app.state.settings
    store = request.app.state.store
    janitor = request.app.state.janitor
    completion_service = request.app.state.completion_service

    pool_info = {"min": 0, "max": 0, "busy": 0, "open": 0}
    if pool:
        pool_info = {
            "min": pool.min,
            "max": pool.max,
            "busy": pool.busy,
            "open": pool.opened,
        }

    tables = {}
    schema_version = "unknown"
    if pool:
        try:
            tables = await check_tables_exist(pool)
        except Exception:
            tables = {t: False for t in ALL_TABLES}
        schema_version = await get_schema_version(pool)

    completion = {"available": False, "active_keys": 0, "today_requests": 0}
    if completion_service:
        stats = completion_service.usage_stats()
        completion = {
            "available": stats["active_keys"] > 0,
            "active_keys": stats["active_keys"],
            "today_requests": stats["today_requests"],
            "model": stats["model"],
        }

    return {
        "status": "ok",
        "store": {
            "backend": settings.store_backend,
            "available": store is not None,
        },
        "pool": pool_info,
        "tables": tables,
        "schema_version": schema_version,
        "janitor": {"running": bool(janitor and janitor.is_running)},
        "completion": completion,
    }
