"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from planlink.core.exceptions import CacheError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
def ready(request: Request):
    cache = request.app.state.cache
    if cache is not None:
        try:
            cache.ping()
        except CacheError as exc:
            return JSONResponse(status_code=503, content={"status": "degraded", "detail": str(exc)})
    if request.app.state.store is None:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return {"status": "ready"}
