# =============================================================================
# Health API
# =============================================================================
# GET /health pings both backing stores. The service reports "ok" as long
# as MongoDB answers; a missing Redis only downgrades it to "degraded",
# since the pipeline runs uncached without it.
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from finquery.config import Settings, get_settings
from finquery.models.responses import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    document_store_ok = await request.app.state.document_store.ping()
    cache_ok = await request.app.state.cache_store.ping()

    if not document_store_ok:
        status = "unavailable"
    elif not cache_ok:
        status = "degraded"
    else:
        status = "ok"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        service=settings.app_name,
        document_store=document_store_ok,
        cache=cache_ok,
    )
