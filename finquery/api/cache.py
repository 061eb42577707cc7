# =============================================================================
# Cache API — Inspect and Invalidate Cached Answers
# =============================================================================
#
#   GET    /api/cache/stats              → connection state, entry count, TTL
#   DELETE /api/cache[?tenant_id=<id>]   → drop all entries, or one tenant's
#
# Both endpoints inherit the cache manager's fail-open behaviour: with
# Redis down, stats report connected=false and DELETE reports 0.
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from finquery.api.deps import get_cache_manager
from finquery.models.responses import CacheInvalidateResponse, CacheStatsResponse
from finquery.services.cache import ALL_KEYS_PATTERN, ResponseCacheManager, tenant_pattern

router = APIRouter(prefix="/api/cache", tags=["Cache"])


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(
    cache: ResponseCacheManager = Depends(get_cache_manager),
) -> CacheStatsResponse:
    return CacheStatsResponse(**await cache.stats())


@router.delete("", response_model=CacheInvalidateResponse)
async def invalidate_cache(
    tenant_id: str | None = Query(
        default=None,
        description="Only drop this tenant's entries. Omit to drop all.",
    ),
    cache: ResponseCacheManager = Depends(get_cache_manager),
) -> CacheInvalidateResponse:
    pattern = tenant_pattern(tenant_id) if tenant_id else ALL_KEYS_PATTERN
    count = await cache.invalidate(pattern)
    return CacheInvalidateResponse(pattern=pattern, invalidated=count)
