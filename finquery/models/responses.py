# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shape of data going OUT of the HTTP layer. Every failure body carries
# processing_time_ms so callers can see how long a request ran even when
# it failed.
# =============================================================================

from typing import Any

from pydantic import BaseModel, Field

from finquery.models.query import QueryResult, Tenant


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str = "ok"
    version: str
    service: str
    document_store: bool = Field(description="Document store answered a ping")
    cache: bool = Field(description="Cache store answered a ping")


class QueryResponse(QueryResult):
    """Response for POST /api/query — the QueryResult plus timing."""

    processing_time_ms: int = Field(
        description="Wall-clock time spent serving the request",
    )


class ErrorResponse(BaseModel):
    """Body returned for any failed POST /api/query."""

    error: str
    message: str
    processing_time_ms: int


class TenantListResponse(BaseModel):
    """Response for GET /api/tenants."""

    tenants: list[Tenant]


class ExampleCategory(BaseModel):
    category: str
    queries: list[str]


class ExamplesResponse(BaseModel):
    """Response for GET /api/query/examples."""

    examples: list[ExampleCategory]


class CacheStatsResponse(BaseModel):
    """Response for GET /api/cache/stats."""

    connected: bool
    enabled: bool
    cached_queries: int | None = None
    ttl_seconds: int
    error: str | None = None


class CacheInvalidateResponse(BaseModel):
    """Response for DELETE /api/cache."""

    pattern: str
    invalidated: int


def error_body(error: str, message: str, processing_time_ms: int) -> dict[str, Any]:
    return ErrorResponse(
        error=error,
        message=message,
        processing_time_ms=processing_time_ms,
    ).model_dump()
