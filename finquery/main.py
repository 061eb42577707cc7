# =============================================================================
# Application Entry Point — FastAPI App + Connection Lifecycle
# =============================================================================
#
# Run with:
#   uvicorn finquery.main:app --reload
#
# LIFECYCLE (lifespan handler):
#   startup  → connect MongoDB (required), connect Redis (optional),
#              build the LLM provider, cache manager, executor and
#              orchestrator, publish them on app.state
#   shutdown → close the LLM client, Redis, MongoDB
#
# No client handle is a module-level singleton; everything a request uses
# hangs off app.state and is reached through finquery/api/deps.py.
# =============================================================================

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from finquery.agents.orchestrator import QueryOrchestrator
from finquery.api import cache, health, query
from finquery.config import settings
from finquery.models.responses import error_body
from finquery.services.cache import RedisCacheStore, ResponseCacheManager
from finquery.services.document_store import MongoDocumentStore
from finquery.services.executor import QueryExecutor
from finquery.services.llm import create_llm_provider

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    document_store = MongoDocumentStore()
    cache_store = RedisCacheStore()

    await document_store.connect()
    await cache_store.connect()
    llm = create_llm_provider()

    cache_manager = ResponseCacheManager(cache_store)
    app.state.document_store = document_store
    app.state.cache_store = cache_store
    app.state.cache = cache_manager
    app.state.orchestrator = QueryOrchestrator(
        cache=cache_manager,
        executor=QueryExecutor(document_store),
        llm=llm,
    )
    logger.info("%s %s started", settings.app_name, settings.app_version)

    try:
        yield
    finally:
        await llm.close()
        await cache_store.close()
        await document_store.close()


async def _record_start_time(request: Request, call_next):
    request.state.start_time = time.monotonic()
    return await call_next(request)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    # Malformed bodies are user-correctable, same as pipeline validation
    fields = ", ".join(
        ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        for err in exc.errors()
    )
    start_time = getattr(request.state, "start_time", None)
    elapsed_ms = (
        int((time.monotonic() - start_time) * 1000) if start_time is not None else 0
    )
    return JSONResponse(
        status_code=400,
        content=error_body(
            "Bad Request", f"Invalid or missing fields: {fields}", elapsed_ms,
        ),
    )


def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Tests pass use_lifespan=False and populate app.state with fakes.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan if use_lifespan else None,
    )
    app.middleware("http")(_record_start_time)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.include_router(health.router)
    app.include_router(query.router)
    app.include_router(cache.router)
    return app


configure_logging()
app = create_app()
