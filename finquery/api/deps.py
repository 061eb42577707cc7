# =============================================================================
# API Dependencies — Pipeline Objects from Application State
# =============================================================================
#
# The lifespan handler in finquery/main.py builds the orchestrator and its
# collaborators once and stores them on app.state. Route handlers reach
# them through these dependencies, which tests can replace with
# app.dependency_overrides or by setting app.state directly.
# =============================================================================

from __future__ import annotations

from fastapi import Request

from finquery.agents.orchestrator import QueryOrchestrator
from finquery.services.cache import ResponseCacheManager


def get_orchestrator(request: Request) -> QueryOrchestrator:
    return request.app.state.orchestrator


def get_cache_manager(request: Request) -> ResponseCacheManager:
    return request.app.state.cache
