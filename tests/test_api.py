# =============================================================================
# API Tests — FastAPI Routes over Fake Stores
# =============================================================================
#
# The app is built without its lifespan, and app.state is populated with
# in-memory stores and a scripted LLM, so no MongoDB, Redis or API key is
# needed.
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from fakes import (
    TENANT_A,
    FailingDocumentStore,
    FakeCacheStore,
    FakeDocumentStore,
    UnreachableCacheStore,
    scripted_llm,
)
from finquery.agents.orchestrator import QueryOrchestrator
from finquery.config import Settings, get_settings
from finquery.main import create_app
from finquery.services.cache import ResponseCacheManager, make_key
from finquery.services.executor import QueryExecutor

FOOD_QUERY = {
    "collection": "bank_transactions",
    "operation": "find",
    "filter": {"category": "food"},
}


def _client(llm=None, document_store=None, cache_store=None) -> TestClient:
    app = create_app(use_lifespan=False)
    document_store = document_store or FakeDocumentStore()
    cache_store = cache_store or FakeCacheStore()
    cache = ResponseCacheManager(cache_store, enabled=True)

    app.state.document_store = document_store
    app.state.cache_store = cache_store
    app.state.cache = cache
    app.state.orchestrator = QueryOrchestrator(
        cache=cache,
        executor=QueryExecutor(document_store),
        llm=llm or AsyncMock(),
    )
    return TestClient(app)


def _body(question="How much did I spend on food?", **overrides):
    body = {
        "question": question,
        "tenant_id": TENANT_A,
        "tenant_name": "Rahul Sharma",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# POST /api/query
# ---------------------------------------------------------------------------


class TestQueryEndpoint:
    def test_success(self):
        client = _client(scripted_llm(FOOD_QUERY, "You spent ₹4,300 on food."))
        response = client.post("/api/query", json=_body())

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "You spent ₹4,300 on food."
        assert data["from_cache"] is False
        assert data["tenant"] == {"tenant_id": TENANT_A, "tenant_name": "Rahul Sharma"}
        assert data["executed_query"]["filter"]["tenant_id"] == TENANT_A
        assert len(data["retrieved_data"]) == 2
        assert isinstance(data["processing_time_ms"], int)

    def test_second_request_is_cached(self):
        client = _client(scripted_llm(FOOD_QUERY, "You spent ₹4,300 on food."))
        client.post("/api/query", json=_body())
        response = client.post("/api/query", json=_body())

        assert response.status_code == 200
        assert response.json()["from_cache"] is True

    def test_question_too_long_is_400(self):
        llm = AsyncMock()
        client = _client(llm)
        response = client.post("/api/query", json=_body("x" * 501))

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Bad Request"
        assert "too long" in data["message"]
        assert "processing_time_ms" in data
        llm.complete.assert_not_called()

    def test_blank_tenant_is_400(self):
        response = _client().post("/api/query", json=_body(tenant_id="  "))
        assert response.status_code == 400
        assert "select a tenant" in response.json()["message"]

    @pytest.mark.parametrize("missing", ["question", "tenant_id", "tenant_name"])
    def test_missing_field_is_400(self, missing):
        body = _body()
        del body[missing]
        response = _client().post("/api/query", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Bad Request"
        assert missing in data["message"]
        assert isinstance(data["processing_time_ms"], int)

    def test_malformed_body_reports_elapsed_time(self):
        client = _client()
        with patch("finquery.main.time") as clock:
            clock.monotonic.side_effect = [100.0, 100.25]
            response = client.post("/api/query", json={"question": "x"})

        assert response.status_code == 400
        data = response.json()
        assert "tenant_id" in data["message"]
        assert data["processing_time_ms"] == 250

    def test_pipeline_failure_is_generic_500(self):
        client = _client(
            scripted_llm(FOOD_QUERY), document_store=FailingDocumentStore(),
        )
        response = client.post("/api/query", json=_body())

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Query Processing Failed"
        assert data["message"] == "An error occurred while processing your query"
        assert "connection reset" not in response.text
        assert "processing_time_ms" in data

    def test_unparseable_translation_is_500(self):
        client = _client(scripted_llm("no idea"))
        response = client.post("/api/query", json=_body())
        assert response.status_code == 500


# ---------------------------------------------------------------------------
# Tenants and examples
# ---------------------------------------------------------------------------


class TestTenantsEndpoint:
    def test_lists_tenants_by_name(self):
        response = _client().get("/api/tenants")
        assert response.status_code == 200
        names = [t["name"] for t in response.json()["tenants"]]
        assert names == ["Priya Patel", "Rahul Sharma"]

    def test_store_failure_is_500(self):
        response = _client(document_store=FailingDocumentStore()).get("/api/tenants")
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch tenants"


class TestExamplesEndpoint:
    def test_three_categories(self):
        response = _client().get("/api/query/examples")
        assert response.status_code == 200
        categories = [c["category"] for c in response.json()["examples"]]
        assert categories == [
            "Bank Transactions", "Mutual Fund Holdings", "Equity Holdings",
        ]


# ---------------------------------------------------------------------------
# Cache endpoints
# ---------------------------------------------------------------------------


class TestCacheEndpoints:
    def test_stats(self):
        client = _client(scripted_llm(FOOD_QUERY, "answer"))
        client.post("/api/query", json=_body())

        data = client.get("/api/cache/stats").json()
        assert data["connected"] is True
        assert data["enabled"] is True
        assert data["cached_queries"] == 1

    def test_stats_with_redis_down(self):
        data = _client(cache_store=UnreachableCacheStore()).get("/api/cache/stats").json()
        assert data["connected"] is False
        assert data["cached_queries"] is None
        assert data["error"]

    def test_invalidate_all(self):
        cache_store = FakeCacheStore()
        cache_store.entries[make_key(TENANT_A, "q1")] = "{}"
        cache_store.entries[make_key("tenant-b", "q1")] = "{}"

        response = _client(cache_store=cache_store).delete("/api/cache")
        assert response.json() == {"pattern": "query:*", "invalidated": 2}
        assert cache_store.entries == {}

    def test_invalidate_one_tenant(self):
        cache_store = FakeCacheStore()
        cache_store.entries[make_key(TENANT_A, "q1")] = "{}"
        other = make_key("tenant-b", "q1")
        cache_store.entries[other] = "{}"

        response = _client(cache_store=cache_store).delete(
            "/api/cache", params={"tenant_id": TENANT_A},
        )
        assert response.json() == {
            "pattern": f"query:{TENANT_A}:*", "invalidated": 1,
        }
        assert list(cache_store.entries) == [other]


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    def test_ok(self):
        data = _client().get("/health").json()
        assert data["status"] == "ok"
        assert data["document_store"] is True
        assert data["cache"] is True

    def test_degraded_without_redis(self):
        data = _client(cache_store=UnreachableCacheStore()).get("/health").json()
        assert data["status"] == "degraded"
        assert data["cache"] is False

    def test_reports_configured_version(self):
        client = _client()
        client.app.dependency_overrides[get_settings] = lambda: Settings(
            app_name="finquery-test", app_version="9.9.9",
        )
        data = client.get("/health").json()
        assert data["service"] == "finquery-test"
        assert data["version"] == "9.9.9"


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


class TestLifespan:
    def test_clients_are_injected_and_closed(self):
        from finquery import main

        llm = AsyncMock()
        with patch.object(
            main, "MongoDocumentStore", return_value=AsyncMock(),
        ) as mongo_cls, patch.object(
            main, "RedisCacheStore", return_value=AsyncMock(),
        ) as redis_cls, patch.object(
            main, "create_llm_provider", return_value=llm,
        ):
            app = create_app(use_lifespan=False)

            async def _startup_and_shutdown():
                async with main.lifespan(app):
                    assert app.state.orchestrator._llm is llm
                    llm.close.assert_not_awaited()

            asyncio.run(_startup_and_shutdown())

        llm.close.assert_awaited_once()
        redis_cls.return_value.close.assert_awaited_once()
        mongo_cls.return_value.close.assert_awaited_once()
