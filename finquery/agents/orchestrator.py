# =============================================================================
# Query Orchestrator — LangGraph Pipeline Assembly
# =============================================================================
#
# Wires cache lookup, translation, tenant isolation, execution, synthesis
# and cache store into a LangGraph StateGraph:
#
#   START ──▶ cache_lookup ──(hit)──▶ END
#                  │
#                (miss)
#                  ▼
#             translate ──▶ isolate ──▶ execute ──▶ synthesize ──▶ cache_store ──▶ END
#
# Each edge after cache_lookup awaits an external call that depends on the
# previous step's output; nothing holds a lock across an await, so any
# number of requests run concurrently on one compiled graph.
#
# FAILURE POLICY:
#   - Input validation runs before the graph, i.e. before any I/O.
#   - translate / isolate / execute / synthesize failures propagate out of
#     process_query() unchanged. No retries, no partial answers.
#   - cache_lookup / cache_store never fail; the cache manager is fail-open.
#
# DESIGN DECISION: Dependencies are injected into the orchestrator and the
# graph is compiled per instance. Tests build one with fakes; the FastAPI
# lifespan builds the production one.
#
# DESIGN DECISION: No single-flight. Two identical questions racing from
# the same tenant both miss and both call the LLM. Only cost suffers.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from finquery.agents.synthesizer import synthesize
from finquery.agents.translator import translate
from finquery.config import settings
from finquery.errors import ValidationError
from finquery.models.query import QueryResult, StructuredQuery, Tenant, TenantContext
from finquery.observability import record_cache_lookup, stage
from finquery.services.cache import ResponseCacheManager
from finquery.services.executor import QueryExecutor
from finquery.services.isolation import enforce
from finquery.services.llm import LLMProvider
from finquery.services.schema import SCHEMA_DESCRIPTION, USERS

logger = logging.getLogger(__name__)


class QueryState(TypedDict, total=False):
    """State flowing through the graph. Nodes return partial updates."""

    # --- Input ---
    question: str
    tenant: TenantContext

    # --- Intermediate ---
    cache_key: str
    query: StructuredQuery          # untrusted, straight from the LLM
    scoped_query: StructuredQuery   # after the isolation guard
    rows: list[dict[str, Any]]
    answer: str

    # --- Output (set by cache_lookup on a hit, cache_store on a miss) ---
    result: QueryResult | None


class QueryOrchestrator:
    """Top-level coordinator for one question → one QueryResult."""

    def __init__(
        self,
        cache: ResponseCacheManager,
        executor: QueryExecutor,
        llm: LLMProvider,
        schema_description: str = SCHEMA_DESCRIPTION,
        max_question_length: int | None = None,
    ) -> None:
        self._cache = cache
        self._executor = executor
        self._llm = llm
        self._schema_description = schema_description
        self._max_length = max_question_length or settings.query_max_length
        self._graph = self._build_graph()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def process_query(
        self,
        question: str,
        tenant_id: str,
        tenant_name: str,
    ) -> QueryResult:
        """
        Answer `question` for one tenant, from cache when possible.

        Raises:
            ValidationError: before any external call, for bad input.
            FinQueryError subclasses / LLM SDK errors: a pipeline step failed.
        """
        question, tenant = self._validate(question, tenant_id, tenant_name)

        logger.info(
            "Processing query for tenant %s: '%s'",
            tenant.tenant_id, question[:80],
        )

        final: QueryState = await self._graph.ainvoke(
            {"question": question, "tenant": tenant},
        )
        return final["result"]

    async def list_tenants(self) -> list[Tenant]:
        """Every row of the users collection, unfiltered."""
        rows = await self._executor.execute(
            StructuredQuery(collection=USERS, operation="find", filter={}),
        )
        tenants = [
            Tenant(id=str(row["_id"]), name=str(row.get("name", "")))
            for row in rows
            if "_id" in row
        ]
        return sorted(tenants, key=lambda t: t.name)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _validate(
        self, question: Any, tenant_id: Any, tenant_name: Any,
    ) -> tuple[str, TenantContext]:
        if not isinstance(question, str):
            raise ValidationError("Question must be a string")
        if not question.strip():
            raise ValidationError("Question cannot be empty")
        if len(question) > self._max_length:
            raise ValidationError(
                f"Question is too long (max {self._max_length} characters)"
            )
        if not _present(tenant_id) or not _present(tenant_name):
            raise ValidationError(
                "tenant_id and tenant_name are required. Please select a tenant."
            )
        return question.strip(), TenantContext(
            tenant_id=tenant_id, tenant_name=tenant_name,
        )

    # -------------------------------------------------------------------------
    # Graph Nodes
    # -------------------------------------------------------------------------

    async def _cache_lookup(self, state: QueryState) -> dict:
        tenant = state["tenant"]
        async with stage("cache_lookup", tenant.tenant_id):
            key = self._cache.key(tenant.tenant_id, state["question"])
            cached = await self._cache.get(key)
        record_cache_lookup(tenant.tenant_id, cached is not None)

        if cached is None:
            return {"cache_key": key, "result": None}
        return {
            "cache_key": key,
            "result": cached.model_copy(update={"from_cache": True}),
        }

    async def _translate(self, state: QueryState) -> dict:
        tenant = state["tenant"]
        async with stage("translate", tenant.tenant_id):
            query = await translate(
                self._schema_description,
                tenant.tenant_id,
                state["question"],
                self._llm,
            )
        return {"query": query}

    async def _isolate(self, state: QueryState) -> dict:
        tenant = state["tenant"]
        async with stage("isolate", tenant.tenant_id):
            scoped = enforce(state["query"], tenant.tenant_id)
        logger.debug("Scoped query: %s", scoped.model_dump_json())
        return {"scoped_query": scoped}

    async def _execute(self, state: QueryState) -> dict:
        tenant = state["tenant"]
        async with stage("execute", tenant.tenant_id):
            rows = await self._executor.execute(state["scoped_query"])
        return {"rows": rows}

    async def _synthesize(self, state: QueryState) -> dict:
        tenant = state["tenant"]
        async with stage("synthesize", tenant.tenant_id):
            answer = await synthesize(
                tenant.tenant_name,
                state["question"],
                state["rows"],
                self._llm,
            )
        return {"answer": answer}

    async def _cache_store(self, state: QueryState) -> dict:
        tenant = state["tenant"]
        result = QueryResult(
            question=state["question"],
            tenant=tenant,
            answer=state["answer"],
            executed_query=state["scoped_query"],
            retrieved_data=state["rows"],
            from_cache=False,
        )
        async with stage("cache_store", tenant.tenant_id):
            await self._cache.put(state["cache_key"], result)
        return {"result": result}

    @staticmethod
    def _route_after_lookup(state: QueryState) -> str:
        return "hit" if state.get("result") is not None else "miss"

    # -------------------------------------------------------------------------
    # Graph Assembly
    # -------------------------------------------------------------------------

    def _build_graph(self):
        builder = StateGraph(QueryState)
        builder.add_node("cache_lookup", self._cache_lookup)
        builder.add_node("translate", self._translate)
        builder.add_node("isolate", self._isolate)
        builder.add_node("execute", self._execute)
        builder.add_node("synthesize", self._synthesize)
        builder.add_node("cache_store", self._cache_store)

        builder.add_edge(START, "cache_lookup")
        builder.add_conditional_edges(
            "cache_lookup",
            self._route_after_lookup,
            {"hit": END, "miss": "translate"},
        )
        builder.add_edge("translate", "isolate")
        builder.add_edge("isolate", "execute")
        builder.add_edge("execute", "synthesize")
        builder.add_edge("synthesize", "cache_store")
        builder.add_edge("cache_store", END)

        return builder.compile()


def _present(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())
