# =============================================================================
# Pipeline Models — Structured Query, Tenant Context, Query Result
# =============================================================================
#
# These models travel between the pipeline stages and into the cache.
# They are SEPARATE from the HTTP request/response schemas so the wire
# contract can evolve without touching the cached payload format.
#
# StructuredQuery crosses a trust boundary: it is produced by an LLM and
# must be treated as untrusted until the isolation guard and the executor
# have both seen it. `collection` and `operation` are deliberately plain
# strings so an out-of-contract value survives parsing and is rejected
# by the executor with a typed error instead of a generic parse failure.
# =============================================================================

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class StructuredQuery(BaseModel):
    """
    Machine-readable intermediate form between a question and the store.

    Example:
        {
            "collection": "bank_transactions",
            "operation": "aggregate",
            "pipeline": [
                {"$match": {"tenant_id": "t-1", "category": "food"}},
                {"$group": {"_id": null, "total": {"$sum": "$amount"}}}
            ]
        }
    """

    collection: str
    operation: str
    # Some models answer with MongoDB shell naming ("query" for the filter)
    filter: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("filter", "query"),
    )
    projection: dict[str, Any] | None = None
    pipeline: list[dict[str, Any]] | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("operation", mode="before")
    @classmethod
    def _normalise_operation(cls, value: Any) -> Any:
        if value == "findOne":
            return "find_one"
        return value


class TenantContext(BaseModel):
    """The tenant a request runs on behalf of. Always caller-supplied."""

    tenant_id: str
    tenant_name: str


class Tenant(BaseModel):
    """A row of the users collection, as exposed by list_tenants()."""

    id: str
    name: str


class QueryResult(BaseModel):
    """
    Full outcome of one question.

    Cached as-is on a miss so that a hit can skip translation, execution
    and synthesis. `from_cache` is set on the returned copy only.
    """

    question: str
    tenant: TenantContext
    answer: str
    executed_query: StructuredQuery
    retrieved_data: list[dict[str, Any]]
    from_cache: bool = False
