# =============================================================================
# Tenant Isolation Guard — Rewrite Untrusted Queries to One Tenant
# =============================================================================
#
# The translation step is an LLM: it is not deterministic and can be
# steered by the question text. Its output is treated like any other
# externally supplied payload. This guard rewrites it so every read of a
# tenant-owned collection is filtered by the requesting tenant's id:
#
#   find / find_one → filter[tenant_id] is overwritten with the context id,
#                     other filter fields are kept
#   aggregate       → the first stage must be {"$match": {tenant_id: <id>}};
#                     anything else gets that stage prepended
#   users           → returned unchanged (not tenant-owned)
#
# A first-stage $match that names the wrong tenant, uses an operator
# expression, or omits the field is never patched in place. The correct
# stage is prepended ahead of it; $match stages are conjunctive, so the
# forged stage can only narrow the result further.
#
# KNOWN GAP: only the first stage is inspected. A later $lookup or
# $unionWith stage could pull rows from another collection without a
# tenant filter. This guard does not defend against that. The same holds
# for the users exemption: a users pipeline is passed through untouched,
# so a $lookup from it into a tenant-owned collection reads every tenant.
#
# Pure function: no I/O, no dependency on how the query was produced.
# =============================================================================

from __future__ import annotations

from typing import Any

from finquery.models.query import StructuredQuery
from finquery.services.schema import TENANT_FIELD, is_tenant_scoped


def enforce(query: StructuredQuery, tenant_id: str) -> StructuredQuery:
    """
    Return a copy of `query` that can only touch `tenant_id`'s rows.

    The input is never mutated. For the users collection the input
    object itself is returned.
    """
    if not is_tenant_scoped(query.collection):
        return query

    scoped = query.model_copy(deep=True)

    if scoped.operation == "aggregate":
        scoped.pipeline = _scope_pipeline(scoped.pipeline, tenant_id)
    elif scoped.operation in ("find", "find_one"):
        scoped.filter = _scope_filter(scoped.filter, tenant_id)
    else:
        # The executor rejects this operation, but the output stays scoped
        scoped.filter = _scope_filter(scoped.filter, tenant_id)
        if scoped.pipeline is not None:
            scoped.pipeline = _scope_pipeline(scoped.pipeline, tenant_id)

    return scoped


def _scope_filter(
    query_filter: dict[str, Any] | None, tenant_id: str,
) -> dict[str, Any]:
    scoped = dict(query_filter or {})
    scoped[TENANT_FIELD] = tenant_id
    return scoped


def _scope_pipeline(
    pipeline: list[dict[str, Any]] | None, tenant_id: str,
) -> list[dict[str, Any]]:
    stages = list(pipeline or [])
    if not stages or not _is_tenant_match(stages[0], tenant_id):
        stages.insert(0, {"$match": {TENANT_FIELD: tenant_id}})
    return stages


def _is_tenant_match(stage: Any, tenant_id: str) -> bool:
    """True only for a lone $match stage with a literal tenant equality."""
    if not isinstance(stage, dict) or list(stage) != ["$match"]:
        return False
    match = stage["$match"]
    if not isinstance(match, dict):
        return False
    value = match.get(TENANT_FIELD)
    return isinstance(value, str) and value == tenant_id
