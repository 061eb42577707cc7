# =============================================================================
# Test Fakes — In-Memory Stores and a Scripted LLM
# =============================================================================
#
# Nothing here needs MongoDB, Redis or an API key. The fakes satisfy the
# DocumentStore / CacheStore / LLMProvider protocols structurally and keep
# call logs so tests can assert which external calls happened.
#
# Fixture data: two tenants, each with two food transactions.
#   tenant-a: 2500 + 1800 = 4300
#   tenant-b: 1200 + 3200 = 4400
# =============================================================================

from __future__ import annotations

import asyncio
import copy
import fnmatch
import json
from typing import Any
from unittest.mock import AsyncMock

from finquery.services.llm import LLMResponse

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


def fixture_data() -> dict[str, list[dict[str, Any]]]:
    return {
        "users": [
            {"_id": TENANT_A, "name": "Rahul Sharma"},
            {"_id": TENANT_B, "name": "Priya Patel"},
        ],
        "bank_transactions": [
            {"_id": "t1", "tenant_id": TENANT_A, "amount": 2500.0,
             "category": "food", "merchant": "Swiggy"},
            {"_id": "t2", "tenant_id": TENANT_A, "amount": 1800.0,
             "category": "food", "merchant": "Zomato"},
            {"_id": "t3", "tenant_id": TENANT_A, "amount": 15000.0,
             "category": "travel", "merchant": "MakeMyTrip"},
            {"_id": "t4", "tenant_id": TENANT_B, "amount": 1200.0,
             "category": "food", "merchant": "Zomato"},
            {"_id": "t5", "tenant_id": TENANT_B, "amount": 3200.0,
             "category": "food", "merchant": "Swiggy"},
        ],
        "mutual_fund_holdings": [
            {"_id": "m1", "tenant_id": TENANT_A, "scheme_name": "HDFC Top 100 Fund",
             "invested_value": 50000.0, "current_value": 58500.0},
            {"_id": "m2", "tenant_id": TENANT_B, "scheme_name": "Axis Long Term Equity Fund",
             "invested_value": 75000.0, "current_value": 82000.0},
        ],
        "equity_holdings": [
            {"_id": "e1", "tenant_id": TENANT_A, "stock_name": "TCS",
             "quantity": 15, "current_price": 3450.0},
            {"_id": "e2", "tenant_id": TENANT_B, "stock_name": "Infosys",
             "quantity": 30, "current_price": 1520.75},
        ],
    }


# ---------------------------------------------------------------------------
# Fake Document Store
# ---------------------------------------------------------------------------
# Supports the subset of MongoDB the tests exercise: equality and a few
# comparison operators in filters, $or, and $match / $group ($sum) /
# $sort / $limit / $project in pipelines.
# ---------------------------------------------------------------------------


class FakeDocumentStore:
    def __init__(self, data: dict[str, list[dict[str, Any]]] | None = None):
        self.data = data if data is not None else fixture_data()
        self.calls: list[tuple[str, str]] = []

    async def ping(self) -> bool:
        return True

    async def find(self, collection, query_filter, projection=None):
        self.calls.append(("find", collection))
        rows = [d for d in self.data.get(collection, []) if _matches(d, query_filter)]
        return [_project(d, projection) for d in copy.deepcopy(rows)]

    async def find_one(self, collection, query_filter, projection=None):
        self.calls.append(("find_one", collection))
        for d in self.data.get(collection, []):
            if _matches(d, query_filter):
                return _project(copy.deepcopy(d), projection)
        return None

    async def aggregate(self, collection, pipeline):
        self.calls.append(("aggregate", collection))
        rows = copy.deepcopy(self.data.get(collection, []))
        for stage in pipeline:
            (op, arg), = stage.items()
            if op == "$match":
                rows = [r for r in rows if _matches(r, arg)]
            elif op == "$group":
                rows = _group(rows, arg)
            elif op == "$sort":
                for field, direction in reversed(list(arg.items())):
                    rows.sort(key=lambda r: r.get(field), reverse=direction < 0)
            elif op == "$limit":
                rows = rows[:arg]
            elif op == "$project":
                rows = [_project(r, arg) for r in rows]
            else:
                raise NotImplementedError(op)
        return rows


_COMPARATORS = {
    "$eq": lambda a, b: a == b,
    "$ne": lambda a, b: a != b,
    "$gt": lambda a, b: a is not None and a > b,
    "$gte": lambda a, b: a is not None and a >= b,
    "$lt": lambda a, b: a is not None and a < b,
    "$lte": lambda a, b: a is not None and a <= b,
    "$in": lambda a, b: a in b,
}


def _matches(doc: dict, query_filter: dict) -> bool:
    for key, expected in query_filter.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in expected):
                return False
        elif isinstance(expected, dict) and expected and all(
            k.startswith("$") for k in expected
        ):
            if not all(_COMPARATORS[op](doc.get(key), v) for op, v in expected.items()):
                return False
        elif doc.get(key) != expected:
            return False
    return True


def _group(rows: list[dict], spec: dict) -> list[dict]:
    id_expr = spec["_id"]
    groups: dict[Any, dict] = {}
    for row in rows:
        gid = row.get(id_expr[1:]) if isinstance(id_expr, str) else id_expr
        group = groups.setdefault(gid, {"_id": gid})
        for field, acc in spec.items():
            if field == "_id":
                continue
            (op, operand), = acc.items()
            assert op == "$sum", op
            value = row.get(operand[1:], 0) if isinstance(operand, str) else operand
            group[field] = group.get(field, 0) + value
    return list(groups.values())


def _project(doc: dict | None, projection: dict | None) -> dict | None:
    if doc is None or not projection:
        return doc
    keep = {k for k, v in projection.items() if v}
    keep.add("_id")
    if projection.get("_id") in (0, False):
        keep.discard("_id")
    return {k: v for k, v in doc.items() if k in keep}


class FailingDocumentStore(FakeDocumentStore):
    async def find(self, collection, query_filter, projection=None):
        raise ConnectionError("connection reset by peer")

    async def aggregate(self, collection, pipeline):
        raise ConnectionError("connection reset by peer")


class SlowDocumentStore(FakeDocumentStore):
    async def find(self, collection, query_filter, projection=None):
        await asyncio.sleep(5)
        return []


# ---------------------------------------------------------------------------
# Fake Cache Stores
# ---------------------------------------------------------------------------


class FakeCacheStore:
    def __init__(self):
        self.entries: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[str] = []

    async def ping(self) -> bool:
        return True

    async def get(self, key):
        self.calls.append("get")
        return self.entries.get(key)

    async def set_with_expiry(self, key, value, ttl_seconds):
        self.calls.append("set")
        self.entries[key] = value
        self.ttls[key] = ttl_seconds

    async def keys_matching(self, pattern):
        self.calls.append("keys")
        return [k for k in self.entries if fnmatch.fnmatchcase(k, pattern)]

    async def delete(self, keys):
        self.calls.append("delete")
        removed = 0
        for k in keys:
            if self.entries.pop(k, None) is not None:
                removed += 1
        return removed


class UnreachableCacheStore:
    """Every call fails the way a refused Redis connection does."""

    def __init__(self):
        self.calls = 0

    async def ping(self) -> bool:
        return False

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise ConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    get = _fail
    set_with_expiry = _fail
    keys_matching = _fail
    delete = _fail


# ---------------------------------------------------------------------------
# Scripted LLM
# ---------------------------------------------------------------------------


def llm_reply(content: str | dict) -> LLMResponse:
    if isinstance(content, dict):
        content = json.dumps(content)
    return LLMResponse(
        content=content, model="test-model", input_tokens=10, output_tokens=5,
    )


def scripted_llm(*replies: str | dict) -> AsyncMock:
    """AsyncMock LLM whose complete() returns `replies` in order."""
    llm = AsyncMock()
    llm.complete.side_effect = [llm_reply(r) for r in replies]
    return llm


