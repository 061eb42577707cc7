# =============================================================================
# Query Executor — Allow-Listed, Read-Only Execution
# =============================================================================
#
# Runs an isolation-guarded StructuredQuery against the document store.
#
# The executor is the last line of defence: it re-checks the collection
# and operation allow-lists even though the guard has already run. It
# does NOT validate filter or pipeline contents; field-level correctness
# is the translation step's job.
#
# Store calls are bounded by a timeout. A timeout or driver error becomes
# an ExecutionError and is never retried here.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from bson import Decimal128, ObjectId

from finquery.config import settings
from finquery.errors import ExecutionError, InvalidCollection, UnsupportedOperation
from finquery.models.query import StructuredQuery
from finquery.services.document_store import DocumentStore
from finquery.services.schema import ALLOWED_COLLECTIONS, ALLOWED_OPERATIONS

logger = logging.getLogger(__name__)


class QueryExecutor:
    """Validates a structured query against the allow-lists and runs it."""

    def __init__(
        self,
        store: DocumentStore,
        timeout_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._timeout = timeout_seconds or settings.mongodb_timeout_seconds

    async def execute(self, query: StructuredQuery) -> list[dict[str, Any]]:
        """
        Execute `query` and return the matching records.

        Raises:
            InvalidCollection: collection is not one of the four fixed ones.
            UnsupportedOperation: operation is not find/find_one/aggregate.
            ExecutionError: the store failed or did not answer in time.
        """
        if query.collection not in ALLOWED_COLLECTIONS:
            raise InvalidCollection(query.collection)
        if query.operation not in ALLOWED_OPERATIONS:
            raise UnsupportedOperation(query.operation)

        try:
            rows = await asyncio.wait_for(self._run(query), self._timeout)
        except asyncio.TimeoutError as e:
            raise ExecutionError(
                f"{query.operation} on {query.collection} timed out "
                f"after {self._timeout}s"
            ) from e
        except Exception as e:
            raise ExecutionError(
                f"{query.operation} on {query.collection} failed: {e}"
            ) from e

        logger.info(
            "Executed %s on %s: %d record(s)",
            query.operation, query.collection, len(rows),
        )
        return [_to_jsonable(row) for row in rows]

    async def _run(self, query: StructuredQuery) -> list[dict[str, Any]]:
        # Empty projection means "all fields"
        projection = query.projection or None

        if query.operation == "find":
            return await self._store.find(
                query.collection, query.filter or {}, projection,
            )
        if query.operation == "find_one":
            row = await self._store.find_one(
                query.collection, query.filter or {}, projection,
            )
            return [row] if row is not None else []
        return await self._store.aggregate(query.collection, query.pipeline or [])


def _to_jsonable(value: Any) -> Any:
    """Convert BSON-specific values so records survive JSON caching."""
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return float(value.to_decimal())
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        # bson.Int64 is an int subclass
        return int(value)
    if isinstance(value, bytes):
        # Includes bson.Binary
        return value.hex()
    if type(value).__module__.split(".")[0] == "bson":
        # Timestamp, Regex, Code, MinKey, MaxKey, DBRef
        return str(value)
    return value
