# =============================================================================
# Response Cache — Redis-Backed, Tenant-Scoped, Fail-Open
# =============================================================================
#
# Caches complete QueryResults so a repeated question skips translation,
# execution and synthesis entirely.
#
# KEY FORMAT:
#   query:<tenant_id>:<sha256("<tenant_id>:<normalised question>")>
# The tenant id is part of both the prefix and the hashed material, so two
# tenants asking the same question never share an entry, and one tenant's
# entries can be dropped with a single pattern.
#
# Normalisation: lowercase, collapse whitespace runs to one space, trim,
# drop trailing sentence punctuation. "  How much did I spend  on Food?"
# and "how much did i spend on food" share a key.
#
# DESIGN DECISION: Fail-open. If Redis is unreachable, slow, or hands back
# a payload we can't decode, get() is a miss, put() is a no-op and
# invalidate() reports 0. A warning is logged and the request carries on.
# The system trades latency for availability, never correctness.
#
# Expiry is server-enforced (SETEX). No client-side eviction or size cap.
#
# ARCHITECTURE:
#   CacheStore (Protocol)
#   ├── RedisCacheStore       — redis.asyncio client, pooled
#   └── ResponseCacheManager  — keys, (de)serialisation, fail-open wrapper
# =============================================================================

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from typing import Any, Awaitable, Protocol, TypeVar

import pydantic
import redis.asyncio as aioredis
from pydantic_core import PydanticSerializationError
from redis.exceptions import RedisError

from finquery.config import settings
from finquery.errors import CacheError
from finquery.models.query import QueryResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PREFIX = "query:"
ALL_KEYS_PATTERN = f"{KEY_PREFIX}*"

_TRAILING_PUNCTUATION = "?!."
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


# ---------------------------------------------------------------------------
# Cache Store — Protocol + Redis Implementation
# ---------------------------------------------------------------------------


class CacheStore(Protocol):
    """Minimal key-value surface the cache manager relies on."""

    async def get(self, key: str) -> str | None:
        ...

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def keys_matching(self, pattern: str) -> list[str]:
        ...

    async def delete(self, keys: list[str]) -> int:
        ...


class RedisCacheStore:
    """
    CacheStore on top of redis.asyncio.

    connect() never raises: a missing Redis at startup only means the
    service runs uncached until Redis comes back.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._url = url or settings.redis_url
        self._timeout = timeout_seconds or settings.cache_timeout_seconds
        self._client: aioredis.Redis | None = None

    async def connect(self) -> None:
        self._client = aioredis.from_url(
            self._url,
            decode_responses=True,
            socket_timeout=self._timeout,
            socket_connect_timeout=self._timeout,
        )
        try:
            await self._client.ping()
            logger.info("Connected to Redis cache")
        except RedisError as e:
            logger.warning(
                "Redis unavailable at startup (%s). "
                "Continuing without caching until it recovers.",
                e,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    async def ping(self) -> bool:
        try:
            return bool(await self._require_client().ping())
        except (RedisError, CacheError):
            return False

    def _require_client(self) -> aioredis.Redis:
        if self._client is None:
            raise CacheError("Redis client is not connected")
        return self._client

    async def get(self, key: str) -> str | None:
        return await self._require_client().get(key)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._require_client().setex(key, ttl_seconds, value)

    async def keys_matching(self, pattern: str) -> list[str]:
        # SCAN instead of KEYS so a large keyspace doesn't block Redis
        return [k async for k in self._require_client().scan_iter(match=pattern)]

    async def delete(self, keys: list[str]) -> int:
        if not keys:
            return 0
        return await self._require_client().delete(*keys)


# ---------------------------------------------------------------------------
# Key Derivation
# ---------------------------------------------------------------------------


def normalise_question(question: str) -> str:
    collapsed = " ".join(question.lower().split())
    return collapsed.rstrip(_TRAILING_PUNCTUATION).rstrip()


def make_key(tenant_id: str, question: str) -> str:
    """Deterministic cache key for (tenant, question)."""
    material = f"{tenant_id}:{normalise_question(question)}"
    digest = hashlib.sha256(material.encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{tenant_id}:{digest}"


def tenant_pattern(tenant_id: str) -> str:
    """Glob pattern matching every cached entry of one tenant."""
    escaped = _GLOB_SPECIAL.sub(r"\\\1", tenant_id)
    return f"{KEY_PREFIX}{escaped}:*"


# ---------------------------------------------------------------------------
# Response Cache Manager
# ---------------------------------------------------------------------------


class ResponseCacheManager:
    """
    Fail-open get/put/invalidate of QueryResults.

    Every store call is bounded by `timeout_seconds`. Any store failure is
    turned into a CacheError internally and swallowed here with a warning.
    """

    def __init__(
        self,
        store: CacheStore | None,
        ttl_seconds: int | None = None,
        timeout_seconds: float | None = None,
        enabled: bool | None = None,
    ) -> None:
        self._store = store
        self.ttl_seconds = (
            settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        self._timeout = timeout_seconds or settings.cache_timeout_seconds
        self._enabled = settings.cache_enabled if enabled is None else enabled

    @property
    def enabled(self) -> bool:
        return self._enabled and self._store is not None

    def key(self, tenant_id: str, question: str) -> str:
        return make_key(tenant_id, question)

    async def get(self, key: str) -> QueryResult | None:
        if not self.enabled:
            return None
        try:
            raw = await self._call(self._store.get(key))
            if raw is None:
                return None
            try:
                return QueryResult.model_validate_json(raw)
            except pydantic.ValidationError as e:
                raise CacheError(f"undecodable cache entry: {e}") from e
        except CacheError as e:
            logger.warning("Cache get failed (key=%s): %s", key, e)
            return None

    async def put(
        self,
        key: str,
        value: QueryResult,
        ttl_seconds: int | None = None,
    ) -> None:
        """Store `value` under `key`. A TTL of 0 or less stores nothing."""
        if not self.enabled:
            return
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            logger.debug("Skipping cache write (key=%s, ttl=%ds)", key, ttl)
            return
        try:
            try:
                payload = value.model_copy(
                    update={"from_cache": False},
                ).model_dump_json()
            except PydanticSerializationError as e:
                raise CacheError(f"unserialisable result: {e}") from e
            await self._call(self._store.set_with_expiry(key, payload, ttl))
            logger.debug("Cached response (key=%s, ttl=%ds)", key, ttl)
        except CacheError as e:
            logger.warning("Cache put failed (key=%s): %s", key, e)

    async def invalidate(self, pattern: str = ALL_KEYS_PATTERN) -> int:
        """Delete every entry matching `pattern`. Returns the count deleted."""
        if self._store is None:
            return 0
        try:
            keys = await self._call(self._store.keys_matching(pattern))
            if keys:
                await self._call(self._store.delete(keys))
                logger.info("Invalidated %d cache entries (%s)", len(keys), pattern)
            return len(keys)
        except CacheError as e:
            logger.warning("Cache invalidation failed (%s): %s", pattern, e)
            return 0

    async def stats(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "connected": False,
            "enabled": self.enabled,
            "cached_queries": None,
            "ttl_seconds": self.ttl_seconds,
            "error": None,
        }
        if self._store is None:
            return result
        try:
            keys = await self._call(self._store.keys_matching(ALL_KEYS_PATTERN))
            result["connected"] = True
            result["cached_queries"] = len(keys)
        except CacheError as e:
            result["error"] = str(e)
        return result

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except CacheError:
            raise
        except asyncio.TimeoutError as e:
            raise CacheError(f"timed out after {self._timeout}s") from e
        except Exception as e:
            raise CacheError(str(e) or type(e).__name__) from e
