# =============================================================================
# Document Store — Read-Only MongoDB Access
# =============================================================================
#
# The query executor talks to the database through the DocumentStore
# protocol; MongoDocumentStore is the production implementation on top of
# Motor (async MongoDB driver). Tests substitute an in-memory fake that
# matches the protocol, no inheritance required.
#
# LIFECYCLE: constructed once, connect() at application startup, close()
# at shutdown (FastAPI lifespan). The Motor client owns a connection pool
# and is safe to share across concurrent requests.
#
# ARCHITECTURE:
#   DocumentStore (Protocol)
#   └── MongoDocumentStore
#       ├── connect() / close() / ping()
#       └── find() / find_one() / aggregate()
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Protocol

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from finquery.config import settings

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Read-only operations the executor needs from the database."""

    async def find(
        self,
        collection: str,
        query_filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        ...

    async def find_one(
        self,
        collection: str,
        query_filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        ...

    async def aggregate(
        self,
        collection: str,
        pipeline: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        ...


class MongoDocumentStore:
    """
    MongoDB-backed DocumentStore.

    Constructor kwargs override settings, which keeps tests and the seed
    script independent of the environment.
    """

    def __init__(
        self,
        url: str | None = None,
        db_name: str | None = None,
        max_pool_size: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._url = url or settings.mongodb_url
        self._db_name = db_name or settings.mongodb_db_name
        self._max_pool_size = max_pool_size or settings.mongodb_max_pool_size
        self._timeout_ms = int(
            (timeout_seconds or settings.mongodb_timeout_seconds) * 1000
        )
        self._client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Open the client and verify the server answers a ping."""
        logger.info("Connecting to MongoDB (db=%s)...", self._db_name)
        self._client = AsyncIOMotorClient(
            self._url,
            maxPoolSize=self._max_pool_size,
            serverSelectionTimeoutMS=self._timeout_ms,
            socketTimeoutMS=self._timeout_ms,
        )
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            logger.error("MongoDB connection failed: %s", e)
            self._client.close()
            self._client = None
            raise
        self._db = self._client[self._db_name]
        logger.info("Connected to MongoDB database: %s", self._db_name)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False

    def _collection(self, name: str):
        if self._db is None:
            raise RuntimeError("MongoDocumentStore.connect() has not been called")
        return self._db[name]

    async def find(
        self,
        collection: str,
        query_filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self._collection(collection).find(query_filter, projection)
        return await cursor.to_list(length=None)

    async def find_one(
        self,
        collection: str,
        query_filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        return await self._collection(collection).find_one(query_filter, projection)

    async def aggregate(
        self,
        collection: str,
        pipeline: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        cursor = self._collection(collection).aggregate(pipeline)
        return await cursor.to_list(length=None)
