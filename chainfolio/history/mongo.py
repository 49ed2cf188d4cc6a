"""MongoDB history store (motor)."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ..config import HistoryConfig
from ..errors import HistoryStoreError
from ..models import HistoryRecord
from .documents import record_from_document, record_to_document

logger = logging.getLogger(__name__)


class MongoHistoryStore:
    """History persisted in one collection, expired by a TTL index on expiresAt."""

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection
        self._indexes_ready = False

    @classmethod
    def from_config(cls, config: HistoryConfig) -> MongoHistoryStore:
        client = AsyncIOMotorClient(config.mongo_uri, tz_aware=True)
        return cls(client[config.database][config.collection])

    async def ensure_indexes(self) -> None:
        """Create the lookup and TTL indexes (idempotent)."""
        if self._indexes_ready:
            return
        try:
            await self._collection.create_index(
                [("walletAddress", ASCENDING), ("timestamp", DESCENDING)]
            )
            await self._collection.create_index("expiresAt", expireAfterSeconds=0)
        except PyMongoError as e:
            raise HistoryStoreError(f"Could not create history indexes: {e}") from e
        self._indexes_ready = True
        logger.info("History indexes ensured on %s", self._collection.name)

    @staticmethod
    def _query(
        wallet_address: str, start: datetime | None, end: datetime | None
    ) -> dict[str, Any]:
        query: dict[str, Any] = {"walletAddress": wallet_address.lower()}
        window: dict[str, datetime] = {}
        if start is not None:
            window["$gte"] = start
        if end is not None:
            window["$lte"] = end
        if window:
            query["timestamp"] = window
        return query

    async def insert(self, record: HistoryRecord) -> str:
        await self.ensure_indexes()
        try:
            result = await self._collection.insert_one(record_to_document(record))
        except PyMongoError as e:
            logger.error("Error saving insight for %s: %s", record.wallet_address, e)
            raise HistoryStoreError(f"Could not save insight: {e}") from e
        return str(result.inserted_id)

    async def find(
        self,
        wallet_address: str,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[HistoryRecord]:
        cursor = (
            self._collection.find(self._query(wallet_address, start, end))
            .sort("timestamp", DESCENDING if newest_first else ASCENDING)
            .skip(offset)
        )
        if limit is not None:
            cursor = cursor.limit(limit)
        try:
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            logger.error("Error reading history for %s: %s", wallet_address, e)
            raise HistoryStoreError(f"Could not read history: {e}") from e
        return [record_from_document(doc) for doc in docs]

    async def count(
        self,
        wallet_address: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        try:
            return await self._collection.count_documents(
                self._query(wallet_address, start, end)
            )
        except PyMongoError as e:
            raise HistoryStoreError(f"Could not count history: {e}") from e
