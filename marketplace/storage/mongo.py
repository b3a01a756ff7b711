"""
MongoDB storage implementation.

Documents use the marketplace id as `_id`. Unique fields from
UNIQUE_FIELDS are backed by unique indexes, so concurrent inserts of the
same email are resolved by the server and surface as ConflictError.
"""

from __future__ import annotations

import logging
from typing import Any

from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from marketplace.core.errors import ConflictError
from marketplace.storage.base import (
    MetadataStorage,
    StorageProvider,
    UNIQUE_FIELDS,
)

logger = logging.getLogger(__name__)


def _strip(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return doc


def _conflict(exc: DuplicateKeyError) -> ConflictError:
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    field = next(iter(key_pattern), None)
    if field == "_id":
        field = "id"
    return ConflictError(f"Duplicate value for {field or 'unique field'}", field=field)


class MongoMetadataStorage(MetadataStorage):
    """Document storage backed by MongoDB."""

    def __init__(self, client: AsyncMongoClient, database_name: str):
        self.client = client
        self.db = client[database_name]

    async def ensure_indexes(self) -> None:
        for collection, fields in UNIQUE_FIELDS.items():
            for field in fields:
                # None values are stored explicitly, so a plain sparse index
                # would still collide on them
                await self.db[collection].create_index(
                    [(field, ASCENDING)],
                    unique=True,
                    partialFilterExpression={field: {"$type": "string"}},
                    name=f"uniq_{field}",
                )
        logger.info("MongoDB indexes verified/created.")

    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        doc = {**data, "_id": id}
        doc.pop("id", None)
        try:
            await self.db[collection].insert_one(doc)
        except DuplicateKeyError as exc:
            raise _conflict(exc) from exc

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        return _strip(await self.db[collection].find_one({"_id": id}))

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        return _strip(await self.db[collection].find_one(filters))

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        cursor = self.db[collection].find(filters or {}).skip(offset).limit(limit)
        return [_strip(doc) async for doc in cursor]

    async def update(
        self, collection: str, id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        updates = {k: v for k, v in updates.items() if k not in ("id", "_id")}
        try:
            doc = await self.db[collection].find_one_and_update(
                {"_id": id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise _conflict(exc) from exc
        return _strip(doc)

    async def delete(self, collection: str, id: str) -> bool:
        result = await self.db[collection].delete_one({"_id": id})
        return result.deleted_count > 0

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        return await self.db[collection].count_documents(filters or {})

    async def group_count(self, collection: str, field: str) -> dict[str, int]:
        pipeline = [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}]
        cursor = await self.db[collection].aggregate(pipeline)
        return {str(doc["_id"]): doc["count"] async for doc in cursor}

    async def close(self) -> None:
        await self.client.close()


# =============================================================================
# Factory
# =============================================================================


def create_mongo_storage(database_url: str, database_name: str) -> StorageProvider:
    """Create a StorageProvider connected to MongoDB."""
    client = AsyncMongoClient(database_url, tz_aware=True)
    logger.info(f"Using MongoDB database '{database_name}'")
    return StorageProvider(metadata=MongoMetadataStorage(client, database_name))
