"""
In-memory storage implementation for development and tests.

Works without any external services. Unique fields are enforced the same
way the MongoDB indexes enforce them.
"""

from __future__ import annotations

import copy
import operator
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable

from marketplace.core.errors import ConflictError
from marketplace.storage.base import (
    MetadataStorage,
    StorageProvider,
    UNIQUE_FIELDS,
)


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$lt": operator.lt,
    "$lte": operator.le,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$ne": operator.ne,
}


def matches(doc: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Check a document against a Mongo-style filter."""
    if not filters:
        return True

    for key, condition in filters.items():
        value = doc.get(key)
        if isinstance(condition, dict):
            for op, operand in condition.items():
                if op not in _OPERATORS:
                    raise ValueError(f"Unsupported filter operator: {op}")
                if op != "$ne" and value is None:
                    return False
                if not _OPERATORS[op](value, operand):
                    return False
        elif value != condition:
            return False
    return True


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(collection, {})

    def _check_unique(self, collection: str, doc: dict[str, Any], exclude_id: str | None = None) -> None:
        for field in UNIQUE_FIELDS.get(collection, ()):
            value = doc.get(field)
            if value is None:
                continue
            for other_id, other in self._collection(collection).items():
                if other_id != exclude_id and other.get(field) == value:
                    raise ConflictError(f"Duplicate value for {field}", field=field)

    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if id in docs:
            raise ConflictError(f"Duplicate id {id}", field="id")
        self._check_unique(collection, data)
        docs[id] = {
            **copy.deepcopy(data),
            "id": id,
            "_updated_at": datetime.now(timezone.utc).isoformat(),
        }

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._collection(collection).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self._collection(collection).values():
            if matches(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        results = [doc for doc in self._collection(collection).values() if matches(doc, filters)]
        return copy.deepcopy(results[offset:offset + limit])

    async def update(
        self, collection: str, id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        docs = self._collection(collection)
        if id not in docs:
            return None

        merged = {**docs[id], **copy.deepcopy(updates)}
        self._check_unique(collection, merged, exclude_id=id)
        merged["id"] = id
        merged["_updated_at"] = datetime.now(timezone.utc).isoformat()
        docs[id] = merged
        return copy.deepcopy(merged)

    async def delete(self, collection: str, id: str) -> bool:
        return self._collection(collection).pop(id, None) is not None

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        return sum(1 for doc in self._collection(collection).values() if matches(doc, filters))

    async def group_count(self, collection: str, field: str) -> dict[str, int]:
        counts = Counter(doc.get(field) for doc in self._collection(collection).values())
        return {str(key): value for key, value in counts.items()}


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with the in-memory implementation."""
    return StorageProvider(metadata=InMemoryMetadataStorage())
