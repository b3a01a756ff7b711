"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory → MongoDB) without changing application code.

Filters are Mongo-style documents: `{"field": value}` for equality, or
`{"field": {"$lt": 10}}` with one of `$lt`, `$lte`, `$gt`, `$gte`, `$ne`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    PRODUCTS = "products"


# Fields that must be unique within a collection. Missing/None values
# never collide with each other.
UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    Collections.USERS: ("email", "external_id"),
}


# =============================================================================
# Storage Interface
# =============================================================================


class MetadataStorage(ABC):
    """
    Document storage for users and products.

    Every method operates on a single document, so the backend's
    single-document atomicity is all the consistency this needs.
    """

    @abstractmethod
    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """
        Create a document.

        Raises:
            ConflictError: the id or a unique field is already taken
        """

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""

    @abstractmethod
    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """Get the first document matching the filters."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents with optional filters."""

    @abstractmethod
    async def update(
        self, collection: str, id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Partial update of a document.

        Returns the updated document, or None if the id does not exist.

        Raises:
            ConflictError: the update would break a unique field
        """

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""

    @abstractmethod
    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        """Count documents matching the filters."""

    @abstractmethod
    async def group_count(self, collection: str, field: str) -> dict[str, int]:
        """Count documents per distinct value of a field."""

    async def ensure_indexes(self) -> None:
        """Create backend indexes. Called once at startup."""

    async def close(self) -> None:
        """Release connections."""


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for storage backends.

    Initialize once at app startup with the appropriate implementation.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    metadata: MetadataStorage

    async def startup(self) -> None:
        await self.metadata.ensure_indexes()

    async def shutdown(self) -> None:
        await self.metadata.close()
