"""
Storage abstractions.

- MetadataStorage → MongoDB (production) or in-memory (development, tests)
"""

from marketplace.storage.base import (
    MetadataStorage,
    StorageProvider,
    Collections,
    UNIQUE_FIELDS,
)
from marketplace.storage.local import create_local_storage, InMemoryMetadataStorage
from marketplace.storage.mongo import create_mongo_storage, MongoMetadataStorage


def create_storage(settings) -> StorageProvider:
    """Pick the storage backend from DATABASE_URL."""
    if settings.use_mongo:
        return create_mongo_storage(settings.database_url, settings.database_name)
    return create_local_storage()


__all__ = [
    "MetadataStorage",
    "StorageProvider",
    "Collections",
    "UNIQUE_FIELDS",
    "InMemoryMetadataStorage",
    "MongoMetadataStorage",
    "create_local_storage",
    "create_mongo_storage",
    "create_storage",
]
