"""
Storage Services Package

Provides the key-value store interface and its local implementations.
Repositories only ever talk to KeyValueStore, so the backend is swappable.
"""

from finflow.services.storage.interface import (
    KeyValueStore,
    NotFoundError,
    StorageError,
    StorageEvent,
    StorageListener,
)
from finflow.services.storage.documents import JsonDocument
from finflow.services.storage.local import JsonFileStore, MemoryStore

__all__ = [
    # Interface
    "KeyValueStore",
    "StorageEvent",
    "StorageListener",
    "JsonDocument",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # Local implementations
    "JsonFileStore",
    "MemoryStore",
    "create_store",
]


def create_store(settings=None) -> KeyValueStore:
    """Build the store configured by FINFLOW_STORAGE_* settings."""
    if settings is None:
        from finflow.config import get_settings
        settings = get_settings().storage

    if settings.backend == "memory":
        return MemoryStore()
    return JsonFileStore(settings.path)
