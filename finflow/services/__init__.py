"""Services package."""

from finflow.services.notifications import (
    EvolutionWhatsAppService,
    NotificationError,
    SendResult,
)
from finflow.services.storage import (
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    NotFoundError,
    StorageError,
    StorageEvent,
    create_store,
)

__all__ = [
    # Notification services
    "EvolutionWhatsAppService",
    "NotificationError",
    "SendResult",
    # Storage services
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "NotFoundError",
    "StorageError",
    "StorageEvent",
    "create_store",
]
