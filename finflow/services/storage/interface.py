"""
Abstract Storage Interface

DESIGN DECISION: Everything FinFlow persists goes through a tiny
string key-value interface, the same shape as browser local storage.
This allows us to:
1. Point the app at a storage dump taken from the web version
2. Use in-memory storage for testing
3. Keep the repositories decoupled from where the bytes live

Change notification is part of the interface: every write dispatches
a StorageEvent so open views can refresh, and backends that can be
modified from outside (another process, another "tab") report those
changes through the same channel.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

import structlog
from pydantic import BaseModel


class StorageEvent(BaseModel):
    """
    A change to one key of the store.

    `new_value` is None when the key was removed.
    `external` is True when the change was made by someone else
    (detected on poll) rather than through this store instance.
    """

    key: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    external: bool = False


StorageListener = Callable[[StorageEvent], None]


class KeyValueStore(ABC):
    """
    Abstract string key-value store with change events.

    Any storage backend (JSON file, memory, ...) must implement the
    abstract methods; event dispatching is shared.
    """

    def __init__(self):
        self._listeners: list[StorageListener] = []
        self._logger = structlog.get_logger(__name__)

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read a key.

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    def _write(self, key: str, value: Optional[str]) -> Optional[str]:
        """
        Write (or remove, when value is None) a key.

        Returns:
            The previous value

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently present."""
        pass

    def set_item(self, key: str, value: str) -> None:
        old_value = self._write(key, value)
        self.dispatch(StorageEvent(key=key, old_value=old_value, new_value=value))

    def remove_item(self, key: str) -> None:
        old_value = self._write(key, None)
        if old_value is not None:
            self.dispatch(StorageEvent(key=key, old_value=old_value, new_value=None))

    def poll(self) -> list[StorageEvent]:
        """
        Pick up changes made outside this instance.

        Backends that cannot be modified externally have nothing to report.
        """
        return []

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        listener: StorageListener,
        keys: Optional[Iterable[str]] = None,
    ) -> Callable[[], None]:
        """
        Register a listener for storage events.

        Args:
            listener: Called with every StorageEvent
            keys: Only forward events for these keys (all keys if None)

        Returns:
            A function that removes the listener again
        """
        if keys is not None:
            wanted = set(keys)
            inner = listener

            def listener(event: StorageEvent) -> None:
                if event.key in wanted:
                    inner(event)

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: StorageEvent) -> None:
        """Deliver an event to every listener. Listener errors are logged, not raised."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self._logger.error(
                    "storage_listener_failed",
                    key=event.key,
                    error=str(e),
                )


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
