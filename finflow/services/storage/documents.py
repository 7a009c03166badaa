"""JSON-encoded values kept under a single store key."""

import json
from typing import Any

import structlog

from finflow.services.storage.interface import KeyValueStore


class JsonDocument:
    """
    One key of the store holding a JSON value.

    Reading never raises: a missing key returns the default, an
    undecodable value is logged and also returns the default.
    """

    def __init__(self, store: KeyValueStore, key: str):
        self._store = store
        self._key = key
        self._logger = structlog.get_logger(__name__)

    @property
    def key(self) -> str:
        return self._key

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def exists(self) -> bool:
        return self._store.get_item(self._key) is not None

    def read(self, default: Any = None) -> Any:
        raw = self._store.get_item(self._key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            self._logger.error(
                "storage_document_undecodable",
                key=self._key,
                error=str(e),
            )
            return default

    def read_list(self) -> list:
        """Read a JSON array; anything else reads as an empty list."""
        value = self.read(default=[])
        if not isinstance(value, list):
            self._logger.error(
                "storage_document_not_a_list",
                key=self._key,
                found=type(value).__name__,
            )
            return []
        return value

    def write(self, value: Any) -> None:
        self._store.set_item(self._key, json.dumps(value, ensure_ascii=False))

    def remove(self) -> None:
        self._store.remove_item(self._key)
