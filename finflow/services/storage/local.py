"""
Local Key-Value Store Implementations

DESIGN DECISION: The JSON file store keeps every key in a single file,
mirroring how a browser keeps local storage per origin. This means:
1. A whole "profile" can be copied or inspected by hand
2. Writes are atomic (temp file + replace), so a crash never leaves
   a half-written document behind
3. Another process can share the same file and be picked up by poll()

TRADEOFFS:
- Every write rewrites the whole file (fine for personal data volumes)
- No locking: two writers racing means the last one wins
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from finflow.services.storage.interface import (
    KeyValueStore,
    StorageError,
    StorageEvent,
)


class MemoryStore(KeyValueStore):
    """
    Ephemeral in-process store.

    Used by tests and when FINFLOW_STORAGE_BACKEND=memory.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__()
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, key: str, value: Optional[str]) -> Optional[str]:
        old_value = self._data.get(key)
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        return old_value

    def keys(self) -> list[str]:
        return list(self._data.keys())


class JsonFileStore(KeyValueStore):
    """
    Store persisted as one JSON object of string values.

    The file is created on first write. A file that cannot be decoded
    is treated as empty (and logged) rather than crashing the app.
    """

    def __init__(self, path: str | Path):
        super().__init__()
        self._path = Path(path)
        self._data: dict[str, str] = {}
        self._mtime: Optional[int] = None
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _current_mtime(self) -> Optional[int]:
        try:
            return self._path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def _load(self) -> dict[str, str]:
        self._mtime = self._current_mtime()
        if self._mtime is None:
            return {}

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self._logger.error(
                "storage_file_unreadable",
                path=str(self._path),
                error=str(e),
            )
            return {}

        if not isinstance(raw, dict):
            self._logger.error(
                "storage_file_malformed",
                path=str(self._path),
                found=type(raw).__name__,
            )
            return {}

        # Values are always strings, like browser local storage
        return {
            str(key): value if isinstance(value, str) else json.dumps(value)
            for key, value in raw.items()
        }

    def _flush(self, data: dict[str, str]) -> None:
        tmp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                dir=str(self._path.parent),
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Failed to write {self._path}: {e}") from e

        self._mtime = self._current_mtime()

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, key: str, value: Optional[str]) -> Optional[str]:
        old_value = self._data.get(key)
        if value is None and key not in self._data:
            return None

        # Memory only changes once the file is written
        data = dict(self._data)
        if value is None:
            del data[key]
        else:
            data[key] = value
        self._flush(data)
        self._data = data
        return old_value

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def poll(self) -> list[StorageEvent]:
        """
        Reload the file if another process changed it.

        Dispatches one external StorageEvent per key whose value differs
        from what this instance last saw.

        Returns:
            The dispatched events (empty when nothing changed)
        """
        if self._current_mtime() == self._mtime:
            return []

        previous = self._data
        self._data = self._load()

        events = []
        for key in sorted(set(previous) | set(self._data)):
            old_value = previous.get(key)
            new_value = self._data.get(key)
            if old_value != new_value:
                events.append(StorageEvent(
                    key=key,
                    old_value=old_value,
                    new_value=new_value,
                    external=True,
                ))

        if events:
            self._logger.info(
                "storage_external_change",
                path=str(self._path),
                keys=[event.key for event in events],
            )
        for event in events:
            self.dispatch(event)

        return events
