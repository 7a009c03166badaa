"""
Activity Log Repository

Persists the user-visible history under `financialApp_logs`.

DESIGN DECISION: New entries are prepended, so the stored document is
already newest first. list() still sorts by timestamp because imported
or hand-edited documents may not be.
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from finflow.constants import LOGS_STORAGE_KEY
from finflow.models.activity import LogAction, LogEntity, LogEntry
from finflow.services.storage import JsonDocument, KeyValueStore


class ActivityLogRepository:
    """Read, append and clear activity log entries."""

    def __init__(self, store: KeyValueStore):
        self._document = JsonDocument(store, LOGS_STORAGE_KEY)
        self._logger = structlog.get_logger(__name__)

    def list(self, limit: Optional[int] = None) -> list[LogEntry]:
        """
        Get log entries, newest first.

        Entries that do not parse are skipped.
        """
        entries = []
        for raw in self._document.read_list():
            try:
                entries.append(LogEntry.model_validate(raw))
            except ValidationError as e:
                self._logger.warning(
                    "log_entry_skipped",
                    error_count=e.error_count(),
                )

        entries.sort(key=lambda entry: entry.sort_key, reverse=True)
        if limit is not None:
            entries = entries[:limit]
        return entries

    def append(self, entry: LogEntry) -> LogEntry:
        existing = self._document.read_list()
        self._document.write([entry.model_dump(mode="json"), *existing])
        return entry

    def add(self, action: LogAction, entity: LogEntity, description: str) -> LogEntry:
        """Create an entry with a fresh id and timestamp and prepend it."""
        return self.append(LogEntry(action=action, entity=entity, description=description))

    def clear(self) -> None:
        self._document.remove()
