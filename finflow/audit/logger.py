"""
Activity Logger

DESIGN DECISION: Every user-visible change to local data is logged.
This provides:
1. A history page the user can read
2. Debugging capability
3. Traceability for data that arrives through automation or backups

The activity logger:
- Always emits a structured local log line
- Persists the entry to the activity log repository when one is attached
- Gracefully handles failures (a broken log never breaks the main flow)
"""

from decimal import Decimal
from typing import Optional

import structlog
from pydantic import ValidationError

from finflow.audit.history import ActivityLogRepository
from finflow.models.activity import LogEntry, LogEntryBuilder
from finflow.models.transaction import Transaction


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class ActivityLogger:
    """
    Central activity logging service.

    Logs entries both to:
    1. Structured local log (for debugging)
    2. The activity log in the local store (for the history page)
    """

    def __init__(
        self,
        history: Optional[ActivityLogRepository] = None,
        currency: str = "R$",
    ):
        """
        Initialize activity logger.

        Args:
            history: Repository to persist entries to.
                    If None, only logs locally.
            currency: Symbol used when amounts appear in descriptions
        """
        self._history = history
        self._currency = currency
        self._logger = structlog.get_logger()

    def log(self, entry: LogEntry) -> bool:
        """
        Log an activity entry.

        Always logs locally. Persists to the history if available.

        Returns True if the history write succeeded (or no history configured).
        """
        self._logger.info("activity", **entry.to_log_dict())

        if self._history:
            try:
                self._history.append(entry)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "activity_storage_failed",
                    error=str(e),
                    log_id=entry.id,
                )
                return False

        return True

    def _log_built(self, build, *args, **kwargs) -> bool:
        """Build an entry with a LogEntryBuilder method and log it. Never raises."""
        try:
            entry = build(*args, **kwargs)
        except ValidationError as e:
            self._logger.error(
                "activity_entry_invalid",
                builder=build.__name__,
                error=str(e),
            )
            return False
        return self.log(entry)

    def log_transaction_created(self, tx: Transaction, via: Optional[str] = None) -> None:
        self._log_built(
            LogEntryBuilder.transaction_created,
            kind=tx.type.value,
            description=tx.description,
            amount=tx.amount,
            currency=self._currency,
            via=via,
        )

    def log_transaction_updated(self, tx: Transaction, changed: list[str]) -> None:
        self._log_built(
            LogEntryBuilder.transaction_updated,
            kind=tx.type.value,
            description=tx.description,
            changed=changed,
        )

    def log_transaction_deleted(self, tx: Transaction) -> None:
        self._log_built(
            LogEntryBuilder.transaction_deleted,
            kind=tx.type.value,
            description=tx.description,
            amount=tx.amount,
            currency=self._currency,
        )

    def log_category_created(self, label: str) -> None:
        self._log_built(LogEntryBuilder.category_created, label)

    def log_category_deleted(self, label: str) -> None:
        self._log_built(LogEntryBuilder.category_deleted, label)

    def log_income_source_created(self, label: str) -> None:
        self._log_built(LogEntryBuilder.income_source_created, label)

    def log_income_source_deleted(self, label: str) -> None:
        self._log_built(LogEntryBuilder.income_source_deleted, label)

    def log_goal_updated(self, goal: Optional[Decimal]) -> None:
        self._log_built(LogEntryBuilder.goal_updated, goal, self._currency)

    def log_backup_exported(self, transaction_count: int, target: str = "JSON backup") -> None:
        self._log_built(LogEntryBuilder.backup_exported, transaction_count, target)

    def log_backup_imported(self, added: int, skipped: int, goal_adopted: bool) -> None:
        self._log_built(LogEntryBuilder.backup_imported, added, skipped, goal_adopted)

    def log_error(self, error_type: str, error_message: str, **details) -> None:
        """Log an error locally. Errors are not part of the user-visible history."""
        self._logger.error(
            "system_error",
            error_type=error_type,
            error_message=error_message,
            **details,
        )
