"""
Activity Log Models for FinFlow

Every user-visible change to local data leaves a log entry behind.
The history page lists them newest first so the user can see what
happened to their data and when (including backup exports/imports).

DESIGN DECISION: Log entries are append-only. They are never edited;
the user can only clear the whole history.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class LogAction(str, Enum):
    """What was done."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"


class LogEntity(str, Enum):
    """What it was done to."""
    TRANSACTION = "TRANSACTION"
    CATEGORY = "CATEGORY"
    INCOME_SOURCE = "INCOME_SOURCE"
    GOAL = "GOAL"
    BACKUP = "BACKUP"


def _utcnow_iso() -> str:
    return datetime.utcnow().isoformat(timespec="milliseconds") + "Z"


class LogEntry(BaseModel):
    """
    A single activity log entry.

    Timestamps are kept as ISO 8601 strings, exactly as stored.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique entry identifier"
    )
    timestamp: str = Field(
        default_factory=_utcnow_iso,
        description="When the action happened (ISO 8601, UTC)"
    )
    action: LogAction
    entity: LogEntity
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    @field_validator('timestamp')
    @classmethod
    def must_be_iso(cls, v: str) -> str:
        datetime.fromisoformat(v.replace("Z", "+00:00"))
        return v

    @property
    def sort_key(self) -> datetime:
        """Timestamp as an aware datetime. Entries without an offset are UTC."""
        moment = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "log_id": self.id,
            "timestamp": self.timestamp,
            "action": self.action.value,
            "entity": self.entity.value,
            "description": self.description,
        }


class LogEntryBuilder:
    """
    Helper class to build log entries with the app's standard wording.

    Usage:
        entry = LogEntryBuilder.transaction_created(tx, "R$")
        entry = LogEntryBuilder.category_deleted("Food")
    """

    @staticmethod
    def _money(amount, currency: str) -> str:
        return f"{currency}{float(amount):,.2f}"

    @staticmethod
    def transaction_created(
        kind: str,
        description: str,
        amount,
        currency: str,
        via: Optional[str] = None,
    ) -> LogEntry:
        text = (
            f"{kind.capitalize()} \"{description}\" of "
            f"{LogEntryBuilder._money(amount, currency)} was added"
        )
        if via:
            text += f" via {via}"
        return LogEntry(
            action=LogAction.CREATE,
            entity=LogEntity.TRANSACTION,
            description=text + ".",
        )

    @staticmethod
    def transaction_updated(kind: str, description: str, changed: list[str]) -> LogEntry:
        fields = ", ".join(changed) if changed else "no fields"
        return LogEntry(
            action=LogAction.UPDATE,
            entity=LogEntity.TRANSACTION,
            description=f"{kind.capitalize()} \"{description}\" was edited ({fields}).",
        )

    @staticmethod
    def transaction_deleted(kind: str, description: str, amount, currency: str) -> LogEntry:
        return LogEntry(
            action=LogAction.DELETE,
            entity=LogEntity.TRANSACTION,
            description=(
                f"{kind.capitalize()} \"{description}\" of "
                f"{LogEntryBuilder._money(amount, currency)} was deleted."
            ),
        )

    @staticmethod
    def category_created(label: str) -> LogEntry:
        return LogEntry(
            action=LogAction.CREATE,
            entity=LogEntity.CATEGORY,
            description=f"Expense category \"{label}\" was created.",
        )

    @staticmethod
    def category_deleted(label: str) -> LogEntry:
        return LogEntry(
            action=LogAction.DELETE,
            entity=LogEntity.CATEGORY,
            description=f"Expense category \"{label}\" was deleted.",
        )

    @staticmethod
    def income_source_created(label: str) -> LogEntry:
        return LogEntry(
            action=LogAction.CREATE,
            entity=LogEntity.INCOME_SOURCE,
            description=f"Income source \"{label}\" was created.",
        )

    @staticmethod
    def income_source_deleted(label: str) -> LogEntry:
        return LogEntry(
            action=LogAction.DELETE,
            entity=LogEntity.INCOME_SOURCE,
            description=f"Income source \"{label}\" was deleted.",
        )

    @staticmethod
    def goal_updated(goal, currency: str) -> LogEntry:
        if goal is None:
            text = "Monthly spending goal was removed."
        else:
            text = (
                "Monthly spending goal set to "
                f"{LogEntryBuilder._money(goal, currency)}."
            )
        return LogEntry(
            action=LogAction.UPDATE,
            entity=LogEntity.GOAL,
            description=text,
        )

    @staticmethod
    def backup_exported(transaction_count: int, target: str = "JSON backup") -> LogEntry:
        return LogEntry(
            action=LogAction.EXPORT,
            entity=LogEntity.BACKUP,
            description=f"{transaction_count} transaction(s) exported to {target}.",
        )

    @staticmethod
    def backup_imported(added: int, skipped: int, goal_adopted: bool) -> LogEntry:
        text = f"Backup imported: {added} new transaction(s), {skipped} already present"
        if goal_adopted:
            text += ", monthly goal restored"
        return LogEntry(
            action=LogAction.IMPORT,
            entity=LogEntity.BACKUP,
            description=text + ".",
        )
