"""
Backup Export and Import Reconciliation

DESIGN DECISION: Import is a set union keyed by transaction id.
- Records already present locally are never overwritten, so edits made
  after the backup was taken survive a re-import
- Importing the same file twice changes nothing the second time
- The monthly goal is only taken from the backup when none is set

Unlike the strict models, import is lenient: a backup written by an
older version, or edited by hand, should still load. Each malformed
field gets a default and the record is kept.
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel

from finflow.audit import ActivityLogger
from finflow.models.transaction import (
    Backup,
    ExpenseSubtype,
    ImportResult,
    Transaction,
    TransactionType,
    parse_calendar_date,
)
from finflow.repositories import GoalRepository, TransactionRepository, parse_goal


MISSING_DESCRIPTION = "(no description)"
GOAL_KEYS = ("monthly_goal", "monthlySpendingGoal")


class BackupFormatError(ValueError):
    """The payload is not JSON, or not shaped like a backup."""
    pass


class CoercedField(BaseModel):
    """A field that had to be replaced with a default during import."""

    field: str
    reason: str


def _coerce_amount(value: Any) -> tuple[Decimal, Optional[str]]:
    if isinstance(value, bool) or value is None:
        return Decimal("0"), "missing or not a number"
    try:
        amount = Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        return Decimal("0"), "not a number"
    if not amount.is_finite():
        return Decimal("0"), "not a finite number"
    if amount < 0:
        return -amount, "negative"
    return amount, None


def _coerce_date(value: Any, import_date: date) -> tuple[date, Optional[str]]:
    value = parse_calendar_date(value)
    if isinstance(value, date):
        return value, None
    if isinstance(value, str):
        try:
            return date.fromisoformat(value), None
        except ValueError:
            pass
    return import_date, "missing or malformed"


def coerce_transaction(
    raw: dict,
    import_date: Optional[date] = None,
) -> tuple[Transaction, list[CoercedField]]:
    """
    Build a Transaction from an untrusted backup record.

    Never raises for a dict input: every malformed field is replaced.

    Returns:
        (transaction, fields that were coerced)
    """
    import_date = import_date or date.today()
    coerced = []

    record_id = raw.get("id")
    valid_id = isinstance(record_id, (str, int)) and not isinstance(record_id, bool)
    if valid_id and str(record_id).strip():
        record_id = str(record_id).strip()
    else:
        record_id = str(uuid4())
        coerced.append(CoercedField(field="id", reason="missing"))

    raw_type = raw.get("type")
    try:
        tx_type = TransactionType(str(raw_type).strip().lower())
    except ValueError:
        tx_type = TransactionType.EXPENSE
        coerced.append(CoercedField(field="type", reason=f"unknown type {raw_type!r}"))

    description = raw.get("description")
    if isinstance(description, str) and description.strip():
        description = description.strip()[:255]
    else:
        description = MISSING_DESCRIPTION
        coerced.append(CoercedField(field="description", reason="missing"))

    amount, problem = _coerce_amount(raw.get("amount"))
    if problem:
        coerced.append(CoercedField(field="amount", reason=problem))

    tx_date, problem = _coerce_date(raw.get("date"), import_date)
    if problem:
        coerced.append(CoercedField(field="date", reason=problem))

    def optional_text(key: str) -> Optional[str]:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    subtype = raw.get("expense_subtype")
    try:
        subtype = ExpenseSubtype(subtype) if subtype is not None else None
    except ValueError:
        subtype = None
        coerced.append(CoercedField(field="expense_subtype", reason="unknown subtype"))

    fields = {
        "id": record_id,
        "type": tx_type,
        "description": description,
        "amount": amount,
        "date": tx_date,
        "category": optional_text("category"),
        "source": optional_text("source"),
        "expense_subtype": subtype,
    }

    created_at = raw.get("created_at")
    if isinstance(created_at, str):
        try:
            datetime.fromisoformat(created_at.replace("Z", "+00:00"))
            fields["created_at"] = created_at
        except ValueError:
            coerced.append(CoercedField(field="created_at", reason="malformed"))

    return Transaction(**fields), coerced


class BackupService:
    """
    Export local data to a backup and merge a backup back in.
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        goal: GoalRepository,
        activity: Optional[ActivityLogger] = None,
    ):
        self._transactions = transactions
        self._goal = goal
        self._activity = activity or ActivityLogger()
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export(self) -> Backup:
        """Snapshot every transaction and the current goal. Logged as EXPORT."""
        backup = Backup(
            transactions=self._transactions.list(),
            monthly_goal=self._goal.get(),
        )
        self._activity.log_backup_exported(len(backup.transactions))
        return backup

    def export_json(self, indent: Optional[int] = 2) -> str:
        return self.export().model_dump_json(indent=indent)

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def _parse_payload(self, raw: str | bytes) -> tuple[list, Any]:
        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise BackupFormatError(f"Backup is not valid JSON: {e}") from e

        if isinstance(payload, list):
            return payload, None

        if not isinstance(payload, dict):
            raise BackupFormatError("Backup must be a JSON object or array")

        records = payload.get("transactions")
        if not isinstance(records, list):
            raise BackupFormatError("Backup has no 'transactions' list")

        goal = next(
            (payload[key] for key in GOAL_KEYS if payload.get(key) is not None),
            None,
        )
        return records, goal

    def import_json(
        self,
        raw: str | bytes,
        import_date: Optional[date] = None,
    ) -> ImportResult:
        """
        Merge a backup into local data.

        Args:
            raw: The backup file contents
            import_date: Date given to records with a malformed date
                (defaults to today)

        Returns:
            ImportResult with counts of added and skipped records

        Raises:
            BackupFormatError: If raw is not a JSON backup
        """
        records, raw_goal = self._parse_payload(raw)

        known_ids = self._transactions.stored_ids()

        added = []
        coerced_count = 0
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                self._logger.warning("backup_record_ignored", index=index)
                continue

            transaction, coerced = coerce_transaction(record, import_date)
            if coerced:
                coerced_count += 1
                self._logger.info(
                    "backup_record_coerced",
                    index=index,
                    transaction_id=transaction.id,
                    fields=[c.field for c in coerced],
                )

            if transaction.id in known_ids:
                continue
            known_ids.add(transaction.id)
            added.append(transaction)

        if added:
            self._transactions.extend(added)

        goal_adopted = False
        incoming_goal = parse_goal(raw_goal)
        if incoming_goal is not None and self._goal.get() is None:
            self._goal.set(incoming_goal, log=False)
            goal_adopted = True

        result = ImportResult(
            received=len(records),
            added=len(added),
            skipped=len(records) - len(added),
            coerced=coerced_count,
            goal_adopted=goal_adopted,
        )
        self._activity.log_backup_imported(result.added, result.skipped, goal_adopted)
        return result
