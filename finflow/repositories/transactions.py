"""
Transaction Repository

Every income and expense lives in one JSON array under
`financialApp_transactions`.

DESIGN DECISION: Mutations work on the raw stored records, not on the
parsed models. A record that no longer validates is hidden from list()
but is never silently dropped from storage by an unrelated write.
"""

from datetime import date
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError

from finflow.audit import ActivityLogger
from finflow.constants import TRANSACTIONS_STORAGE_KEY
from finflow.models.transaction import (
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from finflow.services.storage import JsonDocument, KeyValueStore, NotFoundError


class TransactionRepository:
    """
    Data access for transactions.

    Every mutation is written through to the store (which dispatches a
    storage event) and recorded in the activity log.
    """

    def __init__(
        self,
        store: KeyValueStore,
        activity: Optional[ActivityLogger] = None,
    ):
        self._document = JsonDocument(store, TRANSACTIONS_STORAGE_KEY)
        self._activity = activity or ActivityLogger()
        self._logger = structlog.get_logger(__name__)

    @property
    def storage_key(self) -> str:
        return self._document.key

    def _parse(self, raw: Any) -> Optional[Transaction]:
        try:
            return Transaction.model_validate(raw)
        except ValidationError as e:
            self._logger.warning(
                "transaction_record_skipped",
                record_id=raw.get("id") if isinstance(raw, dict) else None,
                error_count=e.error_count(),
            )
            return None

    def _find_index(self, records: list, transaction_id: str) -> Optional[int]:
        for index, raw in enumerate(records):
            if isinstance(raw, dict) and raw.get("id") == transaction_id:
                return index
        return None

    def stored_ids(self) -> set[str]:
        """Ids of every stored record, including ones list() hides."""
        ids = set()
        for raw in self._document.read_list():
            record_id = raw.get("id") if isinstance(raw, dict) else None
            if isinstance(record_id, (str, int)) and not isinstance(record_id, bool):
                ids.add(str(record_id).strip())
        return ids

    def get(self, transaction_id: str) -> Optional[Transaction]:
        records = self._document.read_list()
        index = self._find_index(records, transaction_id)
        if index is None:
            return None
        return self._parse(records[index])

    def add(
        self,
        data: Union[TransactionCreate, dict],
        type: Optional[TransactionType] = None,
        via: Optional[str] = None,
    ) -> Transaction:
        """
        Record a new transaction.

        Args:
            data: The transaction fields (without id/created_at)
            type: Income or expense; overrides any type carried by data
            via: Channel the transaction arrived through, for the log

        Returns:
            The stored transaction with its new id and created_at

        Raises:
            ValidationError: If data does not describe a valid transaction
        """
        if isinstance(data, dict):
            payload = dict(data)
            if type is not None:
                payload["type"] = type
            data = TransactionCreate.model_validate(payload)
        elif type is not None:
            data = data.model_copy(update={"type": TransactionType(type)})

        transaction = Transaction(**data.model_dump())

        records = self._document.read_list()
        records.append(transaction.to_storage_dict())
        self._document.write(records)

        self._activity.log_transaction_created(transaction, via=via)
        return transaction

    def update(
        self,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
    ) -> Transaction:
        """
        Apply a partial update.

        Raises:
            NotFoundError: If no transaction has this id
            ValidationError: If the changes are invalid
        """
        if isinstance(changes, dict):
            changes = TransactionUpdate.model_validate(changes)

        records = self._document.read_list()
        index = self._find_index(records, transaction_id)
        current = self._parse(records[index]) if index is not None else None
        if current is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        updates = changes.model_dump(exclude_unset=True)
        changed = [
            field for field, value in updates.items()
            if getattr(current, field) != value
        ]
        updated = Transaction.model_validate({**current.model_dump(), **updates})

        records[index] = updated.to_storage_dict()
        self._document.write(records)

        self._activity.log_transaction_updated(updated, changed)
        return updated

    def delete(self, transaction_id: str) -> bool:
        """Remove a transaction. Returns False if it did not exist."""
        records = self._document.read_list()
        index = self._find_index(records, transaction_id)
        if index is None:
            return False

        removed = records.pop(index)
        self._document.write(records)

        transaction = self._parse(removed)
        if transaction is not None:
            self._activity.log_transaction_deleted(transaction)
        return True

    def replace_all(self, transactions: list[Transaction]) -> None:
        """Overwrite the whole collection. Not logged; callers log what they did."""
        self._document.write([tx.to_storage_dict() for tx in transactions])

    def extend(self, transactions: list[Transaction]) -> None:
        """Append already-built transactions (e.g. from a backup). Not logged."""
        records = self._document.read_list()
        records.extend(tx.to_storage_dict() for tx in transactions)
        self._document.write(records)

    def filter(
        self,
        type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        source: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        Transactions matching every given criterion, newest first.

        Date bounds are inclusive.
        """
        results = []
        for tx in self.list():
            if type is not None and tx.type != type:
                continue
            if category is not None and tx.category != category:
                continue
            if source is not None and tx.source != source:
                continue
            if date_from is not None and tx.date < date_from:
                continue
            if date_to is not None and tx.date > date_to:
                continue
            results.append(tx)

        results.sort(key=lambda tx: (tx.date, tx.created_at), reverse=True)
        return results

    def expenses(self) -> list[Transaction]:
        return self.filter(type=TransactionType.EXPENSE)

    def incomes(self) -> list[Transaction]:
        return self.filter(type=TransactionType.INCOME)

    def list(self):
        """All readable transactions, in stored order."""
        transactions = []
        for raw in self._document.read_list():
            transaction = self._parse(raw)
            if transaction is not None:
                transactions.append(transaction)
        return transactions
