"""
Data Models Package

This package contains all Pydantic models used in FinFlow.
All data written to the local store must conform to these schemas.
"""

from finflow.models.transaction import (
    BACKUP_FORMAT_VERSION,
    Backup,
    ExpenseCategory,
    ExpenseSubtype,
    ImportResult,
    IncomeSource,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from finflow.models.activity import (
    LogAction,
    LogEntity,
    LogEntry,
    LogEntryBuilder,
)

__all__ = [
    # Transaction models
    "BACKUP_FORMAT_VERSION",
    "Backup",
    "ExpenseCategory",
    "ExpenseSubtype",
    "ImportResult",
    "IncomeSource",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "TransactionUpdate",
    # Activity log models
    "LogAction",
    "LogEntity",
    "LogEntry",
    "LogEntryBuilder",
]
