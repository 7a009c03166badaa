"""Backup export and import."""

from finflow.backup.reconciler import (
    MISSING_DESCRIPTION,
    BackupFormatError,
    BackupService,
    CoercedField,
    coerce_transaction,
)

__all__ = [
    "MISSING_DESCRIPTION",
    "BackupFormatError",
    "BackupService",
    "CoercedField",
    "coerce_transaction",
]
