"""
Core Data Models for FinFlow

These models define the schemas for every record kept in the local store.
They are designed to:
1. Enforce type safety at runtime
2. Round-trip through the JSON documents the store keeps
3. Stay readable by backups produced by older versions of the app

DESIGN DECISION: Records read from storage or from a backup are NOT
trusted to be well-formed. Anything lenient lives in the backup
reconciler; these models stay strict so bad data fails loudly on write.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    EXPENSE = "expense"


class ExpenseSubtype(str, Enum):
    """Whether an expense recurs every month or not."""
    FIXED = "fixed"
    VARIABLE = "variable"


def _new_id() -> str:
    return str(uuid4())


def _utcnow_iso() -> str:
    return dt.datetime.utcnow().isoformat(timespec="milliseconds") + "Z"


def parse_calendar_date(value: Any) -> Any:
    """
    Reduce ISO datetime strings and datetimes to a calendar date.

    Older records store full timestamps ("2024-05-01T03:00:00.000Z");
    only the date part is meaningful.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str) and len(value) >= 10:
        return value.strip()[:10]
    return value


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense record.

    Expenses carry a category, incomes carry a source.
    Neither is required so that records ingested from automation
    or old backups still load.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=_new_id,
        min_length=1,
        description="Unique transaction ID"
    )
    type: TransactionType
    description: str = Field(
        ...,
        max_length=255,
        description="What the money was for"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in the configured currency"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date the transaction happened"
    )
    category: Optional[str] = Field(
        default=None,
        description="Expense category value (expenses only)"
    )
    source: Optional[str] = Field(
        default=None,
        description="Income source value (incomes only)"
    )
    expense_subtype: Optional[ExpenseSubtype] = None
    created_at: str = Field(
        default_factory=_utcnow_iso,
        description="When the record was created (ISO 8601, UTC)"
    )

    @field_validator('date', mode='before')
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        return parse_calendar_date(v)

    @field_serializer('amount')
    def serialize_amount(self, amount: Decimal) -> float:
        # Stored as a JSON number, like every backup the app ever wrote
        return float(amount)

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign it has on the balance."""
        return self.amount if self.is_income else -self.amount

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json")


class TransactionCreate(BaseModel):
    """
    Data needed to record a new transaction.

    Used by the data access layer and as the body of the
    automation endpoint.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    description: str = Field(
        ...,
        min_length=1,
        max_length=255,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
    )
    date: dt.date
    category: Optional[str] = None
    source: Optional[str] = None
    expense_subtype: Optional[ExpenseSubtype] = None

    @field_validator('date', mode='before')
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        return parse_calendar_date(v)


class TransactionUpdate(BaseModel):
    """Partial update of an existing transaction. Unset fields are kept."""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    date: Optional[dt.date] = None
    category: Optional[str] = None
    source: Optional[str] = None
    expense_subtype: Optional[ExpenseSubtype] = None

    @field_validator('date', mode='before')
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        return parse_calendar_date(v)


# =============================================================================
# CATEGORIES AND SOURCES
# =============================================================================

OPTION_LABEL_MAX_LENGTH = 100


class ExpenseCategory(BaseModel):
    """An expense category. `value` is the slug stored on transactions."""

    value: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1, max_length=OPTION_LABEL_MAX_LENGTH)
    icon: str = Field(
        default="Package",
        description="Icon name shown next to the category"
    )


class IncomeSource(BaseModel):
    """An income source. `value` is the slug stored on transactions."""

    value: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1, max_length=OPTION_LABEL_MAX_LENGTH)


# =============================================================================
# BACKUP
# =============================================================================

BACKUP_FORMAT_VERSION = 1


class Backup(BaseModel):
    """
    JSON snapshot of all transactions plus the monthly spending goal.

    This is what export writes and what import reads back.
    """

    version: int = BACKUP_FORMAT_VERSION
    exported_at: str = Field(default_factory=_utcnow_iso)
    transactions: list[Transaction] = Field(default_factory=list)
    monthly_goal: Optional[Decimal] = None

    @field_serializer('monthly_goal')
    def serialize_goal(self, goal: Optional[Decimal]) -> Optional[float]:
        return float(goal) if goal is not None else None


class ImportResult(BaseModel):
    """Outcome of reconciling a backup into local data."""

    received: int = Field(ge=0, description="Records found in the backup")
    added: int = Field(ge=0, description="Records appended to local data")
    skipped: int = Field(ge=0, description="Records already present (by id)")
    coerced: int = Field(
        default=0,
        ge=0,
        description="Records that needed a default for a malformed field"
    )
    goal_adopted: bool = False

    @property
    def summary(self) -> str:
        parts = [f"{self.added} new transaction(s) imported"]
        if self.skipped:
            parts.append(f"{self.skipped} already present")
        if self.goal_adopted:
            parts.append("monthly goal restored")
        return ", ".join(parts) + "."
