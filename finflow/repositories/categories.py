"""
Expense Category and Income Source Repositories

Both are user-editable lists of {value, label} options seeded with
defaults the first time they are read. `value` is a slug derived from
the label and is what transactions store.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from pydantic import BaseModel, ValidationError

from finflow.audit import ActivityLogger
from finflow.constants import (
    DEFAULT_CATEGORY_ICON,
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_SOURCES,
    EXPENSE_CATEGORIES_STORAGE_KEY,
    INCOME_SOURCES_STORAGE_KEY,
)
from finflow.models.transaction import (
    OPTION_LABEL_MAX_LENGTH,
    ExpenseCategory,
    IncomeSource,
)
from finflow.services.storage import JsonDocument, KeyValueStore


_WHITESPACE = re.compile(r"\s+")
_NOT_SLUG = re.compile(r"[^a-z0-9-]")


def slugify(label: str) -> str:
    """
    Turn a label into an option value.

    "Pet Care" -> "pet-care". Characters outside [a-z0-9-] are dropped,
    so a label made only of such characters yields an empty slug.
    """
    value = _WHITESPACE.sub("-", label.strip().lower())
    return _NOT_SLUG.sub("", value)


class _OptionRepository(ABC):
    """Shared behaviour of the category and income source lists."""

    model: type[BaseModel]
    noun: str

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        defaults: tuple,
        activity: Optional[ActivityLogger] = None,
    ):
        self._document = JsonDocument(store, key)
        self._defaults = defaults
        self._activity = activity or ActivityLogger()
        self._logger = structlog.get_logger(__name__)

    @property
    def storage_key(self) -> str:
        return self._document.key

    def _load(self) -> tuple[Optional[list], list]:
        """
        Stored entries as (raw, options).

        `raw` keeps every stored entry, including ones that no longer
        validate, so writes never drop them. It is None when the document
        exists but is not a JSON array; `options` are then the defaults.
        """
        if not self._document.exists():
            raw_options = [option.model_dump() for option in self._defaults]
            self._document.write(raw_options)
        else:
            raw_options = self._document.read(default=None)
            if not isinstance(raw_options, list):
                return None, [option.model_copy() for option in self._defaults]

        options = []
        for raw in raw_options:
            try:
                options.append(self.model.model_validate(raw))
            except ValidationError:
                self._logger.warning("option_skipped", key=self.storage_key)
        return raw_options, options

    def _read(self) -> list:
        return self._load()[1]

    def _build(self, value: str, label: str) -> BaseModel:
        return self.model(value=value, label=label)

    def add(self, label: Optional[str]) -> tuple[bool, str]:
        """
        Add an option from a free-text label.

        Returns:
            (success, message) ready to show the user
        """
        if not label or not label.strip():
            return False, f"The {self.noun} name cannot be empty."

        label = label.strip()
        if len(label) > OPTION_LABEL_MAX_LENGTH:
            return False, (
                f"The {self.noun} name must be at most "
                f"{OPTION_LABEL_MAX_LENGTH} characters."
            )

        value = slugify(label)
        if not value:
            return False, f"Invalid {self.noun} name."

        raw_options, options = self._load()
        if raw_options is None:
            self._logger.error("option_list_unreadable", key=self.storage_key)
            return False, f"The {self.noun} list could not be read."

        if any(
            option.value == value or option.label.lower() == label.lower()
            for option in options
        ):
            return False, f"This {self.noun} already exists."

        option = self._build(value, label)
        self._document.write(raw_options + [option.model_dump()])
        self._log_created(option.label)

        return True, f"{self.noun.capitalize()} added successfully!"

    def delete(self, value: str) -> bool:
        """Remove an option by value. Returns False if there was none."""
        raw_options, options = self._load()
        target = next((option for option in options if option.value == value), None)
        if raw_options is None or target is None:
            return False

        self._document.write([
            raw for raw in raw_options
            if not (isinstance(raw, dict) and raw.get("value") == value)
        ])
        self._log_deleted(target.label)
        return True

    def label_for(self, value: Optional[str]) -> Optional[str]:
        """Label of an option, or the raw value if it is not (or no longer) defined."""
        if value is None:
            return None
        for option in self._read():
            if option.value == value:
                return option.label
        return value

    def labels(self) -> dict[str, str]:
        return {option.value: option.label for option in self._read()}

    @abstractmethod
    def _log_created(self, label: str) -> None:
        pass

    @abstractmethod
    def _log_deleted(self, label: str) -> None:
        pass

    def list(self):
        """All options, seeding the defaults if the list was never stored."""
        return self._read()


class CategoryRepository(_OptionRepository):
    """Expense categories. New categories get the default icon."""

    model = ExpenseCategory
    noun = "category"

    def __init__(self, store: KeyValueStore, activity: Optional[ActivityLogger] = None):
        super().__init__(
            store,
            EXPENSE_CATEGORIES_STORAGE_KEY,
            DEFAULT_EXPENSE_CATEGORIES,
            activity,
        )

    def _build(self, value: str, label: str) -> ExpenseCategory:
        return ExpenseCategory(value=value, label=label, icon=DEFAULT_CATEGORY_ICON)

    def _log_created(self, label: str) -> None:
        self._activity.log_category_created(label)

    def _log_deleted(self, label: str) -> None:
        self._activity.log_category_deleted(label)


class IncomeSourceRepository(_OptionRepository):
    """Income sources."""

    model = IncomeSource
    noun = "income source"

    def __init__(self, store: KeyValueStore, activity: Optional[ActivityLogger] = None):
        super().__init__(
            store,
            INCOME_SOURCES_STORAGE_KEY,
            DEFAULT_INCOME_SOURCES,
            activity,
        )

    def _log_created(self, label: str) -> None:
        self._activity.log_income_source_created(label)

    def _log_deleted(self, label: str) -> None:
        self._activity.log_income_source_deleted(label)
