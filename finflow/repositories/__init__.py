"""
Repositories Package

Data access over the local key-value store. Each repository owns one
storage key and logs every user-visible change.
"""

from finflow.repositories.categories import (
    CategoryRepository,
    IncomeSourceRepository,
    slugify,
)
from finflow.repositories.goal import GoalRepository, InvalidGoalError, parse_goal
from finflow.repositories.transactions import TransactionRepository

__all__ = [
    "CategoryRepository",
    "GoalRepository",
    "IncomeSourceRepository",
    "InvalidGoalError",
    "TransactionRepository",
    "parse_goal",
    "slugify",
]
