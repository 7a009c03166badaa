"""Monthly spending goal, stored as a bare number string under `monthlySpendingGoal`."""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from finflow.audit import ActivityLogger
from finflow.constants import MONTHLY_SPENDING_GOAL_KEY
from finflow.services.storage import KeyValueStore


class InvalidGoalError(ValueError):
    """Goal is negative or not a number."""
    pass


def parse_goal(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """
    Parse a goal value leniently.

    Returns None for anything that is not a finite, non-negative number.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        goal = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not goal.is_finite() or goal < 0:
        return None
    return goal


class GoalRepository:
    """Read and change the monthly spending goal."""

    def __init__(self, store: KeyValueStore, activity: Optional[ActivityLogger] = None):
        self._store = store
        self._activity = activity or ActivityLogger()

    @property
    def storage_key(self) -> str:
        return MONTHLY_SPENDING_GOAL_KEY

    def get(self) -> Optional[Decimal]:
        """The current goal, or None when unset or unreadable."""
        return parse_goal(self._store.get_item(MONTHLY_SPENDING_GOAL_KEY))

    def set(self, value: Union[str, int, float, Decimal], log: bool = True) -> Decimal:
        """
        Save a new goal.

        Raises:
            InvalidGoalError: If value is not a non-negative number
        """
        goal = parse_goal(value)
        if goal is None:
            raise InvalidGoalError(f"Invalid monthly goal: {value!r}")

        self._store.set_item(MONTHLY_SPENDING_GOAL_KEY, str(goal))
        if log:
            self._activity.log_goal_updated(goal)
        return goal

    def clear(self) -> None:
        if self._store.get_item(MONTHLY_SPENDING_GOAL_KEY) is None:
            return
        self._store.remove_item(MONTHLY_SPENDING_GOAL_KEY)
        self._activity.log_goal_updated(None)
