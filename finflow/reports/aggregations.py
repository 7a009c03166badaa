"""
Reporting Aggregations

DESIGN DECISION: Every number shown on the dashboard and reports pages
is computed here, DETERMINISTICALLY, from the stored transactions.
The AI advisor only ever sees what these functions return.

All functions are pure: they take a list of transactions (plus an
explicit `today` where the result depends on it) and never touch storage.
Buckets with no activity are still returned with zero totals, so charts
get a continuous axis.
"""

from calendar import monthrange
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Annotated, Iterable, Literal, Optional

from pydantic import BaseModel, Field, PlainSerializer

from finflow.models.transaction import ExpenseCategory, Transaction, TransactionType


MONTH_ABBREVIATIONS = (
    "jan", "fev", "mar", "abr", "mai", "jun",
    "jul", "ago", "set", "out", "nov", "dez",
)

ZERO = Decimal("0")


# =============================================================================
# RESULT MODELS
# =============================================================================

# Decimal in Python, plain number in JSON (chart payloads)
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Summary(BaseModel):
    total_income: Money = ZERO
    total_expenses: Money = ZERO
    balance: Money = ZERO
    transaction_count: int = 0


class CategoryTotal(BaseModel):
    category: str
    label: str
    total: Money
    percentage: float = Field(description="Share of total expenses, 0-100")


class PeriodTotals(BaseModel):
    """Income and expenses for one chart bucket (day, month...)."""

    label: str
    start: date
    income: Money = ZERO
    expenses: Money = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


class BalancePoint(BaseModel):
    label: str
    start: date
    balance: Money


class RecentActivity(BaseModel):
    days: int
    date_from: date
    date_to: date
    income: Money = ZERO
    expenses: Money = ZERO


class GoalProgress(BaseModel):
    goal: Money
    spent: Money
    remaining: Money
    percent: float
    exceeded: bool


# =============================================================================
# HELPERS
# =============================================================================

def _month_start(day: date) -> date:
    return day.replace(day=1)


def _month_end(day: date) -> date:
    return day.replace(day=monthrange(day.year, day.month)[1])


def _shift_months(day: date, months: int) -> date:
    """First day of the month `months` away from day's month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _month_label(day: date) -> str:
    return f"{MONTH_ABBREVIATIONS[day.month - 1]} {day.strftime('%y')}"


def _day_label(day: date) -> str:
    return day.strftime("%d/%m")


def _totals_by(transactions: Iterable[Transaction], key) -> dict:
    totals = defaultdict(lambda: [ZERO, ZERO])
    for tx in transactions:
        bucket = totals[key(tx)]
        if tx.is_income:
            bucket[0] += tx.amount
        else:
            bucket[1] += tx.amount
    return totals


# =============================================================================
# AGGREGATIONS
# =============================================================================

def summarize(transactions: Iterable[Transaction]) -> Summary:
    """Total income, total expenses and the resulting balance."""
    income = ZERO
    expenses = ZERO
    count = 0
    for tx in transactions:
        count += 1
        if tx.is_income:
            income += tx.amount
        else:
            expenses += tx.amount
    return Summary(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        transaction_count=count,
    )


def filter_by_period(
    transactions: Iterable[Transaction],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[Transaction]:
    """Transactions within [date_from, date_to]. Open bounds are unbounded."""
    return [
        tx for tx in transactions
        if (date_from is None or tx.date >= date_from)
        and (date_to is None or tx.date <= date_to)
    ]


def expense_breakdown(
    expenses: Iterable[Transaction],
    categories: Iterable[ExpenseCategory] = (),
) -> list[CategoryTotal]:
    """
    Total spent per category, largest first.

    Categories with no spending are omitted. Expenses whose category is
    not (or no longer) defined are grouped under their raw value, and
    expenses with no category at all under "other".
    """
    labels = {category.value: category.label for category in categories}

    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in expenses:
        if tx.type != TransactionType.EXPENSE:
            continue
        totals[tx.category or "other"] += tx.amount

    grand_total = sum(totals.values(), ZERO)
    if grand_total == 0:
        return []

    breakdown = [
        CategoryTotal(
            category=value,
            label=labels.get(value, value),
            total=total,
            percentage=round(float(total / grand_total * 100), 2),
        )
        for value, total in totals.items()
        if total > 0
    ]
    breakdown.sort(key=lambda item: item.total, reverse=True)
    return breakdown


def daily_totals(
    transactions: Iterable[Transaction],
    days: int = 7,
    today: Optional[date] = None,
) -> list[PeriodTotals]:
    """Income and expenses for each of the last `days` days, today included."""
    today = today or date.today()
    totals = _totals_by(transactions, lambda tx: tx.date)

    result = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        income, expenses = totals.get(day, (ZERO, ZERO))
        result.append(PeriodTotals(
            label=_day_label(day),
            start=day,
            income=income,
            expenses=expenses,
        ))
    return result


def monthly_totals(
    transactions: Iterable[Transaction],
    months: int = 6,
    today: Optional[date] = None,
) -> list[PeriodTotals]:
    """Income and expenses for each of the last `months` months, this month included."""
    today = today or date.today()
    totals = _totals_by(transactions, lambda tx: _month_start(tx.date))

    result = []
    for offset in range(months - 1, -1, -1):
        month = _shift_months(today, -offset)
        income, expenses = totals.get(month, (ZERO, ZERO))
        result.append(PeriodTotals(
            label=_month_label(month),
            start=month,
            income=income,
            expenses=expenses,
        ))
    return result


def available_years(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> list[int]:
    """Years that have transactions, newest first. The current year when empty."""
    years = sorted({tx.date.year for tx in transactions}, reverse=True)
    if not years:
        return [(today or date.today()).year]
    return years


def yearly_comparison(transactions: Iterable[Transaction], year: int) -> list[PeriodTotals]:
    """Twelve monthly buckets for one calendar year."""
    totals = _totals_by(
        (tx for tx in transactions if tx.date.year == year),
        lambda tx: tx.date.month,
    )

    result = []
    for month in range(1, 13):
        income, expenses = totals.get(month, (ZERO, ZERO))
        result.append(PeriodTotals(
            label=MONTH_ABBREVIATIONS[month - 1].capitalize(),
            start=date(year, month, 1),
            income=income,
            expenses=expenses,
        ))
    return result


def balance_history(
    transactions: Iterable[Transaction],
    mode: Literal["daily", "monthly"] = "daily",
) -> list[BalancePoint]:
    """
    Running balance from the first to the last transaction.

    Every day (or month) in between gets a point, carrying the balance
    forward when nothing happened.
    """
    if mode not in ("daily", "monthly"):
        raise ValueError(f"Unknown balance history mode: {mode}")

    transactions = list(transactions)
    if not transactions:
        return []

    net_by_day: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for tx in transactions:
        net_by_day[tx.date] += tx.signed_amount

    first = min(net_by_day)
    last = max(net_by_day)

    points = []
    balance = ZERO
    if mode == "daily":
        day = first
        while day <= last:
            balance += net_by_day.get(day, ZERO)
            points.append(BalancePoint(label=_day_label(day), start=day, balance=balance))
            day += timedelta(days=1)
        return points

    net_by_month: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for day, change in net_by_day.items():
        net_by_month[_month_start(day)] += change

    month = _month_start(first)
    while month <= last:
        balance += net_by_month.get(month, ZERO)
        label = _month_label(month)
        points.append(BalancePoint(label=label[0].upper() + label[1:], start=month, balance=balance))
        month = _shift_months(month, 1)
    return points


def recent_activity(
    transactions: Iterable[Transaction],
    days: int = 30,
    today: Optional[date] = None,
) -> RecentActivity:
    """Income and expenses over the last `days` days, today included."""
    today = today or date.today()
    date_from = today - timedelta(days=days - 1)
    summary = summarize(filter_by_period(transactions, date_from, today))
    return RecentActivity(
        days=days,
        date_from=date_from,
        date_to=today,
        income=summary.total_income,
        expenses=summary.total_expenses,
    )


def goal_progress(
    transactions: Iterable[Transaction],
    goal: Money,
    today: Optional[date] = None,
) -> GoalProgress:
    """How much of the monthly spending goal this month's expenses use up."""
    today = today or date.today()
    month_expenses = [
        tx for tx in filter_by_period(transactions, _month_start(today), _month_end(today))
        if tx.type == TransactionType.EXPENSE
    ]
    spent = sum((tx.amount for tx in month_expenses), ZERO)

    if goal > 0:
        percent = round(float(spent / goal * 100), 2)
    else:
        percent = 100.0 if spent > 0 else 0.0

    return GoalProgress(
        goal=goal,
        spent=spent,
        remaining=max(goal - spent, ZERO),
        percent=percent,
        exceeded=spent > goal,
    )
