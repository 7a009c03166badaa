"""Reporting package: aggregations for charts and spreadsheet export."""

from finflow.reports.aggregations import (
    BalancePoint,
    CategoryTotal,
    GoalProgress,
    PeriodTotals,
    RecentActivity,
    Summary,
    available_years,
    balance_history,
    daily_totals,
    expense_breakdown,
    filter_by_period,
    goal_progress,
    monthly_totals,
    recent_activity,
    summarize,
    yearly_comparison,
)
from finflow.reports.export import SpreadsheetExporter, build_workbook

__all__ = [
    # Result models
    "BalancePoint",
    "CategoryTotal",
    "GoalProgress",
    "PeriodTotals",
    "RecentActivity",
    "Summary",
    # Aggregations
    "available_years",
    "balance_history",
    "daily_totals",
    "expense_breakdown",
    "filter_by_period",
    "goal_progress",
    "monthly_totals",
    "recent_activity",
    "summarize",
    "yearly_comparison",
    # Export
    "SpreadsheetExporter",
    "build_workbook",
]
