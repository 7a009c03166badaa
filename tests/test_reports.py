"""Tests for reporting aggregations and the spreadsheet export."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from finflow.constants import DEFAULT_EXPENSE_CATEGORIES
from finflow.models import LogAction, Transaction
from finflow.reports import (
    SpreadsheetExporter,
    available_years,
    balance_history,
    daily_totals,
    expense_breakdown,
    goal_progress,
    monthly_totals,
    recent_activity,
    summarize,
    yearly_comparison,
)


def tx(kind, amount, day, **extra):
    return Transaction(
        type=kind,
        description=extra.pop("description", f"{kind} {amount}"),
        amount=Decimal(str(amount)),
        date=day,
        **extra,
    )


@pytest.fixture
def sample():
    return [
        tx("income", 3000, date(2024, 5, 5), source="salary"),
        tx("expense", 600, date(2024, 5, 10), category="housing"),
        tx("expense", 300, date(2024, 5, 19), category="food"),
        tx("expense", 100, date(2024, 5, 20), category="food"),
        tx("expense", 50, date(2024, 4, 2)),
        tx("income", 200, date(2023, 12, 31), source="gift"),
    ]


class TestAggregations:
    """Tests for the dashboard and report aggregations."""

    def test_summarize(self, sample):
        """Test totals and balance."""
        summary = summarize(sample)
        assert summary.total_income == Decimal("3200")
        assert summary.total_expenses == Decimal("1050")
        assert summary.balance == Decimal("2150")
        assert summary.transaction_count == 6

    def test_summarize_empty(self):
        """Test that no transactions means zeros."""
        summary = summarize([])
        assert summary.balance == 0
        assert summary.transaction_count == 0

    def test_summary_json_uses_numbers(self, sample):
        """Test that money fields serialize to JSON numbers."""
        data = summarize(sample).model_dump(mode="json")
        assert data["balance"] == 2150.0

    def test_expense_breakdown(self, sample):
        """Test per-category totals, labels and shares."""
        breakdown = expense_breakdown(sample, DEFAULT_EXPENSE_CATEGORIES)

        assert [item.category for item in breakdown] == ["housing", "food", "other"]
        assert breakdown[0].label == "Moradia e Aluguel"
        assert breakdown[1].total == Decimal("400")
        assert breakdown[0].percentage == pytest.approx(57.14)
        assert sum(item.percentage for item in breakdown) == pytest.approx(100, abs=0.05)

    def test_expense_breakdown_unknown_category(self):
        """Test that a deleted category keeps its raw value as label."""
        breakdown = expense_breakdown([tx("expense", 10, date(2024, 5, 1), category="pets")])
        assert breakdown[0].label == "pets"
        assert breakdown[0].percentage == 100.0

    def test_expense_breakdown_without_expenses(self):
        """Test that an empty breakdown is returned when nothing was spent."""
        assert expense_breakdown([tx("income", 10, date(2024, 5, 1))]) == []

    def test_daily_totals(self, sample, today):
        """Test the last seven days, zero-filled and oldest first."""
        days = daily_totals(sample, days=7, today=today)

        assert len(days) == 7
        assert days[0].label == "14/05"
        assert days[-1].label == "20/05"
        assert days[-1].expenses == Decimal("100")
        assert days[-2].expenses == Decimal("300")
        assert days[1].income == 0

    def test_monthly_totals(self, sample, today):
        """Test the last six months with Portuguese labels."""
        months = monthly_totals(sample, months=6, today=today)

        assert [m.label for m in months] == [
            "dez 23", "jan 24", "fev 24", "mar 24", "abr 24", "mai 24",
        ]
        assert months[0].income == Decimal("200")
        assert months[-1].expenses == Decimal("1000")
        assert months[-1].net == Decimal("2000")

    def test_available_years(self, sample, today):
        """Test the year list, newest first."""
        assert available_years(sample) == [2024, 2023]
        assert available_years([], today=today) == [2024]

    def test_yearly_comparison(self, sample):
        """Test the twelve buckets of a year."""
        months = yearly_comparison(sample, 2024)

        assert len(months) == 12
        assert months[0].label == "Jan"
        assert months[3].expenses == Decimal("50")
        assert months[4].income == Decimal("3000")
        assert months[11].income == 0

    def test_balance_history_daily(self):
        """Test the running balance carries forward over quiet days."""
        points = balance_history([
            tx("income", 100, date(2024, 5, 1)),
            tx("expense", 30, date(2024, 5, 3)),
        ])

        assert [p.balance for p in points] == [Decimal("100"), Decimal("100"), Decimal("70")]
        assert points[0].label == "01/05"

    def test_balance_history_monthly(self, sample):
        """Test monthly points from the first to the last month."""
        points = balance_history(sample, mode="monthly")

        assert points[0].label == "Dez 23"
        assert points[-1].label == "Mai 24"
        assert len(points) == 6
        assert points[-1].balance == Decimal("2150")

    def test_balance_history_empty_and_invalid(self):
        """Test the empty case and an unknown mode."""
        assert balance_history([]) == []
        with pytest.raises(ValueError):
            balance_history([], mode="weekly")

    def test_recent_activity(self, sample, today):
        """Test the trailing 30-day window includes today."""
        recent = recent_activity(sample, days=30, today=today)

        assert recent.date_from == date(2024, 4, 21)
        assert recent.income == Decimal("3000")
        assert recent.expenses == Decimal("1000")

    def test_goal_progress(self, sample, today):
        """Test goal usage for the current month."""
        progress = goal_progress(sample, Decimal("1500"), today=today)

        assert progress.spent == Decimal("1000")
        assert progress.remaining == Decimal("500")
        assert progress.percent == pytest.approx(66.67)
        assert progress.exceeded is False

    def test_goal_progress_exceeded(self, sample, today):
        """Test the exceeded flag and a floored remaining amount."""
        progress = goal_progress(sample, Decimal("800"), today=today)

        assert progress.exceeded is True
        assert progress.remaining == 0
        assert progress.percent == 125.0

    def test_goal_progress_zero_goal(self, today):
        """Test a zero goal does not divide by zero."""
        assert goal_progress([], Decimal("0"), today=today).percent == 0.0
        spent = [tx("expense", 1, today)]
        assert goal_progress(spent, Decimal("0"), today=today).percent == 100.0


class TestSpreadsheetExport:
    """Tests for the XLSX export."""

    def test_export_writes_rows(self, transactions, categories, income_sources, activity, history, tmp_path):
        """Test headers, ordering, labels and the log entry."""
        transactions.add({
            "type": "income", "description": "Salary", "amount": "3000",
            "date": "2024-05-05", "source": "salary",
        })
        transactions.add({
            "type": "expense", "description": "Market", "amount": "120.5",
            "date": "2024-05-10", "category": "food",
        })
        transactions.add({
            "type": "expense", "description": "Misc", "amount": "5",
            "date": "2024-05-01",
        })
        exporter = SpreadsheetExporter(transactions, categories, income_sources, activity)
        path = tmp_path / "out.xlsx"

        assert exporter.export(path) == 3

        sheet = load_workbook(path).active
        rows = list(sheet.iter_rows(values_only=True))
        assert rows[0] == ("Data", "Descrição", "Tipo", "Categoria/Fonte", "Valor (R$)")
        assert rows[1][1:] == ("Market", "Despesa", "Alimentação", 120.5)
        assert rows[1][0] == datetime(2024, 5, 10)
        assert rows[2][2:4] == ("Receita", "Salário")
        assert rows[3][3] == "-"

        entry = history.list()[0]
        assert entry.action == LogAction.EXPORT
        assert "XLSX" in entry.description

    def test_export_nothing(self, transactions, categories, income_sources, tmp_path):
        """Test that an empty store writes no file."""
        exporter = SpreadsheetExporter(transactions, categories, income_sources)
        path = tmp_path / "out.xlsx"

        assert exporter.export(path) == 0
        assert not path.exists()
