"""Tests for the AI financial advisor and its rule-based fallbacks."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from tenacity import wait_none

from finflow.agents import (
    FinancialAdviceInput,
    FinancialAdvisor,
    FinancialTrendInput,
    build_advice_input,
    build_trend_input,
    fallback_advice,
    fallback_trend,
)
from finflow.agents.advisor import ExpenseCategoryDetail, format_money
from finflow.constants import DEFAULT_EXPENSE_CATEGORIES
from finflow.models import Transaction


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for a Gemini GenerativeModel."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply)


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(FinancialAdvisor._generate.retry, "wait", wait_none())


def _advice_input(income=1000.0, expenses=500.0, breakdown=()):
    return FinancialAdviceInput(
        recent_income=income,
        recent_total_expenses=expenses,
        expense_breakdown=list(breakdown),
        current_balance=income - expenses,
    )


def _detail(label, percentage):
    return ExpenseCategoryDetail(
        category_value=label.lower(),
        category_label=label,
        total_amount=percentage,
        percentage_of_total_expenses=percentage,
    )


class TestInputBuilders:
    """Tests for turning transactions into advisor inputs."""

    def test_build_advice_input(self, today):
        """Test that only the recent window feeds the breakdown."""
        transactions = [
            Transaction(type="income", description="Salary", amount=Decimal("3000"), date=date(2024, 5, 5)),
            Transaction(type="expense", description="Rent", amount=Decimal("900"), date=date(2024, 5, 10), category="housing"),
            Transaction(type="expense", description="Old", amount=Decimal("400"), date=date(2024, 1, 10), category="food"),
        ]

        data = build_advice_input(transactions, DEFAULT_EXPENSE_CATEGORIES, days=30, today=today)

        assert data.recent_income == 3000.0
        assert data.recent_total_expenses == 900.0
        assert [item.category_label for item in data.expense_breakdown] == ["Moradia e Aluguel"]
        assert data.current_balance == 1700.0

    def test_build_trend_input(self, today):
        """Test the 30-day totals and the overall balance."""
        transactions = [
            Transaction(type="income", description="Gift", amount=Decimal("50"), date=today),
            Transaction(type="income", description="Old", amount=Decimal("500"), date=date(2023, 1, 1)),
        ]

        data = build_trend_input(transactions, today=today)

        assert data.income_last_30_days == 50.0
        assert data.expenses_last_30_days == 0.0
        assert data.current_balance == 550.0


class TestFallbacks:
    """Tests for the deterministic advice and trend texts."""

    def test_format_money(self):
        """Test Brazilian number formatting."""
        assert format_money(1234.5) == "R$ 1.234,50"
        assert format_money(-10) == "-R$ 10,00"

    def test_balanced_finances(self):
        """Test the positive message when nothing stands out."""
        advice = fallback_advice(_advice_input(breakdown=[_detail("Food", 20)]))

        assert advice.source == "fallback"
        assert advice.recommendations == [
            "Suas finanças parecem estar bem equilibradas no momento. Continue assim!"
        ]

    def test_expenses_over_income_and_high_category(self):
        """Test that both warnings are given, capped at two."""
        advice = fallback_advice(_advice_input(
            income=500.0,
            expenses=800.0,
            breakdown=[_detail("Lazer", 45), _detail("Food", 30)],
        ))

        assert len(advice.recommendations) == 2
        assert "superaram sua receita" in advice.recommendations[0]
        assert "Lazer (45%)" in advice.recommendations[1]

    def test_trend_branches(self):
        """Test each trend wording."""
        def analysis(income, expenses):
            return fallback_trend(FinancialTrendInput(
                current_balance=0,
                income_last_30_days=income,
                expenses_last_30_days=expenses,
            )).analysis

        assert "permanece estável" in analysis(0, 0)
        assert "deverá crescer" in analysis(100, 40)
        assert "tende a diminuir" in analysis(40, 100)
        assert "equilibradas" in analysis(50, 50)


class TestFinancialAdvisor:
    """Tests for the advisor with and without a model."""

    def test_without_gemini_key_uses_fallback(self):
        """Test that a missing GEMINI_API_KEY leaves the advisor in fallback mode."""
        advisor = FinancialAdvisor()

        assert advisor.is_available is False
        advice = asyncio.run(advisor.get_financial_advice(_advice_input()))
        assert advice.source == "fallback"

    def test_model_advice(self):
        """Test that the JSON in the model reply is used."""
        model = FakeModel(['Sure! {"recommendations": ["Cook at home", "Cancel unused subscriptions", "Third"]}'])
        advisor = FinancialAdvisor(model=model)

        advice = asyncio.run(advisor.get_financial_advice(_advice_input(breakdown=[_detail("Food", 20)])))

        assert advice.source == "ai"
        assert advice.recommendations == ["Cook at home", "Cancel unused subscriptions"]
        assert "Food" in model.prompts[0]

    def test_reply_without_json_falls_back_without_retry(self):
        """Test that an unusable reply is not retried."""
        model = FakeModel(["I cannot help with that."])
        advisor = FinancialAdvisor(model=model)

        advice = asyncio.run(advisor.get_financial_advice(_advice_input()))

        assert advice.source == "fallback"
        assert len(model.prompts) == 1

    def test_transient_errors_are_retried(self):
        """Test that API errors are retried before succeeding."""
        model = FakeModel([RuntimeError("503"), '{"analysis": "Saldo crescendo."}'])
        advisor = FinancialAdvisor(model=model)

        trend = asyncio.run(advisor.get_financial_trend(FinancialTrendInput(
            current_balance=100, income_last_30_days=10, expenses_last_30_days=5,
        )))

        assert trend.source == "ai"
        assert trend.analysis == "Saldo crescendo."
        assert len(model.prompts) == 2

    def test_persistent_errors_fall_back(self):
        """Test the fallback after the retries are exhausted."""
        model = FakeModel([RuntimeError("down")] * 3)
        advisor = FinancialAdvisor(model=model)

        trend = asyncio.run(advisor.get_financial_trend(FinancialTrendInput(
            current_balance=0, income_last_30_days=0, expenses_last_30_days=0,
        )))

        assert trend.source == "fallback"
        assert len(model.prompts) == 3

    def test_empty_analysis_falls_back(self):
        """Test that an empty answer is not shown to the user."""
        advisor = FinancialAdvisor(model=FakeModel(['{"analysis": "  "}']))

        trend = asyncio.run(advisor.get_financial_trend(FinancialTrendInput(
            current_balance=0, income_last_30_days=10, expenses_last_30_days=0,
        )))

        assert trend.source == "fallback"

    @pytest.mark.parametrize("reply", [
        '{"recommendations": "Reduza gastos com lazer."}',
        '{"recommendations": [1, 2]}',
        '{"tips": ["Cook at home"]}',
    ])
    def test_malformed_recommendations_fall_back(self, reply):
        """Test that recommendations that are not a list of strings are not shown."""
        advisor = FinancialAdvisor(model=FakeModel([reply]))

        advice = asyncio.run(advisor.get_financial_advice(_advice_input()))

        assert advice.source == "fallback"
        assert advice.recommendations == [
            "Suas finanças parecem estar bem equilibradas no momento. Continue assim!"
        ]

    def test_non_string_analysis_falls_back(self):
        """Test that a structured analysis value is not stringified."""
        advisor = FinancialAdvisor(model=FakeModel(['{"analysis": {"text": "up"}}']))

        trend = asyncio.run(advisor.get_financial_trend(FinancialTrendInput(
            current_balance=0, income_last_30_days=10, expenses_last_30_days=0,
        )))

        assert trend.source == "fallback"
