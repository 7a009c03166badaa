"""
AI Financial Advisor

DESIGN DECISION: The LLM only ever sees numbers computed by the
reporting aggregations. It phrases advice about them; it never looks
at raw transactions and never invents figures.

BOUNDARIES:
- CAN: Turn recent totals and the expense breakdown into 1-2 tips
- CAN: Describe where the balance is heading if the trend continues
- CANNOT: Break the page. When Gemini is not configured, fails, or
  replies with something that is not the expected JSON, a
  deterministic rule-based answer is returned instead.

The LLM is a WRITER, not a CALCULATOR.
"""

import json
from datetime import date
from typing import Iterable, Literal, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finflow.config import GeminiSettings, get_settings
from finflow.models.transaction import ExpenseCategory, Transaction, TransactionType
from finflow.reports.aggregations import (
    expense_breakdown,
    filter_by_period,
    recent_activity,
    summarize,
)


HIGH_SHARE_PERCENT = 30.0


class AdvisorError(Exception):
    """The model could not produce a usable answer."""
    pass


# =============================================================================
# INPUT / OUTPUT MODELS
# =============================================================================

class ExpenseCategoryDetail(BaseModel):
    """Spending in one category over the recent window."""

    category_value: str
    category_label: str
    total_amount: float = Field(ge=0)
    percentage_of_total_expenses: float = Field(ge=0, le=100)


class FinancialAdviceInput(BaseModel):
    recent_income: float = Field(ge=0, description="Income over the recent window")
    recent_total_expenses: float = Field(ge=0, description="Expenses over the recent window")
    expense_breakdown: list[ExpenseCategoryDetail] = Field(default_factory=list)
    current_balance: Optional[float] = Field(
        default=None,
        description="Overall balance across all transactions"
    )


class FinancialAdviceOutput(BaseModel):
    recommendations: list[str] = Field(min_length=1, max_length=2)
    source: Literal["ai", "fallback"] = "ai"


class FinancialTrendInput(BaseModel):
    current_balance: float
    income_last_30_days: float = Field(ge=0)
    expenses_last_30_days: float = Field(ge=0)


class FinancialTrendOutput(BaseModel):
    analysis: str = Field(min_length=1)
    source: Literal["ai", "fallback"] = "ai"


# =============================================================================
# INPUT BUILDERS
# =============================================================================

def build_advice_input(
    transactions: list[Transaction],
    categories: Iterable[ExpenseCategory],
    days: int = 30,
    today: Optional[date] = None,
) -> FinancialAdviceInput:
    """Aggregate stored transactions into what the advice prompt needs."""
    recent = recent_activity(transactions, days=days, today=today)
    recent_expenses = [
        tx for tx in filter_by_period(transactions, recent.date_from, recent.date_to)
        if tx.type == TransactionType.EXPENSE
    ]
    breakdown = [
        ExpenseCategoryDetail(
            category_value=item.category,
            category_label=item.label,
            total_amount=float(item.total),
            percentage_of_total_expenses=item.percentage,
        )
        for item in expense_breakdown(recent_expenses, categories)
    ]
    return FinancialAdviceInput(
        recent_income=float(recent.income),
        recent_total_expenses=float(recent.expenses),
        expense_breakdown=breakdown,
        current_balance=float(summarize(transactions).balance),
    )


def build_trend_input(
    transactions: list[Transaction],
    today: Optional[date] = None,
) -> FinancialTrendInput:
    recent = recent_activity(transactions, days=30, today=today)
    return FinancialTrendInput(
        current_balance=float(summarize(transactions).balance),
        income_last_30_days=float(recent.income),
        expenses_last_30_days=float(recent.expenses),
    )


def format_money(amount: float, currency: str = "R$") -> str:
    """Brazilian formatting: R$ 1.234,56"""
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency} {text}"


# =============================================================================
# RULE-BASED FALLBACKS
# =============================================================================

def fallback_advice(data: FinancialAdviceInput, currency: str = "R$") -> FinancialAdviceOutput:
    """Deterministic advice used whenever the model is unavailable."""
    recommendations = []

    if data.recent_total_expenses > data.recent_income:
        recommendations.append(
            f"Suas despesas ({format_money(data.recent_total_expenses, currency)}) "
            f"superaram sua receita ({format_money(data.recent_income, currency)}) "
            "nos últimos 30 dias. Revise os gastos não essenciais para equilibrar o orçamento."
        )

    top = max(
        data.expense_breakdown,
        key=lambda item: item.percentage_of_total_expenses,
        default=None,
    )
    if top is not None and top.percentage_of_total_expenses >= HIGH_SHARE_PERCENT:
        recommendations.append(
            f"Seus gastos com {top.category_label} "
            f"({top.percentage_of_total_expenses:.0f}%) estão um pouco altos. "
            "Que tal procurar alternativas mais econômicas este mês?"
        )

    if not recommendations:
        recommendations.append(
            "Suas finanças parecem estar bem equilibradas no momento. Continue assim!"
        )

    return FinancialAdviceOutput(recommendations=recommendations[:2], source="fallback")


def fallback_trend(data: FinancialTrendInput, currency: str = "R$") -> FinancialTrendOutput:
    income = data.income_last_30_days
    expenses = data.expenses_last_30_days

    if income == 0 and expenses == 0:
        analysis = (
            "Não houve receitas nem despesas nos últimos 30 dias, "
            "então seu saldo permanece estável."
        )
    elif income > expenses:
        analysis = (
            f"Suas receitas superaram as despesas em {format_money(income - expenses, currency)} "
            "nos últimos 30 dias. Se isso continuar, seu saldo deverá crescer."
        )
    elif expenses > income:
        analysis = (
            f"Suas despesas superaram as receitas em {format_money(expenses - income, currency)} "
            "nos últimos 30 dias. Se essa tendência continuar, seu saldo tende a diminuir."
        )
    else:
        analysis = (
            "Receitas e despesas ficaram equilibradas nos últimos 30 dias, "
            "então seu saldo deve se manter estável."
        )

    return FinancialTrendOutput(analysis=analysis, source="fallback")


# =============================================================================
# ADVISOR
# =============================================================================

class FinancialAdvisor:
    """
    Gemini-backed advice and trend analysis with rule-based fallbacks.

    If Gemini settings are missing (no GEMINI_API_KEY), the advisor
    still works and always answers with the fallbacks.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model=None,
        currency: str = "R$",
    ):
        """
        Initialize advisor.

        Args:
            settings: Gemini settings. Loaded from the environment if None.
            model: Object with an async generate_content_async(prompt);
                  overrides the Gemini model (used by tests).
            currency: Symbol used in prompts and fallback texts
        """
        self._logger = structlog.get_logger(__name__)
        self._currency = currency
        self._settings = settings
        self._model = model

        if self._model is None:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI, or stay in fallback mode."""
        if self._settings is None:
            try:
                self._settings = get_settings().gemini
            except ValidationError:
                self._logger.info("advisor_fallback_only", reason="gemini not configured")
                return

        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    @property
    def _language(self) -> str:
        return self._settings.language if self._settings else "Brazilian Portuguese"

    @retry(
        retry=retry_if_not_exception_type(AdvisorError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> dict:
        """
        Ask the model and return the JSON object in its reply.

        Raises:
            AdvisorError: If no model is configured or the reply has no JSON object
        """
        if self._model is None:
            raise AdvisorError("No model configured")

        response = await self._model.generate_content_async(prompt)
        text = response.text.strip()

        # Find JSON in response
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise AdvisorError("Model reply contained no JSON object")
        try:
            return json.loads(text[start:end])
        except ValueError as e:
            raise AdvisorError(f"Model reply was not valid JSON: {e}") from e

    def _advice_prompt(self, data: FinancialAdviceInput) -> str:
        lines = [
            f"  - Category: {item.category_label}, Amount spent: "
            f"{item.total_amount:.2f}, Share of total expenses: "
            f"{item.percentage_of_total_expenses:.1f}%"
            for item in data.expense_breakdown
        ] or ["  - No expense breakdown available."]
        balance_line = (
            f"- Current balance: {data.current_balance:.2f}\n"
            if data.current_balance is not None else ""
        )
        breakdown = "\n".join(lines)

        return f"""You are a friendly and insightful financial advisor for a personal finance app.

Recent financial data (last 30 days, amounts in {self._currency}):
- Total recent income: {data.recent_income:.2f}
- Total recent expenses: {data.recent_total_expenses:.2f}
{balance_line}- Expense breakdown:
{breakdown}

Give 1 to 2 concise, actionable recommendations.
- If expenses exceed income, say so.
- Focus on categories where the user may be overspending.
- If finances look balanced, give one short positive message.
- Be encouraging and practical, never judgmental.
- Write in {self._language}.

Respond with ONLY a JSON object in this exact format:
{{"recommendations": ["first recommendation", "second recommendation"]}}"""

    def _trend_prompt(self, data: FinancialTrendInput) -> str:
        return f"""You are a helpful financial assistant for a personal finance app.

Data for the last 30 days (amounts in {self._currency}):
- Current overall balance: {data.current_balance:.2f}
- Total income (last 30 days): {data.income_last_30_days:.2f}
- Total expenses (last 30 days): {data.expenses_last_30_days:.2f}

Write a concise analysis (1-2 sentences) of the recent trend and where the
balance is heading if it continues. If there was no income and no expenses,
say the balance stays stable because there was no recent activity.
Do not give specific investment advice. Be encouraging but realistic.
Write in {self._language}.

Respond with ONLY a JSON object in this exact format:
{{"analysis": "your analysis"}}"""

    async def get_financial_advice(self, data: FinancialAdviceInput) -> FinancialAdviceOutput:
        """
        1-2 recommendations for the recent spending.

        Never raises: any model problem yields the rule-based advice.
        """
        if self._model is None:
            return fallback_advice(data, self._currency)

        try:
            reply = await self._generate(self._advice_prompt(data))
            raw = reply.get("recommendations") if isinstance(reply, dict) else None
            if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
                raise AdvisorError("Model recommendations were not a list of strings")
            recommendations = [item.strip() for item in raw if item.strip()]
            if not recommendations:
                raise AdvisorError("Model returned no recommendations")
            return FinancialAdviceOutput(recommendations=recommendations[:2])
        except Exception as e:
            self._logger.warning("advisor_fallback", flow="advice", error=str(e))
            return fallback_advice(data, self._currency)

    async def get_financial_trend(self, data: FinancialTrendInput) -> FinancialTrendOutput:
        """
        Short analysis of where the balance is heading.

        Never raises: any model problem yields the rule-based analysis.
        """
        if self._model is None:
            return fallback_trend(data, self._currency)

        try:
            reply = await self._generate(self._trend_prompt(data))
            analysis = reply.get("analysis") if isinstance(reply, dict) else None
            if not isinstance(analysis, str) or not analysis.strip():
                raise AdvisorError("Model returned an empty analysis")
            return FinancialTrendOutput(analysis=analysis.strip())
        except Exception as e:
            self._logger.warning("advisor_fallback", flow="trend", error=str(e))
            return fallback_trend(data, self._currency)
