"""AI Agents package."""

from finflow.agents.advisor import (
    AdvisorError,
    ExpenseCategoryDetail,
    FinancialAdviceInput,
    FinancialAdviceOutput,
    FinancialAdvisor,
    FinancialTrendInput,
    FinancialTrendOutput,
    build_advice_input,
    build_trend_input,
    fallback_advice,
    fallback_trend,
)

__all__ = [
    "AdvisorError",
    "ExpenseCategoryDetail",
    "FinancialAdviceInput",
    "FinancialAdviceOutput",
    "FinancialAdvisor",
    "FinancialTrendInput",
    "FinancialTrendOutput",
    "build_advice_input",
    "build_trend_input",
    "fallback_advice",
    "fallback_trend",
]
