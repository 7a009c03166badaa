"""
Main Orchestrator for FinFlow

This module ties together all the components and defines the
end-to-end flows for:
1. Recording a transaction (validate → persist → log → goal alert)
2. Insights (stored data → aggregations → AI advice / trend)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every write goes through the repositories, so it is logged
- The advisor only sees aggregated numbers, never raw storage
- Alerts are best effort and never undo or block a recorded transaction
"""

from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional, Union

import structlog
from pydantic import BaseModel

from finflow.agents import (
    FinancialAdviceOutput,
    FinancialAdvisor,
    FinancialTrendOutput,
    build_advice_input,
    build_trend_input,
)
from finflow.audit import ActivityLogger, ActivityLogRepository
from finflow.backup import BackupService
from finflow.config import Settings, get_settings
from finflow.models.transaction import Transaction, TransactionCreate, TransactionType
from finflow.reports import (
    CategoryTotal,
    GoalProgress,
    PeriodTotals,
    SpreadsheetExporter,
    Summary,
    daily_totals,
    expense_breakdown,
    goal_progress,
    monthly_totals,
    summarize,
)
from finflow.repositories import (
    CategoryRepository,
    GoalRepository,
    IncomeSourceRepository,
    TransactionRepository,
)
from finflow.services.notifications import EvolutionWhatsAppService
from finflow.services.storage import KeyValueStore, create_store


logger = structlog.get_logger(__name__)


def goal_alert_message(progress: GoalProgress, currency: str = "R$") -> str:
    return (
        f"FinFlow alert: you have spent {currency}{float(progress.spent):,.2f} this month, "
        f"above your monthly goal of {currency}{float(progress.goal):,.2f} "
        f"({progress.percent:.0f}%)."
    )


class TransactionFlow:
    """
    Orchestrates recording a transaction.

    Flow:
    1. Persist through the repository (logged CREATE)
    2. If it is an expense that takes this month's spending over the
       goal, send a WhatsApp alert (when a recipient is configured)
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        goal: GoalRepository,
        notifier: Optional[EvolutionWhatsAppService] = None,
        alert_phone_number: Optional[str] = None,
        currency: str = "R$",
    ):
        self._transactions = transactions
        self._goal = goal
        self._notifier = notifier
        self._alert_phone_number = alert_phone_number
        self._currency = currency

    def record(
        self,
        data: Union[TransactionCreate, dict],
        type: Optional[TransactionType] = None,
        via: Optional[str] = None,
        today: Optional[date] = None,
    ) -> tuple[Transaction, Optional[tuple[bool, str]]]:
        """
        Record a transaction and send the goal alert if it applies.

        Returns:
            (transaction, alert outcome or None when no alert was due)
        """
        transaction = self._transactions.add(data, type=type, via=via)
        alert = self._check_goal(transaction, today or date.today())
        return transaction, alert

    def _check_goal(
        self,
        transaction: Transaction,
        today: date,
    ) -> Optional[tuple[bool, str]]:
        if transaction.type != TransactionType.EXPENSE:
            return None
        if (transaction.date.year, transaction.date.month) != (today.year, today.month):
            return None

        goal = self._goal.get()
        if goal is None:
            return None

        progress = goal_progress(self._transactions.list(), goal, today)
        spent_before = progress.spent - transaction.amount
        if not progress.exceeded or spent_before > goal:
            # Not over the goal, or already over it before this expense
            return None

        if self._notifier is None or not self._alert_phone_number:
            logger.info("goal_exceeded_no_recipient", spent=float(progress.spent))
            return None

        outcome = self._notifier.send_alert(
            self._alert_phone_number,
            goal_alert_message(progress, self._currency),
        )
        logger.info("goal_alert_sent", success=outcome[0], details=outcome[1])
        return outcome


class DashboardData(BaseModel):
    """Everything the dashboard page shows, computed in one pass."""

    summary: Summary
    recent_transactions: list[Transaction]
    daily: list[PeriodTotals]
    monthly: list[PeriodTotals]
    breakdown: list[CategoryTotal]
    goal: Optional[GoalProgress] = None


class InsightsFlow:
    """
    Orchestrates dashboard numbers and AI insights.

    The advisor is sandwiched behind the aggregations: it only ever
    receives their output.
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        categories: CategoryRepository,
        goal: GoalRepository,
        advisor: Optional[FinancialAdvisor] = None,
        recent_window_days: int = 30,
    ):
        self._transactions = transactions
        self._categories = categories
        self._goal = goal
        self._advisor = advisor or FinancialAdvisor()
        self._recent_window_days = recent_window_days

    def dashboard(self, today: Optional[date] = None, recent_count: int = 5) -> DashboardData:
        today = today or date.today()
        transactions = self._transactions.list()
        goal: Optional[Decimal] = self._goal.get()

        return DashboardData(
            summary=summarize(transactions),
            recent_transactions=self._transactions.filter()[:recent_count],
            daily=daily_totals(transactions, today=today),
            monthly=monthly_totals(transactions, today=today),
            breakdown=expense_breakdown(
                [tx for tx in transactions if tx.type == TransactionType.EXPENSE],
                self._categories.list(),
            ),
            goal=goal_progress(transactions, goal, today) if goal is not None else None,
        )

    async def advice(self, today: Optional[date] = None) -> FinancialAdviceOutput:
        data = build_advice_input(
            self._transactions.list(),
            self._categories.list(),
            days=self._recent_window_days,
            today=today,
        )
        return await self._advisor.get_financial_advice(data)

    async def trend(self, today: Optional[date] = None) -> FinancialTrendOutput:
        data = build_trend_input(self._transactions.list(), today=today)
        return await self._advisor.get_financial_trend(data)


class AppComponents(NamedTuple):
    store: KeyValueStore
    activity: ActivityLogger
    history: ActivityLogRepository
    transactions: TransactionRepository
    categories: CategoryRepository
    income_sources: IncomeSourceRepository
    goal: GoalRepository
    backup: BackupService
    spreadsheet: SpreadsheetExporter
    transaction_flow: TransactionFlow
    insights_flow: InsightsFlow


def create_app_components(
    store: Optional[KeyValueStore] = None,
    settings: Optional[Settings] = None,
    advisor: Optional[FinancialAdvisor] = None,
    notifier: Optional[EvolutionWhatsAppService] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Key-value store to use. Built from FINFLOW_STORAGE_*
              settings if None.
        settings: Settings container (defaults to get_settings())
        advisor: Financial advisor (defaults to a Gemini-backed one,
                which falls back to rules when Gemini is not configured)
        notifier: WhatsApp service. Created only when the Evolution API
                 is configured.

    Returns:
        AppComponents with every repository and flow wired to one store
    """
    settings = settings or get_settings()
    app_settings = settings.app
    whatsapp_settings = settings.whatsapp

    store = store or create_store(settings.storage)

    history = ActivityLogRepository(store)
    activity = ActivityLogger(history, currency=app_settings.currency_symbol)

    transactions = TransactionRepository(store, activity)
    categories = CategoryRepository(store, activity)
    income_sources = IncomeSourceRepository(store, activity)
    goal = GoalRepository(store, activity)

    if notifier is None and whatsapp_settings.is_configured:
        notifier = EvolutionWhatsAppService(whatsapp_settings)

    transaction_flow = TransactionFlow(
        transactions=transactions,
        goal=goal,
        notifier=notifier,
        alert_phone_number=whatsapp_settings.alert_phone_number,
        currency=app_settings.currency_symbol,
    )

    insights_flow = InsightsFlow(
        transactions=transactions,
        categories=categories,
        goal=goal,
        advisor=advisor or FinancialAdvisor(currency=app_settings.currency_symbol),
        recent_window_days=app_settings.recent_window_days,
    )

    return AppComponents(
        store=store,
        activity=activity,
        history=history,
        transactions=transactions,
        categories=categories,
        income_sources=income_sources,
        goal=goal,
        backup=BackupService(transactions, goal, activity),
        spreadsheet=SpreadsheetExporter(
            transactions,
            categories,
            income_sources,
            activity,
            currency=app_settings.currency_symbol,
        ),
        transaction_flow=transaction_flow,
        insights_flow=insights_flow,
    )
