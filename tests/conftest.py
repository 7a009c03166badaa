"""
Shared fixtures.

Tests never touch the network or a real .env: integration settings are
removed from the environment and the working directory is a temp dir.
"""

from datetime import date

import pytest

from finflow.agents import FinancialAdvisor
from finflow.audit import ActivityLogger, ActivityLogRepository
from finflow.config import get_settings
from finflow.orchestrator import create_app_components
from finflow.repositories import (
    CategoryRepository,
    GoalRepository,
    IncomeSourceRepository,
    TransactionRepository,
)
from finflow.services.storage import MemoryStore


INTEGRATION_ENV_VARS = (
    "GEMINI_API_KEY",
    "N8N_API_SECRET_KEY",
    "EVOLUTION_API_URL",
    "EVOLUTION_API_INSTANCE",
    "EVOLUTION_API_KEY",
    "EVOLUTION_API_ALERT_PHONE_NUMBER",
    "FINFLOW_STORAGE_BACKEND",
    "FINFLOW_STORAGE_PATH",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    for name in INTEGRATION_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def today():
    return date(2024, 5, 20)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def history(store):
    return ActivityLogRepository(store)


@pytest.fixture
def activity(history):
    return ActivityLogger(history)


@pytest.fixture
def transactions(store, activity):
    return TransactionRepository(store, activity)


@pytest.fixture
def categories(store, activity):
    return CategoryRepository(store, activity)


@pytest.fixture
def income_sources(store, activity):
    return IncomeSourceRepository(store, activity)


@pytest.fixture
def goal(store, activity):
    return GoalRepository(store, activity)


@pytest.fixture
def components(store):
    """Fully wired app on a memory store, advisor in fallback mode."""
    return create_app_components(store=store, advisor=FinancialAdvisor())

