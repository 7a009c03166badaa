"""Storage keys and the default data seeded into a fresh store."""

from finflow.models.transaction import ExpenseCategory, IncomeSource

# Keys in the local store. Kept identical to the ones the web app used
# so an existing storage dump can be pointed at directly.
TRANSACTIONS_STORAGE_KEY = "financialApp_transactions"
EXPENSE_CATEGORIES_STORAGE_KEY = "financialApp_expense_categories"
INCOME_SOURCES_STORAGE_KEY = "financialApp_income_sources"
LOGS_STORAGE_KEY = "financialApp_logs"
MONTHLY_SPENDING_GOAL_KEY = "monthlySpendingGoal"

DEFAULT_CATEGORY_ICON = "Package"

DEFAULT_EXPENSE_CATEGORIES: tuple[ExpenseCategory, ...] = (
    ExpenseCategory(value="food", label="Alimentação", icon="Utensils"),
    ExpenseCategory(value="transport", label="Transporte", icon="Car"),
    ExpenseCategory(value="housing", label="Moradia e Aluguel", icon="Home"),
    ExpenseCategory(value="utilities", label="Contas de Casa", icon="Lightbulb"),
    ExpenseCategory(value="entertainment", label="Entretenimento", icon="Film"),
    ExpenseCategory(value="health", label="Saúde e Bem-estar", icon="HeartPulse"),
    ExpenseCategory(value="education", label="Educação", icon="BookOpen"),
    ExpenseCategory(value="shopping", label="Compras", icon="ShoppingCart"),
    ExpenseCategory(value="other", label="Outros", icon="Package"),
)

DEFAULT_INCOME_SOURCES: tuple[IncomeSource, ...] = (
    IncomeSource(value="salary", label="Salário"),
    IncomeSource(value="freelance", label="Projeto Freelance"),
    IncomeSource(value="business", label="Renda de Negócios"),
    IncomeSource(value="investment", label="Investimentos"),
    IncomeSource(value="gift", label="Presente"),
    IncomeSource(value="other", label="Outros"),
)
