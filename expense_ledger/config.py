"""Configuration settings for the expense ledger."""
from pathlib import Path

# Paths
DATA_DIR = Path.home() / ".expense_ledger"
DB_PATH = DATA_DIR / "ledger.db"

# Export archive layout
VERSION_MARKER = "CSV_VERSION"
TRANSACTION_FIELD_COUNT = 24
BUDGET_FIELD_COUNT = 16
PAYMENT_REMINDER_FIELD_COUNT = 25

# Member file name patterns (substring match)
TRANSACTIONS_MEMBER = "transactions.csv"
BUDGETS_MEMBER = "budgets.csv"
BUDGET_HISTORY_MARKER = "budget_history"
PAYMENT_REMINDERS_MEMBER = "payment_reminders.csv"

# Budget reconciliation
DEFAULT_CURRENCY = "INR"
BUDGET_WARNING_RATIO = 0.8

# Analytics
UNCATEGORIZED_LABEL = "Uncategorized"
UNKNOWN_LABEL = "Unknown"
TOP_EXPENSES_LIMIT = 10
WEEKLY_TRENDS_LIMIT = 8
MS_PER_DAY = 24 * 60 * 60 * 1000

# Recurring detection
RECURRING_MIN_OCCURRENCES = 2
RECURRING_LIMIT = 10

# Persisted state slots
TRANSACTIONS_KEY = "expenseTransactions"
BUDGETS_KEY = "expenseBudgets"
PAYMENT_REMINDERS_KEY = "expensePaymentReminders"
STORAGE_KEYS = [TRANSACTIONS_KEY, BUDGETS_KEY, PAYMENT_REMINDERS_KEY]


def ensure_data_dir() -> Path:
    """Ensure the data directory exists."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return DATA_DIR
