"""Analytics engine: derive dashboard aggregates from transactions and budgets."""
import logging
import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from expense_ledger.config import (
    MS_PER_DAY,
    TOP_EXPENSES_LIMIT,
    UNCATEGORIZED_LABEL,
    UNKNOWN_LABEL,
    WEEKLY_TRENDS_LIMIT,
)
from expense_ledger.ingestion.records import (
    Budget,
    Transaction,
    TransactionType,
    active_transactions,
)
from expense_ledger.intelligence.budget_reconciler import parse_budget_amount
from expense_ledger.intelligence.recurring_detector import RecurringDetector, RecurringExpense


logger = logging.getLogger(__name__)


class AnalyticsModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class WeeklyTrend(AnalyticsModel):
    week: str
    amount: float


class TopExpense(AnalyticsModel):
    description: str
    amount: Optional[float]
    category: str
    date: Optional[int]
    payment_method: str


class BudgetView(AnalyticsModel):
    """A reconciled budget with usage figures."""
    name: str
    category: str
    category_id: str
    budget_amount: float
    spent_amount: float
    period: str
    status: str
    percentage_used: float
    remaining: float


class DailyAverage(AnalyticsModel):
    average: float = 0.0
    total_days: int = 0


class AnalyticsSnapshot(AnalyticsModel):
    """Every aggregate shown on the dashboard, computed in one pass."""
    total_income: float = 0.0
    total_expense: float = 0.0
    net_savings: float = 0.0
    savings_rate: float = 0.0
    transaction_count: int = 0
    category_breakdown: Dict[str, float] = {}
    payment_method_breakdown: Dict[str, float] = {}
    monthly_trends: Dict[str, Dict[str, float]] = {}
    weekly_trends: List[WeeklyTrend] = []
    top_expenses: List[TopExpense] = []
    transaction_counts: Dict[str, int] = {}
    average_by_category: Dict[str, float] = {}
    budget_tracking: List[BudgetView] = []
    daily_average_spending: DailyAverage = DailyAverage()
    recurring_expenses: List[RecurringExpense] = []


class TransactionFilter(AnalyticsModel):
    """Passbook filter. ``None`` or ``"ALL"`` disables a field."""
    type: Optional[str] = None
    category_id: Optional[str] = None
    payment_method: Optional[str] = None
    search_term: Optional[str] = None
    start_date: Optional[int] = None
    end_date: Optional[int] = None


def local_datetime(timestamp_ms: Optional[int]) -> Optional[datetime]:
    """Convert an epoch-ms timestamp to a naive local datetime."""
    if timestamp_ms is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000)
    except (OverflowError, OSError, ValueError):
        return None


def month_key(timestamp_ms: Optional[int]) -> Optional[str]:
    """Local calendar month of a timestamp as ``YYYY-MM``."""
    dt = local_datetime(timestamp_ms)
    if dt is None:
        return None
    return f"{dt.year}-{dt.month:02d}"


def week_key(timestamp_ms: Optional[int]) -> Optional[str]:
    """Week of a timestamp as ``YYYY-Wnn``.

    The week number is ceil((days since local Jan 1 + Jan 1 weekday + 1) / 7),
    with weekdays counted from Sunday = 0.
    """
    dt = local_datetime(timestamp_ms)
    if dt is None:
        return None

    jan1 = datetime(dt.year, 1, 1)
    try:
        jan1_ms = jan1.timestamp() * 1000
    except (OverflowError, OSError, ValueError):
        return None

    days = math.floor((timestamp_ms - jan1_ms) / MS_PER_DAY)
    jan1_weekday = (jan1.weekday() + 1) % 7
    week = math.ceil((days + jan1_weekday + 1) / 7)
    return f"{dt.year}-W{week:02d}"


def _label(value: Optional[str], fallback: str) -> str:
    return value if value else fallback


class AnalyticsEngine:
    """Compute the analytics snapshot for a ledger.

    Pure: the same transactions and budgets always give the same snapshot.
    Soft-deleted transactions are filtered out before any aggregation.
    """

    def __init__(self, recurring_detector: Optional[RecurringDetector] = None):
        self.recurring_detector = recurring_detector or RecurringDetector()

    def compute(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget]
    ) -> AnalyticsSnapshot:
        """Compute every aggregate.

        Args:
            transactions: All transactions (soft-deleted ones are ignored)
            budgets: Reconciled budgets

        Returns:
            A new AnalyticsSnapshot
        """
        active = active_transactions(transactions)
        df = self._to_frame(active)
        expenses = df[df["type"] == TransactionType.EXPENSE.value]

        total_income = float(df.loc[df["type"] == TransactionType.INCOME.value, "amount"].sum())
        total_expense = float(expenses["amount"].sum())
        net_savings = total_income - total_expense
        savings_rate = net_savings / total_income * 100 if total_income > 0 else 0.0

        category_stats = expenses.groupby("category", sort=False)["amount"].agg(["sum", "count"])

        snapshot = AnalyticsSnapshot(
            total_income=total_income,
            total_expense=total_expense,
            net_savings=net_savings,
            savings_rate=savings_rate,
            transaction_count=len(active),
            category_breakdown={k: float(v) for k, v in category_stats["sum"].items()},
            payment_method_breakdown=self._sum_by(expenses, "payment_method"),
            monthly_trends=self._monthly_trends(df),
            weekly_trends=self._weekly_trends(expenses),
            top_expenses=self._top_expenses(expenses, active),
            transaction_counts={
                k: int(v) for k, v in df.groupby("type_label", sort=False).size().items()
            },
            average_by_category={
                k: float(row["sum"]) / int(row["count"]) for k, row in category_stats.iterrows()
            },
            budget_tracking=[self.budget_view(b) for b in budgets],
            daily_average_spending=self.daily_average(active),
            recurring_expenses=self.recurring_detector.detect(active),
        )

        logger.debug(
            f"Computed analytics: {snapshot.transaction_count} transactions, "
            f"{len(snapshot.budget_tracking)} budgets"
        )
        return snapshot

    def _to_frame(self, active: List[Transaction]) -> pd.DataFrame:
        """Tabulate active transactions; the frame index is the position in ``active``."""
        df = pd.DataFrame({
            "type": pd.Series([t.type for t in active], dtype=object),
            "type_label": pd.Series([_label(t.type, UNKNOWN_LABEL) for t in active], dtype=object),
            "category": pd.Series(
                [_label(t.category_id, UNCATEGORIZED_LABEL) for t in active], dtype=object
            ),
            "payment_method": pd.Series(
                [_label(t.payment_method, UNKNOWN_LABEL) for t in active], dtype=object
            ),
            "amount": pd.Series([float(t.amount or 0) for t in active], dtype="float64"),
            "month": pd.Series([month_key(t.transaction_date) for t in active], dtype=object),
            "week": pd.Series([week_key(t.transaction_date) for t in active], dtype=object),
        })
        return df

    def _sum_by(self, df: pd.DataFrame, column: str) -> Dict[str, float]:
        sums = df.groupby(column, sort=False)["amount"].sum()
        return {k: float(v) for k, v in sums.items()}

    def _monthly_trends(self, df: pd.DataFrame) -> Dict[str, Dict[str, float]]:
        """Income and expense sums per local calendar month, in first-seen month order."""
        dated = df[df["month"].notna()]
        sums = dated.groupby(["month", "type"], sort=False)["amount"].sum()

        trends: Dict[str, Dict[str, float]] = {}
        for (month, txn_type), amount in sums.items():
            trends.setdefault(month, {})[txn_type] = float(amount)
        return trends

    def _weekly_trends(self, expenses: pd.DataFrame) -> List[WeeklyTrend]:
        """Expense sums for the most recent weeks, newest first."""
        dated = expenses[expenses["week"].notna()]
        sums = dated.groupby("week")["amount"].sum().sort_index(ascending=False)
        return [
            WeeklyTrend(week=week, amount=float(amount))
            for week, amount in sums.head(WEEKLY_TRENDS_LIMIT).items()
        ]

    def _top_expenses(self, expenses: pd.DataFrame, active: List[Transaction]) -> List[TopExpense]:
        ordered = expenses.sort_values("amount", ascending=False, kind="stable")
        top = []
        for position in ordered.head(TOP_EXPENSES_LIMIT).index:
            t = active[position]
            top.append(TopExpense(
                description=t.description,
                amount=t.amount,
                category=t.category_id,
                date=t.transaction_date,
                payment_method=t.payment_method,
            ))
        return top

    def daily_average(self, active: Sequence[Transaction]) -> DailyAverage:
        """Average daily spend over the span of dated expenses."""
        dated = sorted(
            (t for t in active if t.is_expense and t.transaction_date is not None),
            key=lambda t: t.transaction_date
        )
        if not dated:
            return DailyAverage(average=0.0, total_days=0)

        span = dated[-1].transaction_date - dated[0].transaction_date
        total_days = math.floor(span / MS_PER_DAY) + 1
        total = sum(t.amount or 0 for t in dated)

        return DailyAverage(
            average=total / total_days if total_days > 0 else 0.0,
            total_days=total_days,
        )

    def budget_view(self, budget: Budget) -> BudgetView:
        """Project a reconciled budget into its tracking view."""
        budget_amount = parse_budget_amount(budget.budget_amount)
        spent_amount = parse_budget_amount(budget.spent_amount)
        percentage_used = spent_amount / budget_amount * 100 if budget_amount > 0 else 0.0

        return BudgetView(
            name=budget.name,
            category=budget.category_name,
            category_id=budget.category_id,
            budget_amount=budget_amount,
            spent_amount=spent_amount,
            period=budget.period,
            status=budget.status,
            percentage_used=percentage_used,
            remaining=budget_amount - spent_amount,
        )


def compute_analytics(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget]
) -> AnalyticsSnapshot:
    """Compute the analytics snapshot. See AnalyticsEngine.compute."""
    return AnalyticsEngine().compute(transactions, budgets)


def _enabled(value: Optional[str]) -> bool:
    return bool(value) and value != "ALL"


def filter_transactions(
    transactions: Sequence[Transaction],
    filters: Optional[TransactionFilter] = None
) -> List[Transaction]:
    """Filter active transactions for the passbook view.

    A transaction without a date compares as epoch 0 against the date bounds.
    """
    filters = filters or TransactionFilter()
    search = filters.search_term.lower() if filters.search_term else None

    result = []
    for t in active_transactions(transactions):
        if _enabled(filters.type) and t.type != filters.type:
            continue
        if _enabled(filters.category_id) and t.category_id != filters.category_id:
            continue
        if _enabled(filters.payment_method) and t.payment_method != filters.payment_method:
            continue
        if search and search not in t.description.lower() and search not in t.notes.lower():
            continue

        date = t.transaction_date or 0
        if filters.start_date and date < filters.start_date:
            continue
        if filters.end_date and date > filters.end_date:
            continue

        result.append(t)

    return result
