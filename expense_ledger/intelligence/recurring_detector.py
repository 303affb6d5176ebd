"""Recurring expense detector based on repeated descriptions."""
from typing import List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from expense_ledger.config import RECURRING_LIMIT, RECURRING_MIN_OCCURRENCES
from expense_ledger.ingestion.records import Transaction, active_transactions


class RecurringExpense(BaseModel):
    """A group of expenses sharing the same description."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    description: str
    frequency: int
    average_amount: float
    total_amount: float
    category: str


class RecurringDetector:
    """Detect recurring expenses (subscriptions, bills) by exact description."""

    def __init__(
        self,
        min_occurrences: int = RECURRING_MIN_OCCURRENCES,
        limit: Optional[int] = RECURRING_LIMIT
    ):
        """Initialize the detector.

        Args:
            min_occurrences: Smallest group size counted as recurring
            limit: Maximum number of groups returned (None for all)
        """
        self.min_occurrences = min_occurrences
        self.limit = limit

    def detect(self, transactions: Sequence[Transaction]) -> List[RecurringExpense]:
        """Detect recurring expense groups.

        The category reported for a group is the category of its first
        transaction in input order.

        Returns:
            Groups sorted by total amount, largest first
        """
        expenses = [
            t for t in active_transactions(transactions)
            if t.is_expense and t.description
        ]
        if not expenses:
            return []

        df = pd.DataFrame({
            "description": [t.description for t in expenses],
            "amount": [float(t.amount or 0) for t in expenses],
            "category": [t.category_id for t in expenses],
        })

        groups = df.groupby("description", sort=False).agg(
            frequency=("amount", "size"),
            total_amount=("amount", "sum"),
            category=("category", "first"),
        )
        groups = groups[groups["frequency"] >= self.min_occurrences]
        groups = groups.sort_values("total_amount", ascending=False, kind="stable")
        if self.limit is not None:
            groups = groups.head(self.limit)

        recurring = []
        for description, row in groups.iterrows():
            frequency = int(row["frequency"])
            total = float(row["total_amount"])
            recurring.append(RecurringExpense(
                description=description,
                frequency=frequency,
                average_amount=total / frequency,
                total_amount=total,
                category=row["category"],
            ))

        return recurring
