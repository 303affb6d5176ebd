"""Budget reconciler: recompute budget spend and status from transactions."""
import logging
from typing import List, Optional, Sequence

from expense_ledger.config import BUDGET_WARNING_RATIO, DEFAULT_CURRENCY
from expense_ledger.ingestion.csv_parser import parse_decimal
from expense_ledger.ingestion.records import (
    Budget,
    BudgetStatus,
    Transaction,
    active_transactions,
)


logger = logging.getLogger(__name__)


def normalize_category_id(category_id: Optional[str]) -> str:
    """Normalize a category id for matching: trimmed, lower-case, ``_`` as space."""
    if not category_id:
        return ""
    return category_id.strip().lower().replace("_", " ")


def parse_budget_amount(amount_str: Optional[str]) -> float:
    """Parse the numeric part of a ``"<decimal>,<currency>"`` string.

    Returns 0.0 when the string is empty or the number is malformed.
    """
    if not amount_str:
        return 0.0
    amount = parse_decimal(amount_str.split(",")[0])
    return 0.0 if amount is None else amount


def extract_currency_code(amount_str: Optional[str]) -> str:
    """Return the currency segment of a ``"<decimal>,<currency>"`` string."""
    if not amount_str:
        return DEFAULT_CURRENCY
    parts = amount_str.split(",")
    return parts[1].strip() if len(parts) > 1 else DEFAULT_CURRENCY


def format_amount(amount: float, currency_code: str) -> str:
    """Encode an amount in the export's composite string form."""
    return f"{amount:.2f},{currency_code}"


def classify_status(spent: float, budget: float) -> BudgetStatus:
    """Classify a budget by how much of it has been spent.

    The checks run in order, so a zero budget with any spend is OVER_BUDGET.
    """
    if spent > budget:
        return BudgetStatus.OVER_BUDGET
    if spent > budget * BUDGET_WARNING_RATIO:
        return BudgetStatus.WARNING
    return BudgetStatus.ON_TRACK


class BudgetReconciler:
    """Overwrite budget spent amounts and statuses with values derived from transactions.

    Whatever ``spentAmount``/``status`` an export carries is stale; only the
    transactions are trusted.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        """Initialize the reconciler.

        Args:
            log: Optional diagnostic sink; defaults to this module's logger
        """
        self.log = log or logger

    def reconcile(
        self,
        budgets: Sequence[Budget],
        transactions: Sequence[Transaction]
    ) -> List[Budget]:
        """Return budgets with ``spent_amount`` and ``status`` recomputed.

        Args:
            budgets: Budgets as decoded or restored
            transactions: All transactions, including soft-deleted ones

        Returns:
            New budget records in the same order; inputs are not modified
        """
        expenses = [t for t in active_transactions(transactions) if t.is_expense]
        self.log.debug(
            f"Reconciling {len(budgets)} budgets against {len(expenses)} active expenses"
        )

        return [self.reconcile_budget(budget, expenses) for budget in budgets]

    def reconcile_budget(self, budget: Budget, expenses: Sequence[Transaction]) -> Budget:
        """Reconcile a single budget against pre-filtered active expenses."""
        if not budget.category_id or not budget.category_id.strip():
            self.log.debug(f"Skipping budget with no category: {budget.name!r}")
            return budget

        target = normalize_category_id(budget.category_id)
        matched = [
            t for t in expenses
            if t.category_id and normalize_category_id(t.category_id) == target
        ]
        spent = sum(t.amount or 0 for t in matched)

        amount = parse_budget_amount(budget.budget_amount)
        currency = extract_currency_code(budget.budget_amount)
        status = classify_status(spent, amount)

        self.log.debug(
            f"Budget {budget.name!r} ({target!r}): {len(matched)} transactions, "
            f"spent {spent:.2f} of {amount:.2f} {currency} -> {status.value}"
        )

        return budget.model_copy(update={
            "spent_amount": format_amount(spent, currency),
            "status": status.value,
        })


def reconcile(
    budgets: Sequence[Budget],
    transactions: Sequence[Transaction],
    log: Optional[logging.Logger] = None
) -> List[Budget]:
    """Recompute budget spend and status. See BudgetReconciler.reconcile."""
    return BudgetReconciler(log=log).reconcile(budgets, transactions)
