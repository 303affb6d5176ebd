"""Ledger service - main orchestration layer."""
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from expense_ledger.config import DB_PATH, ensure_data_dir
from expense_ledger.db.ledger_store import LedgerStore
from expense_ledger.db.sqlite_store import SQLiteStore
from expense_ledger.ingestion.records import Budget, BudgetStatus, PaymentReminder
from expense_ledger.intelligence.analytics import (
    AnalyticsSnapshot,
    TransactionFilter,
    filter_transactions,
)
from expense_ledger.intelligence.recurring_detector import RecurringExpense


logger = logging.getLogger(__name__)

SORT_KEYS = {
    "date": lambda t: t.transaction_date or 0,
    "amount": lambda t: t.amount or 0,
    "description": lambda t: t.description.lower(),
}


class LedgerService:
    """Main service for the expense ledger.

    Wires archive import, reconciliation and analytics to SQLite persistence.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the ledger service and restore any persisted ledger.

        Args:
            db_path: Path to SQLite database (default: ~/.expense_ledger/ledger.db)
        """
        if db_path is None:
            ensure_data_dir()

        self.db_path = db_path or DB_PATH
        self.store = SQLiteStore(self.db_path)
        self.ledger = LedgerStore(persistence=self.store)
        self.ledger.restore()

    def close(self):
        """Close all connections."""
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def import_archive(self, file_path: Path) -> Dict[str, int]:
        """Import an export ZIP from disk.

        Args:
            file_path: Path to the archive

        Returns:
            Dict with record counts

        Raises:
            DecodeError: If the archive cannot be opened
        """
        logger.info(f"Importing archive: {file_path}")
        return self._import(Path(file_path), str(file_path))

    def import_bytes(self, data: bytes, filename: Optional[str] = None) -> Dict[str, int]:
        """Import an export ZIP already read into memory (e.g. an upload)."""
        logger.info(f"Importing uploaded archive: {filename or '<bytes>'} ({len(data)} bytes)")
        return self._import(data, filename)

    def _import(self, source: Union[bytes, Path], source_name: Optional[str]) -> Dict[str, int]:
        state = self.ledger.load_archive(source)
        result = {
            "transactions": len(state.transactions),
            "budgets": len(state.budgets),
            "payment_reminders": len(state.payment_reminders),
        }
        self.store.add_import(source_name, **result)
        return result

    def get_analytics(self) -> Optional[AnalyticsSnapshot]:
        """Get the current analytics snapshot, or None if nothing is loaded."""
        return self.ledger.analytics

    def get_summary(self) -> Dict[str, Any]:
        """Get headline totals for the loaded ledger.

        Returns:
            Dict with totals, counts and the status of each budget
        """
        analytics = self.ledger.analytics
        if analytics is None:
            return {
                "is_loaded": False,
                "transaction_count": 0,
                "total_income": 0.0,
                "total_expense": 0.0,
                "net_savings": 0.0,
                "savings_rate": 0.0,
                "budgets_over": 0,
                "budgets_warning": 0,
                "payment_reminders": 0,
            }

        statuses = [b.status for b in analytics.budget_tracking]
        return {
            "is_loaded": True,
            "transaction_count": analytics.transaction_count,
            "total_income": analytics.total_income,
            "total_expense": analytics.total_expense,
            "net_savings": analytics.net_savings,
            "savings_rate": analytics.savings_rate,
            "budgets_over": statuses.count(BudgetStatus.OVER_BUDGET.value),
            "budgets_warning": statuses.count(BudgetStatus.WARNING.value),
            "payment_reminders": len(self.ledger.payment_reminders),
        }

    def get_budgets(self) -> List[Budget]:
        """Get reconciled budgets."""
        return self.ledger.budgets

    def get_payment_reminders(self) -> List[PaymentReminder]:
        """Get payment reminders as exported."""
        return self.ledger.payment_reminders

    def get_recurring(self) -> List[RecurringExpense]:
        """Get detected recurring expenses."""
        analytics = self.ledger.analytics
        return analytics.recurring_expenses if analytics else []

    def get_transactions(
        self,
        filters: Optional[TransactionFilter] = None,
        sort_by: str = "date",
        sort_dir: str = "desc",
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Dict[str, Any]:
        """Get filtered, sorted and paginated active transactions.

        Args:
            filters: Passbook filter
            sort_by: One of "date", "amount", "description"
            sort_dir: "asc" or "desc"
            limit: Page size (None for everything)
            offset: Number of matches to skip

        Returns:
            Dict with the page of transactions and the total match count
        """
        matches = filter_transactions(self.ledger.transactions, filters)
        matches.sort(key=SORT_KEYS.get(sort_by, SORT_KEYS["date"]), reverse=sort_dir == "desc")

        total = len(matches)
        end = None if limit is None else offset + limit
        return {"transactions": matches[offset:end], "total": total}

    def get_imports(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Get recent archive imports."""
        return self.store.get_imports(limit)

    def clear(self) -> None:
        """Clear the ledger and its persisted slots."""
        self.ledger.clear()

    def reset(self) -> Dict[str, int]:
        """Clear the ledger and the import history.

        Returns:
            Counts of deleted slots and imports
        """
        counts = self.store.reset_all_data()
        self.ledger.clear()
        return counts
