"""Ledger store: the authoritative in-memory ledger and its persisted copy."""
import logging
import threading
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from expense_ledger.config import (
    BUDGETS_KEY,
    PAYMENT_REMINDERS_KEY,
    STORAGE_KEYS,
    TRANSACTIONS_KEY,
)
from expense_ledger.ingestion.archive_loader import ArchiveLoader
from expense_ledger.ingestion.records import (
    Budget,
    PaymentReminder,
    Transaction,
    active_transactions,
)
from expense_ledger.intelligence.analytics import AnalyticsEngine, AnalyticsSnapshot
from expense_ledger.intelligence.budget_reconciler import BudgetReconciler

from .kv_store import InMemoryKeyValueStore, KeyValueStore, StorageError


logger = logging.getLogger(__name__)

_TRANSACTIONS = TypeAdapter(List[Transaction])
_BUDGETS = TypeAdapter(List[Budget])
_PAYMENT_REMINDERS = TypeAdapter(List[PaymentReminder])


class LedgerState(BaseModel):
    """One consistent view of the ledger. Replaced as a whole, never edited."""

    model_config = ConfigDict(frozen=True)

    transactions: List[Transaction] = []
    budgets: List[Budget] = []
    payment_reminders: List[PaymentReminder] = []
    analytics: Optional[AnalyticsSnapshot] = None
    is_loaded: bool = False


class LedgerStore:
    """Own the ledger collections and the analytics snapshot derived from them.

    Readers always see a complete state: a new state is built in full and then
    swapped in with a single assignment. Writers are serialized by a lock.
    """

    def __init__(
        self,
        persistence: Optional[KeyValueStore] = None,
        loader: Optional[ArchiveLoader] = None,
        reconciler: Optional[BudgetReconciler] = None,
        engine: Optional[AnalyticsEngine] = None
    ):
        """Initialize an empty store.

        Args:
            persistence: Key-value backend for the three ledger slots
                (default: in-memory)
            loader: Archive loader (default: ArchiveLoader())
            reconciler: Budget reconciler used on restore
            engine: Analytics engine
        """
        self.persistence = persistence if persistence is not None else InMemoryKeyValueStore()
        self.loader = loader or ArchiveLoader()
        self.reconciler = reconciler or BudgetReconciler()
        self.engine = engine or AnalyticsEngine()
        self._state = LedgerState()
        self._write_lock = threading.Lock()

    # === Readers ===

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def transactions(self) -> List[Transaction]:
        return self._state.transactions

    @property
    def budgets(self) -> List[Budget]:
        return self._state.budgets

    @property
    def payment_reminders(self) -> List[PaymentReminder]:
        return self._state.payment_reminders

    @property
    def analytics(self) -> Optional[AnalyticsSnapshot]:
        return self._state.analytics

    @property
    def is_loaded(self) -> bool:
        return self._state.is_loaded

    def active_transactions(self) -> List[Transaction]:
        """Transactions that are not soft-deleted."""
        return active_transactions(self._state.transactions)

    # === Writers ===

    def load_archive(self, source: Union[bytes, Path, str]) -> LedgerState:
        """Replace the ledger with the contents of an export archive.

        Raises:
            DecodeError: If the archive cannot be opened; the current
                ledger is left untouched
        """
        with self._write_lock:
            data = self.loader.load(source)
            state = self._build_state(data.transactions, data.budgets, data.payment_reminders)
            self._state = state
            self._persist(state)

        logger.info(
            f"Loaded {len(state.transactions)} transactions, {len(state.budgets)} budgets, "
            f"{len(state.payment_reminders)} payment reminders"
        )
        return state

    def restore(self) -> bool:
        """Rebuild the ledger from persisted slots.

        Budgets are reconciled again; persisted spend and status are never
        trusted. Unreadable slots are discarded and the store stays empty.

        Returns:
            True if a persisted ledger was restored
        """
        with self._write_lock:
            try:
                raw_transactions = self.persistence.get(TRANSACTIONS_KEY)
                raw_budgets = self.persistence.get(BUDGETS_KEY)
                raw_reminders = self.persistence.get(PAYMENT_REMINDERS_KEY)
            except StorageError as e:
                logger.warning(f"Could not read persisted ledger: {e}")
                return False

            if not raw_transactions or not raw_budgets:
                return False

            try:
                transactions = _TRANSACTIONS.validate_json(raw_transactions)
                budgets = _BUDGETS.validate_json(raw_budgets)
                reminders = _PAYMENT_REMINDERS.validate_json(raw_reminders) if raw_reminders else []
            except (ValidationError, ValueError) as e:
                logger.warning(f"Discarding corrupted persisted ledger: {e}")
                self._remove_slots()
                return False

            budgets = self.reconciler.reconcile(budgets, transactions)
            self._state = self._build_state(transactions, budgets, reminders)

        logger.info(f"Restored {len(transactions)} transactions from storage")
        return True

    def refresh_analytics(self) -> Optional[AnalyticsSnapshot]:
        """Recompute the analytics snapshot from the current collections."""
        with self._write_lock:
            current = self._state
            if not current.is_loaded:
                return None
            analytics = self.engine.compute(current.transactions, current.budgets)
            self._state = current.model_copy(update={"analytics": analytics})
        return analytics

    def clear(self) -> None:
        """Drop all ledger data, in memory and in persistence."""
        with self._write_lock:
            self._state = LedgerState()
            self._remove_slots()
        logger.info("Ledger cleared")

    # === Internals ===

    def _build_state(
        self,
        transactions: List[Transaction],
        budgets: List[Budget],
        payment_reminders: List[PaymentReminder]
    ) -> LedgerState:
        analytics = self.engine.compute(transactions, budgets)
        return LedgerState(
            transactions=transactions,
            budgets=budgets,
            payment_reminders=payment_reminders,
            analytics=analytics,
            is_loaded=True,
        )

    def _persist(self, state: LedgerState) -> None:
        """Write the ledger slots. Failures are logged; the in-memory ledger stays authoritative."""
        try:
            self.persistence.set(
                TRANSACTIONS_KEY,
                _TRANSACTIONS.dump_json(state.transactions, by_alias=True).decode()
            )
            self.persistence.set(BUDGETS_KEY, _BUDGETS.dump_json(state.budgets, by_alias=True).decode())
            self.persistence.set(
                PAYMENT_REMINDERS_KEY,
                _PAYMENT_REMINDERS.dump_json(state.payment_reminders, by_alias=True).decode()
            )
        except StorageError as e:
            logger.error(f"Failed to persist ledger: {e}")

    def _remove_slots(self) -> None:
        for key in STORAGE_KEYS:
            try:
                self.persistence.remove(key)
            except StorageError as e:
                logger.error(f"Failed to remove {key}: {e}")
