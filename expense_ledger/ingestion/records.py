"""Typed records for the finance app export (transactions, budgets, reminders).

Every record kind declares its positional CSV layout as ``LAYOUT``: an ordered
tuple of ``(field_name, kind)`` pairs. The decoder uses the layout to map a row
into a model, and ``to_row()`` uses it to write the record back in the same
canonical order.

Models serialize with the export's camelCase names (``transactionDate``,
``isDeleted``...) and accept either those or the Python field names on input.
"""
from enum import Enum
from typing import ClassVar, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Field kinds used by the layouts
TEXT = "text"
DECIMAL = "decimal"      # nullable float
TIMESTAMP = "timestamp"  # nullable epoch-ms integer
FLAG = "flag"            # integer defaulting to 0 (booleans and counts)


class TransactionType(str, Enum):
    """Transaction direction."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class BudgetStatus(str, Enum):
    """Budget status, always derived from actual spend."""
    ON_TRACK = "ON_TRACK"
    WARNING = "WARNING"
    OVER_BUDGET = "OVER_BUDGET"


class ExportRecord(BaseModel):
    """Base class for records decoded from an export CSV member."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    LAYOUT: ClassVar[Tuple[Tuple[str, str], ...]] = ()

    @classmethod
    def field_count(cls) -> int:
        """Minimum number of CSV fields a row needs to map into this record."""
        return len(cls.LAYOUT)

    def to_row(self) -> List[str]:
        """Encode the record back into its canonical positional row."""
        row = []
        for name, _kind in self.LAYOUT:
            value = getattr(self, name)
            row.append("" if value is None else str(value))
        return row


class Transaction(ExportRecord):
    """A single income or expense entry."""

    LAYOUT: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("id", TEXT),
        ("user_id", TEXT),
        ("amount", DECIMAL),
        ("currency_code", TEXT),
        ("exchange_rate", DECIMAL),
        ("type", TEXT),
        ("category_id", TEXT),
        ("subcategory", TEXT),
        ("description", TEXT),
        ("notes", TEXT),
        ("transaction_date", TIMESTAMP),
        ("transaction_time", TIMESTAMP),
        ("account_name", TEXT),
        ("payment_method", TEXT),
        ("reference_number", TEXT),
        ("location", TEXT),
        ("tags", TEXT),
        ("is_recurring", FLAG),
        ("recurring_pattern", TEXT),
        ("receipt_image_path", TEXT),
        ("is_tax_deductible", FLAG),
        ("created_at", TIMESTAMP),
        ("updated_at", TIMESTAMP),
        ("is_deleted", FLAG),
    )

    id: str = ""
    user_id: str = ""
    amount: Optional[float] = None
    currency_code: str = ""
    exchange_rate: Optional[float] = None
    type: str = ""
    category_id: str = ""
    subcategory: str = ""
    description: str = ""
    notes: str = ""
    transaction_date: Optional[int] = None
    transaction_time: Optional[int] = None
    account_name: str = ""
    payment_method: str = ""
    reference_number: str = ""
    location: str = ""
    tags: str = ""
    is_recurring: int = 0
    recurring_pattern: str = ""
    receipt_image_path: str = ""
    is_tax_deductible: int = 0
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    is_deleted: int = 0

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE.value

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME.value


class Budget(ExportRecord):
    """A spending limit for one category.

    ``budget_amount`` and ``spent_amount`` use the export's composite
    ``"<decimal>,<currency>"`` encoding, e.g. ``"1500.00,INR"``.
    """

    LAYOUT: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("id", TEXT),
        ("user_id", TEXT),
        ("name", TEXT),
        ("description", TEXT),
        ("category_id", TEXT),
        ("category_name", TEXT),
        ("budget_amount", TEXT),
        ("spent_amount", TEXT),
        ("period", TEXT),
        ("start_date", TEXT),
        ("end_date", TEXT),
        ("status", TEXT),
        ("is_active", FLAG),
        ("is_recurring", FLAG),
        ("created_at", TIMESTAMP),
        ("updated_at", TIMESTAMP),
    )

    id: str = ""
    user_id: str = ""
    name: str = ""
    description: str = ""
    category_id: str = ""
    category_name: str = ""
    budget_amount: str = ""
    spent_amount: str = ""
    period: str = ""
    start_date: str = ""
    end_date: str = ""
    status: str = ""
    is_active: int = 0
    is_recurring: int = 0
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class PaymentReminder(ExportRecord):
    """A scheduled bill reminder. Carried through the pipeline unchanged."""

    LAYOUT: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("id", TEXT),
        ("user_id", TEXT),
        ("title", TEXT),
        ("category", TEXT),
        ("amount", DECIMAL),
        ("currency_code", TEXT),
        ("due_date", TIMESTAMP),
        ("due_time", TEXT),
        ("repeat_type", TEXT),
        ("repeat_interval", FLAG),
        ("repeat_unit", TEXT),
        ("next_due_date", TIMESTAMP),
        ("notification_time", FLAG),
        ("notification_enabled", FLAG),
        ("notification_id", FLAG),
        ("status", TEXT),
        ("is_active", FLAG),
        ("snooze_until", TIMESTAMP),
        ("notes", TEXT),
        ("payment_method", TEXT),
        ("auto_create_transaction", FLAG),
        ("created_at", TIMESTAMP),
        ("updated_at", TIMESTAMP),
        ("last_notified_at", TIMESTAMP),
        ("completion_count", FLAG),
    )

    id: str = ""
    user_id: str = ""
    title: str = ""
    category: str = ""
    amount: Optional[float] = None
    currency_code: str = ""
    due_date: Optional[int] = None
    due_time: str = ""
    repeat_type: str = ""
    repeat_interval: int = 0
    repeat_unit: str = ""
    next_due_date: Optional[int] = None
    notification_time: int = 0
    notification_enabled: int = 0
    notification_id: int = 0
    status: str = ""
    is_active: int = 0
    snooze_until: Optional[int] = None
    notes: str = ""
    payment_method: str = ""
    auto_create_transaction: int = 0
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    last_notified_at: Optional[int] = None
    completion_count: int = 0


def active_transactions(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Return the transactions that are not soft-deleted."""
    return [t for t in transactions if t.is_deleted == 0]
