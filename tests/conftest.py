"""
Pytest configuration and shared fixtures.
"""
import csv
import io
import os
import sys
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add the project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


TRANSACTION_HEADER = [
    "id", "userId", "amount", "currencyCode", "exchangeRate", "type", "categoryId",
    "subcategory", "description", "notes", "transactionDate", "transactionTime",
    "accountName", "paymentMethod", "referenceNumber", "location", "tags", "isRecurring",
    "recurringPattern", "receiptImagePath", "isTaxDeductible", "createdAt", "updatedAt",
    "isDeleted",
]

BUDGET_HEADER = [
    "id", "userId", "name", "description", "categoryId", "categoryName", "budgetAmount",
    "spentAmount", "period", "startDate", "endDate", "status", "isActive", "isRecurring",
    "createdAt", "updatedAt",
]

REMINDER_HEADER = [
    "id", "userId", "title", "category", "amount", "currencyCode", "dueDate", "dueTime",
    "repeatType", "repeatInterval", "repeatUnit", "nextDueDate", "notificationTime",
    "notificationEnabled", "notificationId", "status", "isActive", "snoozeUntil", "notes",
    "paymentMethod", "autoCreateTransaction", "createdAt", "updatedAt", "lastNotifiedAt",
    "completionCount",
]


def local_ms(year: int, month: int, day: int, hour: int = 12) -> int:
    """Epoch milliseconds for a local wall-clock time (noon by default)."""
    return int(datetime(year, month, day, hour).timestamp() * 1000)


@pytest.fixture
def ts():
    """Factory for local epoch-ms timestamps."""
    return local_ms


@pytest.fixture
def temp_db_path(tmp_path) -> Path:
    """Path for a throwaway SQLite database."""
    return tmp_path / "test_ledger.db"


@pytest.fixture
def transaction_row():
    """Factory for a 24-field transaction CSV row."""
    def make(
        id: str = "t1",
        amount: str = "100.00",
        type: str = "EXPENSE",
        category_id: str = "Food",
        description: str = "Lunch",
        transaction_date: Optional[int] = None,
        payment_method: str = "UPI",
        notes: str = "",
        is_deleted: str = "0",
    ) -> List[str]:
        date = str(transaction_date if transaction_date is not None else local_ms(2024, 1, 15))
        return [
            id, "user-1", amount, "INR", "1.0", type, category_id,
            "", description, notes, date, "43200000",
            "Savings", payment_method, "REF-1", "Pune", "daily", "0",
            "", "", "0", "1705000000000", "1705000000000",
            is_deleted,
        ]
    return make


@pytest.fixture
def budget_row():
    """Factory for a 16-field budget CSV row."""
    def make(
        id: str = "b1",
        name: str = "Food budget",
        category_id: str = "Food",
        category_name: str = "Food",
        budget_amount: str = "1000.00,INR",
        spent_amount: str = "0.00,INR",
        status: str = "ON_TRACK",
    ) -> List[str]:
        return [
            id, "user-1", name, "Monthly food", category_id, category_name,
            budget_amount, spent_amount, "MONTHLY", "2024-01-01", "2024-01-31",
            status, "1", "1", "1704067200000", "1704067200000",
        ]
    return make


@pytest.fixture
def reminder_row():
    """Factory for a 25-field payment reminder CSV row."""
    def make(id: str = "r1", title: str = "Electricity bill", amount: str = "1200.50") -> List[str]:
        return [
            id, "user-1", title, "Utilities", amount, "INR", "1706745600000", "09:00",
            "MONTHLY", "1", "MONTH", "1709251200000", "1440", "1", "42", "PENDING",
            "1", "", "Pay online", "UPI", "0", "1704067200000", "1704067200000", "", "3",
        ]
    return make


@pytest.fixture
def csv_text():
    """Factory that writes rows as CSV text, optionally with a version marker row."""
    def make(header: List[str], rows: List[List[str]], version: bool = True) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        if version:
            writer.writerow(["CSV_VERSION_1"])
        writer.writerow(header)
        writer.writerows(rows)
        return buffer.getvalue()
    return make


@pytest.fixture
def archive_bytes():
    """Factory that zips {member name: text} into archive bytes."""
    def make(members: Dict[str, str]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for name, text in members.items():
                archive.writestr(name, text)
        return buffer.getvalue()
    return make


@pytest.fixture
def sample_archive(archive_bytes, csv_text, transaction_row, budget_row, reminder_row) -> bytes:
    """A realistic export: food, rent and salary transactions, two budgets, one reminder."""
    transactions = [
        transaction_row(id="t1", amount="500.00", category_id="Food_Delivery",
                        description="Swiggy order", transaction_date=local_ms(2024, 1, 10)),
        transaction_row(id="t2", amount="300.00", category_id="food delivery",
                        description="Swiggy order", transaction_date=local_ms(2024, 1, 17)),
        transaction_row(id="t3", amount="15000.00", category_id="Rent",
                        description="January rent", payment_method="Bank Transfer",
                        transaction_date=local_ms(2024, 1, 1)),
        transaction_row(id="t4", amount="50000.00", type="INCOME", category_id="Salary",
                        description="Salary", payment_method="Bank Transfer",
                        transaction_date=local_ms(2024, 1, 31)),
        transaction_row(id="t5", amount="999.00", category_id="Food_Delivery",
                        description="Deleted order", is_deleted="1",
                        transaction_date=local_ms(2024, 1, 20)),
    ]
    budgets = [
        budget_row(id="b1", name="Food delivery", category_id="FOOD_DELIVERY",
                   budget_amount="900.00,INR", spent_amount="9999.00,INR", status="OVER_BUDGET"),
        budget_row(id="b2", name="Rent", category_id="Rent", budget_amount="12000.00,INR"),
    ]
    return archive_bytes({
        "export/transactions.csv": csv_text(TRANSACTION_HEADER, transactions),
        "export/budgets.csv": csv_text(BUDGET_HEADER, budgets),
        "export/budget_history.csv": csv_text(BUDGET_HEADER, []),
        "export/payment_reminders.csv": csv_text(REMINDER_HEADER, [reminder_row()]),
        "export/readme.txt": "not a csv",
    })


@pytest.fixture
def headers():
    """Canonical header rows by record kind."""
    return {
        "transactions": TRANSACTION_HEADER,
        "budgets": BUDGET_HEADER,
        "payment_reminders": REMINDER_HEADER,
    }
