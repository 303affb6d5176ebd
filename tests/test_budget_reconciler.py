"""Tests for budget reconciliation."""
import pytest


def _expense(category_id, amount, **kwargs):
    from expense_ledger.ingestion.records import Transaction
    return Transaction(type="EXPENSE", category_id=category_id, amount=amount, **kwargs)


def _budget(category_id, budget_amount, **kwargs):
    from expense_ledger.ingestion.records import Budget
    return Budget(name=f"{category_id} budget", category_id=category_id, budget_amount=budget_amount, **kwargs)


class TestAmountHelpers:
    """Test cases for the composite amount helpers."""

    def test_normalize_category_id(self):
        """Trim, lower-case, underscores to spaces."""
        from expense_ledger.intelligence.budget_reconciler import normalize_category_id

        assert normalize_category_id("  Food_Delivery ") == "food delivery"
        assert normalize_category_id("FOOD DELIVERY") == "food delivery"
        assert normalize_category_id("") == ""
        assert normalize_category_id(None) == ""

    def test_parse_budget_amount(self):
        """Should take the numeric segment and default to zero."""
        from expense_ledger.intelligence.budget_reconciler import parse_budget_amount

        assert parse_budget_amount("1500.00,INR") == 1500.0
        assert parse_budget_amount("250") == 250.0
        assert parse_budget_amount("") == 0.0
        assert parse_budget_amount(None) == 0.0
        assert parse_budget_amount("lots,INR") == 0.0

    def test_extract_currency_code(self):
        """Currency comes from the second segment, INR when absent."""
        from expense_ledger.intelligence.budget_reconciler import extract_currency_code

        assert extract_currency_code("1500.00,USD") == "USD"
        assert extract_currency_code("1500.00") == "INR"
        assert extract_currency_code("") == "INR"

    def test_format_amount(self):
        """Amounts are written with two decimals."""
        from expense_ledger.intelligence.budget_reconciler import format_amount

        assert format_amount(150, "INR") == "150.00,INR"
        assert format_amount(1234.5, "EUR") == "1234.50,EUR"

    @pytest.mark.parametrize("spent,budget,expected", [
        (0, 100, "ON_TRACK"),
        (80, 100, "ON_TRACK"),
        (80.0001, 100, "WARNING"),
        (100, 100, "WARNING"),
        (100.01, 100, "OVER_BUDGET"),
        (0, 0, "ON_TRACK"),
        (1, 0, "OVER_BUDGET"),
    ])
    def test_classify_status(self, spent, budget, expected):
        """Status thresholds: over budget, over 80 percent, otherwise on track."""
        from expense_ledger.intelligence.budget_reconciler import classify_status

        assert classify_status(spent, budget).value == expected


class TestBudgetReconciler:
    """Test cases for BudgetReconciler."""

    def test_matches_normalized_categories(self):
        """Category ids match after normalization."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        budgets = [_budget("FOOD_DELIVERY", "1000.00,INR")]
        transactions = [
            _expense("Food_Delivery", 100.0),
            _expense("food delivery", 50.0),
            _expense("Groceries", 999.0),
        ]

        result = reconcile(budgets, transactions)

        assert result[0].spent_amount == "150.00,INR"
        assert result[0].status == "ON_TRACK"

    def test_over_budget(self):
        """Spend above the budget is OVER_BUDGET."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        budgets = [_budget("Food", "100.00,INR", spent_amount="0.00,INR", status="ON_TRACK")]
        result = reconcile(budgets, [_expense("food", 100.0), _expense("FOOD", 50.0)])

        assert result[0].spent_amount == "150.00,INR"
        assert result[0].status == "OVER_BUDGET"

    def test_eighty_percent_boundary(self):
        """Exactly 80 percent is on track; anything above is a warning."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        on_track = reconcile([_budget("Food", "100.00,INR")], [_expense("Food", 80.0)])
        warning = reconcile([_budget("Food", "100.00,INR")], [_expense("Food", 80.0001)])

        assert on_track[0].status == "ON_TRACK"
        assert warning[0].status == "WARNING"

    def test_zero_budget(self):
        """A zero budget is on track with no spend and over budget with any."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        idle = reconcile([_budget("Travel", "0.00,INR")], [])
        spent = reconcile([_budget("Travel", "0.00,INR")], [_expense("Travel", 1.0)])

        assert idle[0].spent_amount == "0.00,INR"
        assert idle[0].status == "ON_TRACK"
        assert spent[0].status == "OVER_BUDGET"

    def test_ignores_deleted_and_income(self):
        """Soft-deleted transactions and income never count as spend."""
        from expense_ledger.ingestion.records import Transaction
        from expense_ledger.intelligence.budget_reconciler import reconcile

        transactions = [
            _expense("Food", 40.0),
            _expense("Food", 500.0, is_deleted=1),
            Transaction(type="INCOME", category_id="Food", amount=700.0),
        ]
        result = reconcile([_budget("Food", "100.00,INR")], transactions)

        assert result[0].spent_amount == "40.00,INR"

    def test_missing_amounts_count_as_zero(self):
        """Expenses without an amount add nothing."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        result = reconcile([_budget("Food", "100.00,INR")], [_expense("Food", None), _expense("Food", 10.0)])

        assert result[0].spent_amount == "10.00,INR"

    def test_currency_carried_from_budget_amount(self):
        """The spent amount uses the budget's currency, INR by default."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        usd = reconcile([_budget("Food", "100.00,USD")], [_expense("Food", 5.0)])
        bare = reconcile([_budget("Food", "100.00")], [_expense("Food", 5.0)])

        assert usd[0].spent_amount == "5.00,USD"
        assert bare[0].spent_amount == "5.00,INR"

    def test_blank_category_is_untouched(self):
        """Budgets without a category pass through unchanged."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        budget = _budget("   ", "100.00,INR", spent_amount="42.00,INR", status="WARNING")
        result = reconcile([budget], [_expense("", 99.0)])

        assert result[0] == budget
        assert result[0].spent_amount == "42.00,INR"
        assert result[0].status == "WARNING"

    def test_inputs_are_not_modified(self):
        """Reconciliation returns new records in the same order."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        budgets = [
            _budget("Rent", "100.00,INR", id="b1", spent_amount="1.00,INR", status="OVER_BUDGET"),
            _budget("Food", "100.00,INR", id="b2"),
        ]
        result = reconcile(budgets, [_expense("Rent", 10.0)])

        assert [b.id for b in result] == ["b1", "b2"]
        assert budgets[0].spent_amount == "1.00,INR"
        assert budgets[0].status == "OVER_BUDGET"
        assert result[0].spent_amount == "10.00,INR"
        assert result[0].status == "ON_TRACK"

    def test_stale_status_is_recomputed(self):
        """Whatever status the export carried is replaced."""
        from expense_ledger.intelligence.budget_reconciler import BudgetReconciler

        budget = _budget("Food", "1000.00,INR", spent_amount="5000.00,INR", status="OVER_BUDGET")
        result = BudgetReconciler().reconcile([budget], [])

        assert result[0].spent_amount == "0.00,INR"
        assert result[0].status == "ON_TRACK"

    def test_reconcile_is_idempotent(self):
        """Reconciling twice gives the same budgets."""
        from expense_ledger.intelligence.budget_reconciler import reconcile

        transactions = [_expense("Food", 90.0)]
        once = reconcile([_budget("Food", "100.00,INR")], transactions)
        twice = reconcile(once, transactions)

        assert once == twice
