#!/usr/bin/env python3
"""Expense Ledger CLI - budget reconciliation and analytics for finance app exports."""
import argparse
import sys
import logging
from pathlib import Path

from expense_ledger.api.ledger_service import LedgerService
from expense_ledger.ingestion.archive_loader import DecodeError
from expense_ledger.intelligence.analytics import TransactionFilter, local_datetime


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )


def format_date(timestamp_ms) -> str:
    dt = local_datetime(timestamp_ms)
    return dt.strftime("%Y-%m-%d") if dt else "----------"


def cmd_import(args):
    """Import an export ZIP archive."""
    file_path = Path(args.file)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return 1

    with LedgerService() as service:
        try:
            result = service.import_archive(file_path)
        except DecodeError as e:
            print(f"Error: {e}")
            return 1

        print("Import complete:")
        print(f"  Transactions:      {result['transactions']}")
        print(f"  Budgets:           {result['budgets']}")
        print(f"  Payment reminders: {result['payment_reminders']}")

    return 0


def cmd_summary(args):
    """Show summary of the loaded ledger."""
    with LedgerService() as service:
        analytics = service.get_analytics()
        if analytics is None:
            print("No data loaded. Run 'expense-ledger import <archive.zip>' first.")
            return 0

        print("=" * 50)
        print("LEDGER SUMMARY")
        print("=" * 50)
        print(f"\nTransactions:   {analytics.transaction_count}")
        print(f"Total income:   {analytics.total_income:,.2f}")
        print(f"Total expenses: {analytics.total_expense:,.2f}")
        print(f"Net savings:    {analytics.net_savings:,.2f}")
        print(f"Savings rate:   {analytics.savings_rate:.1f}%")
        daily = analytics.daily_average_spending
        print(f"Daily average:  {daily.average:,.2f} over {daily.total_days} days")

        if analytics.category_breakdown:
            print("\n" + "-" * 50)
            print("CATEGORY BREAKDOWN")
            print("-" * 50)
            sorted_cats = sorted(
                analytics.category_breakdown.items(),
                key=lambda x: x[1],
                reverse=True
            )
            for name, total in sorted_cats:
                average = analytics.average_by_category.get(name, 0)
                print(f"  {name:20s}  {total:12,.2f}  (avg {average:,.2f})")

        if analytics.weekly_trends:
            print("\n" + "-" * 50)
            print("WEEKLY SPENDING")
            print("-" * 50)
            for trend in analytics.weekly_trends:
                print(f"  {trend.week}  {trend.amount:12,.2f}")

    return 0


def cmd_budgets(args):
    """Show reconciled budgets."""
    with LedgerService() as service:
        analytics = service.get_analytics()
        if analytics is None or not analytics.budget_tracking:
            print("No budgets loaded.")
            return 0

        for b in analytics.budget_tracking:
            print(
                f"  {b.name:20s} {b.status:12s} {b.spent_amount:10,.2f} / {b.budget_amount:10,.2f}"
                f"  ({b.percentage_used:5.1f}%, remaining {b.remaining:,.2f})"
            )

    return 0


def cmd_recurring(args):
    """List recurring expenses."""
    with LedgerService() as service:
        recurring = service.get_recurring()
        if not recurring:
            print("No recurring expenses found.")
            return 0

        print(f"Found {len(recurring)} recurring expenses:\n")
        for r in recurring:
            print(
                f"  {r.description[:30]:30s} x{r.frequency:<3d} "
                f"avg {r.average_amount:10,.2f}  total {r.total_amount:10,.2f}  [{r.category}]"
            )

    return 0


def cmd_transactions(args):
    """List transactions."""
    filters = TransactionFilter(
        type=args.type,
        category_id=args.category,
        search_term=args.search,
    )
    with LedgerService() as service:
        page = service.get_transactions(filters, limit=args.limit)

        if not page["transactions"]:
            print("No matching transactions.")
            return 0

        print(f"Showing {len(page['transactions'])} of {page['total']} transactions:\n")
        for t in page["transactions"]:
            amount = t.amount if t.amount is not None else 0
            print(
                f"  {format_date(t.transaction_date)} | {t.type:7s} | "
                f"{t.description[:25]:25s} | {t.category_id[:15]:15s} | {amount:10,.2f}"
            )

    return 0


def cmd_reminders(args):
    """List payment reminders."""
    with LedgerService() as service:
        reminders = service.get_payment_reminders()
        if not reminders:
            print("No payment reminders.")
            return 0

        for r in reminders:
            amount = r.amount if r.amount is not None else 0
            print(
                f"  {format_date(r.due_date)} | {r.title[:30]:30s} | "
                f"{amount:10,.2f} {r.currency_code} | {r.status}"
            )

    return 0


def cmd_history(args):
    """Show recent archive imports."""
    with LedgerService() as service:
        imports = service.get_imports(args.limit)
        if not imports:
            print("No imports yet.")
            return 0

        for i in imports:
            print(
                f"  {i['created_at']} | {i['source'] or '<upload>'} | "
                f"{i['transactions']} txns, {i['budgets']} budgets, "
                f"{i['payment_reminders']} reminders"
            )

    return 0


def cmd_clear(args):
    """Clear all loaded data."""
    with LedgerService() as service:
        service.clear()
        print("Ledger cleared.")

    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Expense Ledger - budget reconciliation and analytics for finance app exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  expense-ledger import export.zip         Load an export archive
  expense-ledger summary                   Show totals and category breakdown
  expense-ledger budgets                   Show reconciled budgets
  expense-ledger recurring                 List recurring expenses
  expense-ledger transactions -t EXPENSE   List expense transactions
  expense-ledger clear                     Remove all loaded data
"""
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Import command
    import_parser = subparsers.add_parser("import", help="Import an export ZIP archive")
    import_parser.add_argument("file", help="ZIP archive to import")
    import_parser.set_defaults(func=cmd_import)

    # Summary command
    summary_parser = subparsers.add_parser("summary", help="Show ledger summary")
    summary_parser.set_defaults(func=cmd_summary)

    # Budgets command
    budgets_parser = subparsers.add_parser("budgets", help="Show reconciled budgets")
    budgets_parser.set_defaults(func=cmd_budgets)

    # Recurring command
    recurring_parser = subparsers.add_parser("recurring", help="List recurring expenses")
    recurring_parser.set_defaults(func=cmd_recurring)

    # Transactions command
    txn_parser = subparsers.add_parser("transactions", help="List transactions")
    txn_parser.add_argument("-t", "--type", help="INCOME or EXPENSE")
    txn_parser.add_argument("-c", "--category", help="Exact category id")
    txn_parser.add_argument("-s", "--search", help="Search description and notes")
    txn_parser.add_argument("-n", "--limit", type=int, default=20, help="Max results")
    txn_parser.set_defaults(func=cmd_transactions)

    # Reminders command
    reminders_parser = subparsers.add_parser("reminders", help="List payment reminders")
    reminders_parser.set_defaults(func=cmd_reminders)

    # History command
    history_parser = subparsers.add_parser("history", help="Show recent imports")
    history_parser.add_argument("-n", "--limit", type=int, default=20, help="Max results")
    history_parser.set_defaults(func=cmd_history)

    # Clear command
    clear_parser = subparsers.add_parser("clear", help="Clear all loaded data")
    clear_parser.set_defaults(func=cmd_clear)

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
