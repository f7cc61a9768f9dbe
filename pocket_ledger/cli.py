"""Console interface for the pocket ledger."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from ledger_core.config import Settings
from ledger_core.exceptions import (
    DuplicateError,
    PersistenceError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from ledger_core.models import Category, Transaction
from ledger_core.queries import TransactionFilters
from ledger_core.seeding import generate_test_data
from ledger_core.services import LedgerServices, create_services
from ledger_core.storage import JSONStorage
from ledger_core.validators import PAYMENT_METHODS

DATETIME_FORMAT = "%Y-%m-%d %H:%M"


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Expected format YYYY-MM-DD."
        ) from exc


def _parse_amount(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Amount must be a numeric value") from exc
    if not amount.is_finite():
        raise argparse.ArgumentTypeError("Amount must be a finite number")
    if amount <= 0:
        raise argparse.ArgumentTypeError("Amount must be greater than zero")
    return value


def _format_category(category: Category) -> str:
    limit = f"{category.monthly_limit:.2f}" if category.monthly_limit is not None else "-"
    marker = " (reserved)" if category.is_reserved else ""
    return f"[{category.id}] {category.name}{marker} | Limit: {limit}"


def _format_transaction(tx: Transaction, gain_category_id: Optional[int]) -> str:
    sign = "+" if gain_category_id is not None and tx.category_id == gain_category_id else "-"
    return (
        f"[{tx.id}] {tx.occurred_at.strftime(DATETIME_FORMAT)} {sign}{tx.amount:.2f}\n"
        f"  Category: {tx.category_name or '-'} | Payment: {tx.payment_method}\n"
        f"  Reason: {tx.reason or '-'}\n"
    )


def _resolve_category_id(services: LedgerServices, value: str) -> int:
    """Accept either a category id or a category name; ids win when both match."""
    if value.strip().isdigit():
        try:
            return services.categories.get(value).id
        except RecordNotFoundError:
            pass
    category = services.categories.find_by_name(value)
    if category is None:
        raise RecordNotFoundError(f"Category '{value}' not found")
    return category.id


def handle_category(args: argparse.Namespace, services: LedgerServices) -> None:
    if args.command == "list":
        for category in services.categories.list():
            print(_format_category(category))
    elif args.command == "add":
        category = services.categories.add(args.name, args.limit)
        print("Category added: " + _format_category(category))
    elif args.command == "edit":
        existing = services.categories.get(args.id)
        if args.clear_limit:
            limit = None
        else:
            limit = args.limit if args.limit is not None else existing.monthly_limit
        category = services.categories.update(args.id, args.name, limit)
        print("Category updated: " + _format_category(category))
    elif args.command == "delete":
        services.categories.delete(args.id)
        print(f"Category {args.id} deleted.")


def handle_balance(args: argparse.Namespace, services: LedgerServices) -> None:
    if args.command == "show":
        for method, amount in services.balances.get_all().items():
            print(f"{method}: {amount:.2f}")
        print(f"total: {services.balances.total():.2f}")
    elif args.command == "set":
        balance = services.balances.set(args.method, args.amount)
        print(f"{balance.type} balance set to {balance.amount:.2f}")


def handle_transaction(args: argparse.Namespace, services: LedgerServices) -> None:
    gain_id = services.categories.gain_category_id()
    if args.command == "add":
        tx = services.ledger.add(
            args.payment_method,
            _resolve_category_id(services, args.category),
            args.amount,
            args.reason,
        )
        print("Transaction added:\n" + _format_transaction(tx, gain_id))
    elif args.command == "list":
        filters = TransactionFilters.from_mapping({
            "start_date": args.start,
            "end_date": args.end,
            "payment_method": args.payment_method,
            "category": args.category,
            "search_text": args.search,
            "year": args.year,
            "month": args.month,
            "limit": args.limit,
        })
        transactions = services.queries.list_transactions(filters)
        if not transactions:
            print("No transactions found.")
            return
        print(f"Found {len(transactions)} transactions:")
        for tx in transactions:
            print(_format_transaction(tx, gain_id))
    elif args.command == "edit":
        existing = services.ledger.get(args.id)
        tx = services.ledger.update(
            args.id,
            args.payment_method or existing.payment_method,
            _resolve_category_id(services, args.category) if args.category else existing.category_id,
            args.amount or existing.amount,
            args.reason if args.reason is not None else existing.reason,
        )
        print("Transaction updated:\n" + _format_transaction(tx, gain_id))
    elif args.command == "delete":
        services.ledger.delete(args.id)
        print(f"Transaction {args.id} deleted.")


def handle_summary(args: argparse.Namespace, services: LedgerServices) -> None:
    report = services.queries.monthly_summary(args.year, args.month, args.exclude or ())
    print(f"Summary for {report.year}-{report.month:02d}")
    if report.degraded:
        print("  (no Gain category; income detected by amount sign)")
    print(f"  Income: {report.income:.2f} | Expenses: {report.expenses:.2f} | Net: {report.net:.2f}")
    if report.category_expenses:
        print("  By category:")
        for total in report.category_expenses:
            print(f"    {total.name}: {total.amount:.2f} ({total.count})")
    if report.daily_expenses:
        print("  Daily expenses:")
        for day, amount in report.daily_expenses.items():
            print(f"    {day.isoformat()}: {amount:.2f}")


def handle_budget(args: argparse.Namespace, services: LedgerServices) -> None:
    for status in services.queries.budget_status(args.year, args.month):
        if status.monthly_limit is None:
            print(f"{status.name}: spent {status.spent:.2f} (no limit)")
            continue
        flag = " OVER LIMIT" if status.over_limit else ""
        print(
            f"{status.name}: spent {status.spent:.2f} of {status.monthly_limit:.2f}"
            f" (remaining {status.remaining:.2f}){flag}"
        )


def handle_seed(args: argparse.Namespace, services: LedgerServices) -> None:
    if generate_test_data(services, args.year, args.month, args.count):
        print(f"Generated test data for {args.year}-{args.month:02d}.")
    else:
        raise ValidationError("No categories available to generate test data")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pocket Ledger CLI")
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory to store ledger data (default: $POCKET_LEDGER_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Reject expenses that would overdraw a balance",
    )
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")

    subparsers = parser.add_subparsers(dest="entity", required=True)

    category_parser = subparsers.add_parser("category", help="Manage categories")
    category_sub = category_parser.add_subparsers(dest="command", required=True)
    category_sub.add_parser("list", help="List categories")
    category_add = category_sub.add_parser("add", help="Add a category")
    category_add.add_argument("name")
    category_add.add_argument("--limit")
    category_edit = category_sub.add_parser("edit", help="Rename a category or change its limit")
    category_edit.add_argument("id", type=int)
    category_edit.add_argument("name")
    category_edit_limit = category_edit.add_mutually_exclusive_group()
    category_edit_limit.add_argument("--limit", help="New monthly limit (default: keep the current one)")
    category_edit_limit.add_argument("--clear-limit", action="store_true", help="Remove the monthly limit")
    category_delete = category_sub.add_parser("delete", help="Delete an unused category")
    category_delete.add_argument("id", type=int)

    balance_parser = subparsers.add_parser("balance", help="Show or correct balances")
    balance_sub = balance_parser.add_subparsers(dest="command", required=True)
    balance_sub.add_parser("show", help="Show balances")
    balance_set = balance_sub.add_parser("set", help="Overwrite a balance")
    balance_set.add_argument("method", choices=PAYMENT_METHODS)
    balance_set.add_argument("amount")

    tx_parser = subparsers.add_parser("tx", help="Manage transactions")
    tx_sub = tx_parser.add_subparsers(dest="command", required=True)

    tx_add = tx_sub.add_parser("add", help="Add a transaction")
    tx_add.add_argument("payment_method", choices=PAYMENT_METHODS)
    tx_add.add_argument("category", help="Category id or name")
    tx_add.add_argument("amount", type=_parse_amount)
    tx_add.add_argument("--reason")

    tx_list = tx_sub.add_parser("list", help="List transactions, newest first")
    tx_list.add_argument("--start", type=_parse_date)
    tx_list.add_argument("--end", type=_parse_date)
    tx_list.add_argument("--payment-method", choices=PAYMENT_METHODS + ("all",))
    tx_list.add_argument("--category")
    tx_list.add_argument("--search")
    tx_list.add_argument("--year", type=int)
    tx_list.add_argument("--month", type=int)
    tx_list.add_argument("--limit", type=int)

    tx_edit = tx_sub.add_parser("edit", help="Edit a transaction")
    tx_edit.add_argument("id")
    tx_edit.add_argument("--payment-method", choices=PAYMENT_METHODS)
    tx_edit.add_argument("--category", help="Category id or name")
    tx_edit.add_argument("--amount", type=_parse_amount)
    tx_edit.add_argument("--reason")

    tx_delete = tx_sub.add_parser("delete", help="Delete a transaction")
    tx_delete.add_argument("id")

    summary_parser = subparsers.add_parser("summary", help="Monthly income and expense summary")
    summary_parser.add_argument("year", type=int)
    summary_parser.add_argument("month", type=int)
    summary_parser.add_argument("--exclude", type=int, nargs="*", help="Category ids to leave out")

    budget_parser = subparsers.add_parser("budget", help="Spending against category limits")
    budget_parser.add_argument("year", type=int)
    budget_parser.add_argument("month", type=int)

    seed_parser = subparsers.add_parser("seed", help="Generate test transactions for a month")
    seed_parser.add_argument("year", type=int)
    seed_parser.add_argument("month", type=int)
    seed_parser.add_argument("--count", type=int, default=100)

    return parser


HANDLERS = {
    "category": handle_category,
    "balance": handle_balance,
    "tx": handle_transaction,
    "summary": handle_summary,
    "budget": handle_budget,
    "seed": handle_seed,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        services = create_services(
            JSONStorage(args.data_dir or settings.data_dir),
            strict_balance=settings.strict_balance if args.strict is None else args.strict,
        )
        HANDLERS[args.entity](args, services)
    except ValidationError as exc:
        print(f"Validation error: {exc}", file=sys.stderr)
        return 1
    except DuplicateError as exc:
        print(f"Duplicate: {exc}", file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except ReferentialIntegrityError as exc:
        print(f"In use: {exc}", file=sys.stderr)
        return 1
    except PersistenceError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
