"""Aggregations over transactions for charts and summaries.

Income versus expense is decided by the Gain category id. When no Gain
category exists the helpers run in a degraded mode and fall back to the sign
of the stored amount: negative amounts count as income, everything else as
an expense. Ledger-written amounts are always positive, so in that mode every
row is reported as an expense.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .models import Category, CategoryRole, Transaction, UNCATEGORIZED_CATEGORY

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    amount: Decimal
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "amount": f"{self.amount:.2f}", "count": self.count}


@dataclass(frozen=True)
class BudgetStatus:
    category_id: int
    name: str
    monthly_limit: Optional[Decimal]
    spent: Decimal

    @property
    def remaining(self) -> Optional[Decimal]:
        if self.monthly_limit is None:
            return None
        return self.monthly_limit - self.spent

    @property
    def over_limit(self) -> bool:
        return self.monthly_limit is not None and self.spent > self.monthly_limit

    def to_dict(self) -> Dict[str, Any]:
        remaining = self.remaining
        return {
            "category_id": self.category_id,
            "name": self.name,
            "monthly_limit": f"{self.monthly_limit:.2f}" if self.monthly_limit is not None else None,
            "spent": f"{self.spent:.2f}",
            "remaining": f"{remaining:.2f}" if remaining is not None else None,
            "over_limit": self.over_limit,
        }


@dataclass(frozen=True)
class MonthlySummary:
    year: int
    month: int
    income: Decimal
    expenses: Decimal
    daily_expenses: Dict[date, Decimal]
    daily_income: Dict[date, Decimal]
    category_expenses: List[CategoryTotal]
    transactions_by_day: Dict[date, List[Transaction]] = field(default_factory=dict)
    degraded: bool = False

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "income": f"{self.income:.2f}",
            "expenses": f"{self.expenses:.2f}",
            "net": f"{self.net:.2f}",
            "daily_expenses": {day.isoformat(): f"{amount:.2f}" for day, amount in self.daily_expenses.items()},
            "daily_income": {day.isoformat(): f"{amount:.2f}" for day, amount in self.daily_income.items()},
            "category_expenses": [total.to_dict() for total in self.category_expenses],
            "transaction_count": sum(len(rows) for rows in self.transactions_by_day.values()),
            "degraded": self.degraded,
        }


def role_of(tx: Transaction, gain_category_id: Optional[int]) -> CategoryRole:
    if gain_category_id is None:
        return CategoryRole.INCOME if tx.amount < 0 else CategoryRole.EXPENSE
    return CategoryRole.INCOME if tx.category_id == gain_category_id else CategoryRole.EXPENSE


def _clean(transactions: Iterable[Transaction]) -> Iterator[Tuple[Transaction, date, Decimal]]:
    """Yield (transaction, local day, absolute amount), skipping rows that cannot be read."""
    for tx in transactions:
        try:
            day = tx.occurred_at.date()
            amount = abs(Decimal(tx.amount))
        except (TypeError, ValueError, OverflowError, OSError, ArithmeticError) as exc:
            logger.warning("Skipping malformed transaction %s: %s", getattr(tx, "id", "?"), exc)
            continue
        yield tx, day, amount


def partition_by_role(
    transactions: Iterable[Transaction], gain_category_id: Optional[int]
) -> Tuple[List[Transaction], List[Transaction]]:
    """Split transactions into (income, expenses)."""
    income: List[Transaction] = []
    expenses: List[Transaction] = []
    for tx, _, _ in _clean(transactions):
        if role_of(tx, gain_category_id) is CategoryRole.INCOME:
            income.append(tx)
        else:
            expenses.append(tx)
    return income, expenses


def daily_totals(transactions: Iterable[Transaction]) -> Dict[date, Decimal]:
    totals: Dict[date, Decimal] = defaultdict(lambda: ZERO)
    for _, day, amount in _clean(transactions):
        totals[day] += amount
    return dict(sorted(totals.items()))


def category_breakdown(transactions: Iterable[Transaction]) -> List[CategoryTotal]:
    """Total and count per category name, largest first."""
    amounts: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: Dict[str, int] = defaultdict(int)
    for tx, _, amount in _clean(transactions):
        name = tx.category_name or UNCATEGORIZED_CATEGORY
        amounts[name] += amount
        counts[name] += 1
    totals = [
        CategoryTotal(name=name, amount=amount, count=counts[name])
        for name, amount in amounts.items()
        if amount > 0
    ]
    return sorted(totals, key=lambda total: (-total.amount, total.name))


def monthly_summary(
    year: int,
    month: int,
    transactions: Iterable[Transaction],
    gain_category_id: Optional[int],
) -> MonthlySummary:
    rows = list(transactions)
    income, expenses = partition_by_role(rows, gain_category_id)
    by_day: Dict[date, List[Transaction]] = defaultdict(list)
    for tx, day, _ in _clean(rows):
        by_day[day].append(tx)
    return MonthlySummary(
        year=year,
        month=month,
        income=sum((amount for _, _, amount in _clean(income)), ZERO),
        expenses=sum((amount for _, _, amount in _clean(expenses)), ZERO),
        daily_expenses=daily_totals(expenses),
        daily_income=daily_totals(income),
        category_expenses=category_breakdown(expenses),
        transactions_by_day=dict(sorted(by_day.items())),
        degraded=gain_category_id is None,
    )


def budget_status(
    categories: Iterable[Category],
    transactions: Iterable[Transaction],
    gain_category_id: Optional[int],
) -> List[BudgetStatus]:
    """Spending against ``monthly_limit`` for every expense category."""
    _, expenses = partition_by_role(transactions, gain_category_id)
    spent: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for tx, _, amount in _clean(expenses):
        spent[tx.category_id] += amount
    statuses = [
        BudgetStatus(
            category_id=category.id,
            name=category.name,
            monthly_limit=category.monthly_limit,
            spent=spent[category.id],
        )
        for category in categories
        if category.id != gain_category_id
    ]
    return sorted(statuses, key=lambda status: status.name.lower())
