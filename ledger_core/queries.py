"""Read-only queries over the transaction log."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from . import reports
from .exceptions import ValidationError
from .models import GAIN_CATEGORY, Transaction, day_bounds_ms, month_bounds_ms
from .store import LedgerStore
from .validators import (
    ALL_FILTER,
    PAYMENT_METHODS,
    validate_date,
    validate_enum,
    validate_id,
    validate_year_month,
)


@dataclass(frozen=True)
class TransactionFilters:
    """Optional, ANDed restrictions for :meth:`QueryService.list_transactions`.

    ``start_date``/``end_date`` are inclusive local calendar days. ``year`` and
    ``month`` select a whole month and only apply when neither date bound is
    set. ``payment_method`` and ``category`` accept ``"all"`` as "no filter".
    """

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    payment_method: Optional[str] = None
    category: Optional[str] = None
    search_text: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    limit: Optional[int] = None
    exclude_category_ids: Tuple[int, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "TransactionFilters":
        """Build filters from loosely typed input such as query-string values."""
        values = {k: v for k, v in raw.items() if v not in (None, "")}
        year = month = None
        if "year" in values or "month" in values:
            if "year" not in values or "month" not in values:
                raise ValidationError("year and month must be given together")
            year, month = validate_year_month(values["year"], values["month"])
        limit = validate_id(values["limit"], "limit") if "limit" in values else None
        excluded = values.get("exclude_category_ids", ())
        if isinstance(excluded, str):
            excluded = [part for part in excluded.split(",") if part.strip()]
        return cls(
            start_date=validate_date(values["start_date"], "start_date") if "start_date" in values else None,
            end_date=validate_date(values["end_date"], "end_date") if "end_date" in values else None,
            payment_method=(
                validate_enum(values["payment_method"], "payment_method", PAYMENT_METHODS + (ALL_FILTER,))
                if "payment_method" in values
                else None
            ),
            category=str(values["category"]).strip() if "category" in values else None,
            search_text=str(values["search_text"]) if "search_text" in values else None,
            year=year,
            month=month,
            limit=limit,
            exclude_category_ids=tuple(validate_id(item, "exclude_category_ids") for item in excluded),
        )


class QueryService:
    """Filters and aggregates the transaction log without mutating it."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def list_transactions(self, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
        """Return matching transactions, newest first, with category names joined."""
        filters = filters or TransactionFilters()
        with self._store.read() as store:
            names = {category.id: category.name for category in store.categories()}
            rows = store.transactions()

        joined = (replace(tx, category_name=names.get(tx.category_id)) for tx in rows)
        matched = sorted(self._apply_filters(joined, filters), key=lambda tx: tx.timestamp, reverse=True)
        if filters.limit and filters.limit > 0:
            matched = matched[: filters.limit]
        return matched

    def month_transactions(
        self, year: int, month: int, exclude_category_ids: Iterable[int] = ()
    ) -> List[Transaction]:
        return self.list_transactions(
            TransactionFilters(year=year, month=month, exclude_category_ids=tuple(exclude_category_ids))
        )

    def monthly_summary(
        self, year: object, month: object, exclude_category_ids: Iterable[int] = ()
    ) -> reports.MonthlySummary:
        year_value, month_value = validate_year_month(year, month)
        # One lock hold so rows and the Gain lookup come from the same state.
        with self._store.read():
            transactions = self.month_transactions(year_value, month_value, exclude_category_ids)
            gain_id = self._gain_category_id()
        return reports.monthly_summary(year_value, month_value, transactions, gain_id)

    def budget_status(self, year: object, month: object) -> List[reports.BudgetStatus]:
        year_value, month_value = validate_year_month(year, month)
        with self._store.read() as store:
            categories = store.categories()
            transactions = self.month_transactions(year_value, month_value)
            gain_id = self._gain_category_id()
        return reports.budget_status(categories, transactions, gain_id)

    def _gain_category_id(self) -> Optional[int]:
        with self._store.read() as store:
            for category in store.categories():
                if category.name.lower() == GAIN_CATEGORY.lower():
                    return category.id
        return None

    @staticmethod
    def _apply_filters(records: Iterable[Transaction], filters: TransactionFilters) -> Iterable[Transaction]:
        start = day_bounds_ms(filters.start_date)[0] if filters.start_date else None
        end = day_bounds_ms(filters.end_date)[1] if filters.end_date else None
        if start is None and end is None and filters.year and filters.month:
            start, end = month_bounds_ms(filters.year, filters.month)
        payment_method = (
            filters.payment_method.strip().lower()
            if filters.payment_method and filters.payment_method.strip().lower() != ALL_FILTER
            else None
        )
        category = (
            filters.category
            if filters.category and filters.category.strip().lower() != ALL_FILTER
            else None
        )
        search = filters.search_text.strip().lower() if filters.search_text and filters.search_text.strip() else None
        excluded = set(filters.exclude_category_ids)

        def matches(tx: Transaction) -> bool:
            if start is not None and tx.timestamp < start:
                return False
            if end is not None and tx.timestamp > end:
                return False
            if payment_method and tx.payment_method != payment_method:
                return False
            if category and tx.category_name != category:
                return False
            if search and search not in (tx.reason or "").lower():
                return False
            if tx.category_id in excluded:
                return False
            return True

        return filter(matches, records)
