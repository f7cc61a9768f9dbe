"""Tests for transaction listing and filtering."""

from datetime import date

import pytest

from ledger_core import TransactionFilters, ValidationError
from ledger_core.models import day_bounds_ms, month_bounds_ms

DAY = date(2024, 3, 15)


@pytest.fixture
def day_rows(services, category_ids):
    """Transactions straddling both edges of ``DAY``."""
    start, end = day_bounds_ms(DAY)
    add = services.ledger.add
    return {
        "before": add("cash", category_ids["Groceries"], 1, "just before", timestamp=start - 1),
        "first": add("cash", category_ids["Groceries"], 2, "Morning coffee", timestamp=start),
        "last": add("gpay", category_ids["Transport"], 3, "late taxi", timestamp=end),
        "after": add("gpay", category_ids["Gain"], 4, "salary", timestamp=end + 1),
    }


def ids(transactions):
    return [tx.id for tx in transactions]


class TestListTransactions:
    def test_newest_first(self, services, day_rows):
        listed = services.queries.list_transactions()
        assert ids(listed) == [day_rows[key].id for key in ("after", "last", "first", "before")]

    def test_empty_filters_return_everything(self, services, day_rows):
        assert len(services.queries.list_transactions(TransactionFilters())) == 4

    def test_limit(self, services, day_rows):
        listed = services.queries.list_transactions(TransactionFilters(limit=2))
        assert ids(listed) == [day_rows["after"].id, day_rows["last"].id]

    def test_non_positive_limit_is_ignored(self, services, day_rows):
        assert len(services.queries.list_transactions(TransactionFilters(limit=0))) == 4

    def test_joins_current_category_name(self, services, category_ids, day_rows):
        services.categories.update(category_ids["Transport"], "Commute", None)
        listed = services.queries.list_transactions(TransactionFilters(category="Commute"))
        assert ids(listed) == [day_rows["last"].id]


class TestFilters:
    def test_single_day_is_inclusive_to_the_millisecond(self, services, day_rows):
        listed = services.queries.list_transactions(TransactionFilters(start_date=DAY, end_date=DAY))
        assert ids(listed) == [day_rows["last"].id, day_rows["first"].id]

    def test_open_ended_ranges(self, services, day_rows):
        since = services.queries.list_transactions(TransactionFilters(start_date=DAY))
        until = services.queries.list_transactions(TransactionFilters(end_date=DAY))
        assert day_rows["before"].id not in ids(since)
        assert day_rows["after"].id not in ids(until)
        assert len(since) == len(until) == 3

    def test_category_is_exact_name_match(self, services, day_rows):
        listed = services.queries.list_transactions(TransactionFilters(category="Groceries"))
        assert {tx.category_name for tx in listed} == {"Groceries"}
        assert len(listed) == 2
        assert services.queries.list_transactions(TransactionFilters(category="groceries")) == []

    def test_payment_method(self, services, day_rows):
        listed = services.queries.list_transactions(TransactionFilters(payment_method="gpay"))
        assert {tx.payment_method for tx in listed} == {"gpay"}
        assert len(listed) == 2

    @pytest.mark.parametrize("field", ["payment_method", "category"])
    def test_all_means_no_filter(self, services, day_rows, field):
        listed = services.queries.list_transactions(TransactionFilters(**{field: "All"}))
        assert len(listed) == 4

    def test_search_text_is_case_insensitive_substring_of_reason(self, services, day_rows):
        listed = services.queries.list_transactions(TransactionFilters(search_text="COFFEE"))
        assert ids(listed) == [day_rows["first"].id]

    def test_blank_search_is_ignored(self, services, day_rows):
        assert len(services.queries.list_transactions(TransactionFilters(search_text="  "))) == 4

    def test_filters_are_combined(self, services, day_rows):
        filters = TransactionFilters(start_date=DAY, end_date=DAY, payment_method="cash", search_text="morning")
        assert ids(services.queries.list_transactions(filters)) == [day_rows["first"].id]

    def test_exclude_category_ids(self, services, category_ids, day_rows):
        filters = TransactionFilters(exclude_category_ids=(category_ids["Groceries"], category_ids["Gain"]))
        assert ids(services.queries.list_transactions(filters)) == [day_rows["last"].id]

    def test_year_and_month(self, services, category_ids, day_rows):
        start, end = month_bounds_ms(2024, 4)
        april = services.ledger.add("cash", category_ids["Bills"], 9, timestamp=start)
        services.ledger.add("cash", category_ids["Bills"], 9, timestamp=end + 1)

        listed = services.queries.list_transactions(TransactionFilters(year=2024, month=4))
        assert ids(listed) == [april.id]
        assert len(services.queries.month_transactions(2024, 3)) == 4

    def test_explicit_dates_take_precedence_over_month(self, services, day_rows):
        filters = TransactionFilters(start_date=DAY, end_date=DAY, year=2023, month=1)
        assert len(services.queries.list_transactions(filters)) == 2


class TestFiltersFromMapping:
    def test_parses_query_string_values(self):
        filters = TransactionFilters.from_mapping({
            "start_date": "2024-03-01",
            "end_date": "2024-03-31",
            "payment_method": "CASH",
            "category": " Groceries ",
            "search_text": "milk",
            "limit": "10",
            "exclude_category_ids": "3, 4",
        })
        assert filters == TransactionFilters(
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            payment_method="cash",
            category="Groceries",
            search_text="milk",
            limit=10,
            exclude_category_ids=(3, 4),
        )

    def test_empty_values_are_dropped(self):
        assert TransactionFilters.from_mapping({"category": "", "limit": None}) == TransactionFilters()

    def test_year_month_pair(self):
        filters = TransactionFilters.from_mapping({"year": "2024", "month": "2"})
        assert (filters.year, filters.month) == (2024, 2)

    @pytest.mark.parametrize(
        "raw",
        [
            {"year": "2024"},
            {"month": "5"},
            {"year": "2024", "month": "13"},
            {"start_date": "15/03/2024"},
            {"payment_method": "card"},
            {"limit": "ten"},
            {"exclude_category_ids": "1,x"},
        ],
    )
    def test_rejects_bad_values(self, raw):
        with pytest.raises(ValidationError):
            TransactionFilters.from_mapping(raw)
