"""Tests for synthetic test-data generation."""

import random
from decimal import Decimal

import pytest

from ledger_core import MemoryStorage, ValidationError, create_services, generate_test_data
from ledger_core.models import month_bounds_ms


class TestGenerateTestData:
    def test_rows_land_inside_the_month(self, services):
        services.balances.set("cash", "100000")
        services.balances.set("gpay", "100000")
        assert generate_test_data(services, 2024, 2, count=60, rng=random.Random(7))
        start, end = month_bounds_ms(2024, 2)
        rows = services.queries.list_transactions()
        assert rows
        assert all(start <= tx.timestamp <= end for tx in rows)
        assert all(tx.reason.endswith(" (Test)") for tx in rows)

    def test_never_overdraws_and_keeps_invariant(self, services, assert_invariant):
        generate_test_data(services, 2024, 6, count=200, rng=random.Random(99))
        assert all(amount >= 0 for amount in services.balances.get_all().values())
        assert_invariant(services)

    def test_starting_from_zero_only_gains_can_land_first(self, services):
        generate_test_data(services, 2024, 6, count=1, rng=random.Random(3))
        rows = services.queries.list_transactions()
        assert all(tx.category_name == "Gain" for tx in rows)

    def test_amount_ranges(self, services):
        services.balances.set("cash", "100000")
        generate_test_data(services, 2024, 6, count=150, rng=random.Random(11))
        for tx in services.queries.list_transactions():
            if tx.category_name == "Gain":
                assert Decimal("5000") <= tx.amount <= Decimal("20000")
            else:
                assert Decimal("50") <= tx.amount <= Decimal("3000")

    def test_zero_count(self, services):
        assert generate_test_data(services, 2024, 6, count=0) is True
        assert services.queries.list_transactions() == []

    def test_no_categories(self):
        storage = MemoryStorage()
        storage.save("ledger.json", {"categories": [], "balances": [], "transactions": []})
        services = create_services(storage)
        assert generate_test_data(services, 2024, 6, count=10) is False
        assert services.queries.list_transactions() == []

    def test_rejects_bad_month(self, services):
        with pytest.raises(ValidationError):
            generate_test_data(services, 2024, 13)
