"""Shared fixtures for the ledger test-suite.

Services are built on ``MemoryStorage`` so every test starts from a fresh
first-run ledger: default categories and zero balances.
"""

from decimal import Decimal

import pytest

from ledger_core import MemoryStorage, PersistenceError, create_services
from ledger_core.models import effect_of
from ledger_core.validators import PAYMENT_METHODS


class FlakyStorage(MemoryStorage):
    """Memory storage whose next save can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next_save = False

    def save(self, resource, document):
        if self.fail_next_save:
            self.fail_next_save = False
            raise PersistenceError("disk full")
        super().save(resource, document)


@pytest.fixture
def storage():
    return FlakyStorage()


@pytest.fixture
def services(storage):
    return create_services(storage)


@pytest.fixture
def strict_services():
    return create_services(MemoryStorage(), strict_balance=True)


@pytest.fixture
def category_ids(services):
    return {category.name: category.id for category in services.categories.list()}


def expected_balances(services, opening=None):
    """Balances implied by the opening amounts plus every current transaction."""
    totals = {method: Decimal("0.00") for method in PAYMENT_METHODS}
    totals.update(opening or {})
    categories = {category.id: category for category in services.categories.list()}
    for tx in services.queries.list_transactions():
        totals[tx.payment_method] += effect_of(tx.amount, categories[tx.category_id].role)
    return totals


@pytest.fixture
def assert_invariant():
    def check(services, opening=None):
        assert services.balances.get_all() == expected_balances(services, opening)

    return check
