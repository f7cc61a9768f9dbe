"""Synthetic transactions for demos and manual testing."""

from __future__ import annotations

import logging
import random
from typing import Optional

from .exceptions import InsufficientBalanceError
from .models import CategoryRole, month_bounds_ms
from .services import LedgerServices
from .validators import PAYMENT_METHODS, validate_year_month

logger = logging.getLogger(__name__)

GAIN_PROBABILITY = 0.1
GAIN_AMOUNT_RANGE = (5000, 20000)
EXPENSE_AMOUNT_RANGE = (50, 3000)

REASONS = (
    "Coffee",
    "Lunch",
    "Groceries",
    "Salary",
    "Movie Ticket",
    "Bus Fare",
    "Snacks",
    "Gift",
    "Freelance Payment",
    "Dinner",
)


def generate_test_data(
    services: LedgerServices,
    year: object,
    month: object,
    count: int = 100,
    rng: Optional[random.Random] = None,
) -> bool:
    """Add up to ``count`` random transactions dated inside the given month.

    Every row goes through the ledger's atomic add. Expenses are added in
    strict mode, so a row that would overdraw its balance is skipped instead of
    failing the batch. Returns False when there are no categories to use.
    """
    year_value, month_value = validate_year_month(year, month)
    rng = rng or random.Random()
    categories = services.categories.list()
    gain = next((c for c in categories if c.role is CategoryRole.INCOME), None)
    expense_categories = [c for c in categories if c.role is CategoryRole.EXPENSE]

    if not expense_categories and gain is None:
        logger.error("No categories found to generate test data")
        return False

    start, end = month_bounds_ms(year_value, month_value)
    inserted = skipped = 0
    for _ in range(count):
        if gain is not None and rng.random() < GAIN_PROBABILITY:
            category = gain
            amount = rng.randint(*GAIN_AMOUNT_RANGE)
        elif expense_categories:
            category = rng.choice(expense_categories)
            amount = rng.randint(*EXPENSE_AMOUNT_RANGE)
        else:
            skipped += 1
            continue

        try:
            services.ledger.add(
                rng.choice(PAYMENT_METHODS),
                category.id,
                amount,
                f"{rng.choice(REASONS)} (Test)",
                timestamp=rng.randint(start, end),
                strict=True,
            )
        except InsufficientBalanceError as exc:
            logger.warning("Skipping test expense: %s", exc)
            skipped += 1
            continue
        inserted += 1

    logger.info(
        "Generated test data for %d-%02d: %d inserted, %d skipped of %d requested",
        year_value,
        month_value,
        inserted,
        skipped,
        count,
    )
    return True
