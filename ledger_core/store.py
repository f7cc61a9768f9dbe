"""Shared mutable ledger state with atomic commit and rollback."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Tuple

from .exceptions import (
    DuplicateError,
    PersistenceError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    TransactionFailedError,
    ValidationError,
)
from .models import Balance, Category, Transaction
from .validators import PAYMENT_METHODS

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "Uncategorized",
    "Gain",
    "Groceries",
    "Transport",
    "Bills",
    "Entertainment",
    "Other Expense",
)

DOCUMENT_VERSION = 1

# Errors that describe a rejected request rather than a broken commit.
_DOMAIN_ERRORS = (
    DuplicateError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    TransactionFailedError,
    ValidationError,
)

_Snapshot = Tuple[Dict[int, Category], Dict[str, Decimal], Dict[str, Transaction], int]


class LedgerStore:
    """Owns categories, balances and transactions for one ledger.

    All reads go through :meth:`read` and all writes through
    :meth:`transaction`; both hold the same re-entrant lock, so a reader sees
    either the state before a write unit or the state after it.
    """

    def __init__(self, storage, resource: str = "ledger.json") -> None:
        self._storage = storage
        self._resource = resource
        self._lock = threading.RLock()
        self._depth = 0
        self._categories: Dict[int, Category] = {}
        self._balances: Dict[str, Decimal] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._next_category_id = 1
        self.load()

    # Units of work ----------------------------------------------------------
    @contextmanager
    def read(self) -> Iterator["LedgerStore"]:
        with self._lock:
            yield self

    @contextmanager
    def transaction(self) -> Iterator["LedgerStore"]:
        """Run the enclosed block as one atomic unit.

        The outermost unit writes the full document on success. Any exception
        restores the tables as they were on entry; unexpected failures are
        re-raised as :class:`TransactionFailedError`.
        """
        with self._lock:
            snapshot = self._snapshot()
            self._depth += 1
            try:
                yield self
                if self._depth == 1:
                    self._storage.save(self._resource, self._to_document())
                    logger.debug("Committed ledger document %s", self._resource)
            except Exception as exc:
                self._restore(snapshot)
                if isinstance(exc, _DOMAIN_ERRORS):
                    raise
                logger.error("Ledger operation rolled back: %s", exc)
                raise TransactionFailedError(f"Ledger operation failed and was rolled back: {exc}") from exc
            finally:
                self._depth -= 1

    # Categories ---------------------------------------------------------------
    def categories(self) -> List[Category]:
        return list(self._categories.values())

    def get_category(self, category_id: int) -> Optional[Category]:
        return self._categories.get(category_id)

    def put_category(self, category: Category) -> None:
        self._categories[category.id] = category

    def remove_category(self, category_id: int) -> None:
        del self._categories[category_id]

    def allocate_category_id(self) -> int:
        category_id = self._next_category_id
        self._next_category_id += 1
        return category_id

    # Balances -----------------------------------------------------------------
    def balance(self, method: str) -> Decimal:
        return self._balances.get(method, Decimal("0.00"))

    def set_balance(self, method: str, amount: Decimal) -> None:
        self._balances[method] = amount

    # Transactions -------------------------------------------------------------
    def transactions(self) -> List[Transaction]:
        return list(self._transactions.values())

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    def put_transaction(self, transaction: Transaction) -> None:
        self._transactions[transaction.id] = transaction

    def remove_transaction(self, transaction_id: str) -> None:
        del self._transactions[transaction_id]

    def is_category_in_use(self, category_id: int) -> bool:
        return any(tx.category_id == category_id for tx in self._transactions.values())

    # Persistence --------------------------------------------------------------
    def load(self) -> None:
        """Hydrate the tables from storage, initialising a fresh ledger on first run."""
        with self._lock:
            document = self._storage.load(self._resource)
            if document is None:
                self._initialise()
                return
            self._hydrate(document)
            missing = [method for method in PAYMENT_METHODS if method not in self._balances]
            if missing:
                with self.transaction():
                    for method in missing:
                        self._balances[method] = Decimal("0.00")
                logger.info("Initialised missing balances: %s", ", ".join(missing))

    def _initialise(self) -> None:
        with self.transaction():
            self._categories.clear()
            self._transactions.clear()
            self._next_category_id = 1
            for name in DEFAULT_CATEGORIES:
                category_id = self.allocate_category_id()
                self._categories[category_id] = Category(id=category_id, name=name)
            for method in PAYMENT_METHODS:
                self._balances[method] = Decimal("0.00")
        logger.info("Initialised new ledger with %d default categories", len(DEFAULT_CATEGORIES))

    def _hydrate(self, document: Dict[str, object]) -> None:
        try:
            categories = {
                category.id: category
                for category in (Category.from_dict(row) for row in document.get("categories", []))
            }
            balances = {
                balance.type: balance.amount
                for balance in (Balance.from_dict(row) for row in document.get("balances", []))
            }
            transactions = {
                tx.id: tx
                for tx in (Transaction.from_dict(row) for row in document.get("transactions", []))
            }
            next_id = int(document.get("next_category_id", max(categories, default=0) + 1))
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise PersistenceError(f"Malformed ledger document {self._resource}") from exc

        self._categories = categories
        self._balances = balances
        self._transactions = transactions
        self._next_category_id = max(next_id, max(categories, default=0) + 1)

    def _to_document(self) -> Dict[str, object]:
        return {
            "version": DOCUMENT_VERSION,
            "next_category_id": self._next_category_id,
            "categories": [category.to_dict() for category in self._categories.values()],
            "balances": [
                Balance(type=method, amount=amount).to_dict()
                for method, amount in self._balances.items()
            ],
            "transactions": [tx.to_record() for tx in self._transactions.values()],
        }

    def _snapshot(self) -> _Snapshot:
        # Rows are immutable, so shallow copies of the tables are enough.
        return (
            dict(self._categories),
            dict(self._balances),
            dict(self._transactions),
            self._next_category_id,
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        (
            self._categories,
            self._balances,
            self._transactions,
            self._next_category_id,
        ) = snapshot
