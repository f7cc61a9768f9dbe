"""Framework-agnostic business services for the ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4

from .exceptions import (
    CategoryNotFoundError,
    DuplicateError,
    InsufficientBalanceError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    ReservedCategoryError,
    TransactionNotFoundError,
)
from .models import (
    Balance,
    Category,
    GAIN_CATEGORY,
    Transaction,
    effect_of,
    is_reserved_name,
    now_ms,
)
from .queries import QueryService
from .store import LedgerStore
from .validators import (
    PAYMENT_METHODS,
    REASON_MAX_LENGTH,
    parse_amount,
    parse_limit,
    parse_signed_amount,
    validate_category_name,
    validate_id,
    validate_optional_str,
    validate_payment_method,
)

logger = logging.getLogger(__name__)


class CategoryService:
    """Manages spending categories, including the two reserved ones."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def add(self, name: object, monthly_limit: object = None) -> Category:
        clean_name = validate_category_name(name)
        limit = parse_limit(monthly_limit)
        with self._store.transaction() as store:
            self._ensure_unique(store, clean_name)
            category = Category(
                id=store.allocate_category_id(), name=clean_name, monthly_limit=limit
            )
            store.put_category(category)
        logger.info("Added category %s (%s)", category.id, category.name)
        return category

    def update(self, category_id: object, name: object, monthly_limit: object = None) -> Category:
        cat_id = validate_id(category_id, "category_id")
        clean_name = validate_category_name(name)
        limit = parse_limit(monthly_limit)
        with self._store.transaction() as store:
            existing = self._get_or_raise(store, cat_id)
            if existing.is_reserved:
                raise ReservedCategoryError(f"Category '{existing.name}' is reserved and cannot be changed")
            if is_reserved_name(clean_name):
                # Renaming into a reserved name would change the sign of existing transactions.
                raise ReservedCategoryError(f"'{clean_name}' is a reserved category name")
            self._ensure_unique(store, clean_name, current=existing)
            updated = Category(id=existing.id, name=clean_name, monthly_limit=limit)
            store.put_category(updated)
        logger.info("Updated category %s (%s)", updated.id, updated.name)
        return updated

    def delete(self, category_id: object) -> None:
        cat_id = validate_id(category_id, "category_id")
        with self._store.transaction() as store:
            existing = self._get_or_raise(store, cat_id)
            if existing.is_reserved:
                raise ReservedCategoryError(f"Category '{existing.name}' is reserved and cannot be deleted")
            if store.is_category_in_use(cat_id):
                raise ReferentialIntegrityError(
                    f"Category '{existing.name}' is used by transactions and cannot be deleted"
                )
            store.remove_category(cat_id)
        logger.info("Deleted category %s (%s)", cat_id, existing.name)

    def get(self, category_id: object) -> Category:
        cat_id = validate_id(category_id, "category_id")
        with self._store.read() as store:
            return self._get_or_raise(store, cat_id)

    def list(self) -> List[Category]:
        with self._store.read() as store:
            categories = store.categories()
        return sorted(categories, key=lambda cat: cat.name.lower())

    def find_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive lookup by name."""
        canonical = name.strip().lower()
        with self._store.read() as store:
            for category in store.categories():
                if category.name.lower() == canonical:
                    return category
        return None

    def gain_category_id(self) -> Optional[int]:
        category = self.find_by_name(GAIN_CATEGORY)
        if category is None:
            logger.warning("'%s' category not found", GAIN_CATEGORY)
            return None
        return category.id

    @staticmethod
    def _get_or_raise(store: LedgerStore, category_id: int) -> Category:
        category = store.get_category(category_id)
        if category is None:
            raise RecordNotFoundError(f"Category {category_id} not found")
        return category

    @staticmethod
    def _ensure_unique(store: LedgerStore, name: str, *, current: Optional[Category] = None) -> None:
        canonical = name.lower()
        for category in store.categories():
            if current and category.id == current.id:
                continue
            if category.name.lower() == canonical:
                raise DuplicateError(f"Category '{name}' already exists")


class BalanceService:
    """Reads and edits the per-payment-method balances."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def get(self, method: object) -> Decimal:
        key = validate_payment_method(method)
        with self._store.read() as store:
            return store.balance(key)

    def get_all(self) -> Dict[str, Decimal]:
        with self._store.read() as store:
            return {method: store.balance(method) for method in PAYMENT_METHODS}

    def total(self) -> Decimal:
        return sum(self.get_all().values(), start=Decimal("0.00"))

    def set(self, method: object, amount: object) -> Balance:
        """Overwrite a balance directly; negative values are allowed."""
        key = validate_payment_method(method)
        value = parse_signed_amount(amount)
        with self._store.transaction() as store:
            store.set_balance(key, value)
        logger.info("Set %s balance to %s", key, value)
        return Balance(type=key, amount=value)

    def adjust(self, method: object, delta: object) -> Balance:
        """Add ``delta`` to a balance; joins the caller's unit of work when nested."""
        key = validate_payment_method(method)
        change = parse_signed_amount(delta, "delta")
        with self._store.transaction() as store:
            value = store.balance(key) + change
            store.set_balance(key, value)
        return Balance(type=key, amount=value)


class LedgerService:
    """Applies transactions and their balance effects as single atomic units."""

    def __init__(
        self,
        store: LedgerStore,
        balances: Optional[BalanceService] = None,
        *,
        strict_balance: bool = False,
    ) -> None:
        self._store = store
        self._balances = balances or BalanceService(store)
        self._strict = strict_balance

    @property
    def strict_balance(self) -> bool:
        return self._strict

    # Public API -----------------------------------------------------------
    def add(
        self,
        payment_method: object,
        category_id: object,
        amount: object,
        reason: object = None,
        *,
        timestamp: Optional[int] = None,
        strict: Optional[bool] = None,
    ) -> Transaction:
        method = validate_payment_method(payment_method)
        cat_id = validate_id(category_id, "category_id")
        value = parse_amount(amount)
        note = validate_optional_str(reason, "reason", REASON_MAX_LENGTH)
        enforce = self._strict if strict is None else strict

        with self._store.transaction() as store:
            category = self._resolve_category(store, cat_id)
            effect = effect_of(value, category.role)
            self._check_funds(method, store.balance(method), effect, enforce)
            self._balances.adjust(method, effect)
            transaction = Transaction(
                id=str(uuid4()),
                timestamp=timestamp if timestamp is not None else now_ms(),
                payment_method=method,
                category_id=cat_id,
                amount=value,
                reason=note,
            )
            store.put_transaction(transaction)

        logger.info(
            "Added transaction %s: %s %s on %s (%s)",
            transaction.id,
            category.role.value,
            value,
            method,
            category.name,
        )
        return replace(transaction, category_name=category.name)

    def update(
        self,
        transaction_id: str,
        payment_method: object,
        category_id: object,
        amount: object,
        reason: object = None,
        *,
        strict: Optional[bool] = None,
    ) -> Transaction:
        method = validate_payment_method(payment_method)
        cat_id = validate_id(category_id, "category_id")
        value = parse_amount(amount)
        note = validate_optional_str(reason, "reason", REASON_MAX_LENGTH)
        enforce = self._strict if strict is None else strict

        with self._store.transaction() as store:
            old = self._get_or_raise(store, transaction_id)
            old_category = self._resolve_category(store, old.category_id)
            new_category = self._resolve_category(store, cat_id)
            old_effect = effect_of(old.amount, old_category.role)
            new_effect = effect_of(value, new_category.role)

            if old.payment_method != method:
                # Revert on the old method, then apply on the new one.
                self._balances.adjust(old.payment_method, -old_effect)
                delta = new_effect
            else:
                delta = new_effect - old_effect
            self._check_funds(method, store.balance(method), delta, enforce)
            self._balances.adjust(method, delta)

            updated = replace(
                old,
                timestamp=now_ms(),
                payment_method=method,
                category_id=cat_id,
                amount=value,
                reason=note,
            )
            store.put_transaction(updated)

        logger.info(
            "Updated transaction %s: %s %s on %s (was %s %s on %s)",
            transaction_id,
            new_category.role.value,
            value,
            method,
            old_category.role.value,
            old.amount,
            old.payment_method,
        )
        return replace(updated, category_name=new_category.name)

    def delete(self, transaction_id: str) -> None:
        with self._store.transaction() as store:
            existing = self._get_or_raise(store, transaction_id)
            category = self._resolve_category(store, existing.category_id)
            method = existing.payment_method
            self._balances.adjust(method, -effect_of(existing.amount, category.role))
            store.remove_transaction(transaction_id)
        logger.info("Deleted transaction %s (%s %s on %s)", transaction_id, category.role.value, existing.amount, method)

    def get(self, transaction_id: str) -> Transaction:
        with self._store.read() as store:
            transaction = self._get_or_raise(store, transaction_id)
            category = store.get_category(transaction.category_id)
        return replace(transaction, category_name=category.name if category else None)

    # Internal helpers -----------------------------------------------------
    @staticmethod
    def _get_or_raise(store: LedgerStore, transaction_id: str) -> Transaction:
        transaction = store.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    @staticmethod
    def _resolve_category(store: LedgerStore, category_id: int) -> Category:
        category = store.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError(f"Category with ID {category_id} not found")
        return category

    @staticmethod
    def _check_funds(method: str, current: Decimal, delta: Decimal, enforce: bool) -> None:
        # Only reject changes that push a balance further below zero.
        if enforce and delta < 0 and current + delta < 0:
            raise InsufficientBalanceError(
                f"Insufficient {method} balance: {current:.2f} available, {-delta:.2f} required"
            )


@dataclass(frozen=True)
class LedgerServices:
    """The services sharing one store, built once at process start."""

    store: LedgerStore
    categories: CategoryService
    balances: BalanceService
    ledger: LedgerService
    queries: QueryService


def create_services(
    storage, *, strict_balance: bool = False, resource: str = "ledger.json"
) -> LedgerServices:
    store = LedgerStore(storage, resource)
    balances = BalanceService(store)
    return LedgerServices(
        store=store,
        categories=CategoryService(store),
        balances=balances,
        ledger=LedgerService(store, balances, strict_balance=strict_balance),
        queries=QueryService(store),
    )
