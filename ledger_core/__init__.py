"""Core business logic package for the pocket ledger."""

from .config import Settings
from .exceptions import (
    CategoryNotFoundError,
    DuplicateError,
    InsufficientBalanceError,
    PersistenceError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    ReservedCategoryError,
    TransactionFailedError,
    TransactionNotFoundError,
    ValidationError,
)
from .models import Balance, Category, CategoryRole, Transaction
from .queries import QueryService, TransactionFilters
from .seeding import generate_test_data
from .services import (
    BalanceService,
    CategoryService,
    LedgerService,
    LedgerServices,
    create_services,
)
from .storage import JSONStorage, MemoryStorage
from .store import LedgerStore

__all__ = [
    "Balance",
    "Category",
    "CategoryRole",
    "Transaction",
    "BalanceService",
    "CategoryService",
    "LedgerService",
    "LedgerServices",
    "QueryService",
    "TransactionFilters",
    "create_services",
    "generate_test_data",
    "JSONStorage",
    "MemoryStorage",
    "LedgerStore",
    "Settings",
    "CategoryNotFoundError",
    "DuplicateError",
    "InsufficientBalanceError",
    "PersistenceError",
    "RecordNotFoundError",
    "ReferentialIntegrityError",
    "ReservedCategoryError",
    "TransactionFailedError",
    "TransactionNotFoundError",
    "ValidationError",
]
