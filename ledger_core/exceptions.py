"""Domain-specific exceptions for the ledger core services."""


class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""


class ReservedCategoryError(ValidationError):
    """Raised when a change would rename or remove a reserved category."""


class InsufficientBalanceError(ValidationError):
    """Raised in strict mode when an expense would overdraw a balance."""


class DuplicateError(ValueError):
    """Raised when a category name is already taken."""


class RecordNotFoundError(LookupError):
    """Raised when a category, balance or transaction cannot be located."""


class CategoryNotFoundError(RecordNotFoundError):
    """Raised when a transaction references a category id that does not exist."""


class TransactionNotFoundError(RecordNotFoundError):
    """Raised when a transaction id does not exist."""


class ReferentialIntegrityError(ValueError):
    """Raised when a category cannot be deleted because transactions use it."""


class PersistenceError(IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""


class TransactionFailedError(PersistenceError):
    """Raised when an atomic ledger operation was aborted and rolled back."""
