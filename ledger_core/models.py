"""Data models for the ledger domain."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

__all__ = [
    "Balance",
    "Category",
    "CategoryRole",
    "GAIN_CATEGORY",
    "RESERVED_CATEGORIES",
    "Transaction",
    "UNCATEGORIZED_CATEGORY",
    "category_role",
    "datetime_from_ms",
    "day_bounds_ms",
    "effect_of",
    "is_reserved_name",
    "month_bounds_ms",
    "now_ms",
]

UNCATEGORIZED_CATEGORY = "Uncategorized"
GAIN_CATEGORY = "Gain"
RESERVED_CATEGORIES = (UNCATEGORIZED_CATEGORY, GAIN_CATEGORY)

_RESERVED_KEYS = {name.lower() for name in RESERVED_CATEGORIES}


class CategoryRole(str, Enum):
    """Whether transactions in a category add to or subtract from a balance."""

    EXPENSE = "expense"
    INCOME = "income"


def is_reserved_name(name: str) -> bool:
    return name.strip().lower() in _RESERVED_KEYS


def category_role(name: str) -> CategoryRole:
    """Map a category name to its role.

    This is the only place that knows the "Gain" naming convention; every
    balance computation goes through it.
    """
    if name.strip().lower() == GAIN_CATEGORY.lower():
        return CategoryRole.INCOME
    return CategoryRole.EXPENSE


def effect_of(amount: Decimal, role: CategoryRole) -> Decimal:
    """Signed contribution of a transaction to its payment method's balance."""
    return amount if role is CategoryRole.INCOME else -amount


def now_ms() -> int:
    return int(datetime.now().timestamp() * 1000)


def datetime_from_ms(timestamp: int) -> datetime:
    """Local wall-clock datetime for a millisecond epoch timestamp."""
    return datetime.fromtimestamp(timestamp / 1000)


def _local_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def day_bounds_ms(day: date) -> Tuple[int, int]:
    """Inclusive [00:00:00.000, 23:59:59.999] local bounds of ``day``."""
    start = _local_ms(datetime.combine(day, time.min))
    end = _local_ms(datetime.combine(day + timedelta(days=1), time.min)) - 1
    return start, end


def month_bounds_ms(year: int, month: int) -> Tuple[int, int]:
    """Inclusive local bounds of a calendar month (``month`` is 1-12)."""
    first = date(year, month, 1)
    following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    start = _local_ms(datetime.combine(first, time.min))
    end = _local_ms(datetime.combine(following, time.min)) - 1
    return start, end


def _format_amount(amount: Decimal) -> str:
    return f"{amount:.2f}"


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    monthly_limit: Optional[Decimal] = None

    @property
    def role(self) -> CategoryRole:
        return category_role(self.name)

    @property
    def is_reserved(self) -> bool:
        return is_reserved_name(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "monthly_limit": (
                _format_amount(self.monthly_limit) if self.monthly_limit is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        limit = data.get("monthly_limit")
        return cls(
            id=int(data["id"]),
            name=data["name"],
            monthly_limit=Decimal(str(limit)) if limit is not None else None,
        )


@dataclass(frozen=True)
class Balance:
    type: str
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "amount": _format_amount(self.amount)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Balance":
        return cls(type=data["type"], amount=Decimal(str(data["amount"])))


@dataclass(frozen=True)
class Transaction:
    id: str
    timestamp: int
    payment_method: str
    category_id: int
    amount: Decimal
    reason: Optional[str] = None
    category_name: Optional[str] = None

    @property
    def occurred_at(self) -> datetime:
        return datetime_from_ms(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the transaction, including the joined category name."""
        payload = self.to_record()
        payload["category_name"] = self.category_name
        return payload

    def to_record(self) -> Dict[str, Any]:
        """Serialise the stored columns only; the category name is never persisted."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "payment_method": self.payment_method,
            "category_id": self.category_id,
            "amount": _format_amount(self.amount),
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            payment_method=data["payment_method"],
            category_id=int(data["category_id"]),
            amount=Decimal(str(data["amount"])),
            reason=data.get("reason"),
            category_name=data.get("category_name"),
        )
