"""Validation helpers shared across ledger services."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from .exceptions import ValidationError

PAYMENT_METHODS = ("gpay", "cash")

# Reserved for the "show all" filter value in list views.
ALL_FILTER = "all"

CATEGORY_NAME_MAX_LENGTH = 50
REASON_MAX_LENGTH = 200


def _quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _to_decimal(raw: object, field: str) -> Decimal:
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be a numeric value")
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError(f"{field} must be a numeric value") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    try:
        return _quantize_two_decimals(amount)
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is too large") from exc


def parse_amount(raw: object, field: str = "amount") -> Decimal:
    """Convert raw input to a positive Decimal with exactly two fraction digits."""
    amount = _to_decimal(raw, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount


def parse_signed_amount(raw: object, field: str = "amount") -> Decimal:
    """Like :func:`parse_amount` but accepts zero and negative values."""
    return _to_decimal(raw, field)


def parse_limit(raw: object, field: str = "monthly_limit") -> Optional[Decimal]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    limit = _to_decimal(raw, field)
    if limit < 0:
        raise ValidationError(f"{field} cannot be negative")
    return limit


def validate_required_str(value: object, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty")
    if len(trimmed) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return trimmed


def validate_optional_str(value: object, field: str, max_length: int) -> Optional[str]:
    """Return a trimmed string, or None for missing and blank input."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return validate_required_str(value, field, max_length)


def validate_category_name(value: object) -> str:
    name = validate_required_str(value, "name", CATEGORY_NAME_MAX_LENGTH)
    if name.lower() == ALL_FILTER:
        raise ValidationError(f"'{name}' is reserved and cannot be used as a category name")
    return name


def validate_enum(value: object, field: str, allowed: Iterable[str]) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    canonical = value.strip().lower()
    if canonical not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")
    return canonical


def validate_payment_method(value: object) -> str:
    return validate_enum(value, "payment_method", PAYMENT_METHODS)


def validate_id(value: object, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer") from exc


def validate_date(value: object, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)") from exc
    raise ValidationError(f"{field} must be a date or ISO 8601 string")


def validate_year_month(year: object, month: object) -> tuple:
    year_value = validate_id(year, "year")
    month_value = validate_id(month, "month")
    if not 1 <= month_value <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1970 <= year_value <= 9999:
        raise ValidationError("year must be between 1970 and 9999")
    return year_value, month_value
