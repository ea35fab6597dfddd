# Overview: Fixed-point currency helpers. Amounts are stored as integer cents.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

_CENT = Decimal("0.01")


def to_cents(value: Any, field: str = "amount") -> int:
    """
    Parse a currency amount ("12.5", 12.5, Decimal("12.50")) into cents.

    Floats go through their string form so 0.1 + 0.2 style noise never
    leaks into stored amounts.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip().replace(",", ""))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a decimal amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal amount")
    if amount != amount.quantize(_CENT):
        raise ValidationError(f"{field} must have at most 2 decimal places")
    cents = int(amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100)
    if cents < 0:
        raise ValidationError(f"{field} cannot be negative")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds the maximum allowed amount")
    return cents


def cents_to_decimal(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(_CENT)


def format_cents(cents: int | None) -> str | None:
    """12345 -> "123.45" """
    amount = cents_to_decimal(cents)
    return None if amount is None else f"{amount:.2f}"
