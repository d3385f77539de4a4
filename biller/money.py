"""Decimal helpers for rupee amounts."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from biller.config import CURRENCY_SYMBOL
from biller.errors import ValidationError

ZERO = Decimal("0.00")
_CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize a value to two decimal places."""
    return Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_amount(raw: str, field: str = "Amount") -> Decimal:
    """Parse operator text into a money amount, raising ValidationError on junk."""
    text = raw.strip()
    if not text:
        raise ValidationError(f"{field} is required.")
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number.") from None
    if not value.is_finite():
        raise ValidationError(f"{field} must be a number.")
    return to_money(value)


def format_money(value: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{to_money(value):,.2f}"
