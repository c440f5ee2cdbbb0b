"""
Money Handling Module

Exact two-place Decimal amounts for a single-currency ledger.
NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union
import re

from .exceptions import ValidationError

# High precision for intermediate results; stored values are quantized
getcontext().prec = 28

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

AmountLike = Union[Decimal, str, int]

# Largest single amount or balance accepted; keeps cent quantizing inside the context precision
MAX_AMOUNT = Decimal("999999999999999.99")


def to_amount(value: AmountLike, field_name: str = "amount") -> Decimal:
    """
    Parse a monetary amount into a two-place Decimal

    Args:
        value: Decimal, integer or numeric string ("1000", "1,000.50")
        field_name: Name used in error messages

    Returns:
        Decimal quantized to cents

    Raises:
        ValidationError: If the value is not a finite number, is a float,
            carries more than two fractional digits or exceeds MAX_AMOUNT
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field_name} must be a Decimal, integer or string, not {type(value).__name__}")

    if isinstance(value, str):
        clean_value = re.sub(r"[,\s]", "", value)
        if not clean_value:
            raise ValidationError(f"{field_name} is required")
        try:
            amount = Decimal(clean_value)
        except InvalidOperation:
            raise ValidationError(f"Cannot convert '{value}' to an amount")
    elif isinstance(value, (Decimal, int)):
        amount = Decimal(value)
    else:
        raise ValidationError(f"{field_name} must be a Decimal, integer or string")

    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")

    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field_name} is out of range")

    try:
        quantized = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field_name} is out of range")

    if amount != quantized:
        raise ValidationError(f"{field_name} cannot have more than 2 decimal places")

    return quantized


def to_positive_amount(value: AmountLike, field_name: str = "amount") -> Decimal:
    """Parse an amount that must be strictly greater than zero"""
    amount = to_amount(value, field_name)
    if amount <= ZERO:
        raise ValidationError(f"{field_name} must be greater than 0")
    return amount


def quantize(value: Decimal) -> Decimal:
    """Round an already-exact Decimal to cents"""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Format for storage and payloads, e.g. '1000.00'"""
    return str(quantize(value))


def display_amount(value: Decimal) -> str:
    """Format for display, e.g. 'PHP 1,000.00'"""
    return f"PHP {quantize(value):,.2f}"
