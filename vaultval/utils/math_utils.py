"""Numeric helpers for monetary values coming from loosely typed sources."""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional


ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce a value to a finite Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``.
    Booleans are rejected because they are never monetary amounts.

    Args:
        value: Number, numeric string, Decimal or None

    Returns:
        Finite Decimal, or None if the value is missing, malformed,
        NaN or infinite
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result


def decimal_or_zero(value: Any) -> Decimal:
    """Coerce to a finite Decimal, treating anything unusable as zero."""
    result = to_decimal(value)
    return ZERO if result is None else result


def safe_divide(numerator: Decimal, denominator: Decimal, default: Decimal = ZERO) -> Decimal:
    """
    Safely divide two Decimals, returning default if denominator is zero.

    Args:
        numerator: Numerator
        denominator: Denominator
        default: Value to return if denominator is zero

    Returns:
        Result of division or default
    """
    if denominator == ZERO:
        return default
    return numerator / denominator


def compound_annualize(total_return: Decimal, years: Decimal) -> Optional[Decimal]:
    """
    Annualize a total return over a number of years.

    Formula: (1 + total_return) ^ (1 / years) - 1

    Args:
        total_return: Total return as decimal (0.05 for 5%)
        years: Length of the period in years

    Returns:
        Annualized return as decimal, or None if not computable
    """
    if years <= ZERO:
        return None

    # Use float for power operation, then convert back
    base = float(ONE + total_return)
    if base < 0:
        return None

    try:
        annualized = base ** (1.0 / float(years)) - 1
    except (OverflowError, ValueError, ZeroDivisionError):
        return None

    return to_decimal(round(annualized, 12))
