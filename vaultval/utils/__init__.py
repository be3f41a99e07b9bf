"""Utility modules for the valuation engine."""

from .date_utils import (
    parse_timestamp,
    to_day,
    day_key,
    days_between,
)
from .math_utils import (
    to_decimal,
    decimal_or_zero,
    safe_divide,
    compound_annualize,
)

__all__ = [
    "parse_timestamp",
    "to_day",
    "day_key",
    "days_between",
    "to_decimal",
    "decimal_or_zero",
    "safe_divide",
    "compound_annualize",
]
