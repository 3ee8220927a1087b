"""Shared broker utilities.

Centralized helpers used by the provider mappers and request parsing.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: float | int | str) -> Decimal:
    """Convert a float, int or string to Decimal safely.

    Floats go through str() to avoid IEEE 754 artifacts, so 0.3 stays 0.3.
    """
    if isinstance(value, str):
        return Decimal(value)
    return Decimal(str(value))


def to_optional_decimal(value: Any) -> Decimal | None:
    """to_decimal() that passes None through."""
    if value is None:
        return None
    return to_decimal(value)


def parse_optional_float(value: Any) -> float | None:
    """Parse a price field leniently.

    Anything that is not a finite number (None, "", "abc", bools) is
    treated as absent rather than rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return float(number)
