"""
Utility functions for amount conversions at boundaries.

Raw token amounts are kept as Python ints end to end; USD figures are
floats. These helpers convert upstream values (JSON numbers, strings,
Decimals) into those two shapes without silently losing precision.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional


def to_raw_amount(value: Any) -> Optional[int]:
    """
    Convert an upstream raw amount to an arbitrary-precision int.

    Accepts ints, integral strings ("1000000000000000000000"), Decimals
    and integral floats. Missing values become 0.

    Args:
        value: Raw amount as received from a parser

    Returns:
        Non-negative int, or None if the value is negative, fractional
        or not a number at all
    """
    if value is None:
        return 0

    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value if value >= 0 else None

    try:
        # str() first so floats go through their shortest repr
        dec = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None

    if not dec.is_finite() or dec < 0 or dec != dec.to_integral_value():
        return None
    return int(dec)


def to_optional_float(value: Any) -> Optional[float]:
    """
    Convert an optional USD amount or price to float.

    None, non-numeric, non-finite and negative inputs all map to None:
    an unknown amount must stay distinguishable from zero.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    if result != result or result in (float("inf"), float("-inf")) or result < 0:
        return None
    return result


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning default if denominator is zero."""
    if denominator == 0:
        return default
    return numerator / denominator


def round_half_up(value: float) -> int:
    """Round half up (2.5 -> 3), unlike the built-in banker's rounding."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
