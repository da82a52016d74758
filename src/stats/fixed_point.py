"""
Integer fixed-point helpers.

All statistics are kept as Python ints. Python's ``//`` floors toward negative
infinity, so signed quantities go through ``div_trunc`` to round toward zero
the same way for every operand sign.
"""

from __future__ import annotations

BPS_SCALE = 10000


def div_trunc(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    if denominator == 0:
        raise ZeroDivisionError("fixed-point division by zero")
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def scale_bps(value: int, bps: int) -> int:
    """Apply a basis-point factor (10000 = 1.0x) to a signed value."""
    return div_trunc(value * bps, BPS_SCALE)
