"""
Numeric Guard
Safe division, money rounding and the magnitude-scaled tolerance policy.
Every derived figure in the pipeline passes through these helpers, so
statements never carry NaN or infinity.
"""

import math
import sys
from typing import Any, Optional


MAX_SAFE_INTEGER = 2 ** 53 - 1
EPSILON = sys.float_info.epsilon

DEFAULT_TOLERANCE_PERCENT = 0.005
DEFAULT_TOLERANCE_ABSOLUTE = 10.0


def _finite(value: Any) -> Optional[float]:
    """Return value as a finite float, or None for None/NaN/inf/non-numbers."""
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def safe_divide(numerator: Any, denominator: Any) -> float:
    """
    Divide without ever raising or returning NaN/inf.

    Returns 0.0 when either operand is missing or not finite, when the
    denominator is within one epsilon of zero, or when the quotient falls
    outside +/- MAX_SAFE_INTEGER.
    """
    num = _finite(numerator)
    den = _finite(denominator)
    if num is None or den is None:
        return 0.0
    if abs(den) <= EPSILON:
        return 0.0
    try:
        result = num / den
    except (OverflowError, ZeroDivisionError):
        return 0.0
    if math.isnan(result) or math.isinf(result) or abs(result) > MAX_SAFE_INTEGER:
        return 0.0
    return result


def round2(value: Any) -> float:
    """Round to 2 decimals, half away from zero. Non-finite input becomes 0.0."""
    f = _finite(value)
    if f is None:
        return 0.0
    cents = abs(f) * 100
    # past 2**53 floats hold no sub-unit digits to round
    if math.isinf(cents) or cents > MAX_SAFE_INTEGER:
        return f + 0.0
    scaled = math.floor(cents + 0.5)
    rounded = math.copysign(scaled, f) / 100
    # avoid -0.0 leaking into outputs
    return rounded + 0.0


def get_tolerance(
    amount: Any,
    absolute_minimum: float = 1.0,
    percent: float = DEFAULT_TOLERANCE_PERCENT,
) -> float:
    """
    Magnitude-scaled tolerance: max(|amount| * percent, absolute_minimum).
    A missing or non-finite amount falls back to the default absolute tolerance.
    """
    f = _finite(amount)
    if f is None:
        return max(DEFAULT_TOLERANCE_ABSOLUTE, absolute_minimum)
    return max(abs(f) * percent, absolute_minimum)


def is_within_tolerance(
    expected: float,
    actual: float,
    absolute_minimum: float = 1.0,
    percent: float = DEFAULT_TOLERANCE_PERCENT,
) -> bool:
    """Compare two amounts using the tolerance of the larger magnitude."""
    base = max(abs(expected or 0.0), abs(actual or 0.0))
    return abs((actual or 0.0) - (expected or 0.0)) <= get_tolerance(base, absolute_minimum, percent)
