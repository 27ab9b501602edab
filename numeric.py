"""
Input sanitising helpers shared by the calculators.

The engine backs a continuously-recalculating form, so bad numbers are
clamped to a safe value instead of raising.
"""

from __future__ import annotations

import math
from typing import Any, Optional


def finite(value: Any, default: float = 0.0) -> float:
    """Coerce *value* to a finite float, falling back to *default*."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def non_negative(value: Any, default: float = 0.0) -> float:
    """Finite and >= 0; negatives clamp to 0."""
    return max(0.0, finite(value, default))


def clamp(value: Any, lower: float, upper: float, default: Optional[float] = None) -> float:
    number = finite(value, lower if default is None else default)
    return min(max(number, lower), upper)


def bounded_years(value: Any, fallback: int, ceiling: Optional[int] = None) -> int:
    """Whole number of years; missing, zero or invalid bounds use *fallback*."""
    years = int(finite(value, 0.0))
    if years <= 0:
        years = fallback
    if ceiling is not None:
        years = min(years, ceiling)
    return years


def safe_div(numerator: float, denominator: float) -> Optional[float]:
    """``numerator / denominator`` or ``None`` when the result is not applicable."""
    if denominator is None or denominator <= 0:
        return None
    result = numerator / denominator
    if math.isnan(result) or math.isinf(result):
        return None
    return result
