# File: utils/math_utils.py
"""Math and calculation utilities for Routine Cadence.

Pure Python math functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

UTILS PURITY: NO `homeassistant.*` imports allowed.

Functions:
    - clamp: Bound a value to a range
    - calculate_percentage: Whole-number progress percentage (0-100)
    - coerce_positive_int: Parse counts/intervals, falling back to a minimum
"""

from __future__ import annotations

import logging
from typing import Any

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between minimum and maximum bounds.

    Examples:
        clamp(150, 0, 100) → 100
        clamp(-10, 0, 100) → 0
        clamp(50, 0, 100) → 50
    """
    return max(min_val, min(value, max_val))


def calculate_percentage(current: float, target: float) -> int:
    """Calculate a whole-number progress percentage clamped to 0-100.

    Rounds half up (2/3 → 67), unlike Python's banker's rounding.

    Args:
        current: Current progress value
        target: Target/total value

    Returns:
        Percentage (0-100), or 0 if target is not positive

    Examples:
        calculate_percentage(2, 3) → 67
        calculate_percentage(5, 3) → 100
        calculate_percentage(1, 0) → 0  # Division by zero protection
    """
    if target <= 0:
        return 0
    raw = int(100 * current / target + 0.5)
    return int(clamp(raw, 0, 100))


def coerce_positive_int(value: Any, minimum: int = 1) -> int:
    """Parse a count-like value into an int no lower than `minimum`.

    Strings and floats are accepted ("3" → 3, 2.6 → 3). Unparseable and
    non-finite values ("inf", "nan") fall back to `minimum`.

    Examples:
        coerce_positive_int("3") → 3
        coerce_positive_int(0) → 1
        coerce_positive_int("abc") → 1
    """
    if isinstance(value, bool):
        return minimum
    try:
        parsed = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        _LOGGER.debug("coerce_positive_int: Invalid value %r, using %d", value, minimum)
        return minimum
    return max(minimum, parsed)
