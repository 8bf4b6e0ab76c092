# File: utils/__init__.py
"""Pure Python utilities for Routine Cadence.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

UTILS PURITY: NO `homeassistant.*` imports allowed in this module.

Submodules:
    - dt_utils: Date/time parsing, zoned day boundaries, period arithmetic
    - math_utils: Clamping, progress percentages, count coercion
    - record_utils: Structural (copy-on-write) updates of routine records

Usage:
    from . import dt_utils
    from .math_utils import calculate_percentage
"""

from . import dt_utils, math_utils, record_utils

__all__ = ["dt_utils", "math_utils", "record_utils"]
