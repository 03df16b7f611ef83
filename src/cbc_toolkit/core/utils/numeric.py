"""
Numeric helpers shared by score entry, aggregation and ranking.

Report conventions round half away from zero ("2.5 -> 3"), not Python's
banker's rounding, so every rounding in the toolkit goes through here.
"""

from __future__ import annotations

import math
import numbers
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

import numpy as np


def is_real_number(value: Any) -> bool:
    """True for finite ints/floats (numpy scalars included), False for bools."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(float(value))


def _quantize(value: float, places: int) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)


def round_half_up(value: float, places: int = 0) -> float:
    """
    Round to ``places`` decimals, halves away from zero.

    Example:
        >>> round_half_up(2.5)
        3.0
        >>> round_half_up(72.345, 2)
        72.35
    """
    # + 0.0 folds -0.0 into 0.0
    return float(_quantize(value, places)) + 0.0


def round_to_int(value: float) -> int:
    return int(_quantize(value, 0))


def format_fixed(value: float, places: int = 2) -> str:
    """
    Fixed-point string with ``places`` decimals.

    Example:
        >>> format_fixed(45)
        '45.00'
    """
    text = str(_quantize(value, places))
    return text[1:] if text.startswith("-") and float(text) == 0 else text


def mean(values: Iterable[float]) -> Optional[float]:
    """Arithmetic mean, or None for an empty input."""
    data = [float(v) for v in values]
    if not data:
        return None
    return float(np.mean(np.asarray(data, dtype=float)))
