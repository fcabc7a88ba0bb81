# -*- coding: utf-8 -*-
"""Small numeric helpers shared by scoring and analytics."""
import math
from typing import Iterable


def round_half_up(value: float) -> int:
    """Rounds .5 upwards (towards +inf), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for an empty input."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
