"""Small numeric helpers shared by the scoring modules."""

from __future__ import annotations

import math


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def mean(values: list[float], default: float = 0.0) -> float:
    return sum(values) / len(values) if values else default
