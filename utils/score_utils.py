"""
Numeric helpers shared by the fraud, reliability and trust scorers.
"""

import math
from typing import Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def percentage_difference(detected: float, claimed: float) -> float:
    """
    Absolute difference between detected and claimed amounts as a
    percentage of the claimed amount.

    Args:
        detected: Amount read from the receipt
        claimed: Amount the volunteer claimed (must be non-zero)

    Returns:
        float: Percentage difference
    """
    return abs(detected - claimed) / claimed * 100


def clamp_score(score: float, minimum: int = 0, maximum: int = 100) -> int:
    """Clamp a score into ``[minimum, maximum]``."""
    return int(min(maximum, max(minimum, score)))


def component_percentage(score: float, max_score: float) -> int:
    """Share of a component's cap, as a whole percentage."""
    if not max_score:
        return 0
    return round_half_up(score / max_score * 100)


def safe_rate(part: float, whole: float, default: Optional[float] = 0.0) -> Optional[float]:
    """Return ``part / whole * 100`` or ``default`` when ``whole`` is zero."""
    if not whole:
        return default
    return part / whole * 100
