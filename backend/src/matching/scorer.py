"""Match confidence arithmetic.

Confidence is always an integer in [0, 100]. Fuzzy scores follow the
0 = perfect / 1 = worst convention of the candidate index.
"""

import math
from typing import Any


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def clamp_confidence(value: Any) -> int:
    """Coerce a raw confidence value into an integer in [0, 100].

    Missing or non-numeric values count as 0; out-of-range values are
    clamped rather than rejected.

    Args:
        value: Raw confidence (int, float, numeric string, None, ...)

    Returns:
        Integer confidence 0-100
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 100 if number > 0 else 0
    return max(0, min(100, round_half_up(number)))


def confidence_from_score(score: float) -> int:
    """Convert a fuzzy score (0 = perfect, 1 = worst) into a confidence."""
    return clamp_confidence((1 - score) * 100)
