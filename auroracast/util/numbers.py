import math


def is_finite_number(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def as_float(value, default: float) -> float:
    """``value`` as a float, or ``default`` when it is missing or not a finite number."""
    if not is_finite_number(value):
        return default
    return float(value)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
