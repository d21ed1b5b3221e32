from .format import (
    format_coordinates,
    format_optional_hour,
    format_percent,
    hour_label,
)
from .numbers import as_float, clamp, is_finite_number

__all__ = [
    "format_coordinates",
    "format_optional_hour",
    "format_percent",
    "hour_label",
    "as_float",
    "clamp",
    "is_finite_number",
]
