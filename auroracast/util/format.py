from typing import Tuple


def _wrap_hours(hours: float) -> float:
    return hours % 24.0


def _split_hm(hours: float) -> Tuple[int, int]:
    h = _wrap_hours(hours)
    total_minutes = round(h * 60.0) % (24 * 60)
    return int(total_minutes // 60), int(total_minutes % 60)


def hour_label(hours: float) -> str:
    """Clock label ``HH:MM`` for a local hour, wrapped into one day."""
    h, m = _split_hm(hours)
    return f"{h:02d}:{m:02d}"


def format_optional_hour(hours: float | None) -> str:
    if hours is None:
        return "--:--"
    return hour_label(hours)


def format_coordinates(latitude_deg: float, longitude_deg: float, precision: int = 3) -> str:
    lat_hemi = "N" if latitude_deg >= 0 else "S"
    lon_hemi = "E" if longitude_deg >= 0 else "W"
    return (
        f"{abs(latitude_deg):.{precision}f}°{lat_hemi}, "
        f"{abs(longitude_deg):.{precision}f}°{lon_hemi}"
    )


def format_percent(fraction: float | None, precision: int = 0) -> str:
    if fraction is None:
        return "n/a"
    return f"{fraction * 100:.{precision}f}%"
