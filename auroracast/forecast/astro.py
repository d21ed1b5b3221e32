import datetime
import math

from .types import MoonInfo, MoonPhase

SUNRISE_ALTITUDE_DEG = -0.833
ASTRONOMICAL_ALTITUDE_DEG = -18.0

SYNODIC_MONTH_DAYS = 29.53058867
REFERENCE_NEW_MOON_UTC = datetime.datetime(2000, 1, 6, 18, 14, tzinfo=datetime.timezone.utc)

ALWAYS_ABOVE = "always_above"
ALWAYS_BELOW = "always_below"
CROSSES = "crosses"

_PHASE_BANDS = (
    (0.03, MoonPhase.NEW_MOON),
    (0.22, MoonPhase.WAXING_CRESCENT),
    (0.28, MoonPhase.FIRST_QUARTER),
    (0.47, MoonPhase.WAXING_GIBBOUS),
    (0.53, MoonPhase.FULL_MOON),
    (0.72, MoonPhase.WANING_GIBBOUS),
    (0.78, MoonPhase.LAST_QUARTER),
    (0.97, MoonPhase.WANING_CRESCENT),
)


def as_local(dt: datetime.datetime) -> datetime.datetime:
    # Naive datetimes are read as process-local civil time.
    if dt.tzinfo is None:
        return dt.astimezone()
    return dt


def wrap_hours(hours: float) -> float:
    wrapped = hours % 24.0
    # -1e-17 % 24.0 == 24.0
    return 0.0 if wrapped >= 24.0 else wrapped


def local_clock_hour(dt: datetime.datetime) -> float:
    dt = as_local(dt)
    return dt.hour + (dt.minute + (dt.second + dt.microsecond / 1e6) / 60.0) / 60.0


def utc_offset_hours(dt: datetime.datetime) -> float:
    offset = as_local(dt).utcoffset()
    if offset is None:
        return 0.0
    return offset.total_seconds() / 3600.0


def day_of_year(dt: datetime.datetime) -> int:
    return as_local(dt).timetuple().tm_yday


def solar_declination_deg(day: int) -> float:
    return 23.45 * math.sin(math.radians(360.0 * (284 + day) / 365.0))


def solar_noon_hour(dt: datetime.datetime, longitude_deg: float) -> float:
    return 12.0 + (utc_offset_hours(dt) * 15.0 - longitude_deg) / 15.0


def hour_angle_deg(
    latitude_deg: float,
    declination_deg: float,
    altitude_deg: float,
) -> tuple[str, float | None]:
    """Hour angle at which the sun crosses ``altitude_deg``.

    Returns ``(ALWAYS_ABOVE, None)`` or ``(ALWAYS_BELOW, None)`` when the sun
    never crosses that altitude on this day, ``(CROSSES, H)`` otherwise.
    """
    lat = math.radians(latitude_deg)
    decl = math.radians(declination_deg)
    h0 = math.radians(altitude_deg)
    denom = math.cos(lat) * math.cos(decl)
    if abs(denom) < 1e-12:
        # At the pole the sun circles at a constant altitude.
        constant_alt = math.asin(max(-1.0, min(1.0, math.sin(lat) * math.sin(decl))))
        return (ALWAYS_ABOVE, None) if constant_alt > h0 else (ALWAYS_BELOW, None)
    cos_h = (math.sin(h0) - math.sin(lat) * math.sin(decl)) / denom
    if cos_h < -1.0:
        return ALWAYS_ABOVE, None
    if cos_h > 1.0:
        return ALWAYS_BELOW, None
    return CROSSES, math.degrees(math.acos(cos_h))


def crossing_hours(solar_noon: float, hour_angle: float) -> tuple[float, float]:
    """Morning and evening clock hours for a crossing hour angle."""
    return wrap_hours(solar_noon - hour_angle / 15.0), wrap_hours(solar_noon + hour_angle / 15.0)


def compute_moon(instant: datetime.datetime) -> MoonInfo:
    if instant.tzinfo is None:
        instant = instant.astimezone()
    days = (instant - REFERENCE_NEW_MOON_UTC).total_seconds() / 86400.0
    phase = (days / SYNODIC_MONTH_DAYS) % 1.0
    if phase >= 1.0:
        phase = 0.0
    illumination = 0.5 * (1.0 - math.cos(2.0 * math.pi * phase))
    return MoonInfo(
        phase_fraction=phase,
        illumination_fraction=max(0.0, min(1.0, illumination)),
        phase_name=moon_phase_name(phase),
    )


def moon_phase_name(phase: float) -> MoonPhase:
    for upper, name in _PHASE_BANDS:
        if phase < upper:
            return name
    return MoonPhase.NEW_MOON
