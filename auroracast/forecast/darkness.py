import dataclasses
import datetime
import logging

from auroracast.util.numbers import is_finite_number

from .astro import (
    ALWAYS_ABOVE,
    ALWAYS_BELOW,
    ASTRONOMICAL_ALTITUDE_DEG,
    CROSSES,
    SUNRISE_ALTITUDE_DEG,
    as_local,
    crossing_hours,
    day_of_year,
    hour_angle_deg,
    local_clock_hour,
    solar_declination_deg,
    solar_noon_hour,
)
from .types import DarknessInfo, DarknessSource, TwilightTimes, normalize_longitude


def in_circular_window(hour: float, start: float, end: float) -> bool:
    """True when ``hour`` lies in [start, end) on a 24 hour clock."""
    hour = hour % 24.0
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def compute_darkness(
    latitude_deg: float,
    longitude_deg: float,
    instant: datetime.datetime,
) -> DarknessInfo | None:
    if not is_finite_number(latitude_deg) or not is_finite_number(longitude_deg):
        logging.debug("Darkness unavailable for non-finite location %r, %r", latitude_deg, longitude_deg)
        return None
    lat = max(-90.0, min(90.0, float(latitude_deg)))
    lon = normalize_longitude(float(longitude_deg))

    decl = solar_declination_deg(day_of_year(instant))
    noon = solar_noon_hour(instant, lon)

    day_state, day_angle = hour_angle_deg(lat, decl, SUNRISE_ALTITUDE_DEG)
    astro_state, astro_angle = hour_angle_deg(lat, decl, ASTRONOMICAL_ALTITUDE_DEG)

    sunrise = sunset = None
    if day_angle is not None:
        sunrise, sunset = crossing_hours(noon, day_angle)
    astro_dawn = astro_dusk = None
    if astro_angle is not None:
        astro_dawn, astro_dusk = crossing_hours(noon, astro_angle)

    return _build(
        day_state=day_state,
        astro_state=astro_state,
        sunrise=sunrise,
        sunset=sunset,
        astro_dawn=astro_dawn,
        astro_dusk=astro_dusk,
        hour=local_clock_hour(instant),
        source=DarknessSource.MODEL,
    )


def darkness_from_twilight(
    times: TwilightTimes,
    instant: datetime.datetime,
    latitude_deg: float,
    longitude_deg: float,
) -> DarknessInfo | None:
    """Darkness from sunrise/sunset feed timestamps.

    A feed omits a pair of times exactly when the sun never crosses that
    altitude, so a missing pair takes its regime from the model.
    """
    model = compute_darkness(latitude_deg, longitude_deg, instant)
    tz = as_local(instant).tzinfo

    def to_hour(value):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return local_clock_hour(value.astimezone(tz))

    sunrise, sunset = to_hour(times.sunrise), to_hour(times.sunset)
    astro_dawn, astro_dusk = to_hour(times.astro_dawn), to_hour(times.astro_dusk)

    if sunrise is not None and sunset is not None:
        day_state = CROSSES
    elif model is not None:
        day_state = _day_state(model)
        sunrise, sunset = model.sunrise_hour, model.sunset_hour
    else:
        return None

    if astro_dawn is not None and astro_dusk is not None:
        astro_state = CROSSES
    elif model is not None:
        astro_state = _astro_state(model)
        astro_dawn, astro_dusk = model.astro_dawn_hour, model.astro_dusk_hour
    else:
        return None

    return _build(
        day_state=day_state,
        astro_state=astro_state,
        sunrise=sunrise,
        sunset=sunset,
        astro_dawn=astro_dawn,
        astro_dusk=astro_dusk,
        hour=local_clock_hour(instant),
        source=DarknessSource.LIVE_API,
    )


def darkness_at_hour(darkness: DarknessInfo, hour: float) -> DarknessInfo:
    return dataclasses.replace(
        darkness,
        is_daylight_now=_daylight_at(darkness, hour),
        is_fully_dark_now=_fully_dark_at(darkness, hour),
    )


def darkness_factor(darkness: DarknessInfo | None) -> tuple[float, str]:
    if darkness is None:
        return 1.0, "No darkness information; score left unscaled."
    if darkness.always_fully_dark:
        return 1.0, "Polar night: the sky stays fully dark all day."
    if darkness.never_fully_dark and not darkness.always_daylight:
        return 0.5, "The sky never reaches full astronomical darkness tonight; bright twilight halves the score."
    if darkness.has_astronomical_night:
        if darkness.is_fully_dark_now:
            return 1.0, "It is fully dark now (sun more than 18° below the horizon)."
        if darkness.is_daylight_now:
            return 0.25, "It is daylight now; aurora cannot be seen until after dark."
        return 0.6, "It is twilight now; the sky is not yet fully dark."
    if darkness.has_day or darkness.always_daylight or darkness.always_night:
        if darkness.is_daylight_now:
            return 0.3, "It is daylight now (twilight timing unknown)."
        return 0.6, "The sun is down but full darkness cannot be confirmed."
    return 1.0, "No darkness information; score left unscaled."


def _build(
    *,
    day_state: str,
    astro_state: str,
    sunrise: float | None,
    sunset: float | None,
    astro_dawn: float | None,
    astro_dusk: float | None,
    hour: float,
    source: DarknessSource,
) -> DarknessInfo:
    info = DarknessInfo(
        sunrise_hour=sunrise,
        sunset_hour=sunset,
        astro_dawn_hour=astro_dawn,
        astro_dusk_hour=astro_dusk,
        has_day=day_state not in (ALWAYS_ABOVE, ALWAYS_BELOW),
        always_daylight=day_state == ALWAYS_ABOVE,
        always_night=day_state == ALWAYS_BELOW,
        has_astronomical_night=astro_state not in (ALWAYS_ABOVE, ALWAYS_BELOW),
        never_fully_dark=astro_state == ALWAYS_ABOVE,
        always_fully_dark=astro_state == ALWAYS_BELOW,
        is_daylight_now=False,
        is_fully_dark_now=False,
        source=source,
    )
    return darkness_at_hour(info, hour)


def _daylight_at(darkness: DarknessInfo, hour: float) -> bool:
    if darkness.always_daylight:
        return True
    if darkness.always_night:
        return False
    if darkness.has_day and darkness.sunrise_hour is not None and darkness.sunset_hour is not None:
        return in_circular_window(hour, darkness.sunrise_hour, darkness.sunset_hour)
    return False


def _fully_dark_at(darkness: DarknessInfo, hour: float) -> bool:
    if darkness.always_fully_dark:
        return True
    if darkness.never_fully_dark:
        return False
    if (
        darkness.has_astronomical_night
        and darkness.astro_dusk_hour is not None
        and darkness.astro_dawn_hour is not None
    ):
        return in_circular_window(hour, darkness.astro_dusk_hour, darkness.astro_dawn_hour)
    return False


def _day_state(darkness: DarknessInfo) -> str:
    if darkness.always_daylight:
        return ALWAYS_ABOVE
    if darkness.always_night:
        return ALWAYS_BELOW
    return CROSSES


def _astro_state(darkness: DarknessInfo) -> str:
    if darkness.never_fully_dark:
        return ALWAYS_ABOVE
    if darkness.always_fully_dark:
        return ALWAYS_BELOW
    return CROSSES

