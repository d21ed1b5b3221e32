import dataclasses
import datetime
import logging
import math
from typing import Sequence

from auroracast.util.format import hour_label

from .astro import as_local, local_clock_hour
from .darkness import darkness_at_hour
from .scoring import score
from .types import (
    CloudSample,
    DarknessInfo,
    GeoCoordinate,
    HourlyProjectionEntry,
    MoonInfo,
    ScoreInputs,
)

MAX_TIMELINE_HOURS = 12
POLAR_NIGHT_HOURS = 12
FALLBACK_HOURS = 8
CLOUD_MATCH_WINDOW = datetime.timedelta(minutes=90)
BAR_MIN_HEIGHT = 4
BAR_MAX_HEIGHT = 64


def project(
    location: GeoCoordinate,
    base_inputs: ScoreInputs,
    darkness: DarknessInfo | None,
    moon: MoonInfo | None,
    *,
    now: datetime.datetime,
    cloud_samples: Sequence[CloudSample] = (),
    max_hours: int = MAX_TIMELINE_HOURS,
) -> tuple[HourlyProjectionEntry, ...]:
    """Score each whole hour of tonight's dark window.

    Darkness windows already carry everything location-dependent, so
    ``location`` is used only to label log output.
    """
    now = as_local(now)
    hours = _hour_sequence(darkness, now, max_hours)
    logging.debug(
        "Projecting %d hours for %.3f, %.3f",
        len(hours),
        location.latitude_deg,
        location.longitude_deg,
    )
    entries = []
    for when in hours:
        hour = float(when.hour)
        hour_darkness = darkness_at_hour(darkness, hour) if darkness is not None else None
        cloud = nearest_cloud_cover(cloud_samples, when)
        if cloud is None:
            cloud = base_inputs.cloud_cover_fraction
        inputs = dataclasses.replace(
            base_inputs,
            cloud_cover_fraction=cloud,
            local_hour=hour,
            moon=moon,
            darkness=hour_darkness,
        )
        entries.append(
            _entry(hour, inputs, moon, is_daylight=bool(hour_darkness and hour_darkness.is_daylight_now))
        )

    if not entries:
        when = _next_whole_hour(now)
        hour = float(when.hour)
        inputs = dataclasses.replace(base_inputs, local_hour=hour, moon=moon, darkness=None)
        entries.append(_entry(hour, inputs, moon, is_daylight=False))
    return tuple(entries)


def _entry(hour: float, inputs: ScoreInputs, moon: MoonInfo | None, is_daylight: bool) -> HourlyProjectionEntry:
    breakdown = score(inputs)
    cloud = inputs.cloud_cover_fraction
    return HourlyProjectionEntry(
        local_hour=hour,
        label=hour_label(hour),
        score=breakdown.final_score,
        bar_height=_bar_height(breakdown.final_score),
        cloud_percent=None if cloud is None else int(round(max(0.0, min(1.0, cloud)) * 100)),
        moon_illumination_percent=0 if moon is None else int(round(moon.illumination_fraction * 100)),
        is_daylight=is_daylight,
    )


def _hour_sequence(
    darkness: DarknessInfo | None,
    now: datetime.datetime,
    max_hours: int,
) -> list[datetime.datetime]:
    if darkness is None:
        return _next_hours(now, min(FALLBACK_HOURS, max_hours))
    if darkness.always_fully_dark:
        return _next_hours(now, min(POLAR_NIGHT_HOURS, max_hours))
    if (
        darkness.has_astronomical_night
        and darkness.astro_dusk_hour is not None
        and darkness.astro_dawn_hour is not None
    ):
        return _night_hours(darkness.astro_dusk_hour, darkness.astro_dawn_hour, now, max_hours)
    if darkness.has_astronomical_night:
        # Degenerate: a night with no usable boundaries.
        return []
    return _next_hours(now, min(FALLBACK_HOURS, max_hours))


def _night_hours(
    dusk: float,
    dawn: float,
    now: datetime.datetime,
    max_hours: int,
) -> list[datetime.datetime]:
    start = math.ceil(dusk)
    end = dawn if dawn >= dusk else dawn + 24.0
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    hour_now = local_clock_hour(now)
    # Already past midnight inside the night: it started at yesterday's dusk.
    if dawn < dusk and hour_now < dawn:
        midnight -= datetime.timedelta(days=1)
    elif dawn >= dusk and hour_now >= dawn:
        midnight += datetime.timedelta(days=1)
    hours = []
    h = start
    while h <= end and len(hours) < max_hours:
        hours.append(midnight + datetime.timedelta(hours=h))
        h += 1
    return hours


def _next_hours(now: datetime.datetime, count: int) -> list[datetime.datetime]:
    first = _next_whole_hour(now)
    return [first + datetime.timedelta(hours=i) for i in range(count)]


def _next_whole_hour(now: datetime.datetime) -> datetime.datetime:
    return now.replace(minute=0, second=0, microsecond=0) + datetime.timedelta(hours=1)


def nearest_cloud_cover(samples: Sequence[CloudSample], when: datetime.datetime) -> float | None:
    best = None
    best_gap = None
    for sample in samples:
        sample_time = sample.time
        if sample_time.tzinfo is None:
            sample_time = sample_time.replace(tzinfo=datetime.timezone.utc)
        gap = abs(sample_time - when)
        if gap > CLOUD_MATCH_WINDOW:
            continue
        if best_gap is None or gap < best_gap:
            best = sample
            best_gap = gap
    if best is None:
        return None
    return best.cloud_cover_fraction


def _bar_height(value: float) -> int:
    fraction = max(0.0, min(100.0, value)) / 100.0
    return int(round(BAR_MIN_HEIGHT + (BAR_MAX_HEIGHT - BAR_MIN_HEIGHT) * fraction))
