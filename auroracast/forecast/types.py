from dataclasses import dataclass, field
import datetime
from enum import Enum
from typing import Optional, Sequence


def normalize_longitude(lon_deg: float) -> float:
    """Wrap a longitude into [-180, 180)."""
    return ((lon_deg + 180.0) % 360.0 + 360.0) % 360.0 - 180.0


class Verdict(str, Enum):
    NO = "no"
    MAYBE = "maybe"
    YES = "yes"


class SkyClass(str, Enum):
    DARK = "dark"
    SUBURBAN = "suburban"
    URBAN = "urban"


class LightPollutionSource(str, Enum):
    GRID = "grid"
    FALLBACK = "fallback"
    READING = "reading"
    MANUAL = "manual"


class DarknessSource(str, Enum):
    MODEL = "model"
    LIVE_API = "live_api"


class MoonPhase(str, Enum):
    NEW_MOON = "new_moon"
    WAXING_CRESCENT = "waxing_crescent"
    FIRST_QUARTER = "first_quarter"
    WAXING_GIBBOUS = "waxing_gibbous"
    FULL_MOON = "full_moon"
    WANING_GIBBOUS = "waning_gibbous"
    LAST_QUARTER = "last_quarter"
    WANING_CRESCENT = "waning_crescent"


@dataclass(frozen=True)
class GeoCoordinate:
    latitude_deg: float
    longitude_deg: float
    name: str | None = None
    provenance: str | None = None

    def normalized(self) -> "GeoCoordinate":
        return GeoCoordinate(
            latitude_deg=self.latitude_deg,
            longitude_deg=normalize_longitude(self.longitude_deg),
            name=self.name,
            provenance=self.provenance,
        )


@dataclass(frozen=True)
class LightPollutionEstimate:
    source: LightPollutionSource
    normalized: float
    classification: SkyClass
    sky_brightness_mag_arcsec2: float | None = None


@dataclass(frozen=True)
class DarknessInfo:
    """Day/night regime for one location and date, evaluated at one clock hour.

    Exactly one of ``has_day``, ``always_daylight`` and ``always_night`` is
    set, and exactly one of ``has_astronomical_night``, ``never_fully_dark``
    and ``always_fully_dark``. Hours are local clock hours in [0, 24).
    """

    sunrise_hour: float | None
    sunset_hour: float | None
    astro_dawn_hour: float | None
    astro_dusk_hour: float | None
    has_day: bool
    always_daylight: bool
    always_night: bool
    has_astronomical_night: bool
    never_fully_dark: bool
    always_fully_dark: bool
    is_daylight_now: bool
    is_fully_dark_now: bool
    source: DarknessSource = DarknessSource.MODEL


@dataclass(frozen=True)
class MoonInfo:
    phase_fraction: float
    illumination_fraction: float
    phase_name: MoonPhase


@dataclass(frozen=True)
class ScoreInputs:
    kp: float | None
    distance_to_oval_km: float | None
    light_pollution: float | None
    cloud_cover_fraction: float | None = None
    local_hour: float | None = None
    moon: MoonInfo | None = None
    darkness: DarknessInfo | None = None


@dataclass(frozen=True)
class ScoreBreakdown:
    geomagnetic_contribution: float
    position_contribution: float
    light_pollution_penalty: float
    cloud_penalty: float
    time_of_night_adjustment: float
    moon_penalty: float
    darkness_factor: float
    raw_score: float
    base_score: float
    final_score: float
    verdict: Verdict
    trace: tuple[str, ...] = ()


@dataclass(frozen=True)
class HourlyProjectionEntry:
    local_hour: float
    label: str
    score: float
    bar_height: int
    cloud_percent: int | None
    moon_illumination_percent: int
    is_daylight: bool


@dataclass(frozen=True)
class CloudSample:
    time: datetime.datetime
    cloud_cover_fraction: float


@dataclass(frozen=True)
class TwilightTimes:
    sunrise: datetime.datetime | None = None
    sunset: datetime.datetime | None = None
    astro_dawn: datetime.datetime | None = None
    astro_dusk: datetime.datetime | None = None


@dataclass
class ForecastResult:
    instant: datetime.datetime
    location: GeoCoordinate
    kp: float
    kp_activity: str
    geomagnetic_latitude_deg: float
    distance_to_oval_km: float
    light_pollution: LightPollutionEstimate
    darkness: DarknessInfo | None
    moon: MoonInfo
    breakdown: ScoreBreakdown
    timeline: Sequence[HourlyProjectionEntry] = field(default_factory=tuple)
    cloud_cover_fraction: float | None = None
    message: Optional[str] = None
