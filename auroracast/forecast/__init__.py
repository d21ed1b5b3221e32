from .astro import compute_moon
from .darkness import compute_darkness, darkness_factor, darkness_from_twilight
from .forecaster import Forecaster
from .light_pollution import LightPollutionGrid, LightPollutionService
from .projection import project
from .scoring import score
from .types import (
    CloudSample,
    DarknessInfo,
    ForecastResult,
    GeoCoordinate,
    HourlyProjectionEntry,
    LightPollutionEstimate,
    MoonInfo,
    ScoreBreakdown,
    ScoreInputs,
    TwilightTimes,
    Verdict,
)

__all__ = [
    "Forecaster",
    "LightPollutionGrid",
    "LightPollutionService",
    "compute_darkness",
    "compute_moon",
    "darkness_factor",
    "darkness_from_twilight",
    "project",
    "score",
    "CloudSample",
    "DarknessInfo",
    "ForecastResult",
    "GeoCoordinate",
    "HourlyProjectionEntry",
    "LightPollutionEstimate",
    "MoonInfo",
    "ScoreBreakdown",
    "ScoreInputs",
    "TwilightTimes",
    "Verdict",
]
