import json
import logging
import math
import socket
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from urllib.error import URLError
from urllib.parse import urlparse
from urllib.request import urlopen

import numpy as np

from auroracast.errors import GridFormatError
from auroracast.util.numbers import is_finite_number

from .types import LightPollutionEstimate, LightPollutionSource, SkyClass, normalize_longitude

SKY_BRIGHTNESS_BRIGHTEST = 18.0
SKY_BRIGHTNESS_DARKEST = 21.5

MODE_LEVELS = {
    "dark": 0.20,
    "suburban": 0.50,
    "urban": 0.85,
}
MODES = ("auto",) + tuple(MODE_LEVELS)

PLACE_CONTEXTS = ("large-settlement", "settlement", "dark-nature")

GRID_FETCH_TIMEOUT_S = 15


@dataclass(frozen=True)
class LightPollutionGrid:
    lat_min: float
    lon_min: float
    resolution_deg: float
    values: np.ndarray
    unit: str = "mag_per_arcsec2"

    @property
    def rows(self) -> int:
        return int(self.values.shape[0])

    @property
    def cols(self) -> int:
        return int(self.values.shape[1])

    @classmethod
    def from_dict(cls, data: dict) -> "LightPollutionGrid":
        if not isinstance(data, dict):
            raise GridFormatError("Grid payload must be a JSON object")
        values = data.get("values")
        if not isinstance(values, list):
            raise GridFormatError("Grid payload missing 'values' array")
        try:
            lat_min = float(data["lat_min"])
            lon_min = float(data["lon_min"])
            resolution_deg = float(data["resolution_deg"])
            rows = int(data["rows"])
            cols = int(data["cols"])
        except (KeyError, TypeError, ValueError) as e:
            raise GridFormatError(f"Grid payload has invalid metadata: {e}") from e
        if resolution_deg <= 0 or rows <= 0 or cols <= 0:
            raise GridFormatError("Grid resolution and shape must be positive")
        if len(values) != rows * cols:
            raise GridFormatError(
                f"Grid has {len(values)} values, expected rows*cols = {rows * cols}"
            )
        try:
            array = np.array(
                [np.nan if v is None else v for v in values], dtype=float
            ).reshape(rows, cols)
        except (TypeError, ValueError) as e:
            raise GridFormatError(f"Grid values must be numeric: {e}") from e
        return cls(
            lat_min=lat_min,
            lon_min=lon_min,
            resolution_deg=resolution_deg,
            values=array,
            unit=str(data.get("unit") or "mag_per_arcsec2"),
        )

    def sample(self, latitude_deg: float, longitude_deg: float) -> float | None:
        """Sky brightness (mag/arcsec²) of the cell holding the point, if any."""
        if not is_finite_number(latitude_deg) or not is_finite_number(longitude_deg):
            return None
        lat = float(latitude_deg)
        lon = normalize_longitude(float(longitude_deg))
        row = math.floor((lat - self.lat_min) / self.resolution_deg)
        col = math.floor((lon - self.lon_min) / self.resolution_deg)
        if row < 0 or row >= self.rows or col < 0 or col >= self.cols:
            return None
        value = float(self.values[row, col])
        if math.isnan(value):
            return None
        return value


class LightPollutionService:
    """Owns the light-pollution grid and estimates sky brightness from it.

    The grid is loaded at most once per service. Concurrent callers during the
    load wait for the same load rather than starting another one. A missing
    or malformed grid is logged and the service answers from the heuristic.
    """

    def __init__(
        self,
        grid_source: str | Path | None = None,
        grid: LightPollutionGrid | None = None,
    ):
        self._grid_source = grid_source
        self._grid = grid
        self._load_attempted = grid is not None or grid_source is None
        self._lock = threading.Lock()

    @property
    def grid(self) -> LightPollutionGrid | None:
        return self._grid

    @property
    def load_attempted(self) -> bool:
        return self._load_attempted

    def load(self) -> LightPollutionGrid | None:
        if self._load_attempted:
            return self._grid
        with self._lock:
            if self._load_attempted:
                return self._grid
            try:
                self._grid = LightPollutionGrid.from_dict(_read_grid_payload(self._grid_source))
                logging.info(
                    "Light pollution grid loaded: %d x %d cells at %.3f°",
                    self._grid.rows,
                    self._grid.cols,
                    self._grid.resolution_deg,
                )
            except FileNotFoundError:
                logging.warning("Light pollution grid not found at %s, using heuristic only.", self._grid_source)
            except (OSError, URLError, socket.timeout, ValueError, GridFormatError) as e:
                logging.warning("Failed to load light pollution grid from %s: %s", self._grid_source, e)
            finally:
                self._load_attempted = True
        return self._grid

    def estimate(
        self,
        latitude_deg: float,
        longitude_deg: float,
        sky_brightness: float | None = None,
        bortle: int | None = None,
    ) -> LightPollutionEstimate:
        if is_finite_number(sky_brightness):
            normalized = normalize_sky_brightness(sky_brightness)
            return LightPollutionEstimate(
                source=LightPollutionSource.READING,
                normalized=normalized,
                classification=classify(normalized),
                sky_brightness_mag_arcsec2=float(sky_brightness),
            )
        if is_finite_number(bortle):
            normalized = normalize_bortle(bortle)
            return LightPollutionEstimate(
                source=LightPollutionSource.READING,
                normalized=normalized,
                classification=classify(normalized),
            )

        grid = self.load()
        if grid is not None:
            sampled = grid.sample(latitude_deg, longitude_deg)
            if sampled is not None:
                normalized = normalize_sky_brightness(sampled)
                return LightPollutionEstimate(
                    source=LightPollutionSource.GRID,
                    normalized=normalized,
                    classification=classify(normalized),
                    sky_brightness_mag_arcsec2=sampled,
                )

        normalized = heuristic_light_pollution(latitude_deg, longitude_deg)
        return LightPollutionEstimate(
            source=LightPollutionSource.FALLBACK,
            normalized=normalized,
            classification=classify(normalized),
        )


def normalize_sky_brightness(mag_arcsec2: float) -> float:
    v = min(SKY_BRIGHTNESS_DARKEST, max(SKY_BRIGHTNESS_BRIGHTEST, float(mag_arcsec2)))
    return 1.0 - (v - SKY_BRIGHTNESS_BRIGHTEST) / (SKY_BRIGHTNESS_DARKEST - SKY_BRIGHTNESS_BRIGHTEST)


def normalize_bortle(bortle: float) -> float:
    clamped = min(9.0, max(1.0, float(bortle)))
    return (clamped - 1.0) / 8.0


def classify(normalized: float) -> SkyClass:
    n = min(1.0, max(0.0, normalized))
    if n < 0.33:
        return SkyClass.DARK
    if n < 0.66:
        return SkyClass.SUBURBAN
    return SkyClass.URBAN


def heuristic_light_pollution(latitude_deg: float, longitude_deg: float) -> float:
    # Populated mid latitudes read brighter than the sparsely lit subarctic.
    if not is_finite_number(latitude_deg) or not is_finite_number(longitude_deg):
        return 0.5
    abs_lat = abs(float(latitude_deg))
    if abs_lat > 66:
        value = 0.22
    elif abs_lat > 58:
        value = 0.32
    elif abs_lat > 50:
        value = 0.42
    elif abs_lat > 40:
        value = 0.58
    else:
        value = 0.72
    abs_lon = abs(normalize_longitude(float(longitude_deg)))
    if abs_lon > 150 or abs_lon < 20:
        value -= 0.05
    return min(1.0, max(0.0, value))


def apply_place_context(estimate: LightPollutionEstimate, context: str | None) -> LightPollutionEstimate:
    if not context:
        return estimate
    normalized = estimate.normalized
    if context == "large-settlement":
        normalized = max(normalized, 0.8)
    elif context == "settlement":
        normalized = max(normalized, 0.6)
    elif context == "dark-nature":
        normalized = min(normalized, 0.25)
    else:
        logging.debug("Ignoring unknown place context %r", context)
        return estimate
    return replace(estimate, normalized=normalized, classification=classify(normalized))


def apply_mode(estimate: LightPollutionEstimate, mode: str | None) -> LightPollutionEstimate:
    mode = (mode or "auto").lower()
    if mode == "auto":
        return estimate
    if mode not in MODE_LEVELS:
        raise ValueError(f"Sky mode must be one of: {', '.join(MODES)}")
    normalized = MODE_LEVELS[mode]
    return LightPollutionEstimate(
        source=LightPollutionSource.MANUAL,
        normalized=normalized,
        classification=classify(normalized),
    )


def _read_grid_payload(source: str | Path) -> dict:
    source = str(source)
    parsed = urlparse(source)
    if parsed.scheme in ("http", "https"):
        with urlopen(source, timeout=GRID_FETCH_TIMEOUT_S) as resp:
            return json.loads(resp.read().decode("utf-8"))
    path = Path(source).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Grid not found: {source}")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

