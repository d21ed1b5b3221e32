from pathlib import Path
from typing import TYPE_CHECKING

from auroracast.errors import ConfigError

if TYPE_CHECKING:
    import tomli as tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:  # Python < 3.11
        import tomli as tomllib

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "auroracast" / "config.toml"

# Isle of Rum, Scotland: a designated dark-sky site used when nothing else is known.
DEFAULT_SITE_LATITUDE_DEG = 57.0
DEFAULT_SITE_LONGITUDE_DEG = -6.33
DEFAULT_SITE_NAME = "Isle of Rum"
DEFAULT_SITE_PLACE_CONTEXT = "dark-nature"

DEFAULT_KP = 3.5
DEFAULT_TIMELINE_MAX_HOURS = 12


def _coerce(value, cast, name: str):
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


class Config:
    def __init__(self, data: dict):
        self._data = data

    def _site_data(self) -> dict:
        return self._data.get("site", {})

    @property
    def _has_explicit_site(self) -> bool:
        site = self._site_data()
        return site.get("latitude_deg") is not None and site.get("longitude_deg") is not None

    @property
    def site_latitude_deg(self) -> float:
        if not self._has_explicit_site:
            return DEFAULT_SITE_LATITUDE_DEG
        return _coerce(self._site_data()["latitude_deg"], float, "site.latitude_deg")

    @property
    def site_longitude_deg(self) -> float:
        if not self._has_explicit_site:
            return DEFAULT_SITE_LONGITUDE_DEG
        return _coerce(self._site_data()["longitude_deg"], float, "site.longitude_deg")

    @property
    def site_name(self):
        if not self._has_explicit_site:
            return self._site_data().get("name", DEFAULT_SITE_NAME)
        return self._site_data().get("name", None)

    @property
    def site_is_default(self) -> bool:
        return not self._has_explicit_site

    @property
    def site_bortle(self):
        value = self._site_data().get("bortle", None)
        if value is None:
            return None
        value = _coerce(value, int, "site.bortle")
        if not 1 <= value <= 9:
            raise ConfigError(f"site.bortle must be between 1 and 9, got {value}")
        return value

    @property
    def site_sqm(self):
        value = self._site_data().get("sqm", None)
        return None if value is None else _coerce(value, float, "site.sqm")

    @property
    def site_place_context(self):
        if not self._has_explicit_site:
            return self._site_data().get("place_context", DEFAULT_SITE_PLACE_CONTEXT)
        return self._site_data().get("place_context", None)

    @property
    def aurora_kp(self) -> float:
        return _coerce(self._data.get("aurora", {}).get("kp", DEFAULT_KP), float, "aurora.kp")

    @property
    def aurora_distance_to_oval_km(self):
        value = self._data.get("aurora", {}).get("distance_to_oval_km", None)
        return None if value is None else _coerce(value, float, "aurora.distance_to_oval_km")

    @property
    def light_pollution_mode(self) -> str:
        return str(self._data.get("light_pollution", {}).get("mode", "auto")).lower()

    @property
    def light_pollution_grid_path(self):
        path = self._data.get("light_pollution", {}).get("grid_path", None)
        if not path:
            return None
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return str(Path(path).expanduser())

    @property
    def timeline_max_hours(self) -> int:
        value = _coerce(
            self._data.get("timeline", {}).get("max_hours", DEFAULT_TIMELINE_MAX_HOURS), int, "timeline.max_hours"
        )
        if value <= 0:
            raise ConfigError(f"timeline.max_hours must be positive, got {value}")
        return value

    def validate(self) -> None:
        """Read every typed setting once so bad values surface as ConfigError."""
        self.site_latitude_deg
        self.site_longitude_deg
        self.site_bortle
        self.site_sqm
        self.aurora_kp
        self.aurora_distance_to_oval_km
        self.timeline_max_hours
        if self.light_pollution_mode not in ("auto", "dark", "suburban", "urban"):
            raise ConfigError(f"light_pollution.mode is not a known sky mode: {self.light_pollution_mode}")


def load_config(path: Path | None = None) -> Config:
    explicit_path = path
    path = path or DEFAULT_CONFIG_PATH

    if not path.exists():
        if explicit_path is not None:
            raise FileNotFoundError(f"Config file not found: {path}")
        # Return default config if default file missing
        return Config({})

    with open(path, "rb") as f:
        data = tomllib.load(f)

    return Config(data)
