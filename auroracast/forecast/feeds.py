import datetime
import json
from pathlib import Path

from auroracast.errors import FeedFormatError
from auroracast.util.numbers import is_finite_number

from .types import CloudSample, TwilightTimes

# Field names follow the sunrise-sunset.org "results" object.
TWILIGHT_FIELDS = {
    "sunrise": "sunrise",
    "sunset": "sunset",
    "astro_dawn": "astronomical_twilight_begin",
    "astro_dusk": "astronomical_twilight_end",
}


def parse_timestamp(value: str) -> datetime.datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.datetime.fromisoformat(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def load_cloud_samples(path: str | Path) -> list[CloudSample]:
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("hourly")
    if not isinstance(data, list):
        raise FeedFormatError(f"{path}: expected a list of hourly samples")
    return [_parse_cloud_sample(item, path) for item in data]


def load_twilight_times(path: str | Path) -> TwilightTimes:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise FeedFormatError(f"{path}: expected a JSON object")
    if isinstance(data.get("results"), dict):
        data = data["results"]
    values = {}
    for attr, key in TWILIGHT_FIELDS.items():
        raw = data.get(key)
        if raw in (None, ""):
            values[attr] = None
            continue
        try:
            values[attr] = parse_timestamp(str(raw))
        except ValueError as e:
            raise FeedFormatError(f"{path}: invalid {key} timestamp {raw!r}") from e
    return TwilightTimes(**values)


def _parse_cloud_sample(item, path) -> CloudSample:
    if not isinstance(item, dict) or "time" not in item or "cloud_cover" not in item:
        raise FeedFormatError(f"{path}: each sample needs 'time' and 'cloud_cover'")
    cover = item["cloud_cover"]
    if not is_finite_number(cover):
        raise FeedFormatError(f"{path}: cloud_cover must be a number, got {cover!r}")
    try:
        when = parse_timestamp(str(item["time"]))
    except ValueError as e:
        raise FeedFormatError(f"{path}: invalid time {item['time']!r}") from e
    # Weather feeds report percent.
    return CloudSample(time=when, cloud_cover_fraction=max(0.0, min(1.0, float(cover) / 100.0)))


def _read_json(path: str | Path):
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Feed file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise FeedFormatError(f"{path}: invalid JSON ({e})") from e
