import datetime
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from auroracast.config import load_config
from auroracast.errors import ConfigError, FeedFormatError
from auroracast.forecast import Forecaster, GeoCoordinate, compute_darkness, compute_moon
from auroracast.forecast.astro import as_local
from auroracast.forecast.feeds import load_cloud_samples, load_twilight_times
from auroracast.forecast.formatters import (
    format_darkness,
    format_json,
    format_light_pollution,
    format_moon,
    format_text,
)
from auroracast.forecast.light_pollution import apply_mode, apply_place_context


def _json_envelope(command: str, ok: bool, data=None, error=None) -> dict:
    return {
        "ok": ok,
        "command": command,
        "timestamp_utc": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "data": data,
        "error": error,
    }


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _init_logging(level: str | None) -> None:
    if not level:
        return
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }
    logging.basicConfig(level=level_map.get(level, logging.INFO))


def _report_error(command: str, args, code: str, message: str) -> None:
    if args is not None and getattr(args, "json", False):
        _print_json(
            _json_envelope(
                command=command,
                ok=False,
                data=None,
                error={"code": code, "message": message, "details": None},
            )
        )
    else:
        print(message, file=sys.stderr)


def _config_path_from_args(args) -> Path | None:
    if args is None:
        return None
    path = getattr(args, "config", None)
    return Path(path) if path else None


def _parse_datetime_arg(value: str | None) -> datetime.datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.datetime.fromisoformat(value)
    # Naive times on the command line are local civil time.
    return as_local(dt)


def _parse_location_args(args) -> GeoCoordinate | None:
    lat = getattr(args, "latitude_deg", None)
    lon = getattr(args, "longitude_deg", None)
    if lat is None and lon is None:
        return None
    if lat is None or lon is None:
        raise ValueError(
            "Both latitude and longitude are required when specifying location"
        )
    return GeoCoordinate(latitude_deg=lat, longitude_deg=lon, provenance="manual")


def _location_or_config(args, config) -> GeoCoordinate:
    location = _parse_location_args(args)
    if location is not None:
        return location
    return Forecaster(config).default_location()


def run_tonight(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        config = load_config(_config_path_from_args(args))
        forecaster = Forecaster(config)
        cloud_samples = load_cloud_samples(args.clouds) if getattr(args, "clouds", None) else ()
        twilight = load_twilight_times(args.twilight) if getattr(args, "twilight", None) else None
        cloud = getattr(args, "cloud_percent", None)
        result = forecaster.forecast(
            instant=_parse_datetime_arg(getattr(args, "at", None)),
            location=_parse_location_args(args),
            kp=getattr(args, "kp", None),
            cloud_cover=None if cloud is None else cloud / 100.0,
            cloud_samples=cloud_samples,
            twilight=twilight,
            lp_mode=getattr(args, "sky", None),
            place_context=getattr(args, "place_context", None),
        )
    except (ValueError, ConfigError, FeedFormatError, FileNotFoundError) as e:
        _report_error("tonight", args, "invalid_input", str(e))
        return 2

    if getattr(args, "json", False):
        _print_json(_json_envelope(command="tonight", ok=True, data=asdict(result)))
    elif getattr(args, "format", "text") == "json":
        print(format_json(result))
    else:
        print(format_text(result, verbose=getattr(args, "verbose", False)))

    if getattr(args, "plot", False):
        return _plot_timeline(result)
    return 0


def _plot_timeline(result) -> int:
    try:
        import matplotlib.pyplot as plt
    except ModuleNotFoundError:
        print(
            "matplotlib is required for --plot. Install with: pip install -e .[tools]",
            file=sys.stderr,
        )
        return 2
    labels = [entry.label for entry in result.timeline]
    scores = [entry.score for entry in result.timeline]
    colors = ["#facc15" if entry.is_daylight else "#22c55e" for entry in result.timeline]
    plt.bar(labels, scores, color=colors)
    plt.axhline(65, linestyle="--", linewidth=0.8, color="gray")
    plt.axhline(35, linestyle=":", linewidth=0.8, color="gray")
    plt.ylim(0, 100)
    plt.ylabel("Visibility score")
    plt.title(f"Aurora outlook from {result.instant.strftime('%Y-%m-%d %H:%M')}")
    plt.show()
    return 0


def run_darkness(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        config = load_config(_config_path_from_args(args))
        location = _location_or_config(args, config)
        instant = _parse_datetime_arg(getattr(args, "at", None)) or datetime.datetime.now().astimezone()
    except (ValueError, ConfigError, FileNotFoundError) as e:
        _report_error("darkness", args, "invalid_input", str(e))
        return 2

    darkness = compute_darkness(location.latitude_deg, location.longitude_deg, instant)
    if darkness is None:
        _report_error("darkness", args, "darkness_unavailable", "Darkness is unavailable for this location.")
        return 1
    if getattr(args, "json", False):
        _print_json(
            _json_envelope(
                command="darkness",
                ok=True,
                data={"instant": instant.isoformat(), "location": asdict(location), "darkness": asdict(darkness)},
            )
        )
    else:
        print(f"Darkness at {instant.strftime('%Y-%m-%d %H:%M')}: {format_darkness(darkness)}")
    return 0


def run_moon(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        instant = _parse_datetime_arg(getattr(args, "at", None)) or datetime.datetime.now().astimezone()
    except ValueError as e:
        _report_error("moon", args, "invalid_input", str(e))
        return 2
    moon = compute_moon(instant)
    if getattr(args, "json", False):
        _print_json(
            _json_envelope(command="moon", ok=True, data={"instant": instant.isoformat(), "moon": asdict(moon)})
        )
    else:
        print(f"Moon at {instant.strftime('%Y-%m-%d %H:%M')}: {format_moon(moon)}")
    return 0


def run_sky(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        config = load_config(_config_path_from_args(args))
        forecaster = Forecaster(config)
        location = _location_or_config(args, config)
        estimate = forecaster.light_pollution.estimate(
            location.latitude_deg,
            location.longitude_deg,
            sky_brightness=getattr(args, "sqm", None),
        )
        estimate = apply_place_context(estimate, getattr(args, "place_context", None))
        estimate = apply_mode(estimate, getattr(args, "sky", None))
    except (ValueError, ConfigError, FileNotFoundError) as e:
        _report_error("sky", args, "invalid_input", str(e))
        return 2
    if getattr(args, "json", False):
        _print_json(
            _json_envelope(command="sky", ok=True, data={"location": asdict(location), "light_pollution": asdict(estimate)})
        )
    else:
        print(f"Sky at {location.latitude_deg:.3f}, {location.longitude_deg:.3f}: {format_light_pollution(estimate)}")
    return 0


def run_doctor(args=None) -> int:
    _init_logging(getattr(args, "log_level", None))

    def check_config():
        try:
            config = load_config(_config_path_from_args(args))
            config.validate()
            return {"ok": True, "detail": "loaded (defaults applied if missing)"}, config
        except Exception as e:
            return {"ok": False, "detail": f"invalid config: {e}"}, None

    config_check, config = check_config()

    def check_grid():
        if config is None:
            return {"ok": False, "detail": "config not loaded"}
        if config.light_pollution_grid_path is None:
            return {"ok": True, "detail": "no grid configured (heuristic estimates)"}
        service = Forecaster(config).light_pollution
        grid = service.load()
        if grid is None:
            return {"ok": False, "detail": f"could not load {config.light_pollution_grid_path}"}
        return {"ok": True, "detail": f"{grid.rows} x {grid.cols} cells at {grid.resolution_deg}°"}

    def check_site():
        if config is None:
            return {"ok": False, "detail": "config not loaded"}
        if config.site_is_default:
            return {"ok": True, "detail": f"default site ({config.site_name})"}
        return {
            "ok": True,
            "detail": f"{config.site_latitude_deg:.3f}, {config.site_longitude_deg:.3f}",
        }

    checks = {
        "config": config_check,
        "site": check_site(),
        "light_pollution_grid": check_grid(),
    }
    ok = all(c["ok"] for c in checks.values())

    if args is not None and getattr(args, "json", False):
        _print_json(
            _json_envelope(
                command="doctor",
                ok=ok,
                data={"checks": checks},
                error=None
                if ok
                else {
                    "code": "doctor_failed",
                    "message": "one or more checks failed",
                    "details": None,
                },
            )
        )
    else:
        print("Auroracast Doctor Report")
        print("========================")

        for name, result in checks.items():
            status = "OK" if result["ok"] else "MISSING"
            print(f"{name:20} : {status} ({result['detail']})")

        if ok:
            print("\nSystem ready.")
        else:
            print("\nSome components are missing or not configured.")

    return 0 if ok else 1

