import argparse
import sys

from auroracast import __version__
from auroracast.cli.commands import (
    run_darkness,
    run_doctor,
    run_moon,
    run_sky,
    run_tonight,
)
from auroracast.forecast.light_pollution import MODES, PLACE_CONTEXTS


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to config.toml")
    parser.add_argument(
        "--log-level",
        choices=("debug", "info", "warn", "error"),
        help="Enable logging at this level",
    )
    parser.add_argument("--json", action="store_true", help="Output result as JSON")


def _add_location_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lat", dest="latitude_deg", type=float, help="Latitude in degrees")
    parser.add_argument("--lon", dest="longitude_deg", type=float, help="Longitude in degrees")


def _add_time_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--at",
        help="ISO 8601 time to evaluate (default: now; naive times are local)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="auroracast")
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    tonight_parser = subparsers.add_parser("tonight", help="Score tonight's aurora chances")
    _add_common_options(tonight_parser)
    _add_location_options(tonight_parser)
    _add_time_option(tonight_parser)
    tonight_parser.add_argument("--kp", type=float, help="Current Kp index (0-9)")
    tonight_parser.add_argument("--cloud", dest="cloud_percent", type=float, help="Current cloud cover in percent")
    tonight_parser.add_argument("--clouds", help="JSON file of hourly cloud cover samples")
    tonight_parser.add_argument("--twilight", help="JSON file of sunrise/sunset/astronomical twilight times")
    tonight_parser.add_argument("--sky", choices=MODES, help="Sky brightness override")
    tonight_parser.add_argument("--place-context", choices=PLACE_CONTEXTS, help="What kind of place the location is")
    tonight_parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Print the bare result as text or JSON (--json wraps it in an envelope)",
    )
    tonight_parser.add_argument("--verbose", action="store_true", help="Show how the score was built")
    tonight_parser.add_argument("--plot", action="store_true", help="Plot the hourly timeline (requires matplotlib)")

    darkness_parser = subparsers.add_parser("darkness", help="Show sunrise, sunset and astronomical darkness")
    _add_common_options(darkness_parser)
    _add_location_options(darkness_parser)
    _add_time_option(darkness_parser)

    moon_parser = subparsers.add_parser("moon", help="Show moon phase and illumination")
    _add_common_options(moon_parser)
    _add_time_option(moon_parser)

    sky_parser = subparsers.add_parser("sky", help="Estimate light pollution for a location")
    _add_common_options(sky_parser)
    _add_location_options(sky_parser)
    sky_parser.add_argument("--sqm", type=float, help="Measured sky brightness in mag/arcsec²")
    sky_parser.add_argument("--sky", choices=MODES, help="Sky brightness override")
    sky_parser.add_argument("--place-context", choices=PLACE_CONTEXTS, help="What kind of place the location is")

    doctor_parser = subparsers.add_parser("doctor", help="Check configuration and data files")
    _add_common_options(doctor_parser)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Auroracast {__version__}")
        return 0

    if args.command == "tonight":
        return run_tonight(args)

    if args.command == "darkness":
        return run_darkness(args)

    if args.command == "moon":
        return run_moon(args)

    if args.command == "sky":
        return run_sky(args)

    if args.command == "doctor":
        return run_doctor(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
