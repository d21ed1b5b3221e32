import json
from dataclasses import asdict

from auroracast.util.format import format_coordinates, format_optional_hour, format_percent

from .types import DarknessInfo, ForecastResult, LightPollutionEstimate, MoonInfo, SkyClass, Verdict

CHANCE_LABELS = {
    Verdict.YES: "Good chance",
    Verdict.MAYBE: "Low to moderate chance",
    Verdict.NO: "Low chance",
}

VERDICT_MESSAGES = {
    Verdict.YES: "Conditions look good: you have a solid chance of seeing aurora from here.",
    Verdict.MAYBE: "It's possible, but conditions are borderline. A darker spot or higher KP would really help.",
    Verdict.NO: "It's unlikely right now. You'd need much stronger activity or darker skies.",
}

DAYLIGHT_MESSAGE = "It's currently daylight at your location, so you won't see the aurora until after dark."

SKY_LABELS = {
    SkyClass.DARK: "Dark skies",
    SkyClass.SUBURBAN: "Suburban skies",
    SkyClass.URBAN: "Urban / bright skies",
}

BAR_WIDTH = 20


def format_json(value) -> str:
    return json.dumps(asdict(value), indent=2, default=str)


def verdict_message(verdict: Verdict, darkness: DarknessInfo | None) -> str:
    if darkness is not None and darkness.is_daylight_now:
        return DAYLIGHT_MESSAGE
    return VERDICT_MESSAGES[verdict]


def format_text(result: ForecastResult, verbose: bool = False) -> str:
    lines: list[str] = []
    breakdown = result.breakdown
    lines.append("Auroracast")
    lines.append("==========")
    lines.append(f"Time (local): {result.instant.strftime('%Y-%m-%d %H:%M %Z').strip()}")
    if result.location.name:
        lines.append(f"Site: {result.location.name}")
    lines.append(
        f"Location: {format_coordinates(result.location.latitude_deg, result.location.longitude_deg)}"
    )
    lines.append(f"Sky: {format_light_pollution(result.light_pollution)}")
    lines.append(
        f"Activity: KP {result.kp:.1f} ({result.kp_activity}), "
        f"{result.distance_to_oval_km:.0f} km from the auroral oval"
    )
    if result.cloud_cover_fraction is not None:
        lines.append(f"Cloud cover: {format_percent(result.cloud_cover_fraction)}")
    lines.append(f"Moon: {format_moon(result.moon)}")
    lines.append(f"Darkness: {format_darkness(result.darkness)}")
    lines.append("")
    lines.append(f"{CHANCE_LABELS[breakdown.verdict]}: score {breakdown.final_score:.0f} / 100")
    lines.append(verdict_message(breakdown.verdict, result.darkness))
    if result.message:
        lines.append(result.message)

    if verbose:
        lines.append("")
        lines.append("How the score was built")
        lines.append("-----------------------")
        for idx, line in enumerate(breakdown.trace, start=1):
            lines.append(f"{idx:>2}. {line}")

    if result.timeline:
        lines.append("")
        lines.append("Tonight, hour by hour")
        lines.append("---------------------")
        for entry in result.timeline:
            bar = _pad("#" * int(round(entry.score / 100.0 * BAR_WIDTH)), BAR_WIDTH)
            notes = []
            if entry.cloud_percent is not None:
                notes.append(f"cloud {entry.cloud_percent}%")
            notes.append(f"moon {entry.moon_illumination_percent}%")
            if entry.is_daylight:
                notes.append("daylight")
            lines.append(f"{entry.label}  {bar}  {entry.score:>3.0f}  {', '.join(notes)}")
    return "\n".join(lines)


def format_light_pollution(estimate: LightPollutionEstimate) -> str:
    text = f"{SKY_LABELS[estimate.classification]} ({estimate.normalized * 100:.0f} / 100, {estimate.source.value})"
    if estimate.sky_brightness_mag_arcsec2 is not None:
        text += f", {estimate.sky_brightness_mag_arcsec2:.2f} mag/arcsec²"
    return text


def format_moon(moon: MoonInfo) -> str:
    name = moon.phase_name.value.replace("_", " ")
    return f"{name}, {format_percent(moon.illumination_fraction)} illuminated"


def format_darkness(darkness: DarknessInfo | None) -> str:
    if darkness is None:
        return "unavailable"
    if darkness.always_daylight:
        day = "sun up all day"
    elif darkness.always_night:
        day = "sun down all day"
    else:
        day = (
            f"sunrise {format_optional_hour(darkness.sunrise_hour)}, "
            f"sunset {format_optional_hour(darkness.sunset_hour)}"
        )
    if darkness.always_fully_dark:
        night = "fully dark all day"
    elif darkness.never_fully_dark:
        night = "never fully dark"
    else:
        night = (
            f"dark {format_optional_hour(darkness.astro_dusk_hour)}"
            f"-{format_optional_hour(darkness.astro_dawn_hour)}"
        )
    if darkness.is_fully_dark_now:
        now = "dark now"
    elif darkness.is_daylight_now:
        now = "daylight now"
    else:
        now = "twilight now"
    return f"{day}; {night}; {now} ({darkness.source.value})"


def _pad(value: str, width: int) -> str:
    if len(value) >= width:
        return value
    return value + (" " * (width - len(value)))
