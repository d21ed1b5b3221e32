"""Aurora visibility scoring.

``score`` folds the observing conditions into a 0-100 score and a verdict,
recording one trace line per step in the order the steps are applied:

1. geomagnetic activity (Kp), up to 60 points
2. distance to the auroral oval, up to 30 points
3. light pollution penalty, relieved by strong activity
4. cloud penalty, when cloud cover is known
5. time-of-night bonus around local midnight
6. clamp to the base score
7. moonlight penalty, at night when the moon is known
8. darkness factor (daylight/twilight scaling)
9. verdict
"""

from auroracast.util.format import hour_label
from auroracast.util.numbers import as_float, clamp, is_finite_number

from .darkness import darkness_factor
from .light_pollution import classify
from .types import ScoreBreakdown, ScoreInputs, SkyClass, Verdict

MAX_KP = 9.0
KP_POINTS = 60.0
OVAL_POINTS = 30.0
MAX_OVAL_DISTANCE_KM = 1500.0
LIGHT_POLLUTION_POINTS = 30.0
KP_FULL_RELIEF = 7.0
MAX_KP_RELIEF = 0.7
CLOUD_POINTS = 25.0
MOON_POINTS = 18.0
MOON_NEGLIGIBLE_ILLUMINATION = 0.1
DEFAULT_LIGHT_POLLUTION = 0.5

YES_THRESHOLD = 65.0
MAYBE_THRESHOLD = 35.0


def geomagnetic_contribution(kp) -> float:
    k = clamp(as_float(kp, 0.0), 0.0, MAX_KP)
    return k / MAX_KP * KP_POINTS


def position_contribution(distance_to_oval_km) -> float:
    d = clamp(as_float(distance_to_oval_km, MAX_OVAL_DISTANCE_KM), 0.0, MAX_OVAL_DISTANCE_KM)
    return OVAL_POINTS * (1.0 - d / MAX_OVAL_DISTANCE_KM)


def light_pollution_penalty(light_pollution, kp) -> float:
    lp = clamp(as_float(light_pollution, DEFAULT_LIGHT_POLLUTION))
    k = clamp(as_float(kp, 0.0), 0.0, MAX_KP)
    base = LIGHT_POLLUTION_POINTS * lp
    relief = min(1.0, k / KP_FULL_RELIEF)
    return base * (1.0 - relief * MAX_KP_RELIEF)


def cloud_penalty(cloud_cover_fraction) -> float:
    return CLOUD_POINTS * clamp(as_float(cloud_cover_fraction, 0.0))


def time_of_night_adjustment(local_hour) -> float:
    if not is_finite_number(local_hour):
        return 0.0
    h = float(local_hour) % 24.0
    if h >= 22 or h < 2:
        return 3.0
    if 3 <= h <= 4 or 20 <= h <= 21:
        return 1.0
    return 0.0


def moon_penalty(illumination_fraction) -> float:
    illum = clamp(as_float(illumination_fraction, 0.0))
    if illum < MOON_NEGLIGIBLE_ILLUMINATION:
        return 0.0
    return MOON_POINTS * illum


def verdict_for_score(value: float) -> Verdict:
    if value >= YES_THRESHOLD:
        return Verdict.YES
    if value >= MAYBE_THRESHOLD:
        return Verdict.MAYBE
    return Verdict.NO


def score(inputs: ScoreInputs) -> ScoreBreakdown:
    trace: list[str] = []
    kp = clamp(as_float(inputs.kp, 0.0), 0.0, MAX_KP)
    lp = clamp(as_float(inputs.light_pollution, DEFAULT_LIGHT_POLLUTION))

    s_kp = geomagnetic_contribution(kp)
    trace.append(f"KP index {kp:.1f} contributes {s_kp:.1f} points.")

    s_pos = position_contribution(inputs.distance_to_oval_km)
    if inputs.distance_to_oval_km is None:
        trace.append("Distance to the auroral oval is unknown, so position adds no points.")
    else:
        trace.append(
            f"Your position relative to the auroral oval "
            f"({as_float(inputs.distance_to_oval_km, MAX_OVAL_DISTANCE_KM):.0f} km away) "
            f"contributes {s_pos:.1f} points."
        )

    lp_penalty = light_pollution_penalty(lp, kp)
    sky = classify(lp)
    if sky is SkyClass.DARK:
        trace.append(f"Dark skies: only a small light pollution penalty ({lp_penalty:.1f} points).")
    elif sky is SkyClass.SUBURBAN:
        trace.append(f"Moderate light pollution: medium penalty ({lp_penalty:.1f} points).")
    else:
        trace.append(f"Bright urban skies: heavy light pollution penalty ({lp_penalty:.1f} points).")

    running = s_kp + s_pos - lp_penalty

    c_penalty = 0.0
    if is_finite_number(inputs.cloud_cover_fraction):
        cc = clamp(float(inputs.cloud_cover_fraction))
        c_penalty = cloud_penalty(cc)
        running -= c_penalty
        trace.append(f"Cloud cover reduces the score by {c_penalty:.1f} points (cover: {cc * 100:.0f}%).")
    else:
        trace.append("No cloud data available, so no cloud penalty is applied.")

    time_adj = time_of_night_adjustment(inputs.local_hour)
    running += time_adj
    if time_adj:
        trace.append(
            f"Local time adjustment of +{time_adj:.1f} points for "
            f"{hour_label(float(inputs.local_hour))}, close to local midnight."
        )
    else:
        trace.append("No time-of-night adjustment for this hour.")

    raw = running
    base = clamp(raw, 0.0, 100.0)
    trace.append(f"Base score before moon and darkness is {base:.0f} / 100.")

    m_penalty = 0.0
    after_moon = base
    darkness = inputs.darkness
    if inputs.moon is not None and darkness is not None and not darkness.is_daylight_now:
        illum = clamp(as_float(inputs.moon.illumination_fraction, 0.0))
        m_penalty = moon_penalty(illum)
        after_moon = clamp(base - m_penalty, 0.0, 100.0)
        if m_penalty:
            trace.append(
                f"Moonlight ({illum * 100:.0f}% illuminated) reduces the score by {m_penalty:.1f} points."
            )
        else:
            trace.append(f"The moon is only {illum * 100:.0f}% illuminated, so moonlight is negligible.")
    elif inputs.moon is None:
        trace.append("Moon phase unknown, so no moonlight penalty is applied.")
    else:
        trace.append("Moonlight is not considered while it is daylight or darkness is unknown.")

    factor, note = darkness_factor(darkness)
    final = clamp(after_moon * factor, 0.0, 100.0)
    trace.append(f"{note} Darkness factor {factor:.2f}.")

    verdict = verdict_for_score(final)
    trace.append(f"Final visibility score is {final:.0f} / 100, verdict: {verdict.value.upper()}.")

    return ScoreBreakdown(
        geomagnetic_contribution=s_kp,
        position_contribution=s_pos,
        light_pollution_penalty=lp_penalty,
        cloud_penalty=c_penalty,
        time_of_night_adjustment=time_adj,
        moon_penalty=m_penalty,
        darkness_factor=factor,
        raw_score=raw,
        base_score=base,
        final_score=final,
        verdict=verdict,
        trace=tuple(trace),
    )
