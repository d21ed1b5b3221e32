import dataclasses
import datetime
import logging
from typing import Sequence

from auroracast.util.numbers import is_finite_number

from .astro import as_local, compute_moon, local_clock_hour
from .darkness import compute_darkness, darkness_from_twilight
from .geomag import approx_distance_to_oval_km, approx_geomagnetic_latitude, kp_activity_label
from .light_pollution import LightPollutionService, MODES, apply_mode, apply_place_context
from .projection import nearest_cloud_cover, project
from .scoring import score
from .types import (
    CloudSample,
    ForecastResult,
    GeoCoordinate,
    ScoreInputs,
    TwilightTimes,
)


class Forecaster:
    def __init__(self, config, light_pollution: LightPollutionService | None = None):
        self._config = config
        self._light_pollution = light_pollution or LightPollutionService(
            grid_source=config.light_pollution_grid_path
        )

    @property
    def light_pollution(self) -> LightPollutionService:
        return self._light_pollution

    def default_location(self) -> GeoCoordinate:
        return GeoCoordinate(
            latitude_deg=self._config.site_latitude_deg,
            longitude_deg=self._config.site_longitude_deg,
            name=self._config.site_name,
            provenance="default" if self._config.site_is_default else "config",
        )

    def forecast(
        self,
        instant: datetime.datetime | None = None,
        location: GeoCoordinate | None = None,
        kp: float | None = None,
        cloud_cover: float | None = None,
        cloud_samples: Sequence[CloudSample] = (),
        twilight: TwilightTimes | None = None,
        lp_mode: str | None = None,
        place_context: str | None = None,
        distance_to_oval_km: float | None = None,
    ) -> ForecastResult:
        instant = as_local(instant or datetime.datetime.now().astimezone())

        using_config_site = location is None
        location = location or self.default_location()
        if not is_finite_number(location.latitude_deg) or not is_finite_number(location.longitude_deg):
            raise ValueError("Observer location is required (lat/lon)")
        location = dataclasses.replace(
            location,
            latitude_deg=float(location.latitude_deg),
            longitude_deg=float(location.longitude_deg),
        )
        if not -90.0 <= location.latitude_deg <= 90.0:
            raise ValueError("Latitude must be between -90 and 90 degrees")
        location = location.normalized()

        kp = self._config.aurora_kp if kp is None else kp
        if not 0.0 <= kp <= 9.0:
            raise ValueError("Kp must be between 0 and 9")
        if cloud_cover is not None and not 0.0 <= cloud_cover <= 1.0:
            raise ValueError("Cloud cover must be a fraction between 0 and 1")

        mode = (lp_mode or self._config.light_pollution_mode).lower()
        if mode not in MODES:
            raise ValueError(f"Sky mode must be one of: {', '.join(MODES)}")
        if place_context is None and using_config_site:
            place_context = self._config.site_place_context

        geomag_lat = approx_geomagnetic_latitude(location.latitude_deg)
        if distance_to_oval_km is None:
            distance_to_oval_km = self._config.aurora_distance_to_oval_km
        if distance_to_oval_km is None:
            distance_to_oval_km = approx_distance_to_oval_km(geomag_lat)

        estimate = self._light_pollution.estimate(
            location.latitude_deg,
            location.longitude_deg,
            sky_brightness=self._config.site_sqm if using_config_site else None,
            bortle=self._config.site_bortle if using_config_site else None,
        )
        estimate = apply_mode(apply_place_context(estimate, place_context), mode)
        logging.debug("Light pollution %.2f (%s, %s)", estimate.normalized, estimate.source.value, mode)

        if twilight is not None:
            darkness = darkness_from_twilight(
                twilight, instant, location.latitude_deg, location.longitude_deg
            )
        else:
            darkness = compute_darkness(location.latitude_deg, location.longitude_deg, instant)
        notes = []
        if darkness is None:
            logging.warning("Darkness unavailable; scoring without daylight information.")
            notes.append("Darkness is unavailable here, so the score is not scaled for daylight.")

        moon = compute_moon(instant)
        current_cloud = cloud_cover
        if current_cloud is None and cloud_samples:
            current_cloud = nearest_cloud_cover(cloud_samples, instant)
            if current_cloud is None:
                notes.append("No cloud sample lies within 90 minutes of now, so the current score has no cloud penalty.")

        base_inputs = ScoreInputs(
            kp=kp,
            distance_to_oval_km=distance_to_oval_km,
            light_pollution=estimate.normalized,
            cloud_cover_fraction=current_cloud,
        )
        breakdown = score(
            dataclasses.replace(
                base_inputs,
                local_hour=local_clock_hour(instant),
                moon=moon,
                darkness=darkness,
            )
        )
        timeline = project(
            location,
            base_inputs,
            darkness,
            moon,
            now=instant,
            cloud_samples=cloud_samples,
            max_hours=self._config.timeline_max_hours,
        )
        logging.info(
            "Aurora score %.0f (%s) at %s",
            breakdown.final_score,
            breakdown.verdict.value,
            instant.isoformat(timespec="minutes"),
        )
        return ForecastResult(
            instant=instant,
            location=location,
            kp=kp,
            kp_activity=kp_activity_label(kp),
            geomagnetic_latitude_deg=geomag_lat,
            distance_to_oval_km=distance_to_oval_km,
            light_pollution=estimate,
            darkness=darkness,
            moon=moon,
            breakdown=breakdown,
            timeline=timeline,
            cloud_cover_fraction=current_cloud,
            message=" ".join(notes) or None,
        )

