import http.server
import json
import logging
import threading
import time
from unittest import mock

import pytest

from auroracast.errors import GridFormatError
from auroracast.forecast import light_pollution
from auroracast.forecast.light_pollution import (
    LightPollutionGrid,
    LightPollutionService,
    apply_mode,
    apply_place_context,
    classify,
    heuristic_light_pollution,
    normalize_bortle,
    normalize_sky_brightness,
)
from auroracast.forecast.types import LightPollutionEstimate, LightPollutionSource, SkyClass

GRID_PAYLOAD = {
    "lat_min": 50.0,
    "lon_min": -10.0,
    "resolution_deg": 1.0,
    "rows": 2,
    "cols": 3,
    "values": [21.5, 20.0, None, 18.0, 19.0, 21.0],
}


def _write_grid(tmp_path, payload=GRID_PAYLOAD):
    path = tmp_path / "grid.json"
    path.write_text(json.dumps(payload))
    return path


def test_normalize_sky_brightness():
    assert normalize_sky_brightness(18.0) == 1.0
    assert normalize_sky_brightness(17.0) == 1.0
    assert normalize_sky_brightness(21.5) == 0.0
    assert normalize_sky_brightness(22.0) == 0.0
    assert normalize_sky_brightness(19.75) == pytest.approx(0.5)


def test_normalize_bortle():
    assert normalize_bortle(1) == 0.0
    assert normalize_bortle(5) == 0.5
    assert normalize_bortle(9) == 1.0


def test_classify_boundaries():
    assert classify(0.32) is SkyClass.DARK
    assert classify(0.33) is SkyClass.SUBURBAN
    assert classify(0.65) is SkyClass.SUBURBAN
    assert classify(0.66) is SkyClass.URBAN


def test_heuristic_light_pollution():
    assert heuristic_light_pollution(70.0, 25.0) == pytest.approx(0.22)
    assert heuristic_light_pollution(70.0, 10.0) == pytest.approx(0.17)
    assert heuristic_light_pollution(55.0, 60.0) == pytest.approx(0.42)
    assert heuristic_light_pollution(30.0, 100.0) == pytest.approx(0.72)
    assert heuristic_light_pollution(-45.0, 170.0) == pytest.approx(0.53)
    assert heuristic_light_pollution(float("nan"), 0.0) == 0.5


def test_grid_sample():
    grid = LightPollutionGrid.from_dict(GRID_PAYLOAD)
    assert (grid.rows, grid.cols) == (2, 3)
    assert grid.sample(50.5, -9.5) == 21.5
    assert grid.sample(51.2, -7.5) == 21.0
    # Null cells and points off the grid have no sample.
    assert grid.sample(50.5, -7.5) is None
    assert grid.sample(49.0, -9.5) is None
    assert grid.sample(50.5, -6.5) is None


def test_grid_sample_wraps_longitude():
    grid = LightPollutionGrid.from_dict(GRID_PAYLOAD)
    assert grid.sample(50.5, 350.5) == 21.5


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"lat_min": 0, "lon_min": 0, "resolution_deg": 1, "rows": 1, "cols": 1},
        dict(GRID_PAYLOAD, rows=3),
        dict(GRID_PAYLOAD, resolution_deg=0),
        dict(GRID_PAYLOAD, values=["a", 1, 2, 3, 4, 5]),
        {k: v for k, v in GRID_PAYLOAD.items() if k != "lat_min"},
    ],
)
def test_grid_from_dict_rejects_malformed_payloads(payload):
    with pytest.raises(GridFormatError):
        LightPollutionGrid.from_dict(payload)


def test_service_with_injected_grid():
    service = LightPollutionService(grid=LightPollutionGrid.from_dict(GRID_PAYLOAD))
    inside = service.estimate(50.5, -9.5)
    assert inside.source is LightPollutionSource.GRID
    assert inside.normalized == 0.0
    assert inside.classification is SkyClass.DARK
    assert inside.sky_brightness_mag_arcsec2 == 21.5

    outside = service.estimate(70.0, 25.0)
    assert outside.source is LightPollutionSource.FALLBACK
    assert outside.normalized == pytest.approx(0.22)


def test_service_loads_grid_from_file(tmp_path):
    service = LightPollutionService(grid_source=_write_grid(tmp_path))
    assert not service.load_attempted
    estimate = service.estimate(51.5, -8.5)
    assert service.load_attempted
    assert estimate.source is LightPollutionSource.GRID
    assert estimate.normalized == pytest.approx(1.0 - 1.0 / 3.5)


def test_service_without_grid_source_uses_heuristic():
    service = LightPollutionService()
    assert service.load() is None
    assert service.estimate(70.0, 25.0).source is LightPollutionSource.FALLBACK


def test_missing_grid_file_falls_back(tmp_path, caplog):
    service = LightPollutionService(grid_source=tmp_path / "missing.json")
    with caplog.at_level(logging.WARNING):
        estimate = service.estimate(50.5, -9.5)
    assert estimate.source is LightPollutionSource.FALLBACK
    assert service.grid is None
    assert service.load_attempted
    assert "not found" in caplog.text


def test_malformed_grid_file_falls_back(tmp_path, caplog):
    path = tmp_path / "grid.json"
    path.write_text('{"rows": 2, "cols": 2}')
    service = LightPollutionService(grid_source=path)
    with caplog.at_level(logging.WARNING):
        estimate = service.estimate(50.5, -9.5)
    assert estimate.source is LightPollutionSource.FALLBACK
    assert "Failed to load" in caplog.text


def test_grid_file_that_is_not_json_falls_back(tmp_path):
    path = tmp_path / "grid.json"
    path.write_text("not json")
    service = LightPollutionService(grid_source=path)
    assert service.estimate(50.5, -9.5).source is LightPollutionSource.FALLBACK


def test_grid_file_that_is_not_utf8_falls_back(tmp_path, caplog):
    path = tmp_path / "grid.json"
    path.write_bytes(b'{"values": [\xff\xfe]}')
    service = LightPollutionService(grid_source=path)
    with caplog.at_level(logging.WARNING):
        estimate = service.estimate(60.0, 10.0)
    assert estimate.source is LightPollutionSource.FALLBACK
    assert service.load_attempted
    assert "Failed to load" in caplog.text


def test_estimate_accepts_numeric_strings():
    estimate = LightPollutionService().estimate("60", "10")
    assert estimate.source is LightPollutionSource.FALLBACK
    assert estimate.normalized == pytest.approx(0.27)
    assert heuristic_light_pollution("70", "25") == pytest.approx(0.22)

    grid = LightPollutionGrid.from_dict(GRID_PAYLOAD)
    assert grid.sample("50.5", "-9.5") == 21.5


def test_grid_loads_once():
    with mock.patch.object(light_pollution, "_read_grid_payload", return_value=GRID_PAYLOAD) as read:
        service = LightPollutionService(grid_source="grid.json")
        service.estimate(50.5, -9.5)
        service.estimate(51.5, -8.5)
        service.load()
    assert read.call_count == 1


def test_failed_load_is_not_retried():
    with mock.patch.object(light_pollution, "_read_grid_payload", side_effect=FileNotFoundError("gone")) as read:
        service = LightPollutionService(grid_source="grid.json")
        service.estimate(50.5, -9.5)
        service.estimate(50.5, -9.5)
    assert read.call_count == 1


def test_concurrent_callers_share_one_load():
    def slow_read(_source):
        time.sleep(0.05)
        return GRID_PAYLOAD

    with mock.patch.object(light_pollution, "_read_grid_payload", side_effect=slow_read) as read:
        service = LightPollutionService(grid_source="grid.json")
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(service.estimate(50.5, -9.5)))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    assert read.call_count == 1
    assert len(results) == 8
    assert all(r.source is LightPollutionSource.GRID for r in results)


def test_sky_reading_wins_over_grid():
    service = LightPollutionService(grid=LightPollutionGrid.from_dict(GRID_PAYLOAD))
    estimate = service.estimate(50.5, -9.5, sky_brightness=18.0)
    assert estimate.source is LightPollutionSource.READING
    assert estimate.normalized == 1.0
    assert estimate.classification is SkyClass.URBAN


def test_bortle_reading():
    estimate = LightPollutionService().estimate(70.0, 25.0, bortle=5)
    assert estimate.source is LightPollutionSource.READING
    assert estimate.normalized == 0.5


def _estimate(normalized):
    return LightPollutionEstimate(
        source=LightPollutionSource.FALLBACK,
        normalized=normalized,
        classification=classify(normalized),
    )


def test_place_context():
    assert apply_place_context(_estimate(0.3), "large-settlement").normalized == 0.8
    assert apply_place_context(_estimate(0.3), "large-settlement").classification is SkyClass.URBAN
    assert apply_place_context(_estimate(0.3), "settlement").normalized == 0.6
    assert apply_place_context(_estimate(0.9), "settlement").normalized == 0.9
    assert apply_place_context(_estimate(0.7), "dark-nature").normalized == 0.25
    assert apply_place_context(_estimate(0.7), "dark-nature").classification is SkyClass.DARK
    assert apply_place_context(_estimate(0.7), "harbour").normalized == 0.7
    assert apply_place_context(_estimate(0.7), None).normalized == 0.7


def test_apply_mode():
    assert apply_mode(_estimate(0.4), "auto").normalized == 0.4
    assert apply_mode(_estimate(0.4), None).normalized == 0.4
    dark = apply_mode(_estimate(0.4), "dark")
    assert dark.normalized == 0.2
    assert dark.source is LightPollutionSource.MANUAL
    urban = apply_mode(_estimate(0.4), "URBAN")
    assert urban.normalized == 0.85
    assert urban.classification is SkyClass.URBAN
    with pytest.raises(ValueError):
        apply_mode(_estimate(0.4), "bright")


@pytest.mark.integration
def test_grid_loads_from_url():
    body = json.dumps(GRID_PAYLOAD).encode("utf-8")

    class Handler(http.server.BaseHTTPRequestHandler):
        def do_GET(self):
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, *args):
            pass

    server = http.server.HTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        url = f"http://127.0.0.1:{server.server_address[1]}/grid.json"
        service = LightPollutionService(grid_source=url)
        assert service.estimate(50.5, -9.5).source is LightPollutionSource.GRID
    finally:
        server.shutdown()
        server.server_close()
