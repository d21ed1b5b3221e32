import json

import pytest

from auroracast import __version__
from auroracast.cli.main import main

TROMSO_TONIGHT = [
    "tonight",
    "--lat",
    "69.65",
    "--lon",
    "18.96",
    "--kp",
    "6",
    "--at",
    "2024-10-15T22:00:00+00:00",
]


def _json_output(capsys):
    return json.loads(capsys.readouterr().out)


def test_version(capsys):
    assert main(["--version"]) == 0
    assert __version__ in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_tonight_json(capsys, empty_config_path):
    code = main(TROMSO_TONIGHT + ["--json", "--config", str(empty_config_path)])
    assert code == 0
    payload = _json_output(capsys)
    assert payload["ok"] is True
    assert payload["command"] == "tonight"
    data = payload["data"]
    assert data["kp_activity"] == "High"
    assert data["breakdown"]["verdict"] in ("yes", "maybe", "no")
    assert 0.0 <= data["breakdown"]["final_score"] <= 100.0
    assert data["light_pollution"]["source"] == "fallback"
    assert data["timeline"]


def test_tonight_text_verbose(capsys, empty_config_path):
    code = main(TROMSO_TONIGHT + ["--verbose", "--cloud", "20", "--config", str(empty_config_path)])
    assert code == 0
    out = capsys.readouterr().out
    assert "69.650°N, 18.960°E" in out
    assert "How the score was built" in out
    assert "Cloud cover: 20%" in out
    assert "Tonight, hour by hour" in out


def test_tonight_with_feeds(capsys, tmp_path, empty_config_path):
    clouds = tmp_path / "clouds.json"
    clouds.write_text(json.dumps([{"time": "2024-10-15T22:00:00Z", "cloud_cover": 90}]))
    twilight = tmp_path / "twilight.json"
    twilight.write_text(
        json.dumps(
            {
                "results": {
                    "sunrise": "2024-10-15T06:00:00+00:00",
                    "sunset": "2024-10-15T15:20:00+00:00",
                    "astronomical_twilight_begin": "2024-10-15T03:10:00+00:00",
                    "astronomical_twilight_end": "2024-10-15T18:20:00+00:00",
                }
            }
        )
    )
    code = main(
        TROMSO_TONIGHT
        + ["--json", "--config", str(empty_config_path), "--clouds", str(clouds), "--twilight", str(twilight)]
    )
    assert code == 0
    data = _json_output(capsys)["data"]
    assert data["darkness"]["source"] == "live_api"
    assert data["cloud_cover_fraction"] == pytest.approx(0.9)


def test_tonight_rejects_bad_kp(capsys, empty_config_path):
    argv = ["tonight", "--lat", "69.65", "--lon", "18.96", "--kp", "12", "--json", "--config", str(empty_config_path)]
    assert main(argv) == 2
    payload = _json_output(capsys)
    assert payload["ok"] is False
    assert payload["error"]["code"] == "invalid_input"


def test_tonight_requires_both_coordinates(capsys, empty_config_path):
    assert main(["tonight", "--lat", "69.65", "--config", str(empty_config_path)]) == 2
    assert "latitude and longitude" in capsys.readouterr().err


def test_tonight_missing_feed_file(capsys, tmp_path, empty_config_path):
    argv = TROMSO_TONIGHT + ["--config", str(empty_config_path), "--clouds", str(tmp_path / "none.json")]
    assert main(argv) == 2
    assert "not found" in capsys.readouterr().err


def test_darkness_json(capsys, empty_config_path):
    argv = ["darkness", "--lat", "78", "--lon", "0", "--at", "2024-12-21T00:00:00Z", "--json", "--config", str(empty_config_path)]
    assert main(argv) == 0
    darkness = _json_output(capsys)["data"]["darkness"]
    assert darkness["always_night"] is True
    assert darkness["is_fully_dark_now"] is True
    assert darkness["source"] == "model"


def test_darkness_text_uses_config_site(capsys, empty_config_path):
    assert main(["darkness", "--at", "2024-10-15T22:00:00+00:00", "--config", str(empty_config_path)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Darkness at 2024-10-15 22:00")
    assert "dark now" in out


def test_moon_json(capsys):
    assert main(["moon", "--at", "2000-01-06T18:14:00Z", "--json"]) == 0
    moon = _json_output(capsys)["data"]["moon"]
    assert moon["phase_fraction"] == pytest.approx(0.0, abs=1e-6)
    assert moon["phase_name"] == "new_moon"


def test_moon_rejects_bad_time(capsys):
    assert main(["moon", "--at", "not-a-time"]) == 2


def test_sky_json(capsys, empty_config_path):
    assert main(["sky", "--lat", "70", "--lon", "25", "--json", "--config", str(empty_config_path)]) == 0
    estimate = _json_output(capsys)["data"]["light_pollution"]
    assert estimate["normalized"] == pytest.approx(0.22)
    assert estimate["classification"] == "dark"


def test_sky_with_reading(capsys, empty_config_path):
    argv = ["sky", "--lat", "70", "--lon", "25", "--sqm", "18.5", "--config", str(empty_config_path)]
    assert main(argv) == 0
    out = capsys.readouterr().out
    assert "Urban / bright skies" in out
    assert "18.50 mag/arcsec²" in out


def test_doctor_ready(capsys, empty_config_path):
    assert main(["doctor", "--config", str(empty_config_path)]) == 0
    assert "System ready." in capsys.readouterr().out


def test_doctor_reports_missing_grid(capsys, tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text(f'[light_pollution]\ngrid_path = "{tmp_path / "grid.json"}"\n')
    assert main(["doctor", "--json", "--config", str(config_path)]) == 1
    payload = _json_output(capsys)
    assert payload["ok"] is False
    assert payload["data"]["checks"]["light_pollution_grid"]["ok"] is False
    assert payload["data"]["checks"]["config"]["ok"] is True


def test_doctor_reports_grid_shape(capsys, tmp_path):
    grid_path = tmp_path / "grid.json"
    grid_path.write_text(
        json.dumps({"lat_min": 50, "lon_min": -10, "resolution_deg": 0.5, "rows": 1, "cols": 2, "values": [21.0, 20.5]})
    )
    config_path = tmp_path / "config.toml"
    config_path.write_text(f'[light_pollution]\ngrid_path = "{grid_path}"\n')
    assert main(["doctor", "--config", str(config_path)]) == 0
    assert "1 x 2 cells" in capsys.readouterr().out


def test_doctor_reports_bad_config(capsys, tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text("[timeline]\nmax_hours = -3\n")
    assert main(["doctor", "--config", str(config_path)]) == 1
    assert "invalid config" in capsys.readouterr().out


def test_tonight_bare_json(capsys, empty_config_path):
    code = main(TROMSO_TONIGHT + ["--format", "json", "--config", str(empty_config_path)])
    assert code == 0
    data = _json_output(capsys)
    assert "ok" not in data
    assert data["kp_activity"] == "High"
    assert data["location"]["latitude_deg"] == pytest.approx(69.65)


def test_tonight_reports_bad_config(capsys, tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text('[aurora]\nkp = "lots"\n')
    argv = ["tonight", "--lat", "69.65", "--lon", "18.96", "--config", str(config_path)]
    assert main(argv) == 2
    assert "aurora.kp" in capsys.readouterr().err
