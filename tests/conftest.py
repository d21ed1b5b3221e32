import pytest

from auroracast.forecast.types import DarknessInfo


def pytest_addoption(parser):
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run tests marked as integration",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--integration"):
        return

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(
                pytest.mark.skip(
                    reason="need --integration option to run integration tests"
                )
            )


@pytest.fixture
def empty_config_path(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("")
    return path


@pytest.fixture
def make_darkness():
    """Factory for a mid-latitude night: day 06-18, astronomical night 20-04."""

    def _make(**overrides) -> DarknessInfo:
        values = dict(
            sunrise_hour=6.0,
            sunset_hour=18.0,
            astro_dawn_hour=4.0,
            astro_dusk_hour=20.0,
            has_day=True,
            always_daylight=False,
            always_night=False,
            has_astronomical_night=True,
            never_fully_dark=False,
            always_fully_dark=False,
            is_daylight_now=False,
            is_fully_dark_now=True,
        )
        values.update(overrides)
        return DarknessInfo(**values)

    return _make
