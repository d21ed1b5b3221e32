import math

from auroracast.util.format import (
    format_coordinates,
    format_optional_hour,
    format_percent,
    hour_label,
)
from auroracast.util.numbers import as_float, clamp, is_finite_number


def test_hour_label_whole_hours():
    assert hour_label(0.0) == "00:00"
    assert hour_label(22.0) == "22:00"


def test_hour_label_minutes():
    assert hour_label(19.5) == "19:30"


def test_hour_label_wraps_past_midnight():
    assert hour_label(25.5) == "01:30"


def test_hour_label_wraps_negative():
    assert hour_label(-1.0) == "23:00"


def test_hour_label_rounding_carry():
    # 23:59:57 rounds to the next minute, which is midnight
    assert hour_label(23.999) == "00:00"


def test_format_optional_hour_missing():
    assert format_optional_hour(None) == "--:--"


def test_format_coordinates_hemispheres():
    assert format_coordinates(57.0, -6.33) == "57.000°N, 6.330°W"
    assert format_coordinates(-45.5, 170.0, precision=1) == "45.5°S, 170.0°E"


def test_format_percent():
    assert format_percent(0.42) == "42%"
    assert format_percent(None) == "n/a"


def test_is_finite_number():
    assert is_finite_number(3)
    assert is_finite_number("4.5")
    assert not is_finite_number(None)
    assert not is_finite_number(True)
    assert not is_finite_number(math.nan)
    assert not is_finite_number(math.inf)
    assert not is_finite_number("abc")


def test_as_float_default():
    assert as_float(None, 1.5) == 1.5
    assert as_float(math.nan, 0.0) == 0.0
    assert as_float("2", 0.0) == 2.0


def test_clamp():
    assert clamp(-0.5) == 0.0
    assert clamp(1.5) == 1.0
    assert clamp(150.0, 0.0, 100.0) == 100.0
