from __future__ import annotations

import math

import pytest

from qr_readiness.sizing import (
    evaluate_size,
    max_viewing_distance,
    recommended_pixel_size,
    recommended_print_width,
    sanitize_measurement,
)


def test_ten_to_one_rule():
    assert recommended_print_width(6) == pytest.approx(7.2)
    assert max_viewing_distance(3) == pytest.approx(2.5)


@pytest.mark.parametrize("distance", [0, 1, 2.5, 6, 10, 33.3, 120])
def test_width_and_distance_are_inverse(distance):
    assert max_viewing_distance(recommended_print_width(distance)) == pytest.approx(distance, abs=0.01)


@pytest.mark.parametrize("distance", [0, 6, 100])
def test_undeclared_width_is_always_ok(distance):
    assert evaluate_size(distance, 0).size_ok is True


def test_narrow_print_fails_size_check():
    result = evaluate_size(6, 0.72)

    assert result.recommended_width_in == pytest.approx(7.2)
    assert result.size_ok is False
    assert result.max_distance_ft == pytest.approx(0.6)


def test_wide_enough_print_passes():
    assert evaluate_size(6, 7.2).size_ok is True


def test_size_check_uses_unrounded_minimum():
    result = evaluate_size(1.004, 1.2)

    assert result.recommended_width_in == pytest.approx(1.2)
    assert result.size_ok is False
    assert evaluate_size(1.004, 1.21).size_ok is True


def test_recommended_pixel_size_has_floor():
    assert recommended_pixel_size(0) == 256
    assert recommended_pixel_size(0.5) == 256
    assert recommended_pixel_size(3) == 900


def test_negative_inputs_are_rejected():
    with pytest.raises(ValueError):
        evaluate_size(-1, 3)


def test_sanitize_measurement_clamps_and_rounds():
    assert sanitize_measurement("2.346") == pytest.approx(2.35)
    assert sanitize_measurement(-4) == 0.0


@pytest.mark.parametrize("value", ["abc", math.inf, math.nan, None])
def test_sanitize_measurement_rejects_non_numbers(value):
    with pytest.raises(ValueError):
        sanitize_measurement(value)
