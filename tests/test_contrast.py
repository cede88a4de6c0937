from __future__ import annotations

import itertools

import pytest

from qr_readiness.contrast import (
    contrast_ratio,
    evaluate_contrast,
    parse_hex,
    relative_luminance,
    scannability_level,
)
from qr_readiness.errors import InvalidColorFormat

SAMPLE_COLORS = ["#000000", "#FFFFFF", "#6366f1", "#0f172a", "#34d399", "#facc15", "#777777"]


def test_parse_hex_expands_short_codes():
    assert parse_hex("#0af") == parse_hex("#00aaff") == (0, 170, 255)


def test_parse_hex_accepts_missing_hash_and_mixed_case():
    assert parse_hex("FfFfFf") == (255, 255, 255)


@pytest.mark.parametrize("value", ["transparent", "#12345", "#ggg", "", "#1234567", None])
def test_parse_hex_rejects_malformed_colors(value):
    with pytest.raises(InvalidColorFormat):
        parse_hex(value)


def test_luminance_bounds():
    assert relative_luminance("#000000") == 0
    assert relative_luminance("#ffffff") == pytest.approx(1.0)


def test_black_on_white_reaches_maximum_ratio():
    result = evaluate_contrast("#000000", "#FFFFFF")

    assert result.contrast_ratio == pytest.approx(21.0)
    assert result.relative_diff_percent == pytest.approx(100.0)
    assert result.is_inverted is False
    assert result.level == "Excellent"


def test_white_on_black_is_inverted_with_same_ratio():
    result = evaluate_contrast("#FFFFFF", "#000000")

    assert result.is_inverted is True
    assert result.contrast_ratio == pytest.approx(21.0)


@pytest.mark.parametrize("first,second", itertools.combinations(SAMPLE_COLORS, 2))
def test_contrast_ratio_is_symmetric(first, second):
    forward = evaluate_contrast(first, second)
    backward = evaluate_contrast(second, first)

    assert forward.contrast_ratio == backward.contrast_ratio
    assert forward.is_inverted == (relative_luminance(first) > relative_luminance(second))


@pytest.mark.parametrize("color", SAMPLE_COLORS)
def test_identical_colors_have_unit_ratio(color):
    result = evaluate_contrast(color, color)

    assert result.contrast_ratio == 1.0
    assert result.relative_diff_percent == 0
    assert result.is_inverted is False


def test_two_black_colors_do_not_divide_by_zero():
    assert evaluate_contrast("#000", "#000").relative_diff_percent == 0


def test_contrast_ratio_orders_luminances():
    assert contrast_ratio(0.2, 0.8) == contrast_ratio(0.8, 0.2) == pytest.approx(0.85 / 0.25)


@pytest.mark.parametrize(
    "ratio,level",
    [(21, "Excellent"), (7, "Good"), (5, "Good"), (4.5, "Fair"), (3.5, "Fair"), (3, "Poor"), (1, "Poor")],
)
def test_scannability_level(ratio, level):
    assert scannability_level(ratio) == level
