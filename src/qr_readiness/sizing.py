"""Physical sizing heuristics for printed QR codes."""
from __future__ import annotations

import math
from dataclasses import dataclass

INCHES_PER_FOOT = 12
DISTANCE_TO_WIDTH_RATIO = 10.0
EXPORT_DPI = 300
MIN_EXPORT_PX = 256


def _round2(value: float) -> float:
    return round(value, 2)


def recommended_print_width(distance_ft: float, ratio: float = DISTANCE_TO_WIDTH_RATIO) -> float:
    """Return the minimum print width in inches for a scan distance in feet."""

    return _round2(distance_ft * INCHES_PER_FOOT / ratio)


def max_viewing_distance(width_in: float, ratio: float = DISTANCE_TO_WIDTH_RATIO) -> float:
    """Return the furthest comfortable scan distance in feet for a print width."""

    return _round2(width_in / INCHES_PER_FOOT * ratio)


def recommended_pixel_size(width_in: float, dpi: int = EXPORT_DPI, minimum: int = MIN_EXPORT_PX) -> int:
    return max(minimum, round(width_in * dpi))


def sanitize_measurement(value: float | str) -> float:
    """Normalise a user supplied distance or width.

    Non-numeric and non-finite entries raise :class:`ValueError`; negative
    values are clamped to zero and the result is rounded to two decimals.
    """

    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Not a number: {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    return max(0.0, _round2(number))


@dataclass(frozen=True, slots=True)
class SizeResult:
    """Outcome of the 10:1 distance-to-width rule."""

    recommended_width_in: float
    max_distance_ft: float
    recommended_pixel_size: int
    size_ok: bool


def evaluate_size(
    distance_ft: float,
    print_width_in: float,
    *,
    ratio: float = DISTANCE_TO_WIDTH_RATIO,
    dpi: int = EXPORT_DPI,
    min_pixels: int = MIN_EXPORT_PX,
) -> SizeResult:
    """Apply the 10:1 rule to a viewing distance and a declared print width.

    A print width of ``0`` means no physical size has been declared yet and is
    always reported as acceptable.
    """

    if distance_ft < 0 or print_width_in < 0:
        raise ValueError("Distance and print width must not be negative")

    minimum_width = distance_ft * INCHES_PER_FOOT / ratio
    return SizeResult(
        recommended_width_in=_round2(minimum_width),
        max_distance_ft=max_viewing_distance(print_width_in, ratio),
        recommended_pixel_size=recommended_pixel_size(print_width_in, dpi, min_pixels),
        size_ok=print_width_in == 0 or print_width_in >= minimum_width,
    )


__all__ = [
    "INCHES_PER_FOOT",
    "DISTANCE_TO_WIDTH_RATIO",
    "SizeResult",
    "recommended_print_width",
    "max_viewing_distance",
    "recommended_pixel_size",
    "sanitize_measurement",
    "evaluate_size",
]
