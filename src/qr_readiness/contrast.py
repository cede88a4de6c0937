"""Perceptual color contrast helpers based on WCAG relative luminance."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidColorFormat

LUMINANCE_WEIGHTS = (0.2126, 0.7152, 0.0722)
"""Rec. 709 channel weights used for every luminance computation."""

DEFAULT_EPSILON = 0.0001

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex(color: str) -> Tuple[int, int, int]:
    """Return the ``(r, g, b)`` channels of a 3- or 6-digit hex color.

    The leading ``#`` is optional and short codes are expanded by doubling
    each digit, so ``#0af`` is read as ``#00aaff``.
    """

    if not isinstance(color, str):
        raise InvalidColorFormat(color)
    match = _HEX_PATTERN.match(color.strip())
    if not match:
        raise InvalidColorFormat(color)

    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(digit * 2 for digit in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def channel_to_linear(channel: int) -> float:
    srgb = channel / 255
    if srgb <= 0.03928:
        return srgb / 12.92
    return ((srgb + 0.055) / 1.055) ** 2.4


def relative_luminance(color: str) -> float:
    """Return the relative luminance of ``color`` in ``[0, 1]``."""

    red, green, blue = (channel_to_linear(value) for value in parse_hex(color))
    weight_r, weight_g, weight_b = LUMINANCE_WEIGHTS
    return weight_r * red + weight_g * green + weight_b * blue


def contrast_ratio(first: float, second: float) -> float:
    """Return the WCAG contrast ratio between two luminances (1 to 21)."""

    light, dark = (first, second) if first > second else (second, first)
    return (light + 0.05) / (dark + 0.05)


def relative_difference(first: float, second: float, epsilon: float = DEFAULT_EPSILON) -> float:
    return abs(first - second) / max(first, second, epsilon)


def scannability_level(ratio: float) -> str:
    """Grade a contrast ratio the way the design preview labels it."""

    if ratio > 7:
        return "Excellent"
    if ratio > 4.5:
        return "Good"
    if ratio > 3:
        return "Fair"
    return "Poor"


@dataclass(frozen=True, slots=True)
class ContrastResult:
    """Luminance comparison between a foreground and a background color."""

    fg_luminance: float
    bg_luminance: float
    contrast_ratio: float
    relative_diff_percent: float
    is_inverted: bool

    @property
    def level(self) -> str:
        return scannability_level(self.contrast_ratio)


def evaluate_contrast(foreground: str, background: str, epsilon: float = DEFAULT_EPSILON) -> ContrastResult:
    """Compare two concrete hex colors.

    ``background`` must already be resolved; the ``transparent`` sentinel is
    rejected with :class:`InvalidColorFormat` like any other non-hex value.
    ``is_inverted`` flags light modules on a dark background.
    """

    fg_luminance = relative_luminance(foreground)
    bg_luminance = relative_luminance(background)
    return ContrastResult(
        fg_luminance=fg_luminance,
        bg_luminance=bg_luminance,
        contrast_ratio=contrast_ratio(fg_luminance, bg_luminance),
        relative_diff_percent=relative_difference(fg_luminance, bg_luminance, epsilon) * 100,
        is_inverted=fg_luminance > bg_luminance,
    )


__all__ = [
    "LUMINANCE_WEIGHTS",
    "ContrastResult",
    "parse_hex",
    "channel_to_linear",
    "relative_luminance",
    "contrast_ratio",
    "relative_difference",
    "scannability_level",
    "evaluate_contrast",
]
