"""Scan readiness assessment for a styled QR code."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .config import TRANSPARENT, AppConfig, StyleConfig
from .contrast import ContrastResult, evaluate_contrast
from .errors import InvalidColorFormat
from .sizing import evaluate_size


class WarningId(str, Enum):
    CONTRAST = "contrast"
    INVERTED = "inverted"
    SIZE = "size"
    TRANSPARENT_BG = "transparent-bg"


@dataclass(frozen=True, slots=True)
class ReadinessWarning:
    id: WarningId
    message: str


@dataclass(frozen=True, slots=True)
class ReadinessMetrics:
    """Derived snapshot of how scannable the current design is.

    ``contrast_percent``, ``contrast_ratio`` and the ``scannability`` grade
    are ``None`` when one of the colors could not be parsed.
    """

    resolved_bg: str
    contrast_percent: Optional[int]
    contrast_ratio: Optional[float]
    meets_contrast: bool
    is_inverted: bool
    size_ok: bool
    recommended_print_width_in: float
    max_distance_ft: float
    recommended_pixel_size: int
    scannability: Optional[str] = None

    @property
    def contrast_available(self) -> bool:
        return self.contrast_ratio is not None


@dataclass(frozen=True, slots=True)
class ReadinessResult:
    metrics: ReadinessMetrics
    warnings: tuple[ReadinessWarning, ...]

    @property
    def is_ready(self) -> bool:
        return not self.warnings

    def warning_ids(self) -> List[str]:
        return [warning.id.value for warning in self.warnings]


def resolve_background(bg_color: str, config: AppConfig) -> str:
    """Replace the ``transparent`` sentinel with the dark substrate color."""

    if bg_color.strip().lower() == TRANSPARENT:
        return config.transparent_substrate
    return bg_color


def _format_number(value: float) -> str:
    return f"{value:g}"


def assess(
    style: StyleConfig,
    distance_ft: float,
    print_width_in: float,
    config: AppConfig | None = None,
) -> ReadinessResult:
    """Evaluate contrast, inversion and sizing for ``style``.

    Warnings are emitted in a fixed order: contrast, inverted, size,
    transparent-bg.  The function is pure and cheap enough to run on every
    edit.
    """

    config = config or AppConfig()
    resolved_bg = resolve_background(style.bg_color, config)

    contrast: ContrastResult | None
    try:
        contrast = evaluate_contrast(style.fg_color, resolved_bg, config.luminance_epsilon)
    except InvalidColorFormat:
        contrast = None

    size = evaluate_size(
        distance_ft,
        print_width_in,
        ratio=config.distance_to_width_ratio,
        dpi=config.export_dpi,
        min_pixels=config.min_export_px,
    )

    if contrast is None:
        contrast_percent = None
        ratio = None
        meets_contrast = False
        is_inverted = False
    else:
        contrast_percent = round(contrast.relative_diff_percent)
        ratio = round(contrast.contrast_ratio, 2)
        meets_contrast = contrast.relative_diff_percent >= config.contrast_threshold * 100
        is_inverted = contrast.is_inverted

    threshold_percent = round(config.contrast_threshold * 100)
    warnings: List[ReadinessWarning] = []

    if contrast is None:
        warnings.append(
            ReadinessWarning(
                WarningId.CONTRAST,
                "Colors could not be read; use 3- or 6-digit hex codes to check contrast.",
            )
        )
    elif not meets_contrast:
        warnings.append(
            ReadinessWarning(
                WarningId.CONTRAST,
                f"Contrast is {contrast_percent}%; increase the difference to at least {threshold_percent}%.",
            )
        )

    if is_inverted:
        warnings.append(
            ReadinessWarning(
                WarningId.INVERTED,
                "Light foreground on dark background detected. Most scanners prefer dark "
                "modules on a light background.",
            )
        )

    if not size.size_ok and print_width_in > 0:
        warnings.append(
            ReadinessWarning(
                WarningId.SIZE,
                f"At {_format_number(distance_ft)}ft, print at least "
                f"{_format_number(size.recommended_width_in)}\" wide to follow the 10:1 rule.",
            )
        )

    if style.has_transparent_background:
        warnings.append(
            ReadinessWarning(
                WarningId.TRANSPARENT_BG,
                "Transparent backgrounds inherit real-world colors; double-check contrast on "
                "the final surface.",
            )
        )

    metrics = ReadinessMetrics(
        resolved_bg=resolved_bg,
        contrast_percent=contrast_percent,
        contrast_ratio=ratio,
        meets_contrast=meets_contrast,
        is_inverted=is_inverted,
        size_ok=size.size_ok,
        recommended_print_width_in=size.recommended_width_in,
        max_distance_ft=size.max_distance_ft,
        recommended_pixel_size=size.recommended_pixel_size,
        scannability=contrast.level if contrast is not None else None,
    )
    return ReadinessResult(metrics=metrics, warnings=tuple(warnings))


def recommended_error_correction(style: StyleConfig) -> str:
    """A logo hides modules, so it needs the highest recovery level."""

    return "H" if style.has_logo else "M"


def effective_error_correction(style: StyleConfig) -> str:
    if style.auto_error_correction:
        return recommended_error_correction(style)
    return style.error_correction


def error_correction_hint(style: StyleConfig) -> Optional[str]:
    """Return advice when a manually chosen level is too low for a logo."""

    if style.has_logo and not style.auto_error_correction and style.error_correction in ("L", "M"):
        return (
            f"Error correction {style.error_correction} may not survive the embedded logo; "
            "choose Q or H, or enable auto optimisation."
        )
    return None


__all__ = [
    "WarningId",
    "ReadinessWarning",
    "ReadinessMetrics",
    "ReadinessResult",
    "resolve_background",
    "assess",
    "recommended_error_correction",
    "effective_error_correction",
    "error_correction_hint",
]
