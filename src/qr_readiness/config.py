"""Configuration data structures for the QR scan readiness tool."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

TRANSPARENT = "transparent"
"""Sentinel background value meaning "no background is painted"."""

ERROR_CORRECTION_LEVELS = ("L", "M", "Q", "H")
DOT_TYPES = ("square", "dots", "rounded", "extra-rounded", "classy", "classy-rounded")
CORNER_SQUARE_TYPES = ("square", "dot", "extra-rounded")
CORNER_DOT_TYPES = ("square", "dot")


@dataclass(slots=True)
class AppConfig:
    """Static configuration options used across the application."""

    app_name: str = "QRScanReadiness"
    app_version: str = "1.0"
    contrast_threshold: float = 0.40
    transparent_substrate: str = "#0f172a"
    luminance_epsilon: float = 0.0001
    distance_to_width_ratio: float = 10.0
    export_dpi: int = 300
    min_export_px: int = 256
    max_frame_size: int = 1_920
    default_scan_distance_ft: float = 6.0
    default_print_width_in: float = 3.0
    preview_size: int = 256
    logo_size_ratio: float = 0.4
    export_name: str = "qr-code"


@dataclass(slots=True)
class CameraConfig:
    """Runtime camera configuration used by the verification view."""

    width: int = 640
    height: int = 480
    facing: str = "environment"

    def get_backends(self) -> List[int]:
        """Return a list of OpenCV backend identifiers to try.

        OpenCV is imported lazily so that the readiness math can be used and
        tested in environments without a camera stack installed.
        """

        try:  # pragma: no cover - imported for type side effect only
            import cv2  # type: ignore
        except Exception:  # pragma: no cover - we simply fall back to an empty list
            return []

        backends = []
        for name in ("CAP_DSHOW", "CAP_MSMF", "CAP_AVFOUNDATION", "CAP_V4L2", "CAP_ANY"):
            value = getattr(cv2, name, None)
            if value is not None and value not in backends:
                backends.append(value)
        return backends

    def get_indices(self) -> List[int]:
        """Return candidate camera indices.

        Desktop drivers give no facing information, so an environment-facing
        request prefers the secondary device (usually the external or rear
        camera) before falling back to the built-in one.
        """

        if self.facing == "environment":
            return [1, 0, 2]
        return [0, 1, 2]


@dataclass(slots=True)
class StyleConfig:
    """Visual design of a QR symbol as edited by the user."""

    data: str = "https://example.com"
    fg_color: str = "#6366f1"
    bg_color: str = "#ffffff"
    error_correction: str = "M"
    logo_path: Optional[str] = None
    dot_type: str = "square"
    corner_square_type: str = "square"
    corner_dot_type: str = "square"
    auto_error_correction: bool = True

    def __post_init__(self) -> None:
        self.error_correction = self.error_correction.upper()
        if self.error_correction not in ERROR_CORRECTION_LEVELS:
            raise ValueError(f"Unsupported error correction level: {self.error_correction}")
        for value, allowed, label in (
            (self.dot_type, DOT_TYPES, "dot type"),
            (self.corner_square_type, CORNER_SQUARE_TYPES, "corner square type"),
            (self.corner_dot_type, CORNER_DOT_TYPES, "corner dot type"),
        ):
            if value not in allowed:
                raise ValueError(f"Unsupported {label}: {value}")

    @property
    def has_transparent_background(self) -> bool:
        return self.bg_color.strip().lower() == TRANSPARENT

    @property
    def has_logo(self) -> bool:
        return bool(self.logo_path)


@dataclass(slots=True)
class ThemeConfig:
    """Simple grouping of UI styling constants."""

    bg_primary: str = "#0f172a"
    bg_secondary: str = "#1e293b"
    bg_tertiary: str = "#334155"
    fg_primary: str = "#e2e8f0"
    fg_secondary: str = "#f8fafc"
    accent_primary: str = "#6366f1"
    accent_secondary: str = "#4f46e5"
    warning: str = "#facc15"
    success: str = "#34d399"
    danger: str = "#f87171"
    border: str = "#475569"
    font_family: str = "Segoe UI, sans-serif"
    font_size: int = 14


__all__ = [
    "TRANSPARENT",
    "ERROR_CORRECTION_LEVELS",
    "DOT_TYPES",
    "CORNER_SQUARE_TYPES",
    "CORNER_DOT_TYPES",
    "AppConfig",
    "CameraConfig",
    "StyleConfig",
    "ThemeConfig",
]
