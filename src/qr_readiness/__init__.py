"""QR scan readiness and live verification package."""
from __future__ import annotations

from .config import AppConfig, CameraConfig, StyleConfig, ThemeConfig
from .contrast import ContrastResult, evaluate_contrast
from .decode import DecodeResult, FrameDecodeAdapter, PyzbarFrameDecoder
from .readiness import ReadinessResult, ReadinessWarning, WarningId, assess
from .scanner import ScanStatus, ScanVerificationController, transition
from .sizing import SizeResult, evaluate_size
from .state import AppState

__all__ = [
    "AppConfig",
    "CameraConfig",
    "StyleConfig",
    "ThemeConfig",
    "AppState",
    "ContrastResult",
    "evaluate_contrast",
    "SizeResult",
    "evaluate_size",
    "ReadinessResult",
    "ReadinessWarning",
    "WarningId",
    "assess",
    "DecodeResult",
    "FrameDecodeAdapter",
    "PyzbarFrameDecoder",
    "ScanStatus",
    "ScanVerificationController",
    "transition",
]

__version__ = "1.0"
