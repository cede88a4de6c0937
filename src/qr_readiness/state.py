"""Runtime state containers used by the QR scan readiness tool."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from .config import AppConfig, StyleConfig
from .payload import UTM_KEYS
from .readiness import ReadinessResult, assess
from .sizing import sanitize_measurement


_DEFAULTS = AppConfig()


def _default_utm() -> Dict[str, str]:
    return {"source": "qr-code", "medium": "offline", "campaign": "", "term": "", "content": ""}


@dataclass(slots=True)
class AppState:
    """Mutable state shared between UI components."""

    style: StyleConfig = field(default_factory=StyleConfig)
    scan_distance_ft: float = _DEFAULTS.default_scan_distance_ft
    print_width_in: float = _DEFAULTS.default_print_width_in
    content_type: str = "url"
    auto_utm: bool = True
    utm: Dict[str, str] = field(default_factory=_default_utm)
    camera_available: bool = False

    @classmethod
    def from_config(cls, config: AppConfig) -> "AppState":
        return cls(
            scan_distance_ft=config.default_scan_distance_ft,
            print_width_in=config.default_print_width_in,
        )

    def set_scan_distance(self, value: float | str) -> None:
        self.scan_distance_ft = sanitize_measurement(value)

    def set_print_width(self, value: float | str) -> None:
        self.print_width_in = sanitize_measurement(value)

    def set_utm(self, key: str, value: str) -> None:
        if key not in UTM_KEYS:
            raise KeyError(key)
        self.utm[key] = value.strip()

    def readiness(self, config: AppConfig | None = None) -> ReadinessResult:
        return assess(self.style, self.scan_distance_ft, self.print_width_in, config)


__all__ = ["AppState"]
