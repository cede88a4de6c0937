"""Visual feedback drawn over the live camera preview."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Tuple, Union

from .decode import DecodeResult, Point

# BGR colors, as OpenCV expects them.
MATCH_COLOR = (153, 211, 52)
MISMATCH_COLOR = (21, 204, 250)
GUIDE_COLOR = (184, 163, 148)

FILL_ALPHA = 0.12
GUIDE_ALPHA = 0.6
GUIDE_INSET = 0.15
GUIDE_DASH = (8, 12)
OUTLINE_THICKNESS = 4
GUIDE_THICKNESS = 2
CENTER_RADIUS = 6


@dataclass(frozen=True, slots=True)
class QuadOverlay:
    """Outline of a detected symbol with a dot on its centroid."""

    corners: Tuple[Point, Point, Point, Point]
    center: Point
    matched: bool

    @property
    def color(self) -> Tuple[int, int, int]:
        return MATCH_COLOR if self.matched else MISMATCH_COLOR


@dataclass(frozen=True, slots=True)
class GuideOverlay:
    """Dashed alignment box shown while no symbol is visible."""

    inset: float = GUIDE_INSET

    def rect(self, width: int, height: int) -> Tuple[float, float, float, float]:
        """Return ``(x, y, w, h)`` of the guide for a frame size."""

        inset_x = width * self.inset
        inset_y = height * self.inset
        return inset_x, inset_y, width - inset_x * 2, height - inset_y * 2


Overlay = Union[QuadOverlay, GuideOverlay]


def overlay_for(result: DecodeResult | None, matched: bool) -> Overlay:
    if result is None:
        return GuideOverlay()
    return QuadOverlay(corners=result.corners, center=result.centroid, matched=matched)


def _dashed_line(image: Any, start: Tuple[float, float], end: Tuple[float, float], color, thickness: int) -> None:
    import cv2  # type: ignore

    dash, gap = GUIDE_DASH
    length = math.hypot(end[0] - start[0], end[1] - start[1])
    if length == 0:
        return
    step_x = (end[0] - start[0]) / length
    step_y = (end[1] - start[1]) / length

    position = 0.0
    while position < length:
        stop = min(position + dash, length)
        cv2.line(
            image,
            (int(round(start[0] + step_x * position)), int(round(start[1] + step_y * position))),
            (int(round(start[0] + step_x * stop)), int(round(start[1] + step_y * stop))),
            color,
            thickness,
        )
        position = stop + gap


def draw_overlay(frame: Any, overlay: Overlay | None) -> Any:
    """Return a copy of ``frame`` with ``overlay`` painted on it."""

    import cv2  # type: ignore
    import numpy as np  # type: ignore

    canvas = frame.copy()
    if overlay is None:
        return canvas

    height, width = canvas.shape[:2]
    layer = canvas.copy()

    if isinstance(overlay, GuideOverlay):
        x, y, w, h = overlay.rect(width, height)
        corners = [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]
        for index, start in enumerate(corners):
            _dashed_line(layer, start, corners[(index + 1) % 4], GUIDE_COLOR, GUIDE_THICKNESS)
        cv2.addWeighted(layer, GUIDE_ALPHA, canvas, 1 - GUIDE_ALPHA, 0, canvas)
        return canvas

    points = np.array(
        [[int(round(corner.x)), int(round(corner.y))] for corner in overlay.corners],
        dtype=np.int32,
    )
    cv2.fillPoly(layer, [points], overlay.color)
    cv2.addWeighted(layer, FILL_ALPHA, canvas, 1 - FILL_ALPHA, 0, canvas)
    cv2.polylines(canvas, [points], True, overlay.color, OUTLINE_THICKNESS)
    center = (int(round(overlay.center.x)), int(round(overlay.center.y)))
    cv2.circle(canvas, center, CENTER_RADIUS, overlay.color, -1)
    return canvas


__all__ = [
    "MATCH_COLOR",
    "MISMATCH_COLOR",
    "GUIDE_COLOR",
    "QuadOverlay",
    "GuideOverlay",
    "Overlay",
    "overlay_for",
    "draw_overlay",
]
