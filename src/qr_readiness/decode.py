"""Frame decoding built on OpenCV and :mod:`pyzbar`."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence, Tuple

from .errors import DecodeFailure

logger = logging.getLogger(__name__)

DONT_INVERT = "dontInvert"
ONLY_INVERT = "onlyInvert"
ATTEMPT_BOTH = "attemptBoth"
INVERSION_MODES = (DONT_INVERT, ONLY_INVERT, ATTEMPT_BOTH)


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """A decoded symbol located in frame-pixel coordinates.

    ``corners`` are ordered top-left, top-right, bottom-right, bottom-left.
    """

    payload: str
    corners: Tuple[Point, Point, Point, Point]

    @property
    def centroid(self) -> Point:
        return Point(
            sum(corner.x for corner in self.corners) / 4,
            sum(corner.y for corner in self.corners) / 4,
        )


class FrameDecoder(Protocol):
    """Contract of the external pixel decoder."""

    def decode(
        self,
        pixels: Any,
        width: int,
        height: int,
        invert: str = DONT_INVERT,
    ) -> Optional[DecodeResult]:
        ...


def _triangle_area(a: Tuple[float, float], b: Tuple[float, float], c: Tuple[float, float]) -> float:
    return abs((b[0] - a[0]) * (c[1] - a[1]) - (c[0] - a[0]) * (b[1] - a[1])) / 2


def order_corners(points: Sequence[Tuple[float, float]]) -> Tuple[Point, Point, Point, Point]:
    """Return a symbol outline as four corners in clockwise order.

    Points are walked by angle around their mean, so rotated and
    perspective-skewed outlines keep all four vertices.  Outlines with more
    than four points drop the vertex spanning the smallest triangle with its
    neighbours until four remain.  The walk starts at the corner with the
    smallest ``x + y`` (the upper one on ties) which is top-left for an
    upright symbol.
    """

    coords = list(dict.fromkeys((float(x), float(y)) for x, y in points))
    if len(coords) < 4:
        raise ValueError("A symbol outline needs at least four distinct points")

    cx = sum(x for x, _ in coords) / len(coords)
    cy = sum(y for _, y in coords) / len(coords)
    coords.sort(key=lambda p: math.atan2(p[1] - cy, p[0] - cx))

    while len(coords) > 4:
        count = len(coords)
        weakest = min(
            range(count),
            key=lambda i: _triangle_area(coords[i - 1], coords[i], coords[(i + 1) % count]),
        )
        del coords[weakest]

    start = min(range(4), key=lambda i: (coords[i][0] + coords[i][1], coords[i][1]))
    ordered = coords[start:] + coords[:start]
    return (
        Point(*ordered[0]),
        Point(*ordered[1]),
        Point(*ordered[2]),
        Point(*ordered[3]),
    )


def _to_rgba_array(pixels: Any, width: int, height: int):
    import numpy as np  # type: ignore

    if width <= 0 or height <= 0:
        raise DecodeFailure(f"Invalid frame size {width}x{height}")

    if isinstance(pixels, (bytes, bytearray, memoryview)):
        flat = np.frombuffer(pixels, dtype=np.uint8).copy()
    else:
        flat = np.asarray(pixels, dtype=np.uint8).reshape(-1)

    expected = width * height * 4
    if flat.size != expected:
        raise DecodeFailure(f"Expected {expected} RGBA bytes, got {flat.size}")
    return flat.reshape((height, width, 4))


@dataclass(slots=True)
class PyzbarFrameDecoder:
    """Decode QR symbols from RGBA buffers with :mod:`pyzbar`."""

    def decode(
        self,
        pixels: Any,
        width: int,
        height: int,
        invert: str = DONT_INVERT,
    ) -> Optional[DecodeResult]:
        if invert not in INVERSION_MODES:
            raise ValueError(f"Unknown inversion mode: {invert}")

        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except Exception as exc:  # pragma: no cover - depends on environment
            raise DecodeFailure("Frame decoding requires opencv-python and pyzbar") from exc

        rgba = _to_rgba_array(pixels, width, height)
        gray = cv2.cvtColor(rgba, cv2.COLOR_RGBA2GRAY)

        candidates = []
        if invert in (DONT_INVERT, ATTEMPT_BOTH):
            candidates.append(gray)
        if invert in (ONLY_INVERT, ATTEMPT_BOTH):
            candidates.append(cv2.bitwise_not(gray))

        for image in candidates:
            symbols = pyzbar.decode(image, symbols=[pyzbar.ZBarSymbol.QRCODE])
            if symbols:
                return self._to_result(symbols[0])
        return None

    @staticmethod
    def _to_result(symbol: Any) -> DecodeResult:
        polygon = [(point.x, point.y) for point in symbol.polygon]
        if len(set(polygon)) < 4:
            left, top, rect_width, rect_height = symbol.rect
            polygon = [
                (left, top),
                (left + rect_width, top),
                (left + rect_width, top + rect_height),
                (left, top + rect_height),
            ]
        payload = bytes(symbol.data).decode("utf-8", errors="replace")
        return DecodeResult(payload=payload, corners=order_corners(polygon))


@dataclass(slots=True)
class FrameDecodeAdapter:
    """Normalise a :class:`FrameDecoder` for the per-frame verification loop.

    Every fault raised by the decoder is reported as "no code in this frame"
    so a single malformed frame can never stop the loop.  Inverted-color
    search is never attempted: it roughly doubles the cost of each frame.
    """

    decoder: FrameDecoder

    def decode_rgba(self, pixels: Any, width: int, height: int) -> Optional[DecodeResult]:
        try:
            return self.decoder.decode(pixels, width, height, invert=DONT_INVERT)
        except Exception as exc:
            logger.debug("Frame decode failed: %s", exc)
            return None

    def decode_frame(self, frame: Any) -> Optional[DecodeResult]:
        """Decode a BGR camera frame.

        The frame is converted to an RGBA pixel buffer, the same shape a
        canvas read-back produces, before it reaches the decoder.
        """

        try:
            import cv2  # type: ignore

            height, width = frame.shape[:2]
            rgba = cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)
        except Exception as exc:
            logger.debug("Frame conversion failed: %s", exc)
            return None
        return self.decode_rgba(rgba, width, height)

    def decode_encoded_image(self, data: bytes) -> Optional[DecodeResult]:
        """Decode a PNG or JPEG image held in memory."""

        try:
            import cv2  # type: ignore
            import numpy as np  # type: ignore

            image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        except Exception as exc:
            logger.debug("Image decode failed: %s", exc)
            return None
        if image is None:
            return None
        return self.decode_frame(image)

    def read_from_file(self, path: str) -> Optional[DecodeResult]:
        try:
            import cv2  # type: ignore
        except Exception:  # pragma: no cover - depends on environment
            return None

        image = cv2.imread(path)
        if image is None:
            return None
        return self.decode_frame(image)


__all__ = [
    "DONT_INVERT",
    "ONLY_INVERT",
    "ATTEMPT_BOTH",
    "Point",
    "DecodeResult",
    "FrameDecoder",
    "order_corners",
    "PyzbarFrameDecoder",
    "FrameDecodeAdapter",
]
