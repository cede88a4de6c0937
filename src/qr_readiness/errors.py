"""Exception types raised by the scan readiness subsystem."""
from __future__ import annotations


class InvalidColorFormat(ValueError):
    """Raised when a color is not a 3- or 6-digit hex code."""

    def __init__(self, value: object):
        super().__init__(f"Invalid hex color: {value!r}")
        self.value = value


class CameraError(RuntimeError):
    """Base class for failures while acquiring the camera."""


class CameraPermissionDenied(CameraError):
    """The user or the operating system refused camera access."""


class CameraUnavailable(CameraError):
    """No usable camera device could be opened."""


class DecodeFailure(RuntimeError):
    """The pixel decoder rejected a frame."""


class StreamTeardownFailure(RuntimeError):
    """Stopping the camera stream raised an error."""


class RendererUnavailable(RuntimeError):
    """The QR rendering library is not installed."""


__all__ = [
    "InvalidColorFormat",
    "CameraError",
    "CameraPermissionDenied",
    "CameraUnavailable",
    "DecodeFailure",
    "StreamTeardownFailure",
    "RendererUnavailable",
]
