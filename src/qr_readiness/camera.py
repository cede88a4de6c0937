"""Camera acquisition for live verification.

The camera is modelled as an explicit handle returned by
:meth:`OpenCVCameraProvider.acquire` and owned by a single scan session, so
sessions never share ambient device state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from .config import AppConfig, CameraConfig
from .errors import CameraUnavailable, StreamTeardownFailure

logger = logging.getLogger(__name__)


class CameraStream(Protocol):
    """An acquired, video-only camera stream."""

    @property
    def is_live(self) -> bool:
        ...

    def read_frame(self) -> Optional[Any]:
        ...

    def stop(self) -> None:
        ...


class CameraProvider(Protocol):
    def acquire(self) -> CameraStream:
        """Return a live stream or raise a :class:`~qr_readiness.errors.CameraError`."""
        ...


@dataclass(slots=True)
class OpenCVCameraStream:
    """A ``cv2.VideoCapture`` exposed as a :class:`CameraStream`."""

    capture: Any
    max_frame_size: int = 1_920
    _live: bool = field(default=True, init=False)

    @property
    def is_live(self) -> bool:
        return self._live

    def read_frame(self) -> Optional[Any]:
        if not self._live:
            return None
        success, frame = self.capture.read()
        if not success or frame is None:
            return None
        return self._resize_frame(frame)

    def _resize_frame(self, frame: Any) -> Any:
        max_dim = max(frame.shape[:2])
        if max_dim <= self.max_frame_size:
            return frame

        import cv2  # type: ignore

        scale = self.max_frame_size / float(max_dim)
        new_size = (int(frame.shape[1] * scale), int(frame.shape[0] * scale))
        return cv2.resize(frame, new_size)

    def stop(self) -> None:
        """Release the device.  Safe to call more than once."""

        if not self._live:
            return
        self._live = False
        try:
            self.capture.release()
        except Exception as exc:
            raise StreamTeardownFailure(f"Failed to release camera: {exc}") from exc


@dataclass(slots=True)
class OpenCVCameraProvider:
    """Open the first usable camera through OpenCV.

    Only video is requested.  OpenCV reports a refused permission the same
    way as a missing device, so both surface as :class:`CameraUnavailable`.
    """

    camera_config: CameraConfig = field(default_factory=CameraConfig)
    config: AppConfig = field(default_factory=AppConfig)

    def acquire(self) -> OpenCVCameraStream:
        try:
            import cv2  # type: ignore
        except Exception as exc:  # pragma: no cover - depends on environment
            raise CameraUnavailable("Camera access requires opencv-python") from exc

        camera_config = self.camera_config
        default_backend = getattr(cv2, "CAP_ANY", 0)
        last_error: Optional[Exception] = None
        for backend in camera_config.get_backends() or [default_backend]:
            for index in camera_config.get_indices():
                try:
                    capture = self._open(cv2, index, backend)
                except Exception as exc:
                    logger.warning("Camera index %s with backend %s failed: %s", index, backend, exc)
                    last_error = exc
                    continue
                if capture is not None:
                    logger.info("Opened camera index %s with backend %s", index, backend)
                    return OpenCVCameraStream(capture, max_frame_size=self.config.max_frame_size)

        raise CameraUnavailable("Unable to access camera") from last_error

    def _open(self, cv2: Any, index: int, backend: int) -> Optional[Any]:
        try:
            capture = cv2.VideoCapture(index, backend)
        except TypeError:
            capture = cv2.VideoCapture(index)
        try:
            if not capture or not capture.isOpened():
                if capture:
                    capture.release()
                return None
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.camera_config.width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.camera_config.height)
        except Exception:
            capture.release()
            raise
        return capture


__all__ = [
    "CameraStream",
    "CameraProvider",
    "OpenCVCameraStream",
    "OpenCVCameraProvider",
]
