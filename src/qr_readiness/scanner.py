"""Live scan verification: state machine and frame loop."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .camera import CameraProvider, CameraStream
from .decode import DecodeResult, FrameDecodeAdapter
from .errors import CameraError, CameraPermissionDenied
from .overlay import Overlay, overlay_for

logger = logging.getLogger(__name__)


class ScanStatus(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    SUCCESS = "success"
    ERROR = "error"
    NO_PERMISSION = "no_permission"


STATUS_MESSAGES = {
    ScanStatus.IDLE: "Starting camera…",
    ScanStatus.SCANNING: "Point camera at QR code",
    ScanStatus.SUCCESS: "Success! Data matches.",
    ScanStatus.ERROR: "Data mismatch.",
    ScanStatus.NO_PERMISSION: "Camera permission denied.",
}


@dataclass(frozen=True, slots=True)
class FrameOutcome:
    """Next status plus the overlay to paint for one processed frame."""

    status: ScanStatus
    overlay: Optional[Overlay]
    payload: Optional[str] = None


def transition(previous: ScanStatus, result: Optional[DecodeResult], expected: str) -> FrameOutcome:
    """Compute the status that follows ``previous`` after one decoded frame.

    A match is exact string equality against the trimmed expected data.  A
    frame without a symbol always returns to ``scanning``, including after
    ``success`` or ``error``.  ``no_permission`` is terminal.
    """

    if previous is ScanStatus.NO_PERMISSION:
        return FrameOutcome(ScanStatus.NO_PERMISSION, None)

    if result is None:
        return FrameOutcome(ScanStatus.SCANNING, overlay_for(None, False))

    matched = result.payload == expected.strip()
    return FrameOutcome(
        ScanStatus.SUCCESS if matched else ScanStatus.ERROR,
        overlay_for(result, matched),
        result.payload,
    )


class FrameScheduler(Protocol):
    """Runs a callback on the next display refresh."""

    def schedule(self, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


@dataclass(slots=True)
class ScanSession:
    """State owned by one open verification view."""

    expected: str
    stream: Optional[CameraStream] = None
    status: ScanStatus = ScanStatus.IDLE
    running: bool = False
    last_payload: Optional[str] = None
    failure: Optional[str] = None
    frames_processed: int = 0
    pending: Any = field(default=None, repr=False)

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self.status]


@dataclass(frozen=True, slots=True)
class ScanUpdate:
    """What the host needs to refresh its view after a state change."""

    status: ScanStatus
    message: str
    overlay: Optional[Overlay] = None
    frame: Any = None
    payload: Optional[str] = None


class ScanVerificationController:
    """Drive the camera, the decoder and the status of a scan session.

    The loop is cooperative: each processed frame schedules the next through
    the :class:`FrameScheduler`, and :meth:`close` cancels the pending
    callback and stops the stream so nothing runs after the view closes.
    """

    def __init__(
        self,
        camera: CameraProvider,
        decoder: FrameDecodeAdapter,
        scheduler: FrameScheduler,
        on_update: Optional[Callable[[ScanUpdate], None]] = None,
    ):
        self._camera = camera
        self._decoder = decoder
        self._scheduler = scheduler
        self._on_update = on_update
        self._session: Optional[ScanSession] = None

    @property
    def session(self) -> Optional[ScanSession]:
        return self._session

    @property
    def status(self) -> ScanStatus:
        return self._session.status if self._session else ScanStatus.IDLE

    def open(self, expected_data: str) -> ScanSession:
        """Start a new session, replacing any session that is still open."""

        self.close()
        session = ScanSession(expected=expected_data.strip())
        self._session = session

        try:
            session.stream = self._camera.acquire()
        except CameraPermissionDenied as exc:
            logger.warning("Camera permission denied: %s", exc)
            self._fail(session, "permission_denied")
            return session
        except CameraError as exc:
            logger.warning("Camera unavailable: %s", exc)
            self._fail(session, "unavailable")
            return session
        except Exception:
            logger.exception("Camera acquisition failed")
            self._fail(session, "unavailable")
            return session

        session.running = True
        self._notify(ScanUpdate(session.status, session.message))
        self._schedule(session)
        return session

    def _fail(self, session: ScanSession, reason: str) -> None:
        session.status = ScanStatus.NO_PERMISSION
        session.failure = reason
        self._notify(ScanUpdate(session.status, session.message))

    def _schedule(self, session: ScanSession) -> None:
        session.pending = self._scheduler.schedule(lambda: self._tick(session))

    def _tick(self, session: ScanSession) -> None:
        session.pending = None
        if not session.running or session is not self._session:
            return

        assert session.stream is not None
        try:
            frame = session.stream.read_frame()
        except Exception as exc:
            logger.debug("Camera read failed: %s", exc)
            frame = None

        if frame is not None:
            self.process_frame(frame)

        if session.running and session is self._session:
            self._schedule(session)

    def process_frame(self, frame: Any) -> FrameOutcome:
        """Decode one frame and apply the resulting transition."""

        session = self._session
        if session is None:
            raise RuntimeError("No scan session is open")

        result = self._decoder.decode_frame(frame)
        outcome = transition(session.status, result, session.expected)

        session.frames_processed += 1
        session.status = outcome.status
        if outcome.payload is not None:
            session.last_payload = outcome.payload

        self._notify(
            ScanUpdate(
                status=session.status,
                message=session.message,
                overlay=outcome.overlay,
                frame=frame,
                payload=session.last_payload,
            )
        )
        return outcome

    def close(self) -> None:
        """Stop the stream and cancel the loop.  A no-op without a session."""

        session = self._session
        if session is None:
            return

        self._session = None
        session.running = False

        if session.pending is not None:
            self._scheduler.cancel(session.pending)
            session.pending = None

        stream, session.stream = session.stream, None
        if stream is not None:
            try:
                stream.stop()
            except Exception:
                logger.exception("Failed to stop camera stream")

    def _notify(self, update: ScanUpdate) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(update)
        except Exception:
            logger.exception("Scan update handler failed")


__all__ = [
    "ScanStatus",
    "STATUS_MESSAGES",
    "FrameOutcome",
    "transition",
    "FrameScheduler",
    "ScanSession",
    "ScanUpdate",
    "ScanVerificationController",
]
