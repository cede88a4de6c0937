from __future__ import annotations

import logging
import sys
import types

import pytest

from qr_readiness.decode import DecodeResult, FrameDecodeAdapter, order_corners
from qr_readiness.errors import CameraPermissionDenied, CameraUnavailable
from qr_readiness.overlay import GuideOverlay, QuadOverlay
from qr_readiness.scanner import (
    ScanStatus,
    ScanVerificationController,
    transition,
)

EXPECTED = "https://example.com/menu"


def _detected(payload: str) -> DecodeResult:
    return DecodeResult(payload, order_corners([(0, 0), (40, 0), (40, 40), (0, 40)]))


class ManualScheduler:
    """Runs scheduled callbacks only when the test asks for it."""

    def __init__(self):
        self.pending = {}
        self._counter = 0

    def schedule(self, callback):
        self._counter += 1
        self.pending[self._counter] = callback
        return self._counter

    def cancel(self, handle):
        self.pending.pop(handle, None)

    def run_next(self):
        handle = min(self.pending)
        self.pending.pop(handle)()


class FakeStream:
    def __init__(self, frames=None, fail_on_stop=False):
        self.live = True
        self.frames = frames
        self.stop_calls = 0
        self.fail_on_stop = fail_on_stop

    @property
    def is_live(self):
        return self.live

    def read_frame(self):
        if not self.live:
            return None
        if self.frames is None:
            return "frame"
        return self.frames.pop(0) if self.frames else None

    def stop(self):
        self.stop_calls += 1
        self.live = False
        if self.fail_on_stop:
            raise RuntimeError("device busy")


class FakeCamera:
    def __init__(self, error=None, **stream_kwargs):
        self.error = error
        self.stream_kwargs = stream_kwargs
        self.streams = []

    def acquire(self):
        if self.error is not None:
            raise self.error
        stream = FakeStream(**self.stream_kwargs)
        self.streams.append(stream)
        return stream


class ScriptedDecoder:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def decode_frame(self, frame):
        self.calls += 1
        return self.results.pop(0) if self.results else None


@pytest.fixture()
def scheduler():
    return ManualScheduler()


def _controller(camera, decoder, scheduler, updates=None):
    on_update = updates.append if updates is not None else None
    return ScanVerificationController(camera, decoder, scheduler, on_update=on_update)


def test_no_detection_scans_with_guide_overlay():
    outcome = transition(ScanStatus.IDLE, None, EXPECTED)

    assert outcome.status is ScanStatus.SCANNING
    assert isinstance(outcome.overlay, GuideOverlay)
    assert outcome.payload is None


def test_matching_payload_succeeds_against_trimmed_expectation():
    outcome = transition(ScanStatus.SCANNING, _detected(EXPECTED), f"  {EXPECTED}\n")

    assert outcome.status is ScanStatus.SUCCESS
    assert isinstance(outcome.overlay, QuadOverlay)
    assert outcome.overlay.matched is True
    assert outcome.payload == EXPECTED


def test_mismatch_is_error_with_exact_comparison():
    outcome = transition(ScanStatus.SCANNING, _detected(EXPECTED.upper()), EXPECTED)

    assert outcome.status is ScanStatus.ERROR
    assert outcome.overlay.matched is False


@pytest.mark.parametrize("previous", [ScanStatus.SUCCESS, ScanStatus.ERROR])
def test_lost_code_reverts_to_scanning(previous):
    assert transition(previous, None, EXPECTED).status is ScanStatus.SCANNING


def test_error_can_recover_to_success():
    assert transition(ScanStatus.ERROR, _detected(EXPECTED), EXPECTED).status is ScanStatus.SUCCESS


def test_no_permission_is_terminal():
    outcome = transition(ScanStatus.NO_PERMISSION, _detected(EXPECTED), EXPECTED)

    assert outcome.status is ScanStatus.NO_PERMISSION
    assert outcome.overlay is None


def test_open_waits_for_first_frame(scheduler):
    camera = FakeCamera()
    controller = _controller(camera, ScriptedDecoder(), scheduler)

    session = controller.open(EXPECTED)

    assert session.status is ScanStatus.IDLE
    assert session.running is True
    assert len(scheduler.pending) == 1


def test_loop_follows_decoded_frames(scheduler):
    decoder = ScriptedDecoder(None, _detected("https://other.example"), _detected(EXPECTED), None)
    updates = []
    controller = _controller(FakeCamera(), decoder, scheduler, updates)
    controller.open(EXPECTED)

    statuses = []
    for _ in range(4):
        scheduler.run_next()
        statuses.append(controller.status)

    assert statuses == [ScanStatus.SCANNING, ScanStatus.ERROR, ScanStatus.SUCCESS, ScanStatus.SCANNING]
    assert controller.session.frames_processed == 4
    assert controller.session.last_payload == EXPECTED
    assert [update.status for update in updates] == [ScanStatus.IDLE] + statuses
    assert isinstance(updates[2].overlay, QuadOverlay) and updates[2].overlay.matched is False
    assert updates[2].payload == "https://other.example"
    assert len(scheduler.pending) == 1


def test_each_frame_schedules_exactly_one_successor(scheduler):
    controller = _controller(FakeCamera(), ScriptedDecoder(), scheduler)
    controller.open(EXPECTED)

    for _ in range(3):
        scheduler.run_next()
        assert len(scheduler.pending) == 1


def test_frame_not_ready_keeps_idle_and_retries(scheduler):
    decoder = ScriptedDecoder()
    controller = _controller(FakeCamera(frames=[None, "frame"]), decoder, scheduler)
    controller.open(EXPECTED)

    scheduler.run_next()
    assert controller.status is ScanStatus.IDLE
    assert decoder.calls == 0

    scheduler.run_next()
    assert controller.status is ScanStatus.SCANNING
    assert decoder.calls == 1


@pytest.mark.parametrize(
    "error,reason",
    [
        (CameraPermissionDenied("denied"), "permission_denied"),
        (CameraUnavailable("missing"), "unavailable"),
        (OSError("driver crashed"), "unavailable"),
    ],
)
def test_camera_failure_is_terminal_no_permission(scheduler, caplog, error, reason):
    updates = []
    decoder = ScriptedDecoder()
    controller = _controller(FakeCamera(error=error), decoder, scheduler, updates)

    with caplog.at_level(logging.WARNING):
        session = controller.open(EXPECTED)

    assert session.status is ScanStatus.NO_PERMISSION
    assert session.failure == reason
    assert session.running is False
    assert scheduler.pending == {}
    assert decoder.calls == 0
    assert [update.status for update in updates] == [ScanStatus.NO_PERMISSION]
    assert caplog.records


def test_close_while_scanning_stops_camera_and_loop(scheduler):
    camera = FakeCamera()
    decoder = ScriptedDecoder()
    controller = _controller(camera, decoder, scheduler)
    controller.open(EXPECTED)
    scheduler.run_next()
    assert controller.status is ScanStatus.SCANNING
    calls_before = decoder.calls

    controller.close()

    assert all(not stream.is_live for stream in camera.streams)
    assert scheduler.pending == {}
    assert controller.session is None
    assert decoder.calls == calls_before


def test_stale_callback_after_close_does_nothing(scheduler):
    decoder = ScriptedDecoder()
    controller = _controller(FakeCamera(), decoder, scheduler)
    controller.open(EXPECTED)
    stale = dict(scheduler.pending)

    controller.close()
    for callback in stale.values():
        callback()

    assert decoder.calls == 0
    assert scheduler.pending == {}


def test_close_during_frame_lets_it_finish_without_rescheduling(scheduler):
    decoder = ScriptedDecoder(_detected(EXPECTED))
    controller = None

    def close_on_success(update):
        if update.status is ScanStatus.SUCCESS:
            controller.close()

    controller = ScanVerificationController(FakeCamera(), decoder, scheduler, on_update=close_on_success)
    session = controller.open(EXPECTED)
    scheduler.run_next()

    assert session.status is ScanStatus.SUCCESS
    assert decoder.calls == 1
    assert scheduler.pending == {}


def test_close_without_session_is_noop(scheduler):
    controller = _controller(FakeCamera(), ScriptedDecoder(), scheduler)

    controller.close()
    controller.close()

    assert controller.status is ScanStatus.IDLE


def test_close_after_permission_failure_is_noop(scheduler):
    controller = _controller(FakeCamera(error=CameraPermissionDenied("no")), ScriptedDecoder(), scheduler)
    controller.open(EXPECTED)

    controller.close()

    assert controller.session is None


def test_teardown_failure_is_logged_not_raised(scheduler, caplog):
    camera = FakeCamera(fail_on_stop=True)
    controller = _controller(camera, ScriptedDecoder(), scheduler)
    controller.open(EXPECTED)

    with caplog.at_level(logging.ERROR):
        controller.close()

    assert camera.streams[0].stop_calls == 1
    assert scheduler.pending == {}
    assert "Failed to stop camera stream" in caplog.text


def test_reopen_replaces_previous_session(scheduler):
    camera = FakeCamera()
    controller = _controller(camera, ScriptedDecoder(), scheduler)

    first = controller.open(EXPECTED)
    second = controller.open("other")

    assert first.running is False
    assert not camera.streams[0].is_live
    assert camera.streams[1].is_live
    assert controller.session is second
    assert len(scheduler.pending) == 1


def test_failing_update_handler_does_not_stop_loop(scheduler, caplog):
    def explode(_update):
        raise RuntimeError("widget gone")

    controller = ScanVerificationController(FakeCamera(), ScriptedDecoder(), scheduler, on_update=explode)
    controller.open(EXPECTED)

    with caplog.at_level(logging.ERROR):
        scheduler.run_next()

    assert controller.status is ScanStatus.SCANNING
    assert len(scheduler.pending) == 1
    assert "Scan update handler failed" in caplog.text


def test_process_frame_requires_session(scheduler):
    controller = _controller(FakeCamera(), ScriptedDecoder(), scheduler)

    with pytest.raises(RuntimeError):
        controller.process_frame("frame")


def test_status_messages():
    controller = _controller(FakeCamera(error=CameraPermissionDenied("no")), ScriptedDecoder(), ManualScheduler())

    assert controller.open(EXPECTED).message == "Camera permission denied."


def test_conversion_fault_mid_loop_counts_as_no_code(monkeypatch, scheduler):
    class FakeCv2Error(Exception):
        pass

    def failing_cvt_color(frame, code):
        raise FakeCv2Error("unsupported frame layout")

    monkeypatch.setitem(
        sys.modules,
        "cv2",
        types.SimpleNamespace(cvtColor=failing_cvt_color, COLOR_BGR2RGBA=2),
    )
    frame = types.SimpleNamespace(shape=(48, 64, 3))
    updates = []
    camera = FakeCamera(frames=[frame, frame])
    controller = _controller(camera, FrameDecodeAdapter(decoder=None), scheduler, updates)

    session = controller.open(EXPECTED)
    scheduler.run_next()
    scheduler.run_next()

    assert session.status is ScanStatus.SCANNING
    assert session.frames_processed == 2
    assert session.running is True
    assert len(scheduler.pending) == 1
    assert isinstance(updates[-1].overlay, GuideOverlay)
