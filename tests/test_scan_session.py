"""
==============================================================================
Scan Session Tests
==============================================================================

Tests for the first-wins arbiter: single outcome, single teardown,
manual preemption and per-channel overlap protection.

==============================================================================
"""

import asyncio
import threading
import time

import pytest

from app.scanner import (
    BarcodeRecognizer,
    CandidateSource,
    CaptureController,
    OpticalTextRecognizer,
    ScanSession,
    ScanStatus,
)
from tests.conftest import CameraOpener, FakeCamera, FakeTesseract, ScriptedDecoder


class Recorder:
    """Collects outcome callbacks."""

    def __init__(self):
        self.accepted = []
        self.sources = []
        self.cancelled = 0
        self.failed = []
        self.status = []

    def on_accepted(self, isbn, source):
        self.accepted.append(isbn)
        self.sources.append(source)

    def on_cancelled(self):
        self.cancelled += 1

    def on_failed(self, reason, code):
        self.failed.append((reason, code))

    async def on_status(self, message):
        self.status.append(message)

    def callbacks(self) -> dict:
        return {
            "on_accepted": self.on_accepted,
            "on_cancelled": self.on_cancelled,
            "on_failed": self.on_failed,
            "on_status": self.on_status,
        }


class SlowDecoder:
    """Decoder that tracks how many calls run at once."""

    def __init__(self, delay: float = 0.05):
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, image):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(self.delay)
        with self._lock:
            self.active -= 1
        return []


def make_session(controller, decoder, engine, recorder=None, **kwargs):
    recorder = recorder or Recorder()
    barcode = BarcodeRecognizer(decoder=decoder)
    ocr = OpticalTextRecognizer(engine=engine)
    session = ScanSession(
        controller, barcode, ocr, interval=0.01, **recorder.callbacks(), **kwargs
    )
    return session, barcode, ocr


def run(coro, timeout: float = 3.0):
    return asyncio.run(asyncio.wait_for(coro, timeout))


class TestAcceptance:
    """Tests for candidate acceptance."""

    def test_barcode_candidate_accepted(self, controller, opener):
        recorder = Recorder()
        session, barcode, ocr = make_session(
            controller, ScriptedDecoder("978-0-261-10334-4"), FakeTesseract(), recorder
        )

        outcome = run(session.run())

        assert outcome.status == ScanStatus.ACCEPTED
        assert outcome.identifier == "9780261103344"
        assert outcome.source == CandidateSource.BARCODE
        assert recorder.accepted == ["9780261103344"]
        assert recorder.sources == [CandidateSource.BARCODE]
        assert recorder.cancelled == 0

    def test_ocr_candidate_accepted(self, controller):
        recorder = Recorder()
        session, _, _ = make_session(
            controller, ScriptedDecoder(), FakeTesseract("Title\nISBN: 0-261-10334-2"), recorder
        )

        outcome = run(session.run())

        assert outcome.source == CandidateSource.OCR
        assert recorder.accepted == ["0261103342"]

    def test_at_most_one_acceptance_when_both_channels_fire(self, controller):
        recorder = Recorder()
        decoder = ScriptedDecoder(*["9780261103344"] * 5)
        session, _, _ = make_session(
            controller, decoder, FakeTesseract("ISBN 0261103342"), recorder
        )

        outcome = run(session.run())

        assert outcome.status == ScanStatus.ACCEPTED
        assert len(recorder.accepted) == 1
        assert recorder.accepted[0] == outcome.identifier

    def test_rejected_candidate_reported_once(self, controller):
        recorder = Recorder()
        decoder = ScriptedDecoder("12345", "12345", "9780261103344")
        session, _, _ = make_session(controller, decoder, FakeTesseract(), recorder)

        outcome = run(session.run())

        assert outcome.identifier == "9780261103344"
        assert recorder.status == [
            "Found '12345' but it is not a valid ISBN. Keep scanning..."
        ]

    def test_ocr_unavailable_leaves_barcode_channel_running(self, controller):
        engine = FakeTesseract("ISBN 0261103342", available=False)
        session, _, _ = make_session(
            controller, ScriptedDecoder("", "9780261103344"), engine
        )

        outcome = run(session.run())

        assert outcome.source == CandidateSource.BARCODE
        assert engine.calls == 0


class TestTeardown:
    """Tests for single, complete teardown."""

    def test_resources_released_once(self, controller, opener):
        session, barcode, ocr = make_session(
            controller, ScriptedDecoder("9780261103344"), FakeTesseract()
        )

        run(session.run())
        session.stop()
        session.stop()

        assert session.is_torn_down
        assert opener.devices[0].release_count == 1
        assert barcode.is_closed
        assert not ocr.is_open
        assert controller.active_session is None

    def test_run_twice_is_rejected(self, controller):
        session, _, _ = make_session(
            controller, ScriptedDecoder("9780261103344"), FakeTesseract()
        )
        run(session.run())

        with pytest.raises(RuntimeError):
            run(session.run())

    def test_cancel_stops_session(self, controller, opener):
        recorder = Recorder()
        session, _, _ = make_session(controller, ScriptedDecoder(), FakeTesseract(), recorder)

        async def scenario():
            task = asyncio.create_task(session.run())
            await asyncio.sleep(0.05)
            session.cancel()
            session.cancel()
            return await task

        outcome = run(scenario())

        assert outcome.status == ScanStatus.CANCELLED
        assert recorder.cancelled == 1
        assert recorder.accepted == []
        assert opener.devices[0].release_count == 1

    def test_external_stop_ends_run(self, controller):
        recorder = Recorder()
        session, _, _ = make_session(controller, ScriptedDecoder(), FakeTesseract(), recorder)

        async def scenario():
            task = asyncio.create_task(session.run())
            await asyncio.sleep(0.05)
            session.stop()
            return await task

        outcome = run(scenario())

        assert outcome.status == ScanStatus.CANCELLED
        assert recorder.cancelled == 1

    def test_failing_ocr_close_does_not_block_other_steps(self, controller, opener):
        recorder = Recorder()
        session, barcode, ocr = make_session(
            controller, ScriptedDecoder("9780261103344"), FakeTesseract(), recorder
        )

        def broken_close():
            raise RuntimeError("tesseract hung")

        ocr.close = broken_close

        outcome = run(session.run())

        assert outcome.status == ScanStatus.ACCEPTED
        assert recorder.accepted == ["9780261103344"]
        assert session.is_torn_down
        assert opener.devices[0].release_count == 1
        assert barcode.is_closed
        assert controller.active_session is None

    def test_failing_device_release_does_not_block_other_steps(self):
        class StuckCamera(FakeCamera):
            def release(self):
                super().release()
                raise OSError("device stuck")

        devices = []

        def opener(index):
            devices.append(StuckCamera())
            return devices[-1]

        controller = CaptureController(opener=opener)
        session, barcode, ocr = make_session(
            controller, ScriptedDecoder("9780261103344"), FakeTesseract()
        )

        outcome = run(session.run())

        assert outcome.status == ScanStatus.ACCEPTED
        assert devices[0].release_count == 1
        assert barcode.is_closed
        assert not ocr.is_open
        assert controller.active_session is None

    def test_failing_camera_stop_does_not_block_decoder_close(self, controller, monkeypatch):
        recorder = Recorder()
        session, barcode, ocr = make_session(
            controller, ScriptedDecoder("9780261103344"), FakeTesseract(), recorder
        )

        def broken_stop(capture=None):
            raise RuntimeError("controller lock poisoned")

        monkeypatch.setattr(controller, "stop", broken_stop)

        outcome = run(session.run())

        assert outcome.status == ScanStatus.ACCEPTED
        assert len(recorder.accepted) == 1
        assert barcode.is_closed
        assert not ocr.is_open


class TestCameraFailure:
    """Tests for fatal acquisition errors and manual fallback."""

    @pytest.fixture
    def dead_controller(self) -> CaptureController:
        return CaptureController(
            opener=CameraOpener(opened=False),
            device_path_template="/nonexistent/video{index}"
        )

    def test_no_camera_fails_session(self, dead_controller):
        recorder = Recorder()
        engine = FakeTesseract()
        session, _, _ = make_session(dead_controller, ScriptedDecoder(), engine, recorder)

        outcome = run(session.run())

        assert outcome.status == ScanStatus.FAILED
        assert outcome.error_code == "NO_CAMERA_FOUND"
        assert recorder.failed == [("No camera found", "NO_CAMERA_FOUND")]
        assert session.cycles == 0

    def test_manual_entry_still_validates_after_failure(self, dead_controller):
        session, _, _ = make_session(dead_controller, ScriptedDecoder(), FakeTesseract())
        run(session.run())

        assert session.submit_manual("978-0-261-10334-4") == (True, "9780261103344", None)
        assert session.outcome.status == ScanStatus.FAILED

    def test_busy_camera_fails_second_session(self, controller):
        controller.start()
        recorder = Recorder()
        session, _, _ = make_session(controller, ScriptedDecoder(), FakeTesseract(), recorder)

        outcome = run(session.run())

        assert outcome.error_code == "CAMERA_BUSY"
        assert len(recorder.failed) == 1

    def test_unexpected_opener_error_fails_session(self):
        def crashing_opener(index):
            raise RuntimeError("v4l2 backend crashed")

        controller = CaptureController(opener=crashing_opener)
        recorder = Recorder()
        session, barcode, _ = make_session(controller, ScriptedDecoder(), FakeTesseract(), recorder)

        outcome = run(session.run())

        assert outcome.status == ScanStatus.FAILED
        assert outcome.error_code == "CAPTURE_ERROR"
        assert recorder.failed == [("Camera error: v4l2 backend crashed", "CAPTURE_ERROR")]
        assert recorder.cancelled == 0
        assert session.is_torn_down
        assert barcode.is_closed
        assert controller.active_session is None
        assert session.submit_manual("0-261-10334-2") == (True, "0261103342", None)


class TestManualEntry:
    """Tests for manual ISBN entry."""

    def test_invalid_entry_keeps_scanning(self, controller):
        session, _, _ = make_session(controller, ScriptedDecoder(), FakeTesseract())

        is_valid, isbn, error = session.submit_manual("12345")

        assert is_valid is False
        assert isbn is None
        assert error.startswith("Please enter a valid ISBN")
        assert not session.is_finished

    def test_manual_before_run_skips_camera(self, controller, opener):
        recorder = Recorder()
        session, _, _ = make_session(controller, ScriptedDecoder(), FakeTesseract(), recorder)

        session.submit_manual("0-261-10334-2")
        outcome = run(session.run())

        assert outcome.source == CandidateSource.MANUAL
        assert recorder.accepted == ["0261103342"]
        assert opener.devices == []

    def test_manual_preempts_running_scan(self, controller, opener):
        recorder = Recorder()
        session, _, _ = make_session(controller, ScriptedDecoder(), FakeTesseract(), recorder)

        async def scenario():
            task = asyncio.create_task(session.run())
            await asyncio.sleep(0.05)
            session.submit_manual("0-261-10334-2")
            return await task

        outcome = run(scenario())

        assert outcome.status == ScanStatus.ACCEPTED
        assert outcome.source == CandidateSource.MANUAL
        assert recorder.accepted == ["0261103342"]
        assert opener.devices[0].release_count == 1


class TestOverlap:
    """Tests for per-channel overlap protection."""

    def test_busy_channel_skips_cycles(self, controller):
        decoder = SlowDecoder(delay=0.05)
        session, _, _ = make_session(controller, decoder, FakeTesseract())

        async def scenario():
            task = asyncio.create_task(session.run())
            await asyncio.sleep(0.4)
            session.cancel()
            return await task

        run(scenario())

        assert decoder.peak == 1
        assert decoder.calls < session.cycles
