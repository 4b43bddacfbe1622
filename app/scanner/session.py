"""
==============================================================================
Scan Session Module
==============================================================================

Drives one ISBN acquisition from camera start to a single outcome.

Flow:
-----
1. Acquire the camera (local device or client-pushed frames)
2. Open the OCR engine once for the whole session
3. Every poll interval grab one frame and hand it to the barcode and
   OCR channels; a channel still busy with an earlier frame is skipped
4. The first candidate accepted by the ISBN validator wins, whichever
   channel it came from (manual entry included)
5. Tear down exactly once, then notify the caller

Teardown steps are guarded one by one, so a failing step never keeps
the others from running.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Tuple

from app.utils.validators import ISBNValidator

from .capture import CaptureController, CaptureError, CaptureSession, FacingMode
from .models import Candidate, CandidateSource, ScanOutcome, ScanStatus
from .recognizers import BarcodeRecognizer, OpticalTextRecognizer, RecognitionError


# Module logger
logger = logging.getLogger(__name__)


StatusCallback = Callable[[str], Awaitable[None]]


class ScanSession:
    """
    First-wins arbiter between the barcode and OCR channels.

    Attributes:
        cycles: Number of poll cycles started so far

    Example:
        >>> session = ScanSession(
        ...     CaptureController(),
        ...     BarcodeRecognizer(),
        ...     OpticalTextRecognizer(),
        ...     on_accepted=lambda isbn, source: print("ISBN", isbn, source.value),
        ... )
        >>> outcome = await session.run()
    """

    def __init__(
        self,
        controller: CaptureController,
        barcode: BarcodeRecognizer,
        ocr: OpticalTextRecognizer,
        validator: Optional[ISBNValidator] = None,
        interval: float = 1.0,
        facing: FacingMode = FacingMode.ENVIRONMENT,
        remote: bool = False,
        on_accepted: Optional[Callable[[str, CandidateSource], None]] = None,
        on_cancelled: Optional[Callable[[], None]] = None,
        on_failed: Optional[Callable[[str, str], None]] = None,
        on_status: Optional[StatusCallback] = None
    ) -> None:
        """
        Args:
            controller: Capture controller that owns the camera
            barcode: Barcode channel
            ocr: OCR channel
            validator: ISBN validator shared by all channels
            interval: Seconds between poll cycles
            facing: Camera facing hint for local capture
            remote: Use client-pushed frames instead of a local camera
            on_accepted: Called with (identifier, source) after teardown
            on_cancelled: Called after teardown when cancelled
            on_failed: Called with (reason, error_code) after teardown
            on_status: Coroutine receiving transient status text
        """
        self._controller = controller
        self._barcode = barcode
        self._ocr = ocr
        self._validator = validator or ISBNValidator()
        self._interval = interval
        self._facing = facing
        self._remote = remote

        self._on_accepted = on_accepted
        self._on_cancelled = on_cancelled
        self._on_failed = on_failed
        self._on_status = on_status

        self._capture: Optional[CaptureSession] = None
        self._future: Optional[asyncio.Future] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._channel_tasks: Dict[CandidateSource, asyncio.Task] = {}
        self._final: Optional[ScanOutcome] = None
        self._last_rejected: Optional[str] = None
        self._ocr_enabled = True
        self._started = False
        self._torn_down = False
        self._dispatched = False

        self.cycles = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def outcome(self) -> Optional[ScanOutcome]:
        """Terminal outcome, once decided."""
        return self._final

    @property
    def capture_session(self) -> Optional[CaptureSession]:
        return self._capture

    @property
    def is_finished(self) -> bool:
        return self._final is not None

    @property
    def is_torn_down(self) -> bool:
        return self._torn_down

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def run(self) -> ScanOutcome:
        """
        Run the session until an outcome is decided.

        Returns:
            The session's single ScanOutcome
        """
        if self._started:
            raise RuntimeError("Scan session already started")
        self._started = True

        self._future = asyncio.get_running_loop().create_future()
        if self._final is not None:
            self._future.set_result(self._final)

        try:
            if self._final is None:
                await self._acquire()
            if self._final is None:
                self._poll_task = asyncio.create_task(self._poll_loop())
            await asyncio.shield(self._future)
        except asyncio.CancelledError:
            self._resolve(ScanOutcome.cancelled("Scan task cancelled"))
            self.stop()
            self._dispatch()
            raise
        finally:
            self.stop()

        self._dispatch()
        return self._final

    def cancel(self, reason: str = "Scan cancelled by user") -> bool:
        """
        Abort the scan.

        Returns:
            True if this call decided the outcome
        """
        resolved = self._resolve(ScanOutcome.cancelled(reason))
        if resolved:
            logger.info(f"🛑 Scan cancelled: {reason}")
        if not self._started:
            self.stop()
        return resolved

    def submit_manual(self, text: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate a manually typed ISBN.

        An accepted entry preempts the automatic channels exactly like a
        scanned one. Manual entry keeps working after the session failed,
        but then only validates.

        Returns:
            Tuple of (is_valid, identifier, error_message)
        """
        is_valid, identifier, error = self._validator.validate(text)

        if not is_valid:
            return False, None, f"Please enter a valid ISBN: {error}"

        if self._resolve(ScanOutcome.accepted(identifier, CandidateSource.MANUAL)):
            logger.info(f"✅ Manual ISBN accepted: {identifier}")
            if not self._started:
                self.stop()

        return True, identifier, None

    def stop(self) -> None:
        """
        Release everything the session holds. Idempotent.

        Halts the poll timer, cancels in-flight recognition, stops the
        OCR engine, releases the camera and closes the barcode decoder.
        """
        if self._torn_down:
            return
        self._torn_down = True
        self._resolve(ScanOutcome.cancelled("Scan stopped"))

        steps = (
            ("poll timer", self._cancel_poll),
            ("recognition tasks", self._cancel_channels),
            ("OCR engine", self._ocr.close),
            ("camera", self._release_camera),
            ("barcode decoder", self._barcode.close),
        )

        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.error(f"Failed to release {name}: {e}")

        logger.info("✅ Scan session torn down")

    # =========================================================================
    # ACQUISITION
    # =========================================================================

    async def _acquire(self) -> None:
        try:
            if self._remote:
                capture = self._controller.start_remote()
            else:
                capture = await asyncio.to_thread(self._controller.start, self._facing)
        except CaptureError as e:
            logger.warning(f"❌ Camera unavailable: {e}")
            self._resolve(ScanOutcome.failed(str(e), e.code))
            return
        except Exception as e:
            logger.error(f"❌ Camera acquisition error: {e}")
            self._resolve(ScanOutcome.failed(f"Camera error: {e}", CaptureError.code))
            return

        if self._torn_down:
            self._controller.stop(capture)
            return
        self._capture = capture

        try:
            await asyncio.to_thread(self._ocr.open)
        except RecognitionError as e:
            logger.warning(f"OCR channel disabled for this session: {e}")
            self._ocr_enabled = False

        if self._torn_down:
            self._ocr.close()

    # =========================================================================
    # POLLING
    # =========================================================================

    async def _poll_loop(self) -> None:
        logger.info(f"🔍 Scan loop started (every {self._interval}s)")

        while self._final is None and self._capture is not None:
            self.cycles += 1

            try:
                frame = await asyncio.to_thread(self._capture.grab_frame)
            except Exception as e:
                logger.error(f"Frame capture error: {e}")
                frame = None

            if frame is not None and self._final is None:
                self._launch(CandidateSource.BARCODE, frame)
                if self._ocr_enabled:
                    self._launch(CandidateSource.OCR, frame)

            await asyncio.sleep(self._interval)

    def _launch(self, source: CandidateSource, frame) -> None:
        task = self._channel_tasks.get(source)
        if task is not None and not task.done():
            logger.debug(f"{source.value} channel busy, skipping cycle {self.cycles}")
            return
        self._channel_tasks[source] = asyncio.create_task(self._run_channel(source, frame))

    async def _run_channel(self, source: CandidateSource, frame) -> None:
        try:
            if source == CandidateSource.BARCODE:
                candidate = await asyncio.to_thread(self._barcode.decode, frame)
            else:
                candidate = await asyncio.to_thread(self._ocr.propose, frame)
        except RecognitionError as e:
            logger.warning(f"{source.value} recognition fault: {e}")
            return
        except Exception as e:
            logger.error(f"{source.value} channel error: {e}")
            return

        if candidate is None or self._final is not None:
            return

        await self._consider(candidate)

    async def _consider(self, candidate: Candidate) -> None:
        if candidate.raw_text == self._last_rejected:
            logger.debug(f"Skipping already rejected candidate: {candidate.raw_text}")
            return

        is_valid, identifier, error = self._validator.validate(candidate.raw_text)

        if not is_valid:
            self._last_rejected = candidate.raw_text
            logger.debug(f"Rejected {candidate.source.value} candidate: {error}")
            await self._report(
                f"Found '{candidate.raw_text}' but it is not a valid ISBN. Keep scanning..."
            )
            return

        if self._resolve(ScanOutcome.accepted(identifier, candidate.source)):
            logger.info(f"✅ ISBN accepted via {candidate.source.value}: {identifier}")

    async def _report(self, message: str) -> None:
        if self._on_status is None:
            return
        try:
            await self._on_status(message)
        except Exception as e:
            logger.warning(f"Status callback failed: {e}")

    # =========================================================================
    # OUTCOME
    # =========================================================================

    def _resolve(self, outcome: ScanOutcome) -> bool:
        if self._final is not None:
            return False

        self._final = outcome
        if self._future is not None and not self._future.done():
            self._future.set_result(outcome)
        return True

    def _dispatch(self) -> None:
        if self._dispatched or self._final is None:
            return
        self._dispatched = True

        outcome = self._final
        try:
            if outcome.status == ScanStatus.ACCEPTED and self._on_accepted:
                self._on_accepted(outcome.identifier, outcome.source)
            elif outcome.status == ScanStatus.CANCELLED and self._on_cancelled:
                self._on_cancelled()
            elif outcome.status == ScanStatus.FAILED and self._on_failed:
                self._on_failed(outcome.reason, outcome.error_code)
        except Exception as e:
            logger.error(f"Scan outcome callback failed: {e}")

    # =========================================================================
    # TEARDOWN STEPS
    # =========================================================================

    def _cancel_poll(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()

    def _cancel_channels(self) -> None:
        for task in self._channel_tasks.values():
            if not task.done():
                task.cancel()
        self._channel_tasks.clear()

    def _release_camera(self) -> None:
        if self._capture is not None:
            self._controller.stop(self._capture)
