"""
==============================================================================
Scan Service Module
==============================================================================

Wires application settings into the scanning core.

This module implements:
- ScanService: Builds scan sessions for the local camera or for frames
  pushed by a client, runs one-shot still-image recognition and
  validates manual entries

Camera Ownership:
----------------
The service holds one CaptureController for the local camera, so only
one hardware scan can run at a time. Client-pushed sessions each get a
controller of their own.

==============================================================================
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Callable, Optional, Tuple

import cv2
import numpy as np

from app.config import Settings, get_settings
from app.scanner import (
    BarcodeRecognizer,
    CandidateSource,
    CaptureController,
    FacingMode,
    OpticalTextRecognizer,
    RecognitionError,
    ScanOutcome,
    ScanSession,
)
from app.utils.validators import ISBNValidator


# Module logger
logger = logging.getLogger(__name__)


class ScanService:
    """
    Scanner facade used by the REST and WebSocket layers.

    Example:
        >>> service = ScanService()
        >>> outcome = await service.scan_camera(timeout=15)
        >>> outcome.status
        <ScanStatus.ACCEPTED: 'accepted'>
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        controller: Optional[CaptureController] = None,
        barcode_factory: Optional[Callable[[], BarcodeRecognizer]] = None,
        ocr_factory: Optional[Callable[[], OpticalTextRecognizer]] = None,
        validator: Optional[ISBNValidator] = None
    ) -> None:
        """
        Args:
            settings: Application settings (global settings if None)
            controller: Shared local camera controller
            barcode_factory: Builds a barcode channel per session
            ocr_factory: Builds an OCR channel per session
            validator: ISBN validator
        """
        self._settings = settings or get_settings()
        self._controller = controller or CaptureController(
            camera_index=self._settings.camera_index,
            front_camera_index=self._settings.front_camera_index,
        )
        self._barcode_factory = barcode_factory or BarcodeRecognizer
        self._ocr_factory = ocr_factory or self._default_ocr
        self._validator = validator or ISBNValidator()

    def _default_ocr(self) -> OpticalTextRecognizer:
        return OpticalTextRecognizer(
            language=self._settings.ocr_language,
            config=self._settings.ocr_config,
            threshold=self._settings.binarize_threshold,
            tesseract_cmd=self._settings.tesseract_cmd,
        )

    @property
    def controller(self) -> CaptureController:
        """Shared local camera controller."""
        return self._controller

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def create_session(
        self,
        remote: bool = False,
        facing: FacingMode = FacingMode.ENVIRONMENT,
        **callbacks
    ) -> ScanSession:
        """
        Build a scan session.

        Args:
            remote: Frames are pushed by a client instead of read from
                the local camera
            facing: Camera facing hint
            **callbacks: on_accepted, on_cancelled, on_failed, on_status

        Returns:
            New, not yet started ScanSession
        """
        controller = CaptureController() if remote else self._controller

        return ScanSession(
            controller,
            self._barcode_factory(),
            self._ocr_factory(),
            validator=self._validator,
            interval=self._settings.scan_interval_seconds,
            facing=facing,
            remote=remote,
            **callbacks,
        )

    async def start_scan(
        self,
        on_accepted: Callable[[str, CandidateSource], None],
        on_cancelled: Callable[[], None],
        on_failed: Optional[Callable[[str, str], None]] = None,
        facing: FacingMode = FacingMode.ENVIRONMENT,
        timeout: Optional[float] = None
    ) -> ScanOutcome:
        """
        Run a local camera scan to completion.

        Args:
            on_accepted: Called with the accepted ISBN and its source
            on_cancelled: Called when the scan is cancelled or times out
            on_failed: Called with (reason, error_code) on fatal errors
            facing: Camera facing hint
            timeout: Seconds before the scan is cancelled (None waits
                until an outcome)

        Returns:
            The session's outcome
        """
        session = self.create_session(
            facing=facing,
            on_accepted=on_accepted,
            on_cancelled=on_cancelled,
            on_failed=on_failed,
        )

        timer = None
        if timeout:
            loop = asyncio.get_running_loop()
            timer = loop.call_later(timeout, session.cancel, "Scan timed out")

        try:
            return await session.run()
        finally:
            if timer is not None:
                timer.cancel()

    async def scan_camera(
        self,
        facing: FacingMode = FacingMode.ENVIRONMENT,
        timeout: Optional[float] = None
    ) -> ScanOutcome:
        """Local camera scan without callbacks, bounded by the scan timeout."""
        timeout = timeout or self._settings.scan_timeout_seconds
        logger.info(f"📷 Camera scan requested (timeout {timeout}s)")

        return await self.start_scan(
            on_accepted=lambda isbn, source: None,
            on_cancelled=lambda: None,
            facing=facing,
            timeout=timeout,
        )

    # =========================================================================
    # ONE-SHOT RECOGNITION
    # =========================================================================

    @staticmethod
    def decode_image(encoded: str) -> np.ndarray:
        """
        Decode a base64 JPEG/PNG (data URLs accepted) into a BGR frame.

        Raises:
            ValueError: If the payload is not a decodable image
        """
        if encoded.startswith("data:"):
            _, _, encoded = encoded.partition(",")

        try:
            payload = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("Image is not valid base64") from e

        if not payload:
            raise ValueError("Image is empty")

        try:
            frame = cv2.imdecode(np.frombuffer(payload, dtype=np.uint8), cv2.IMREAD_COLOR)
        except cv2.error as e:
            raise ValueError("Image could not be decoded") from e

        if frame is None:
            raise ValueError("Image could not be decoded")

        return frame

    def _accept(self, raw_text: Optional[str]) -> Optional[str]:
        if not raw_text:
            return None
        is_valid, identifier, _ = self._validator.validate(raw_text)
        return identifier if is_valid else None

    def recognize_image(self, frame: np.ndarray) -> Optional[dict]:
        """
        Run both channels once over a still image.

        The barcode channel is tried first; OCR only runs when it finds
        nothing valid.

        Returns:
            Dict with isbn, source, raw_text and rect, or None
        """
        barcode = self._barcode_factory()
        try:
            candidate = barcode.decode(frame)
        finally:
            barcode.close()

        if candidate is not None:
            identifier = self._accept(candidate.raw_text)
            if identifier:
                return {
                    "isbn": identifier,
                    "source": candidate.source.value,
                    "raw_text": candidate.raw_text,
                    "rect": candidate.rect,
                }

        ocr = self._ocr_factory()
        try:
            ocr.open()
            candidate = ocr.propose(frame)
        except RecognitionError as e:
            logger.warning(f"OCR pass skipped: {e}")
            return None
        finally:
            ocr.close()

        if candidate is not None:
            identifier = self._accept(candidate.raw_text)
            if identifier:
                return {
                    "isbn": identifier,
                    "source": candidate.source.value,
                    "raw_text": candidate.raw_text,
                    "rect": None,
                }

        return None

    async def scan_image(self, encoded: str) -> Optional[dict]:
        """Decode and recognize a still image off the event loop."""
        frame = self.decode_image(encoded)
        return await asyncio.to_thread(self.recognize_image, frame)

    def validate_manual(self, text: Optional[str]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate a manually typed ISBN.

        Returns:
            Tuple of (is_valid, identifier, error_message)
        """
        is_valid, identifier, error = self._validator.validate(text)
        if not is_valid:
            return False, None, f"Please enter a valid ISBN: {error}"
        return True, identifier, None
