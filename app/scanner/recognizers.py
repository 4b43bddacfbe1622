"""
==============================================================================
Recognition Channels Module
==============================================================================

The two channels that turn a frame into a candidate ISBN.

Channels:
---------
- BarcodeRecognizer: pyzbar decode of EAN/UPC/QR symbols
- OpticalTextRecognizer: tesseract OCR over a binarized copy of
  the frame, followed by ordered ISBN pattern matching

Neither channel validates its output; both hand raw candidates to the
ISBN validator.

==============================================================================
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional, Sequence

import cv2
import numpy as np
import pytesseract
from pyzbar.pyzbar import decode

from .models import Candidate, CandidateSource


# Module logger
logger = logging.getLogger(__name__)


class RecognitionError(Exception):
    """A recognition engine failed on a frame or could not start."""


# Tried in order. Prefixed forms come first so that unrelated numbers
# on a cover (prices, years) do not win over a labelled ISBN.
ISBN_PATTERNS: Sequence[re.Pattern] = (
    re.compile(
        r"ISBN(?:-1[03])?\s*:?\s*(\d[\d\s-]{8,15}[\dX])",
        re.IGNORECASE,
    ),
    re.compile(r"(?<!\d)(\d{13})(?!\d)"),
    re.compile(r"(?<![\dX])(\d{9}[\dX])(?![\dX])", re.IGNORECASE),
)


def extract_identifier(text: Optional[str]) -> Optional[str]:
    """
    Find an ISBN-shaped string in recognized text.

    Args:
        text: Raw OCR output

    Returns:
        First group of the first pattern that matches, or None

    Example:
        >>> extract_identifier("Printed 2024  ISBN: 978-0-89279-079-6")
        '978-0-89279-079-6'
    """
    if not text:
        return None

    for pattern in ISBN_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()

    return None


def binarize(frame: np.ndarray, threshold: int = 128) -> np.ndarray:
    """
    Map every pixel to pure black or pure white.

    The mean of the colour channels is compared against the threshold.
    A new array is returned; the input is never modified. Colour channels
    all receive the binary value and an alpha channel is kept as is, so
    the output has the input's shape.

    Args:
        frame: Grayscale (H, W) or colour (H, W, C) image
        threshold: Midpoint; values >= threshold become white

    Returns:
        Binarized uint8 image
    """
    pixels = np.asarray(frame)

    if pixels.ndim == 2:
        luminance = pixels.astype(np.float32)
    else:
        luminance = pixels[..., :3].astype(np.float32).mean(axis=2)

    binary = np.where(luminance >= threshold, 255, 0).astype(np.uint8)

    if pixels.ndim == 2:
        return binary

    result = np.array(pixels, dtype=np.uint8, copy=True)
    result[..., :3] = binary[..., np.newaxis]
    return result


# =============================================================================
# BARCODE CHANNEL
# =============================================================================

class BarcodeRecognizer:
    """
    Decodes barcodes from frames with pyzbar.

    A frame without a readable barcode yields None. That is the common
    case and is never an error.

    Example:
        >>> recognizer = BarcodeRecognizer()
        >>> candidate = recognizer.decode(frame)
        >>> if candidate:
        ...     print(candidate.raw_text)
    """

    def __init__(self, decoder: Optional[Callable[[np.ndarray], Any]] = None) -> None:
        """
        Args:
            decoder: Callable returning pyzbar-style results
                (defaults to pyzbar.decode)
        """
        self._decoder = decoder or decode
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def decode(self, frame: Optional[np.ndarray]) -> Optional[Candidate]:
        """
        Decode the first non-empty barcode in a frame.

        Args:
            frame: OpenCV image (numpy array)

        Returns:
            Candidate or None when nothing was found
        """
        if self._closed:
            logger.debug("Barcode decoder closed, skipping frame")
            return None

        if frame is None or frame.size == 0:
            return None

        try:
            image = frame
            if frame.ndim == 3 and frame.shape[2] >= 3:
                image = cv2.cvtColor(frame[..., :3], cv2.COLOR_BGR2GRAY)
            barcodes = self._decoder(image)
        except Exception as e:
            logger.warning(f"Decode error: {e}")
            return None

        for barcode in barcodes:
            try:
                text = barcode.data.decode("utf-8").strip()
            except (AttributeError, UnicodeDecodeError) as e:
                logger.debug(f"Skipping unreadable barcode payload: {e}")
                continue

            if not text:
                continue

            rect = None
            if getattr(barcode, "rect", None) is not None:
                rect = {
                    "x": barcode.rect.left,
                    "y": barcode.rect.top,
                    "width": barcode.rect.width,
                    "height": barcode.rect.height
                }

            logger.debug(f"Barcode decoded: {text} ({getattr(barcode, 'type', '?')})")
            return Candidate(text, CandidateSource.BARCODE, rect)

        return None

    def close(self) -> None:
        """Release the decoder. Safe to call repeatedly."""
        if not self._closed:
            self._closed = True
            logger.debug("Barcode decoder closed")


# =============================================================================
# OCR CHANNEL
# =============================================================================

class OpticalTextRecognizer:
    """
    Tesseract-backed text recognizer for printed ISBN lines.

    The engine is opened once per scan session and closed once when the
    session ends.

    Example:
        >>> ocr = OpticalTextRecognizer(language="eng")
        >>> ocr.open()
        >>> candidate = ocr.propose(frame)
        >>> ocr.close()
    """

    def __init__(
        self,
        language: str = "eng",
        config: str = "--psm 6",
        threshold: int = 128,
        tesseract_cmd: Optional[str] = None,
        engine: Any = None
    ) -> None:
        """
        Args:
            language: Tesseract language code
            config: Extra tesseract options
            threshold: Binarization midpoint
            tesseract_cmd: Explicit tesseract binary path
            engine: Object exposing image_to_string() and
                get_tesseract_version() (defaults to pytesseract)
        """
        self._language = language
        self._config = config
        self._threshold = threshold
        self._tesseract_cmd = tesseract_cmd
        self._engine = engine or pytesseract
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        """
        Start the engine.

        Raises:
            RecognitionError: If tesseract cannot be reached
        """
        if self._open:
            return

        if self._tesseract_cmd and self._engine is pytesseract:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd

        try:
            version = self._engine.get_tesseract_version()
        except Exception as e:
            raise RecognitionError(f"Tesseract unavailable: {e}") from e

        self._open = True
        logger.info(f"🔤 OCR engine ready (tesseract {version})")

    def recognize(self, frame: Optional[np.ndarray]) -> str:
        """
        Run OCR over a binarized copy of the frame.

        Raises:
            RecognitionError: Engine not open, or tesseract failed
        """
        if not self._open:
            raise RecognitionError("OCR engine is not running")

        if frame is None or frame.size == 0:
            return ""

        binary = binarize(frame, self._threshold)

        try:
            return self._engine.image_to_string(
                binary, lang=self._language, config=self._config
            )
        except Exception as e:
            raise RecognitionError(f"OCR failed: {e}") from e

    def propose(self, frame: Optional[np.ndarray]) -> Optional[Candidate]:
        """Recognize a frame and extract an ISBN-shaped candidate."""
        text = self.recognize(frame)
        match = extract_identifier(text)
        if match is None:
            return None
        return Candidate(match, CandidateSource.OCR)

    def close(self) -> bool:
        """
        Stop the engine.

        Returns:
            True if this call stopped it, False if it was not running
        """
        if not self._open:
            return False
        self._open = False
        logger.info("🔤 OCR engine stopped")
        return True
