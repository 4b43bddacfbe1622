"""
==============================================================================
Scanner Package - ISBN Acquisition
==============================================================================

Camera capture, barcode and OCR recognition, and first-wins dispatch,
built on OpenCV, pyzbar and pytesseract.

Classes:
--------
- CaptureController / CaptureSession: Camera ownership
- BarcodeRecognizer: pyzbar channel
- OpticalTextRecognizer: tesseract channel
- ScanSession: Runs both channels and decides one outcome

==============================================================================
"""

from .capture import (
    CameraBusy,
    CaptureController,
    CaptureError,
    CaptureSession,
    FacingMode,
    NoCameraFound,
    PermissionDenied,
    PushedFrameDevice,
)
from .models import Candidate, CandidateSource, ScanOutcome, ScanStatus
from .recognizers import (
    BarcodeRecognizer,
    OpticalTextRecognizer,
    RecognitionError,
    binarize,
    extract_identifier,
)
from .session import ScanSession

__all__ = [
    "CameraBusy",
    "CaptureController",
    "CaptureError",
    "CaptureSession",
    "FacingMode",
    "NoCameraFound",
    "PermissionDenied",
    "PushedFrameDevice",
    "Candidate",
    "CandidateSource",
    "ScanOutcome",
    "ScanStatus",
    "BarcodeRecognizer",
    "OpticalTextRecognizer",
    "RecognitionError",
    "binarize",
    "extract_identifier",
    "ScanSession",
]
