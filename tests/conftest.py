"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides a temporary book store, fake camera devices, fake recognition
engines and an API client wired to them.

==============================================================================
"""

import os
import tempfile

# Settings are cached on first use; point them at scratch space before
# the application is imported.
_DATA_DIR = tempfile.mkdtemp(prefix="book-catalog-tests-")
os.environ.setdefault("DATA_PATH", _DATA_DIR)
os.environ.setdefault("STATIC_DIRECTORY", os.path.join(_DATA_DIR, "no-static"))

import numpy as np
import pytest
from types import SimpleNamespace
from typing import Generator, List, Optional
from fastapi.testclient import TestClient

from app.main import app
from app.catalog import BookStore
from app.config import get_settings
from app.core.dependencies import get_book_store, get_scan_service
from app.scanner import BarcodeRecognizer, CaptureController, OpticalTextRecognizer
from app.services import ScanService


# ============================================================================
# FAKE DEVICES AND ENGINES
# ============================================================================

class FakeCamera:
    """cv2.VideoCapture stand-in that serves a fixed frame."""

    def __init__(self, opened: bool = True, frame: Optional[np.ndarray] = None):
        self.opened = opened
        self.frame = frame if frame is not None else np.full((48, 64, 3), 200, np.uint8)
        self.release_count = 0
        self.read_count = 0

    def read(self):
        self.read_count += 1
        if not self.opened:
            return False, None
        return True, self.frame

    def isOpened(self):
        return self.opened

    def release(self):
        self.release_count += 1
        self.opened = False


class CameraOpener:
    """Opener passed to CaptureController; records every device it hands out."""

    def __init__(self, opened: bool = True):
        self.opened = opened
        self.devices: List[FakeCamera] = []

    def __call__(self, index: int) -> FakeCamera:
        device = FakeCamera(opened=self.opened)
        self.devices.append(device)
        return device


def barcode_result(text: str, left: int = 5, top: int = 6, width: int = 40, height: int = 20):
    """pyzbar-style decode result."""
    return SimpleNamespace(
        data=text.encode("utf-8"),
        type="EAN13",
        rect=SimpleNamespace(left=left, top=top, width=width, height=height),
    )


class ScriptedDecoder:
    """Barcode decoder returning the given texts, one per call, then nothing."""

    def __init__(self, *texts: str):
        self.texts = list(texts)
        self.calls = 0

    def __call__(self, image):
        self.calls += 1
        if self.texts:
            return [barcode_result(self.texts.pop(0))]
        return []


class FakeTesseract:
    """pytesseract stand-in."""

    def __init__(self, text: str = "", available: bool = True):
        self.text = text
        self.available = available
        self.calls = 0
        self.last_image = None

    def get_tesseract_version(self):
        if not self.available:
            raise RuntimeError("tesseract is not installed")
        return "5.3.0"

    def image_to_string(self, image, lang=None, config=None):
        self.calls += 1
        self.last_image = image
        return self.text


# ============================================================================
# STORE FIXTURES
# ============================================================================

@pytest.fixture(scope="function")
def store(tmp_path) -> BookStore:
    """Empty book store in a per-test directory."""
    return BookStore(tmp_path / "books.json")


# ============================================================================
# SCANNER FIXTURES
# ============================================================================

@pytest.fixture
def opener() -> CameraOpener:
    return CameraOpener()


@pytest.fixture
def controller(opener: CameraOpener) -> CaptureController:
    return CaptureController(opener=opener, device_path_template="/nonexistent/video{index}")


@pytest.fixture
def tesseract() -> FakeTesseract:
    return FakeTesseract()


@pytest.fixture
def decoder() -> ScriptedDecoder:
    return ScriptedDecoder()


@pytest.fixture
def scan_service(controller, decoder, tesseract) -> ScanService:
    """Scan service running on fake devices and engines."""
    settings = get_settings().model_copy(update={"scan_interval_seconds": 0.01})
    return ScanService(
        settings,
        controller=controller,
        barcode_factory=lambda: BarcodeRecognizer(decoder=decoder),
        ocr_factory=lambda: OpticalTextRecognizer(engine=tesseract),
    )


# ============================================================================
# CLIENT FIXTURES
# ============================================================================

@pytest.fixture(scope="function")
def client(store: BookStore, scan_service: ScanService) -> Generator[TestClient, None, None]:
    """Create test client with store and scanner overrides."""
    app.dependency_overrides[get_book_store] = lambda: store
    app.dependency_overrides[get_scan_service] = lambda: scan_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_book(store: BookStore):
    """Create a stored sample book."""
    from app.catalog import BookCreate

    return store.add_book(BookCreate(
        title="The Hobbit",
        author="J.R.R. Tolkien",
        cover_style="Hardback",
        isbn="9780261103344",
    ))
