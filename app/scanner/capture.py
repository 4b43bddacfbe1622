"""
==============================================================================
Capture Controller Module
==============================================================================

Camera session ownership for ISBN scanning.

Features:
---------
- Local camera acquisition through OpenCV (cv2.VideoCapture)
- Client-pushed frames (browser camera over WebSocket) behind the
  same device interface
- At most one active session per controller
- Idempotent stop: the device is released exactly once

Device Interface:
----------------
Any object with the cv2.VideoCapture subset below can back a session:

    read()      -> (ok, frame)
    isOpened()  -> bool
    release()   -> None

==============================================================================
"""

from __future__ import annotations

import enum
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

import cv2
import numpy as np


# Module logger
logger = logging.getLogger(__name__)


class FacingMode(str, enum.Enum):
    """Which camera the caller would like to use."""

    ENVIRONMENT = "environment"
    USER = "user"


# =============================================================================
# ERRORS
# =============================================================================

class CaptureError(Exception):
    """Base class for fatal camera acquisition failures."""

    code = "CAPTURE_ERROR"


class NoCameraFound(CaptureError):
    """No usable camera device could be opened."""

    code = "NO_CAMERA_FOUND"


class PermissionDenied(CaptureError):
    """A camera exists but this process may not open it."""

    code = "CAMERA_PERMISSION_DENIED"


class CameraBusy(CaptureError):
    """The controller already owns an active session."""

    code = "CAMERA_BUSY"


# =============================================================================
# DEVICES
# =============================================================================

class PushedFrameDevice:
    """
    Device handle fed by frames pushed from a remote client.

    Holds only the most recent frame; older frames are dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None
        self._open = True

    def push(self, frame: np.ndarray) -> None:
        """Replace the current frame."""
        with self._lock:
            if self._open:
                self._frame = frame

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        with self._lock:
            if not self._open or self._frame is None:
                return False, None
            return True, self._frame.copy()

    def isOpened(self) -> bool:  # noqa: N802 - mirrors cv2.VideoCapture
        return self._open

    def release(self) -> None:
        with self._lock:
            self._open = False
            self._frame = None


class CaptureSession:
    """
    One camera acquisition, from start to release.

    Attributes:
        device_handle: The opened device (cv2.VideoCapture or compatible)
        facing: Requested camera facing
        remote: True when frames are pushed by a client
    """

    def __init__(
        self,
        device_handle: Any,
        facing: FacingMode = FacingMode.ENVIRONMENT,
        remote: bool = False
    ) -> None:
        self.device_handle = device_handle
        self.facing = facing
        self.remote = remote
        self._active = True
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._active

    def grab_frame(self) -> Optional[np.ndarray]:
        """
        Take a snapshot of the live stream.

        Returns:
            A private copy of the current frame, or None when the session
            is stopped or the device has nothing to offer yet.
        """
        if not self._active:
            return None

        ok, frame = self.device_handle.read()
        if not ok or frame is None or frame.size == 0:
            return None

        return np.array(frame, copy=True)

    def close(self) -> bool:
        """
        Release the device.

        Returns:
            True if this call released the device, False if it was
            already released.
        """
        with self._lock:
            if not self._active:
                return False
            self._active = False

        try:
            self.device_handle.release()
            logger.info("📷 Camera released")
        except Exception as e:
            logger.error(f"Camera release error: {e}")

        return True


# =============================================================================
# CONTROLLER
# =============================================================================

class CaptureController:
    """
    Owns camera sessions and their lifecycle.

    Example:
        >>> controller = CaptureController(camera_index=0)
        >>> session = controller.start(FacingMode.ENVIRONMENT)
        >>> frame = session.grab_frame()
        >>> controller.stop(session)
        >>> controller.stop(session)  # no-op
    """

    def __init__(
        self,
        camera_index: int = 0,
        front_camera_index: Optional[int] = None,
        opener: Optional[Callable[[int], Any]] = None,
        device_path_template: str = "/dev/video{index}"
    ) -> None:
        """
        Initialize the controller.

        Args:
            camera_index: Device index for the environment-facing camera
            front_camera_index: Device index for the user-facing camera
            opener: Factory returning a device for an index
                (defaults to cv2.VideoCapture)
            device_path_template: Device node used to tell a missing
                camera apart from a permission problem
        """
        self._camera_index = camera_index
        self._front_camera_index = front_camera_index
        self._opener = opener or cv2.VideoCapture
        self._device_path_template = device_path_template
        self._session: Optional[CaptureSession] = None
        self._lock = threading.Lock()

    @property
    def active_session(self) -> Optional[CaptureSession]:
        """The currently active session, if any."""
        session = self._session
        if session is not None and session.is_active:
            return session
        return None

    def resolve_index(self, facing: FacingMode) -> int:
        """Map a facing hint to a device index."""
        if facing == FacingMode.USER and self._front_camera_index is not None:
            return self._front_camera_index
        return self._camera_index

    def start(self, facing: FacingMode = FacingMode.ENVIRONMENT) -> CaptureSession:
        """
        Acquire the camera.

        Args:
            facing: Which camera to prefer

        Returns:
            Active CaptureSession

        Raises:
            CameraBusy: A session is already active on this controller
            PermissionDenied: The device exists but cannot be opened
            NoCameraFound: No device could be opened
        """
        with self._lock:
            if self.active_session is not None:
                raise CameraBusy("Camera is already in use by another scan")

            index = self.resolve_index(facing)
            logger.info(f"📷 Opening camera {index} ({facing.value})")

            try:
                device = self._opener(index)
            except PermissionError as e:
                raise PermissionDenied(f"Camera access denied: {e}") from e

            if device is None or not device.isOpened():
                self._discard(device)
                if self._permission_blocked(index):
                    raise PermissionDenied(
                        "Camera access denied. Please check permissions."
                    )
                raise NoCameraFound("No camera found")

            self._session = CaptureSession(device, facing)
            return self._session

    def start_remote(self) -> CaptureSession:
        """
        Open a session whose frames are pushed by a client.

        Raises:
            CameraBusy: A session is already active on this controller
        """
        with self._lock:
            if self.active_session is not None:
                raise CameraBusy("A scan session is already active")

            self._session = CaptureSession(PushedFrameDevice(), remote=True)
            logger.info("📷 Remote frame session opened")
            return self._session

    def stop(self, session: Optional[CaptureSession] = None) -> None:
        """
        Release a session. Safe to call any number of times.

        Args:
            session: Session to release (defaults to the active one)
        """
        with self._lock:
            session = session or self._session
            if session is None:
                return
            if self._session is session:
                self._session = None

        session.close()

    def _permission_blocked(self, index: int) -> bool:
        path = Path(self._device_path_template.format(index=index))
        return path.exists() and not os.access(path, os.R_OK | os.W_OK)

    @staticmethod
    def _discard(device: Any) -> None:
        if device is None:
            return
        try:
            device.release()
        except Exception as e:
            logger.debug(f"Ignoring release error on unopened device: {e}")
