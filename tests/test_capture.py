"""
==============================================================================
Capture Controller Tests
==============================================================================
"""

import numpy as np
import pytest

from app.scanner import (
    CameraBusy,
    CaptureController,
    FacingMode,
    NoCameraFound,
    PermissionDenied,
    PushedFrameDevice,
)
from tests.conftest import CameraOpener


class TestCaptureController:
    """Tests for camera session ownership."""

    def test_start_and_grab_frame(self, controller, opener):
        session = controller.start()

        frame = session.grab_frame()

        assert frame is not None
        assert frame is not opener.devices[0].frame
        assert controller.active_session is session

    def test_no_camera(self):
        controller = CaptureController(
            opener=CameraOpener(opened=False),
            device_path_template="/nonexistent/video{index}"
        )
        with pytest.raises(NoCameraFound):
            controller.start()
        assert controller.active_session is None

    def test_permission_error_from_opener(self):
        def opener(index):
            raise PermissionError("denied")

        controller = CaptureController(opener=opener)
        with pytest.raises(PermissionDenied) as exc:
            controller.start()
        assert exc.value.code == "CAMERA_PERMISSION_DENIED"

    def test_second_session_is_busy(self, controller):
        controller.start()
        with pytest.raises(CameraBusy):
            controller.start()

    def test_stop_releases_exactly_once(self, controller, opener):
        session = controller.start()

        controller.stop(session)
        controller.stop(session)
        controller.stop()

        assert opener.devices[0].release_count == 1
        assert session.grab_frame() is None
        assert controller.active_session is None

    def test_restart_after_stop(self, controller):
        controller.stop(controller.start())
        assert controller.start().is_active

    def test_user_facing_uses_front_index(self):
        opened = []

        def opener(index):
            opened.append(index)
            return CameraOpener()(index)

        controller = CaptureController(camera_index=0, front_camera_index=2, opener=opener)
        controller.start(FacingMode.USER)

        assert opened == [2]


class TestPushedFrameDevice:
    """Tests for client-pushed frame sessions."""

    def test_latest_frame_wins(self, controller):
        session = controller.start_remote()
        device = session.device_handle

        assert session.grab_frame() is None

        device.push(np.zeros((2, 2, 3), dtype=np.uint8))
        device.push(np.ones((2, 2, 3), dtype=np.uint8))

        assert (session.grab_frame() == 1).all()

    def test_release_drops_frames(self):
        device = PushedFrameDevice()
        device.push(np.zeros((2, 2, 3), dtype=np.uint8))
        device.release()

        assert device.read() == (False, None)
        assert not device.isOpened()
