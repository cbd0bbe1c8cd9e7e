"""
Tests for OpenCV Video Source

Uses a mocked cv2.VideoCapture; no camera needed.
"""

from unittest.mock import Mock, patch

import numpy as np
import pytest

from platecam.camera.video_source import OpenCVVideoSource
from platecam.errors import DeviceError
from platecam.schemas import FacingMode, StreamConstraints


def mock_capture(opened=True, frame=None) -> Mock:
    cap = Mock()
    cap.isOpened.return_value = opened
    cap.get.return_value = 640
    cap.read.return_value = (frame is not None, frame)
    return cap


class TestOpenCVVideoSource:
    """Test device open, frame read and release"""

    def test_open_and_read(self):
        """Test facing mode picks the device and frames are returned"""
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        cap = mock_capture(frame=frame)

        with patch("platecam.camera.video_source.cv2.VideoCapture", return_value=cap) as video_capture:
            source = OpenCVVideoSource({FacingMode.USER: 1, FacingMode.ENVIRONMENT: 0})
            stream = source.open(StreamConstraints(facing_mode=FacingMode.USER, ideal_width=640, ideal_height=480))

        video_capture.assert_called_once_with(1)
        assert stream.current_frame() is frame
        assert stream.frame_count == 1

    def test_release_idempotent(self):
        """Test release frees the device once"""
        cap = mock_capture(frame=np.zeros((4, 4, 3), dtype=np.uint8))

        with patch("platecam.camera.video_source.cv2.VideoCapture", return_value=cap):
            stream = OpenCVVideoSource().open(StreamConstraints())

        stream.release()
        stream.release()

        cap.release.assert_called_once()
        assert stream.current_frame() is None

    def test_failed_read(self):
        """Test a failed read returns None"""
        cap = mock_capture(frame=None)

        with patch("platecam.camera.video_source.cv2.VideoCapture", return_value=cap):
            stream = OpenCVVideoSource().open(StreamConstraints())

        assert stream.current_frame() is None

    def test_device_not_opened(self):
        """Test unavailable camera raises DeviceError and frees the handle"""
        cap = mock_capture(opened=False)

        with patch("platecam.camera.video_source.cv2.VideoCapture", return_value=cap):
            with pytest.raises(DeviceError):
                OpenCVVideoSource().open(StreamConstraints())

        cap.release.assert_called_once()

    def test_unmapped_facing_mode(self):
        """Test facing mode without a configured device"""
        source = OpenCVVideoSource({FacingMode.ENVIRONMENT: 0})
        with pytest.raises(DeviceError):
            source.open(StreamConstraints(facing_mode=FacingMode.USER))
