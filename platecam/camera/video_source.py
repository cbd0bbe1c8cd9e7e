"""
Video Source

Camera access used by the capture session. The session only sees the
VideoSource / VideoStream interfaces; OpenCVVideoSource backs them with
cv2.VideoCapture devices.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

import cv2
import numpy as np

from platecam.errors import DeviceError
from platecam.schemas import FacingMode, StreamConstraints


class VideoStream(ABC):
    """Handle to an open camera stream"""

    @abstractmethod
    def current_frame(self) -> Optional[np.ndarray]:
        """Read the current frame (BGR), None if no frame is available"""
        pass

    @abstractmethod
    def release(self):
        """Release the device. Safe to call more than once."""
        pass


class VideoSource(ABC):
    """Opens camera streams"""

    @abstractmethod
    def open(self, constraints: StreamConstraints) -> VideoStream:
        """
        Acquire a stream.

        Raises:
            DeviceError: Camera missing, denied, or constraints unsatisfiable
        """
        pass


class OpenCVStream(VideoStream):
    """Stream backed by cv2.VideoCapture"""

    def __init__(self, cap: cv2.VideoCapture, device: Union[int, str]):
        self.cap: Optional[cv2.VideoCapture] = cap
        self.device = device
        self.frame_count = 0

        self.width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

    def current_frame(self) -> Optional[np.ndarray]:
        if self.cap is None or not self.cap.isOpened():
            return None

        ret, frame = self.cap.read()
        if not ret or frame is None:
            return None

        self.frame_count += 1
        return frame

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            print(f"[OpenCVStream] Closed: {self.device}")


class OpenCVVideoSource(VideoSource):
    """
    Camera devices via OpenCV.

    Facing modes map to device indexes (or file/URL sources).
    """

    def __init__(self, devices: Optional[Dict[FacingMode, Union[int, str]]] = None, buffer_size: int = 1):
        """
        Args:
            devices: Facing mode -> device index or source path
            buffer_size: Frames to buffer (1 = latest frame only)
        """
        self.devices = devices or {
            FacingMode.ENVIRONMENT: 0,
            FacingMode.USER: 1,
        }
        self.buffer_size = buffer_size

    def open(self, constraints: StreamConstraints) -> VideoStream:
        device = self.devices.get(constraints.facing_mode)
        if device is None:
            raise DeviceError(f"No camera configured for facing mode {constraints.facing_mode.value}")

        try:
            cap = cv2.VideoCapture(device)
        except cv2.error as e:
            raise DeviceError(f"Failed to open camera {device}: {e}") from e

        if not cap.isOpened():
            cap.release()
            raise DeviceError(f"Failed to open camera {device}")

        cap.set(cv2.CAP_PROP_BUFFERSIZE, self.buffer_size)
        if constraints.ideal_width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.ideal_width)
        if constraints.ideal_height:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.ideal_height)

        stream = OpenCVStream(cap, device)
        print(f"[OpenCVVideoSource] Opened: {device} ({constraints.facing_mode.value})")
        print(f"[OpenCVVideoSource]   Resolution: {stream.width}x{stream.height}")

        return stream
