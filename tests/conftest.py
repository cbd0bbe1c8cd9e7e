"""
Shared fakes for capture and recognition tests.
"""

import threading
import time
from typing import List, Optional, Set

import numpy as np
import pytest

from platecam.camera.video_source import VideoSource, VideoStream
from platecam.config import PlatecamConfig
from platecam.errors import DeviceError
from platecam.plates.plate_ocr import OCREngine, OCROptions, OCRReading
from platecam.schemas import FacingMode, StreamConstraints


def make_frame(value: int = 200, height: int = 60, width: int = 80) -> np.ndarray:
    """Plain BGR test frame"""
    frame = np.full((height, width, 3), value, dtype=np.uint8)
    frame[20:40, 10:70] = 0  # dark band so JPEG has some content
    return frame


class FakeStream(VideoStream):
    def __init__(self, source: "FakeVideoSource", facing_mode: FacingMode):
        self.source = source
        self.facing_mode = facing_mode
        self.released = False

    def current_frame(self) -> Optional[np.ndarray]:
        if self.released or not self.source.frames_available:
            return None
        return make_frame()

    def release(self):
        if not self.released:
            self.released = True
            self.source.releases += 1


class FakeVideoSource(VideoSource):
    """Counts open/release calls; can be told to fail per facing mode"""

    def __init__(self):
        self.opens = 0
        self.releases = 0
        self.opened_modes: List[FacingMode] = []
        self.failing_modes: Set[FacingMode] = set()
        self.frames_available = True

    @property
    def active(self) -> int:
        return self.opens - self.releases

    def open(self, constraints: StreamConstraints) -> VideoStream:
        if constraints.facing_mode in self.failing_modes:
            raise DeviceError(f"Permission denied ({constraints.facing_mode.value})")
        self.opens += 1
        self.opened_modes.append(constraints.facing_mode)
        return FakeStream(self, constraints.facing_mode)


class FakeEngine(OCREngine):
    """Returns queued readings; tracks concurrent recognize() calls"""

    name = "fake"

    def __init__(self, texts=None, delays=None, error: Optional[Exception] = None):
        self.texts = list(texts or ["HR26AB1234"])
        self.delays = list(delays or [])
        self.error = error
        self.calls = 0
        self.running = 0
        self.max_running = 0
        self.closed = False
        self._lock = threading.Lock()

    def recognize(self, image: np.ndarray, language: str, options: OCROptions) -> OCRReading:
        with self._lock:
            self.calls += 1
            self.running += 1
            self.max_running = max(self.max_running, self.running)
            delay = self.delays.pop(0) if self.delays else 0.0
            text = self.texts.pop(0) if len(self.texts) > 1 else self.texts[0]
        try:
            if delay:
                time.sleep(delay)
            if self.error is not None:
                raise self.error
            return OCRReading(text=text, confidence=0.9)
        finally:
            with self._lock:
                self.running -= 1

    def close(self):
        self.closed = True


@pytest.fixture
def source():
    return FakeVideoSource()


@pytest.fixture
def config():
    return PlatecamConfig(max_photos=4, reopen_delay=0.0, scan_timeout=5.0)
