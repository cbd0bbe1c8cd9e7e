"""
Platecam Camera

Video source adapters and the capture session.
"""

from platecam.camera.video_source import VideoSource, VideoStream, OpenCVVideoSource
from platecam.camera.session import CaptureSession

__all__ = [
    'VideoSource',
    'VideoStream',
    'OpenCVVideoSource',
    'CaptureSession',
]
