"""
Platecam Errors

Exceptions raised at the device and OCR engine boundaries.
Pure helpers (preprocess, normalize, format) never raise.
"""


class PlatecamError(Exception):
    """Base class for all platecam errors"""


class DeviceError(PlatecamError):
    """Camera could not be acquired (denied, missing, bad constraints)"""


class CaptureUnavailable(PlatecamError):
    """Capture rejected: session not streaming or photo limit reached"""


class PhotoNotFound(PlatecamError, KeyError):
    """No photo with the given id in the session"""


class ScanError(PlatecamError):
    """Base class for recognition failures"""


class EngineLoadError(ScanError):
    """OCR engine failed to initialize"""


class NoTextDetected(ScanError):
    """Engine ran but produced no usable text"""


class ScanTimeout(ScanError):
    """Engine did not answer within the caller's timeout"""


class ScanInProgress(ScanError):
    """Another scan is running and concurrent scans are rejected"""


class ScanCancelled(ScanError):
    """Photo or session was discarded while the scan was pending"""
