"""
Platecam Schema Definitions

Core data structures shared by the capture session and the recognition pipeline.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


class FacingMode(str, Enum):
    """Which way the active camera points"""
    USER = "user"  # front
    ENVIRONMENT = "environment"  # back

    def flipped(self) -> "FacingMode":
        if self is FacingMode.USER:
            return FacingMode.ENVIRONMENT
        return FacingMode.USER


class SessionState(str, Enum):
    """Capture session lifecycle state"""
    IDLE = "idle"
    STREAMING = "streaming"
    CAPTURING = "capturing"
    ERROR = "error"


class TextSource(str, Enum):
    """Who wrote a photo's extracted text"""
    SCAN = "scan"
    USER = "user"


@dataclass
class StreamConstraints:
    """Constraints passed to the video source when opening a stream"""
    facing_mode: FacingMode = FacingMode.ENVIRONMENT
    ideal_width: Optional[int] = 1280
    ideal_height: Optional[int] = 720


@dataclass
class Photo:
    """A still captured from the live stream"""
    image_bytes: bytes  # encoded still (JPEG)
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    photo_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    facing_mode: FacingMode = FacingMode.ENVIRONMENT
    extracted_text: Optional[str] = None
    text_source: Optional[TextSource] = None

    @property
    def is_scanned(self) -> bool:
        return self.extracted_text is not None

    def to_record(self) -> Dict[str, Any]:
        """Export photo record"""
        return {
            "id": self.photo_id,
            "image_bytes": self.image_bytes,
            "timestamp_utc": self.captured_at.isoformat(),
            "extracted_text": self.extracted_text,
            "text_source": self.text_source.value if self.text_source else None,
        }
