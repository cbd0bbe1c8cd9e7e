"""
Platecam Configuration

Capture and recognition settings.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from platecam.plates.preprocess import PreprocessConfig, ContrastMode
from platecam.plates.plate_ocr import OCROptions, PageSegMode


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str, default: str) -> Optional[int]:
    value = int(os.getenv(name, default))
    return value if value > 0 else None


@dataclass
class PlatecamConfig:
    """Configuration for the capture/recognition pipeline"""

    # Capture
    max_photos: int = 4  # 0 = unbounded
    ideal_width: Optional[int] = 1280
    ideal_height: Optional[int] = 720
    jpeg_quality: int = 90
    stop_after_capture: bool = False
    reopen_delay: float = 0.0  # seconds between release and re-open on switch

    # Recognition
    ocr_engine: str = "auto"  # auto, tesseract, easyocr
    language: str = "eng"
    scan_timeout: Optional[float] = 30.0
    strict_corrections: bool = False
    retry_uncorrected: bool = False
    reject_concurrent_scans: bool = False

    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    ocr_options: OCROptions = field(default_factory=OCROptions)

    @classmethod
    def from_env(cls) -> "PlatecamConfig":
        """Create config from environment variables"""
        timeout = float(os.getenv("PLATECAM_SCAN_TIMEOUT", "30"))

        return cls(
            max_photos=int(os.getenv("PLATECAM_MAX_PHOTOS", "4")),
            ideal_width=_env_optional_int("PLATECAM_IDEAL_WIDTH", "1280"),
            ideal_height=_env_optional_int("PLATECAM_IDEAL_HEIGHT", "720"),
            jpeg_quality=int(os.getenv("PLATECAM_JPEG_QUALITY", "90")),
            stop_after_capture=_env_bool("PLATECAM_STOP_AFTER_CAPTURE", "false"),
            reopen_delay=float(os.getenv("PLATECAM_REOPEN_DELAY", "0")),
            ocr_engine=os.getenv("PLATECAM_OCR_ENGINE", "auto"),
            language=os.getenv("PLATECAM_OCR_LANGUAGE", "eng"),
            scan_timeout=timeout if timeout > 0 else None,
            strict_corrections=_env_bool("PLATECAM_STRICT_CORRECTIONS", "false"),
            retry_uncorrected=_env_bool("PLATECAM_RETRY_UNCORRECTED", "false"),
            reject_concurrent_scans=_env_bool("PLATECAM_REJECT_CONCURRENT_SCANS", "false"),
            preprocess=PreprocessConfig(
                max_width=_env_optional_int("PLATECAM_MAX_WIDTH", "1280"),
                max_height=_env_optional_int("PLATECAM_MAX_HEIGHT", "1280"),
                contrast_mode=ContrastMode(os.getenv("PLATECAM_CONTRAST_MODE", "threshold")),
                threshold=int(os.getenv("PLATECAM_THRESHOLD", "128")),
                gain=float(os.getenv("PLATECAM_GAIN", "1.5")),
            ),
            ocr_options=OCROptions(
                page_segmentation_mode=PageSegMode(int(os.getenv("PLATECAM_PSM", "7"))),
                preserve_interword_spaces=_env_bool("PLATECAM_PRESERVE_SPACES", "false"),
            ),
        )


# Global default config
DEFAULT_CONFIG = PlatecamConfig.from_env()
