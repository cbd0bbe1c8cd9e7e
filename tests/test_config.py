"""
Tests for Platecam Configuration
"""

from platecam.config import PlatecamConfig
from platecam.plates.preprocess import ContrastMode
from platecam.plates.plate_ocr import PageSegMode


class TestPlatecamConfig:
    """Test defaults and environment overrides"""

    def test_defaults(self):
        """Test default values"""
        config = PlatecamConfig()
        assert config.max_photos == 4
        assert config.jpeg_quality == 90
        assert config.preprocess.contrast_mode == ContrastMode.THRESHOLD
        assert config.ocr_options.page_segmentation_mode == PageSegMode.SINGLE_LINE

    def test_from_env(self, monkeypatch):
        """Test PLATECAM_* variables"""
        monkeypatch.setenv("PLATECAM_MAX_PHOTOS", "0")
        monkeypatch.setenv("PLATECAM_SCAN_TIMEOUT", "0")
        monkeypatch.setenv("PLATECAM_STOP_AFTER_CAPTURE", "yes")
        monkeypatch.setenv("PLATECAM_CONTRAST_MODE", "gain")
        monkeypatch.setenv("PLATECAM_MAX_WIDTH", "0")
        monkeypatch.setenv("PLATECAM_PSM", "8")
        monkeypatch.setenv("PLATECAM_OCR_ENGINE", "tesseract")

        config = PlatecamConfig.from_env()

        assert config.max_photos == 0
        assert config.scan_timeout is None
        assert config.stop_after_capture
        assert config.preprocess.contrast_mode == ContrastMode.GAIN
        assert config.preprocess.max_width is None
        assert config.ocr_options.page_segmentation_mode == PageSegMode.SINGLE_WORD
        assert config.ocr_engine == "tesseract"
