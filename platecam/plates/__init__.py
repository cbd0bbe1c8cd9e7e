"""
Platecam License Plate Processing

Preprocessing, OCR engines, normalization and plate formatting.
"""

from platecam.plates.normalize import normalize_plate, plates_match
from platecam.plates.formats import (
    PlatePattern,
    PatternTable,
    CanonicalPlate,
    INDIA_PATTERNS,
    NO_MATCH,
    format_plate,
    is_valid_plate,
)
from platecam.plates.preprocess import PreprocessConfig, ContrastMode, preprocess_image
from platecam.plates.plate_ocr import (
    OCREngine,
    OCROptions,
    OCRReading,
    PageSegMode,
    EngineHolder,
    LoadState,
    get_engine_holder,
)

__all__ = [
    'normalize_plate',
    'plates_match',
    'PlatePattern',
    'PatternTable',
    'CanonicalPlate',
    'INDIA_PATTERNS',
    'NO_MATCH',
    'format_plate',
    'is_valid_plate',
    'PreprocessConfig',
    'ContrastMode',
    'preprocess_image',
    'OCREngine',
    'OCROptions',
    'OCRReading',
    'PageSegMode',
    'EngineHolder',
    'LoadState',
    'get_engine_holder',
]
