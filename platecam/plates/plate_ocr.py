"""
License Plate OCR

OCR engine adapters and the shared, lazily-loaded engine holder.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, List, Optional

import numpy as np

from platecam.errors import EngineLoadError


PLATE_CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


class PageSegMode(IntEnum):
    """Tesseract page segmentation modes useful for plates"""
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    SPARSE_TEXT = 11
    RAW_LINE = 13


@dataclass
class OCROptions:
    """Options passed to the OCR engine on every call"""
    char_whitelist: str = PLATE_CHARSET
    page_segmentation_mode: PageSegMode = PageSegMode.SINGLE_LINE
    preserve_interword_spaces: bool = False


@dataclass
class OCRReading:
    """Raw engine output"""
    text: str
    confidence: Optional[float] = None  # 0.0 - 1.0 when the engine reports it


def build_tesseract_config(options: OCROptions) -> str:
    """
    Build Tesseract CLI config string.

    --oem 3: Use both legacy and LSTM engines
    --psm N: Page segmentation mode
    """
    parts = [f"--oem 3 --psm {int(options.page_segmentation_mode)}"]
    if options.char_whitelist:
        parts.append(f"-c tessedit_char_whitelist={options.char_whitelist}")
    if options.preserve_interword_spaces:
        parts.append("-c preserve_interword_spaces=1")
    return " ".join(parts)


class OCREngine(ABC):
    """
    Abstract OCR engine.

    Instances are not assumed to be reentrant; callers serialize access.
    """

    name = "engine"

    @abstractmethod
    def recognize(self, image: np.ndarray, language: str, options: OCROptions) -> OCRReading:
        """
        Recognize text in image.

        Args:
            image: Preprocessed image
            language: Tesseract-style language code ("eng")
            options: Engine options

        Returns:
            OCRReading with raw text and optional confidence
        """
        pass

    def close(self):
        """Release engine resources"""
        pass


class TesseractEngine(OCREngine):
    """OCR via pytesseract"""

    name = "tesseract"

    def __init__(self):
        import pytesseract
        self.pytesseract = pytesseract
        # Fails here, not on first scan, when the tesseract binary is missing
        self.version = str(pytesseract.get_tesseract_version())
        print(f"[PlateOCR] Using Tesseract OCR {self.version}")

    def recognize(self, image: np.ndarray, language: str, options: OCROptions) -> OCRReading:
        config = build_tesseract_config(options)
        data = self.pytesseract.image_to_data(
            image,
            lang=language,
            config=config,
            output_type=self.pytesseract.Output.DICT,
        )

        words: List[str] = []
        confidences: List[float] = []
        for word, conf in zip(data.get("text", []), data.get("conf", [])):
            word = (word or "").strip()
            if not word:
                continue
            words.append(word)
            conf = float(conf)
            if conf >= 0:
                confidences.append(conf / 100.0)

        confidence = sum(confidences) / len(confidences) if confidences else None
        return OCRReading(text=" ".join(words), confidence=confidence)


class EasyOCREngine(OCREngine):
    """OCR via EasyOCR"""

    name = "easyocr"

    # EasyOCR uses two-letter codes
    LANGUAGE_CODES = {"eng": "en"}

    def __init__(self, language: str = "eng", gpu: bool = False):
        import easyocr
        code = self.LANGUAGE_CODES.get(language, language)
        self.reader = easyocr.Reader([code], gpu=gpu)
        print("[PlateOCR] Using EasyOCR")

    def recognize(self, image: np.ndarray, language: str, options: OCROptions) -> OCRReading:
        results = self.reader.readtext(image, allowlist=options.char_whitelist or None)

        if not results:
            return OCRReading(text="", confidence=None)

        # Left-to-right reading order
        results = sorted(results, key=lambda r: min(point[0] for point in r[0]))
        text = " ".join(r[1] for r in results)
        confidence = sum(float(r[2]) for r in results) / len(results)

        return OCRReading(text=text, confidence=confidence)


def create_engine(kind: str = "auto", language: str = "eng") -> OCREngine:
    """
    Create an OCR engine.

    Args:
        kind: "tesseract", "easyocr" or "auto" (EasyOCR first, then Tesseract)
        language: Recognition language

    Returns:
        Loaded engine
    """
    if kind == "tesseract":
        return TesseractEngine()
    if kind == "easyocr":
        return EasyOCREngine(language=language)
    if kind != "auto":
        raise ValueError(f"Unknown OCR engine: {kind}")

    try:
        return EasyOCREngine(language=language)
    except ImportError:
        print("[PlateOCR] EasyOCR not installed, trying Tesseract")
    return TesseractEngine()


class LoadState(str, Enum):
    """Engine holder load state"""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class EngineHolder:
    """
    Lazily loads one OCR engine and hands it out.

    Loading happens at most once. After a failure every call raises
    EngineLoadError until reload() succeeds.
    """

    def __init__(self, factory: Optional[Callable[[], OCREngine]] = None):
        """
        Args:
            factory: Builds the engine (may be slow); defaults to create_engine()
        """
        self.factory = factory or create_engine
        self.state = LoadState.UNLOADED
        self.engine: Optional[OCREngine] = None
        self.error: Optional[BaseException] = None
        self.load_count = 0
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_ready(self) -> bool:
        return self.state == LoadState.READY

    async def ensure_loaded(self) -> OCREngine:
        """
        Return the engine, loading it on first use.

        Raises:
            EngineLoadError: Engine failed to load (now or previously)
        """
        if self.state == LoadState.READY:
            return self.engine

        async with self._loop_lock():
            if self.state == LoadState.READY:
                return self.engine
            if self.state == LoadState.FAILED:
                raise EngineLoadError(f"OCR engine unavailable: {self.error}") from self.error

            self.state = LoadState.LOADING
            self.load_count += 1
            try:
                engine = await asyncio.to_thread(self.factory)
            except Exception as e:
                self.state = LoadState.FAILED
                self.error = e
                print(f"[EngineHolder] Engine load failed: {e}")
                raise EngineLoadError(f"OCR engine failed to load: {e}") from e

            self.engine = engine
            self.error = None
            self.state = LoadState.READY
            return engine

    def _loop_lock(self) -> asyncio.Lock:
        # The holder is process-wide but an asyncio.Lock belongs to one loop
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def reload(self) -> OCREngine:
        """Drop any failed or loaded engine and load again"""
        self.teardown()
        return await self.ensure_loaded()

    def teardown(self):
        """Close the engine and return to UNLOADED"""
        if self.engine is not None:
            try:
                self.engine.close()
            except Exception as e:
                print(f"[EngineHolder] Engine close failed: {e}")
        self.engine = None
        self.error = None
        self.state = LoadState.UNLOADED


# Global holder instance
_engine_holder: Optional[EngineHolder] = None


def get_engine_holder(kind: str = "auto", language: str = "eng") -> EngineHolder:
    """
    Get or create global engine holder.

    kind and language only apply when the holder is first created.
    """
    global _engine_holder
    if _engine_holder is None:
        _engine_holder = EngineHolder(lambda: create_engine(kind, language))
    return _engine_holder


def shutdown_engine_holder():
    """Tear down and forget the global engine holder"""
    global _engine_holder
    if _engine_holder is not None:
        _engine_holder.teardown()
        _engine_holder = None
