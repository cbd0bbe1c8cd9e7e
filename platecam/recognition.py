"""
Plate Recognition

Runs a captured photo through preprocess -> OCR -> normalize -> format
and stores the plate text on the photo.

One engine call at a time per orchestrator. A scan whose photo is deleted
(or whose session is reset) while the engine runs ends with ScanCancelled
and writes nothing.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from platecam.camera.session import CaptureSession
from platecam.config import PlatecamConfig
from platecam.errors import NoTextDetected, ScanCancelled, ScanInProgress, ScanTimeout
from platecam.plates.formats import INDIA_PATTERNS, NO_MATCH, FormatResult, PatternTable, format_plate
from platecam.plates.normalize import normalize_plate, plates_match
from platecam.plates.plate_ocr import EngineHolder, OCREngine, OCRReading, get_engine_holder
from platecam.plates.preprocess import decode_image, preprocess_image
from platecam.schemas import Photo


_UNSET = object()


@dataclass
class RecognitionResult:
    """
    Outcome of one scan.

    raw_text is the engine output; it is empty for cached results, which
    are rebuilt from the text already stored on the photo. On a rescan of a
    photo that had text, previous_text holds that text and matches_previous
    says whether the new plate is within one edit of it.
    """
    raw_text: str
    normalized_text: str
    plate: FormatResult = NO_MATCH
    confidence: Optional[float] = None
    cached: bool = False  # photo already had text; engine not called
    previous_text: Optional[str] = None
    matches_previous: Optional[bool] = None

    @property
    def matched(self) -> bool:
        return bool(self.plate)

    @property
    def text(self) -> str:
        """Canonical plate when matched, normalized text otherwise"""
        if self.plate:
            return self.plate.text
        return self.normalized_text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_text": self.raw_text,
            "normalized_text": self.normalized_text,
            "plate": self.plate.text if self.plate else None,
            "pattern": self.plate.pattern if self.plate else None,
            "confidence": self.confidence,
            "text": self.text,
            "cached": self.cached,
            "previous_text": self.previous_text,
            "matches_previous": self.matches_previous,
        }


def recognize_text(
    raw_text: str,
    confidence: Optional[float] = None,
    table: PatternTable = INDIA_PATTERNS,
    strict: bool = False,
    retry_uncorrected: bool = False,
) -> RecognitionResult:
    """
    Normalize and format raw OCR text.

    Args:
        raw_text: Engine output
        confidence: Engine confidence, passed through
        table: Plate pattern table
        strict: Apply strict confusion corrections
        retry_uncorrected: On NO_MATCH, try the text without confusion
            corrections before giving up

    Returns:
        RecognitionResult (plate is NO_MATCH when nothing fits)
    """
    normalized = normalize_plate(raw_text, strict=strict)
    plate = format_plate(normalized, table)

    if not plate and retry_uncorrected:
        uncorrected = normalize_plate(raw_text, correct_confusions=False)
        plate = format_plate(uncorrected, table)

    return RecognitionResult(
        raw_text=raw_text,
        normalized_text=normalized,
        plate=plate,
        confidence=confidence,
    )


class RecognitionOrchestrator:
    """
    Scans photos of one capture session.

    The engine comes from an EngineHolder and is loaded on first scan.
    Scans queue on a lock; with reject_concurrent_scans they fail fast
    with ScanInProgress instead.
    An orchestrator belongs to the event loop of its session.
    """

    def __init__(
        self,
        session: CaptureSession,
        engine_holder: Optional[EngineHolder] = None,
        config: Optional[PlatecamConfig] = None,
        table: PatternTable = INDIA_PATTERNS,
    ):
        self.session = session
        self.config = config or session.config
        self.engine_holder = engine_holder or get_engine_holder(self.config.ocr_engine, self.config.language)
        self.table = table

        self.scans_started = 0
        self.scans_completed = 0

        self._scan_lock = asyncio.Lock()
        self._engine_call: Optional[asyncio.Future] = None
        self._active: Optional[Tuple[str, asyncio.Event]] = None

        session.add_discard_listener(self._on_discard)

    @property
    def is_scanning(self) -> bool:
        return self._scan_lock.locked()

    async def scan(self, photo_id: str, rescan: bool = False, timeout: Any = _UNSET) -> RecognitionResult:
        """
        Recognize the plate in a photo and store it on the photo.

        Args:
            photo_id: Photo to scan
            rescan: Scan again even if the photo already has text
            timeout: Engine time limit in seconds (config.scan_timeout if
                omitted, None for no limit)

        Returns:
            RecognitionResult

        Raises:
            PhotoNotFound: Unknown photo
            EngineLoadError: OCR engine unavailable
            NoTextDetected: Engine failed or found no usable text
            ScanTimeout: Engine exceeded timeout
            ScanInProgress: Another scan running (reject mode only)
            ScanCancelled: Photo or session discarded during the scan
        """
        if timeout is _UNSET:
            timeout = self.config.scan_timeout

        photo = self.session.get_photo(photo_id)
        if photo.extracted_text is not None and not rescan:
            return self._cached_result(photo)

        if self.config.reject_concurrent_scans and self._scan_lock.locked():
            raise ScanInProgress("A scan is already running")

        async with self._scan_lock:
            generation = self.session.generation
            if not self.session.is_live(photo_id, generation):
                raise ScanCancelled(f"Photo {photo_id} was discarded")
            # A scan queued ahead of this one may have filled the text
            if photo.extracted_text is not None and not rescan:
                return self._cached_result(photo)

            previous_text = photo.extracted_text
            self.scans_started += 1
            engine = await self.engine_holder.ensure_loaded()

            image = decode_image(photo.image_bytes)
            if image is None:
                raise NoTextDetected(f"Photo {photo_id} could not be decoded")
            prepared = preprocess_image(image, self.config.preprocess)

            reading = await self._recognize(engine, prepared, photo_id, timeout)

            if not reading.text or not reading.text.strip():
                raise NoTextDetected("No text detected")

            result = recognize_text(
                reading.text,
                confidence=reading.confidence,
                table=self.table,
                strict=self.config.strict_corrections,
                retry_uncorrected=self.config.retry_uncorrected,
            )
            if not result.normalized_text:
                raise NoTextDetected(f"No plate characters in {reading.text!r}")

            if not self.session.set_extracted_text(photo_id, result.text, generation, overwrite=rescan):
                if not self.session.is_live(photo_id, generation):
                    raise ScanCancelled(f"Photo {photo_id} was discarded during scan")
                # Edited by the user while the engine ran; the edit wins
                return self._cached_result(photo)

            if previous_text is not None:
                result.previous_text = previous_text
                result.matches_previous = plates_match(previous_text, result.text)

            self.scans_completed += 1
            return result

    def _cached_result(self, photo: Photo) -> RecognitionResult:
        # Stored text is canonical or user-typed; only case and spacing need undoing
        normalized = normalize_plate(photo.extracted_text, correct_confusions=False)
        return RecognitionResult(
            raw_text="",
            normalized_text=normalized,
            plate=format_plate(normalized, self.table),
            cached=True,
        )

    async def _recognize(
        self,
        engine: OCREngine,
        image,
        photo_id: str,
        timeout: Optional[float],
    ) -> OCRReading:
        await self._wait_for_engine()

        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(
            None, engine.recognize, image, self.config.language, self.config.ocr_options
        )
        self._engine_call = call

        abort = asyncio.Event()
        self._active = (photo_id, abort)
        aborted = asyncio.ensure_future(abort.wait())
        try:
            done, _ = await asyncio.wait({call, aborted}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            aborted.cancel()
            self._active = None

        if call in done:
            self._engine_call = None
            try:
                return call.result()
            except Exception as e:
                raise NoTextDetected(f"OCR engine error: {e}") from e

        if aborted in done:
            raise ScanCancelled(f"Scan of photo {photo_id} cancelled")

        print(f"[RecognitionOrchestrator] Engine timed out after {timeout}s")
        raise ScanTimeout(f"OCR engine exceeded {timeout}s")

    async def _wait_for_engine(self):
        # An abandoned (timed out or cancelled) call still owns the engine
        call = self._engine_call
        if call is None:
            return
        if not call.done():
            print("[RecognitionOrchestrator] Waiting for previous engine call to finish")
            await asyncio.wait({call})
        if not call.cancelled():
            call.exception()
        self._engine_call = None

    def cancel_pending(self) -> bool:
        """Abort the running scan, if any"""
        if self._active is None:
            return False
        self._active[1].set()
        return True

    def _on_discard(self, photo_id: Optional[str]):
        if self._active is None:
            return
        active_photo, abort = self._active
        if photo_id is None or photo_id == active_photo:
            abort.set()

    def close(self):
        """Detach from the session"""
        self.cancel_pending()
        self.session.remove_discard_listener(self._on_discard)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "scans_started": self.scans_started,
            "scans_completed": self.scans_completed,
            "scanning": self.is_scanning,
            "engine_state": self.engine_holder.state.value,
        }
