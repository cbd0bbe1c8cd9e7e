"""
Capture Session

Owns one camera: stream lifecycle, facing mode, the captured photo list
and the gallery selection cursor.

open/close/switch_facing/retry/reset suspend while the device is acquired
and are serialized on one asyncio lock. capture() is synchronous.
"""

import asyncio
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional, Set

from platecam.config import PlatecamConfig, DEFAULT_CONFIG
from platecam.errors import CaptureUnavailable, DeviceError, PhotoNotFound
from platecam.plates.preprocess import encode_jpeg
from platecam.schemas import FacingMode, Photo, SessionState, StreamConstraints, TextSource
from platecam.camera.video_source import VideoSource, VideoStream


DiscardListener = Callable[[Optional[str]], None]


class CaptureSession:
    """
    Camera session state machine.

    IDLE -> STREAMING -> (CAPTURING) -> STREAMING -> IDLE
    IDLE/STREAMING -> ERROR on acquisition failure, ERROR -> STREAMING on retry.

    Photos are kept oldest first; a new capture is appended and selected.
    Lifecycle calls belong to one event loop; capture() may run from any thread.
    """

    def __init__(
        self,
        source: VideoSource,
        config: Optional[PlatecamConfig] = None,
        facing_mode: FacingMode = FacingMode.ENVIRONMENT,
    ):
        """
        Args:
            source: Video source that opens camera streams
            config: Pipeline configuration (DEFAULT_CONFIG if None)
            facing_mode: Initial facing mode
        """
        self.source = source
        self.config = config or DEFAULT_CONFIG

        self.state = SessionState.IDLE
        self.facing_mode = facing_mode
        self.stream: Optional[VideoStream] = None
        self.last_error: Optional[DeviceError] = None
        self.retry_facing_mode: Optional[FacingMode] = None

        self.photos: List[Photo] = []
        self.selected_index: Optional[int] = None
        self.generation = 0

        self._issued_ids: Set[str] = set()
        self._lifecycle_lock = asyncio.Lock()
        self._capture_lock = threading.Lock()
        self._discard_listeners: List[DiscardListener] = []

    # ------------------------------------------------------------------
    # Stream lifecycle
    # ------------------------------------------------------------------

    @property
    def is_streaming(self) -> bool:
        return self.state == SessionState.STREAMING and self.stream is not None

    async def open(self, facing_mode: Optional[FacingMode] = None):
        """
        Open the camera.

        Any previously open stream is released first.

        Raises:
            DeviceError: Camera could not be acquired (session enters ERROR)
        """
        async with self._lifecycle_lock:
            await self._open_locked(facing_mode or self.facing_mode)

    async def close(self):
        """Release the stream. No-op when nothing is open."""
        async with self._lifecycle_lock:
            self._release_stream()
            self.state = SessionState.IDLE

    async def switch_facing(self):
        """
        Flip between front and back camera.

        On failure the session is in ERROR and retry() re-opens the
        previous facing mode.
        """
        async with self._lifecycle_lock:
            previous = self.facing_mode
            self._release_stream()

            if self.config.reopen_delay > 0:
                await asyncio.sleep(self.config.reopen_delay)

            try:
                await self._open_locked(previous.flipped())
            except DeviceError:
                self.facing_mode = previous
                self.retry_facing_mode = previous
                raise

    async def retry(self):
        """Re-open after a DeviceError with the remembered facing mode"""
        async with self._lifecycle_lock:
            if self.is_streaming:
                return
            facing_mode = self.retry_facing_mode or self.facing_mode
            await self._open_locked(facing_mode)

    async def reset(self):
        """Discard all photos and release the stream"""
        async with self._lifecycle_lock:
            self._release_stream()
            self.state = SessionState.IDLE
            self.photos.clear()
            self.selected_index = None
            self.last_error = None
            self.retry_facing_mode = None
            self.generation += 1

        print(f"[CaptureSession] Reset (generation {self.generation})")
        self._notify_discard(None)

    async def _open_locked(self, facing_mode: FacingMode):
        self._release_stream()

        constraints = StreamConstraints(
            facing_mode=facing_mode,
            ideal_width=self.config.ideal_width,
            ideal_height=self.config.ideal_height,
        )

        try:
            stream = await self._acquire(constraints)
        except DeviceError as e:
            self._enter_error(facing_mode, e)
            raise
        except Exception as e:
            error = DeviceError(f"Failed to open {facing_mode.value} camera: {e}")
            self._enter_error(facing_mode, error)
            raise error from e

        self.stream = stream
        self.facing_mode = facing_mode
        self.state = SessionState.STREAMING
        self.last_error = None
        self.retry_facing_mode = None
        print(f"[CaptureSession] Streaming ({facing_mode.value})")

    async def _acquire(self, constraints: StreamConstraints) -> VideoStream:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.source.open, constraints)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # Open still finishes in its thread; release whatever it returns
            future.add_done_callback(_release_if_opened)
            raise

    def _enter_error(self, facing_mode: FacingMode, error: DeviceError):
        self.state = SessionState.ERROR
        self.last_error = error
        self.retry_facing_mode = facing_mode
        print(f"[CaptureSession] Camera error: {error}")

    def _release_stream(self):
        stream = self.stream
        if stream is None:
            return

        self.stream = None
        if self.state in (SessionState.STREAMING, SessionState.CAPTURING):
            self.state = SessionState.IDLE

        try:
            stream.release()
        except Exception as e:
            print(f"[CaptureSession] Stream release failed: {e}")

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    @property
    def max_photos(self) -> int:
        return self.config.max_photos

    @property
    def is_full(self) -> bool:
        return self.max_photos > 0 and len(self.photos) >= self.max_photos

    def capture(self) -> str:
        """
        Capture the current frame as a new photo.

        Returns:
            New photo id

        Raises:
            CaptureUnavailable: Not streaming, photo limit reached, or no frame
        """
        with self._capture_lock:
            if not self.is_streaming or self._lifecycle_lock.locked():
                raise CaptureUnavailable(f"Cannot capture while {self.state.value}")
            if self.is_full:
                raise CaptureUnavailable(f"Photo limit reached ({self.max_photos})")

            self.state = SessionState.CAPTURING
            try:
                frame = self.stream.current_frame()
                image_bytes = encode_jpeg(frame, self.config.jpeg_quality) if frame is not None else None
            except Exception as e:
                raise CaptureUnavailable(f"Frame read failed: {e}") from e
            finally:
                if self.state == SessionState.CAPTURING:
                    self.state = SessionState.STREAMING

            if image_bytes is None:
                raise CaptureUnavailable("Stream returned no frame")

            photo = Photo(
                image_bytes=image_bytes,
                photo_id=self._new_photo_id(),
                facing_mode=self.facing_mode,
            )
            self.photos.append(photo)
            self.selected_index = len(self.photos) - 1

            if self.config.stop_after_capture:
                self._release_stream()
                self.state = SessionState.IDLE

            return photo.photo_id

    def _new_photo_id(self) -> str:
        photo_id = uuid.uuid4().hex
        while photo_id in self._issued_ids:
            photo_id = uuid.uuid4().hex
        self._issued_ids.add(photo_id)
        return photo_id

    # ------------------------------------------------------------------
    # Photos and selection
    # ------------------------------------------------------------------

    def get_photo(self, photo_id: str) -> Photo:
        return self.photos[self._index_of(photo_id)]

    def has_photo(self, photo_id: str) -> bool:
        return any(p.photo_id == photo_id for p in self.photos)

    def _index_of(self, photo_id: str) -> int:
        for index, photo in enumerate(self.photos):
            if photo.photo_id == photo_id:
                return index
        raise PhotoNotFound(photo_id)

    def delete(self, photo_id: str):
        """
        Remove a photo.

        The cursor keeps pointing at the same photo when possible; if the
        selected photo is removed it moves to the previous one.
        """
        index = self._index_of(photo_id)
        del self.photos[index]

        if not self.photos:
            self.selected_index = None
        elif self.selected_index is not None:
            if index < self.selected_index:
                self.selected_index -= 1
            elif index == self.selected_index:
                self.selected_index = max(0, index - 1)

        self._notify_discard(photo_id)

    @property
    def selected_photo(self) -> Optional[Photo]:
        if self.selected_index is None:
            return None
        return self.photos[self.selected_index]

    def select(self, index: int) -> Photo:
        if not 0 <= index < len(self.photos):
            raise IndexError(f"No photo at index {index}")
        self.selected_index = index
        return self.photos[index]

    def select_next(self) -> Optional[Photo]:
        if self.selected_index is None:
            return None
        self.selected_index = min(self.selected_index + 1, len(self.photos) - 1)
        return self.selected_photo

    def select_previous(self) -> Optional[Photo]:
        if self.selected_index is None:
            return None
        self.selected_index = max(self.selected_index - 1, 0)
        return self.selected_photo

    # ------------------------------------------------------------------
    # Extracted text
    # ------------------------------------------------------------------

    def edit_text(self, photo_id: str, text: str):
        """User correction of a photo's plate text"""
        photo = self.get_photo(photo_id)
        photo.extracted_text = text.strip()
        photo.text_source = TextSource.USER

    def is_live(self, photo_id: str, generation: int) -> bool:
        """True if the photo still exists in the given session generation"""
        return generation == self.generation and self.has_photo(photo_id)

    def set_extracted_text(
        self,
        photo_id: str,
        text: str,
        generation: int,
        overwrite: bool = False,
    ) -> bool:
        """
        Store a scan result on a photo.

        Existing text (scanned or user-edited) is only replaced with
        overwrite=True.

        Returns:
            True if written
        """
        if not self.is_live(photo_id, generation):
            return False

        photo = self.get_photo(photo_id)
        if photo.extracted_text is not None and not overwrite:
            return False

        photo.extracted_text = text
        photo.text_source = TextSource.SCAN
        return True

    # ------------------------------------------------------------------
    # Listeners and status
    # ------------------------------------------------------------------

    def add_discard_listener(self, listener: DiscardListener):
        """Called with a photo id on delete, and with None on reset"""
        self._discard_listeners.append(listener)

    def remove_discard_listener(self, listener: DiscardListener):
        if listener in self._discard_listeners:
            self._discard_listeners.remove(listener)

    def _notify_discard(self, photo_id: Optional[str]):
        for listener in list(self._discard_listeners):
            try:
                listener(photo_id)
            except Exception as e:
                print(f"[CaptureSession] Discard listener failed: {e}")

    def export(self) -> List[Dict[str, Any]]:
        """Photo records in capture order"""
        return [photo.to_record() for photo in self.photos]

    def get_status(self) -> Dict[str, Any]:
        """Get current session status"""
        return {
            "state": self.state.value,
            "facing_mode": self.facing_mode.value,
            "photos": len(self.photos),
            "max_photos": self.max_photos,
            "selected_index": self.selected_index,
            "generation": self.generation,
            "last_error": str(self.last_error) if self.last_error else None,
        }

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _release_if_opened(future: "asyncio.Future"):
    if future.cancelled() or future.exception() is not None:
        return
    try:
        future.result().release()
    except Exception as e:
        print(f"[CaptureSession] Late stream release failed: {e}")
