"""
Plate Image Preprocessing

Turns a captured still into an OCR-friendly grayscale image.
All functions return new arrays and never modify their input.
"""

import cv2
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# Perceptual luma weights (R, G, B)
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class ContrastMode(str, Enum):
    """How contrast is enhanced after grayscale conversion"""
    THRESHOLD = "threshold"  # binarize to {0, 255}
    GAIN = "gain"  # multiply and clamp to [0, 255]
    NONE = "none"


@dataclass
class PreprocessConfig:
    """Preprocessing configuration"""
    max_width: Optional[int] = 1280
    max_height: Optional[int] = 1280
    contrast_mode: ContrastMode = ContrastMode.THRESHOLD
    threshold: int = 128
    gain: float = 1.5
    channel_order: str = "bgr"  # OpenCV frames are BGR


def _empty() -> np.ndarray:
    return np.zeros((0, 0), dtype=np.uint8)


def preprocess_image(image: np.ndarray, config: Optional[PreprocessConfig] = None) -> np.ndarray:
    """
    Prepare image for OCR.

    Steps:
    - Downscale to fit max_width x max_height (aspect preserved)
    - Convert to grayscale with perceptual luma weights
    - Threshold or gain for contrast

    Args:
        image: HxW, HxWx3 or HxWx4 image
        config: Preprocessing options (defaults used if None)

    Returns:
        2D uint8 image, or an empty array for unusable input
    """
    config = config or PreprocessConfig()

    if not isinstance(image, np.ndarray) or image.size == 0:
        return _empty()
    if image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] not in (1, 3, 4)):
        return _empty()
    if image.dtype != np.uint8:
        if image.dtype.kind not in "biuf":
            return _empty()
        image = np.clip(np.nan_to_num(image.astype(np.float64)), 0, 255).astype(np.uint8)

    resized = downscale_to_fit(image, config.max_width, config.max_height)
    gray = to_grayscale(resized, config.channel_order)

    if config.contrast_mode == ContrastMode.THRESHOLD:
        return apply_threshold(gray, config.threshold)
    if config.contrast_mode == ContrastMode.GAIN:
        return apply_gain(gray, config.gain)
    return gray


def downscale_to_fit(
    image: np.ndarray,
    max_width: Optional[int],
    max_height: Optional[int]
) -> np.ndarray:
    """
    Downscale image to fit a bounding box.

    Never upscales. Returns a copy when no resize is needed.
    """
    height, width = image.shape[:2]

    scale = 1.0
    if max_width and width > max_width:
        scale = min(scale, max_width / width)
    if max_height and height > max_height:
        scale = min(scale, max_height / height)

    if scale >= 1.0:
        return image.copy()

    new_width = max(1, int(round(width * scale)))
    new_height = max(1, int(round(height * scale)))

    return cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)


def to_grayscale(image: np.ndarray, channel_order: str = "bgr") -> np.ndarray:
    """Grayscale via Y = 0.299R + 0.587G + 0.114B"""
    if image.ndim == 2:
        return image.astype(np.uint8, copy=True)
    if image.shape[2] == 1:
        return image[:, :, 0].astype(np.uint8, copy=True)

    pixels = image[:, :, :3].astype(np.float32)
    if channel_order.lower() == "bgr":
        b, g, r = pixels[:, :, 0], pixels[:, :, 1], pixels[:, :, 2]
    else:
        r, g, b = pixels[:, :, 0], pixels[:, :, 1], pixels[:, :, 2]

    wr, wg, wb = LUMA_WEIGHTS
    gray = wr * r + wg * g + wb * b

    return np.clip(np.rint(gray), 0, 255).astype(np.uint8)


def apply_threshold(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Binarize: pixels >= threshold become 255, the rest 0"""
    return np.where(gray >= threshold, 255, 0).astype(np.uint8)


def apply_gain(gray: np.ndarray, gain: float) -> np.ndarray:
    """Multiply intensities by gain, clamped to [0, 255]"""
    scaled = gray.astype(np.float32) * gain
    return np.clip(scaled, 0, 255).astype(np.uint8)


def encode_jpeg(image: np.ndarray, quality: int = 90) -> Optional[bytes]:
    """Encode frame as JPEG bytes, None if encoding fails"""
    if not isinstance(image, np.ndarray) or image.size == 0:
        return None

    try:
        ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    except cv2.error as e:
        print(f"[Preprocess] JPEG encode failed: {e}")
        return None

    if not ok:
        return None

    return buffer.tobytes()


def decode_image(image_bytes: bytes) -> Optional[np.ndarray]:
    """Decode encoded image bytes to a BGR frame, None if undecodable"""
    if not image_bytes:
        return None

    data = np.frombuffer(image_bytes, dtype=np.uint8)
    try:
        image = cv2.imdecode(data, cv2.IMREAD_COLOR)
    except cv2.error as e:
        print(f"[Preprocess] Image decode failed: {e}")
        return None

    if image is None or image.size == 0:
        return None

    return image
