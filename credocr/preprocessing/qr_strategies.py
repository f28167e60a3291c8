"""Image preparation strategies for QR code decoding.

Each strategy takes a decoded BGR image, prepares it in one specific way
and returns the QR payload, or ``None`` when nothing could be decoded.
Strategies are pure and are tried in the order of :data:`QR_STRATEGIES`.
"""

from collections.abc import Callable

import cv2
import numpy as np

from credocr.utils.logger import get_logger

logger = get_logger(__name__)

QRStrategy = Callable[[np.ndarray], str | None]

DEFAULT_THRESHOLD = 150

_SHARPEN_KERNEL = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float32)


def _to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an image to grayscale if it has color channels.

    Args:
        image: Input image (BGR, BGRA or grayscale).

    Returns:
        Grayscale image.
    """
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def _decode(image: np.ndarray) -> str | None:
    data, _, _ = cv2.QRCodeDetector().detectAndDecode(image)
    return data or None


def _resize(image: np.ndarray, factor: float) -> np.ndarray:
    interpolation = cv2.INTER_CUBIC if factor > 1 else cv2.INTER_AREA
    return cv2.resize(image, None, fx=factor, fy=factor, interpolation=interpolation)


def decode_grayscale(image: np.ndarray) -> str | None:
    """Decode at the original size after grayscale conversion."""
    return _decode(_to_gray(image))


def decode_raw_pixels(image: np.ndarray) -> str | None:
    """Decode the unmodified color pixels with the ArUco-based detector."""
    pixels = image
    if image.ndim == 3 and image.shape[2] == 3:
        pixels = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    data, _, _ = cv2.QRCodeDetectorAruco().detectAndDecode(pixels)
    return data or None


def decode_upscaled(image: np.ndarray) -> str | None:
    """Decode after 2x upscaling, for small or low-resolution codes."""
    return _decode(_to_gray(_resize(image, 2.0)))


def decode_downscaled(image: np.ndarray) -> str | None:
    """Decode after 0.5x downscaling, for very large or noisy scans."""
    return _decode(_to_gray(_resize(image, 0.5)))


def decode_thresholded(image: np.ndarray, threshold: int = DEFAULT_THRESHOLD) -> str | None:
    """Decode after grayscale conversion and fixed-threshold binarization.

    Args:
        image: Input image (BGR or grayscale).
        threshold: Pixel value separating black from white.

    Returns:
        Decoded payload, or ``None``.
    """
    _, binary = cv2.threshold(_to_gray(image), threshold, 255, cv2.THRESH_BINARY)
    return _decode(binary)


def decode_enhanced(image: np.ndarray) -> str | None:
    """Decode after contrast normalization, sharpening and grayscale."""
    normalized = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX)
    sharpened = cv2.filter2D(normalized, -1, _SHARPEN_KERNEL)
    return _decode(_to_gray(sharpened))


QR_STRATEGIES: list[tuple[str, QRStrategy]] = [
    ("grayscale", decode_grayscale),
    ("raw_pixels", decode_raw_pixels),
    ("upscale_2x", decode_upscaled),
    ("downscale_0.5x", decode_downscaled),
    ("threshold", decode_thresholded),
    ("enhanced", decode_enhanced),
]


def run_strategies(
    image: np.ndarray, strategies: list[tuple[str, QRStrategy]] | None = None
) -> tuple[str, str] | None:
    """Try each strategy in order and stop at the first payload.

    A strategy that raises is logged and skipped.

    Args:
        image: Decoded document image.
        strategies: Ordered ``(name, strategy)`` pairs. Defaults to
            :data:`QR_STRATEGIES`.

    Returns:
        ``(strategy_name, payload)`` for the first success, or ``None``.
    """
    for name, strategy in strategies or QR_STRATEGIES:
        try:
            payload = strategy(image)
        except Exception as exc:
            logger.warning("QR strategy %s failed: %s", name, exc)
            continue
        if payload:
            logger.debug("QR strategy %s decoded a payload", name)
            return name, payload
        logger.debug("QR strategy %s found no code", name)
    return None
