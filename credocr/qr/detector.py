"""QR code detection in uploaded document images.

Decoding is attempted with several image preparations in a fixed order;
not finding a code is an ordinary outcome and is reported as ``None``.
"""

import asyncio
import functools

import cv2
import numpy as np

from credocr.ocr import mime_types
from credocr.preprocessing.qr_strategies import (
    QR_STRATEGIES,
    QRStrategy,
    decode_thresholded,
    run_strategies,
)
from credocr.utils.config import QRConfig
from credocr.utils.logger import get_logger, preview

from .downloader import DocumentDownloader, DownloadedFile

logger = get_logger(__name__)

PDF_GUIDANCE = (
    "PDF QR code detection is not supported. Please convert your PDF to an "
    "image (PNG, JPEG) and try again."
)


def decode_image(data: bytes) -> np.ndarray | None:
    """Decode encoded image bytes into a BGR array.

    Args:
        data: Encoded image (PNG, JPEG).

    Returns:
        Image array, or ``None`` if the bytes are not a readable image.
    """
    if not data:
        return None
    array = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(array, cv2.IMREAD_COLOR)


class QRCodeDetector:
    """Finds and decodes QR codes, and downloads the documents they reference.

    Args:
        config: QR configuration.
        downloader: Downloader used for referenced documents.
    """

    def __init__(
        self, config: QRConfig, downloader: DocumentDownloader | None = None
    ) -> None:
        self.config = config
        self.downloader = downloader or DocumentDownloader(config)
        self.strategies = self._build_strategies(config.threshold)

    @staticmethod
    def _build_strategies(threshold: int) -> list[tuple[str, QRStrategy]]:
        strategies: list[tuple[str, QRStrategy]] = []
        for name, strategy in QR_STRATEGIES:
            if strategy is decode_thresholded:
                strategy = functools.partial(decode_thresholded, threshold=threshold)
            strategies.append((name, strategy))
        return strategies

    def supports_file_type(self, mime_type: str) -> bool:
        return mime_types.supports("qr", mime_type)

    def detect_in_image(self, image: np.ndarray) -> str | None:
        """Run every strategy against a decoded image.

        Args:
            image: BGR image array.

        Returns:
            The first decoded payload, or ``None``.
        """
        found = run_strategies(image, self.strategies)
        if found is None:
            return None
        strategy, payload = found
        logger.info("QR code decoded with strategy %s: %s", strategy, preview(payload))
        return payload

    async def detect_qr_code(self, data: bytes, mime_type: str) -> str | None:
        """Detect and decode a QR code in a document.

        Args:
            data: Document bytes.
            mime_type: Declared MIME type of ``data``.

        Returns:
            The decoded payload, or ``None`` if no code was found or the
            document type cannot carry one.
        """
        if mime_types.is_pdf_type(mime_type):
            logger.warning(PDF_GUIDANCE)
            return None
        if not mime_types.is_image_type(mime_type):
            logger.warning("QR detection skipped for non-image type %s", mime_type)
            return None

        image = decode_image(data)
        if image is None:
            logger.warning("Could not decode %s image for QR detection", mime_type)
            return None

        payload = await asyncio.to_thread(self.detect_in_image, image)
        if payload is None:
            logger.info("No QR code found after %d strategies", len(self.strategies))
        return payload

    async def download_from_url(self, url: str) -> DownloadedFile:
        return await self.downloader.download(url)

    async def aclose(self) -> None:
        await self.downloader.aclose()
