"""Local OCR provider backed by Tesseract.

The engine is created once, on first use, and reused for every document.
Recognition is blocking, so it runs in a worker thread.
"""

import asyncio
import io
import time

import numpy as np
import pytesseract
from PIL import Image, UnidentifiedImageError

from credocr.utils.config import OCRConfig
from credocr.utils.errors import (
    ConfigurationError,
    OCRErrorKind,
    ProviderError,
    UnsupportedInputError,
)
from credocr.utils.logger import get_logger

from .base import ExtractedText, TextExtractor

logger = get_logger(__name__)

TESSERACT_CONFIDENCE = 90.0


class TesseractEngine:
    """Wrapper around Tesseract for whole-page text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    def version(self) -> str:
        return str(pytesseract.get_tesseract_version())

    def recognize(self, data: bytes, lang: str | None = None) -> str:
        """Recognize the text in an encoded image.

        Args:
            data: Encoded image bytes (PNG or JPEG).
            lang: OCR language code. Defaults to the engine default.

        Returns:
            Recognized text with surrounding whitespace removed.
        """
        lang = lang or self.default_lang
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise UnsupportedInputError(f"Could not decode image: {exc}") from exc

        if image.mode not in ("L", "RGB"):
            image = image.convert("RGB")

        text = pytesseract.image_to_string(
            np.array(image), lang=lang, config=f"--psm {self.psm}"
        )
        return text.strip()


class TesseractExtractor(TextExtractor):
    """Text extractor running Tesseract locally.

    Args:
        config: OCR configuration with the Tesseract settings.
    """

    provider_name = "tesseract"

    def __init__(self, config: OCRConfig) -> None:
        self.config = config
        self._engine: TesseractEngine | None = None
        self._lock = asyncio.Lock()

    async def _get_engine(self) -> TesseractEngine:
        """Lazily create the shared engine on first use."""
        if self._engine is None:
            async with self._lock:
                if self._engine is None:
                    logger.info("Initializing Tesseract engine (lang=%s)", self.config.default_lang)
                    self._engine = TesseractEngine(
                        tesseract_cmd=self.config.tesseract_cmd,
                        default_lang=self.config.default_lang,
                        psm=self.config.psm,
                    )
        return self._engine

    async def extract_text(self, data: bytes, mime_type: str) -> ExtractedText:
        if not self.supports_file_type(mime_type):
            raise UnsupportedInputError(
                f"Tesseract cannot read {mime_type}; supported types are images only"
            )

        engine = await self._get_engine()
        start = time.perf_counter()
        try:
            text = await asyncio.to_thread(engine.recognize, data)
        except pytesseract.TesseractNotFoundError as exc:
            raise ConfigurationError(f"Tesseract executable not found: {exc}") from exc
        except pytesseract.TesseractError as exc:
            raise ProviderError(
                OCRErrorKind.EXTRACTION_FAILED,
                f"Tesseract recognition failed: {exc}",
                self.provider_name,
            ) from exc

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info("Tesseract extracted %d characters in %d ms", len(text), elapsed_ms)
        return ExtractedText(
            full_text=text,
            confidence=TESSERACT_CONFIDENCE,
            metadata={
                "provider": self.provider_name,
                "processing_time_ms": elapsed_ms,
                "page_count": 1,
            },
        )

    async def validate_permissions(self) -> bool:
        engine = await self._get_engine()
        try:
            version = await asyncio.to_thread(engine.version)
        except pytesseract.TesseractNotFoundError as exc:
            raise ConfigurationError(f"Tesseract executable not found: {exc}") from exc
        logger.debug("Tesseract version %s available", version)
        return True
