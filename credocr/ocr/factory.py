"""Selects the text extraction provider named in the configuration."""

from collections.abc import Callable

from credocr.utils.config import OCRConfig
from credocr.utils.errors import ConfigurationError
from credocr.utils.logger import get_logger

from .base import TextExtractor
from .document_ai import DocumentAIExtractor
from .gemini_vision import GeminiVisionExtractor
from .tesseract_engine import TesseractExtractor

logger = get_logger(__name__)

_PROVIDERS: dict[str, Callable[[OCRConfig], TextExtractor]] = {
    "google-document-ai": DocumentAIExtractor,
    "document-ai": DocumentAIExtractor,
    "google-gemini": GeminiVisionExtractor,
    "gemini": GeminiVisionExtractor,
    "tesseract": TesseractExtractor,
}


def available_providers() -> list[str]:
    return sorted(_PROVIDERS)


def create_text_extractor(config: OCRConfig) -> TextExtractor:
    """Build the text extractor for ``config.provider``.

    Args:
        config: OCR configuration.

    Returns:
        A ready-to-use text extractor.

    Raises:
        ConfigurationError: If the provider is unknown or misconfigured.
    """
    key = (config.provider or "").strip().lower()
    builder = _PROVIDERS.get(key)
    if builder is None:
        raise ConfigurationError(
            f"Unknown OCR provider '{config.provider}'. "
            f"Available: {', '.join(available_providers())}"
        )
    extractor = builder(config)
    logger.info("Using OCR provider: %s", extractor.get_provider_name())
    return extractor
