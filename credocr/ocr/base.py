"""Common contract for text extraction providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from credocr.ocr import mime_types


@dataclass(frozen=True)
class ExtractedText:
    """Text recognized in one document.

    Attributes:
        full_text: Recognized text, lines separated by newlines.
        confidence: Provider confidence on a 0-100 scale.
        metadata: Provider name, processing time and provider extras.
    """

    full_text: str
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def provider(self) -> str | None:
        return self.metadata.get("provider")

    def to_dict(self) -> dict[str, Any]:
        return {
            "fullText": self.full_text,
            "confidence": self.confidence,
            "metadata": dict(self.metadata),
        }


class TextExtractor(ABC):
    """Uniform interface over OCR backends.

    Subclasses set ``provider_name`` to a key of
    :data:`credocr.ocr.mime_types.PROVIDER_SUPPORTED_TYPES`.
    """

    provider_name: str = ""

    @abstractmethod
    async def extract_text(self, data: bytes, mime_type: str) -> ExtractedText:
        """Recognize the text of a document.

        Args:
            data: Raw document bytes.
            mime_type: Declared MIME type of ``data``.

        Returns:
            Recognized text with confidence and metadata.

        Raises:
            ProviderError: If the provider fails or returns no usable text.
        """

    @abstractmethod
    async def validate_permissions(self) -> bool:
        """Check that credentials and settings allow extraction.

        Returns:
            ``True`` when the provider is usable.

        Raises:
            ConfigurationError: If required settings are missing.
            ProviderError: If the provider rejects the credentials.
        """

    def supports_file_type(self, mime_type: str) -> bool:
        return mime_types.supports(self.provider_name, mime_type)

    def get_provider_name(self) -> str:
        return self.provider_name

    async def aclose(self) -> None:
        """Release network clients held by the extractor."""
