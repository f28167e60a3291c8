"""Cloud OCR provider backed by Google Document AI.

Documents are sent to an OCR processor with ``process_document``. The full
text is rebuilt from the detected lines and the confidence is the mean
line confidence.
"""

import time
from typing import Any

from google.api_core import exceptions as gexc
from google.api_core.client_options import ClientOptions
from google.auth import exceptions as auth_exceptions
from google.cloud import documentai_v1 as documentai

from credocr.utils.config import OCRConfig
from credocr.utils.errors import (
    ConfigurationError,
    OCRErrorKind,
    ProviderError,
    UnsupportedInputError,
)
from credocr.utils.logger import get_logger

from . import mime_types
from .base import ExtractedText, TextExtractor

logger = get_logger(__name__)

# (exception type, kind, message); first match wins, so subclasses come first.
_ERROR_TABLE: list[tuple[type[Exception], OCRErrorKind, str]] = [
    (gexc.Unauthenticated, OCRErrorKind.INVALID_CREDENTIALS, "Invalid Document AI credentials"),
    (gexc.PermissionDenied, OCRErrorKind.NOT_CONFIGURED, "Document AI access denied, check processor permissions"),
    (gexc.NotFound, OCRErrorKind.INVALID_REGION, "Document AI processor not found in the configured location"),
    (gexc.InvalidArgument, OCRErrorKind.UNSUPPORTED_FORMAT, "Document format not supported by Document AI"),
    (gexc.ResourceExhausted, OCRErrorKind.SERVICE_BUSY, "Document AI quota exceeded, try again later"),
    (gexc.DeadlineExceeded, OCRErrorKind.TIMEOUT, "Document AI request timed out"),
    (gexc.ServiceUnavailable, OCRErrorKind.SERVICE_UNAVAILABLE, "Document AI is temporarily unavailable"),
    (auth_exceptions.RefreshError, OCRErrorKind.CREDENTIALS_EXPIRED, "Document AI credentials expired"),
    (auth_exceptions.DefaultCredentialsError, OCRErrorKind.NOT_CONFIGURED, "Document AI credentials not found"),
]


def translate_error(exc: Exception) -> ProviderError:
    """Convert a Google client exception into a :class:`ProviderError`.

    Args:
        exc: Exception raised by the Document AI client.

    Returns:
        Provider error carrying the normalized kind.
    """
    for exc_type, kind, message in _ERROR_TABLE:
        if isinstance(exc, exc_type):
            return ProviderError(kind, f"{message}: {exc}", DocumentAIExtractor.provider_name)
    return ProviderError(
        OCRErrorKind.EXTRACTION_FAILED,
        f"Document AI text extraction failed: {exc}",
        DocumentAIExtractor.provider_name,
    )


def _anchor_text(document: Any, layout: Any) -> str:
    """Resolve the text covered by a layout's text anchor."""
    segments = layout.text_anchor.text_segments
    return "".join(
        document.text[int(seg.start_index or 0) : int(seg.end_index)] for seg in segments
    )


def lines_from_document(document: Any) -> list[tuple[str, float]]:
    """Collect ``(text, confidence)`` for every line of every page.

    Args:
        document: Processed ``documentai.Document``.

    Returns:
        Line texts with surrounding whitespace stripped, and their
        confidence on a 0-1 scale.
    """
    lines: list[tuple[str, float]] = []
    for page in document.pages:
        for line in page.lines:
            text = _anchor_text(document, line.layout).strip()
            if text:
                lines.append((text, float(line.layout.confidence)))
    return lines


class DocumentAIExtractor(TextExtractor):
    """Text extractor calling a Document AI OCR processor.

    Args:
        config: OCR configuration with project, location and processor id.
        client: Optional pre-built async client, used by tests.
    """

    provider_name = "google-document-ai"

    def __init__(
        self,
        config: OCRConfig,
        client: documentai.DocumentProcessorServiceAsyncClient | None = None,
    ) -> None:
        missing = [
            name
            for name, value in (
                ("DOCUMENT_AI_PROJECT_ID", config.document_ai_project_id),
                ("DOCUMENT_AI_PROCESSOR_ID", config.document_ai_processor_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Document AI is not configured, missing: {', '.join(missing)}"
            )
        self.config = config
        self._client = client

    @property
    def processor_name(self) -> str:
        return documentai.DocumentProcessorServiceAsyncClient.processor_path(
            self.config.document_ai_project_id,
            self.config.document_ai_location,
            self.config.document_ai_processor_id,
        )

    def _get_client(self) -> documentai.DocumentProcessorServiceAsyncClient:
        if self._client is None:
            try:
                self._client = documentai.DocumentProcessorServiceAsyncClient(
                    client_options=ClientOptions(
                        api_endpoint=f"{self.config.document_ai_location}-documentai.googleapis.com",
                        credentials_file=self.config.document_ai_credentials_file,
                    )
                )
            except auth_exceptions.DefaultCredentialsError as exc:
                raise ConfigurationError(f"Document AI credentials not found: {exc}") from exc
        return self._client

    async def extract_text(self, data: bytes, mime_type: str) -> ExtractedText:
        if not self.supports_file_type(mime_type):
            raise UnsupportedInputError(f"Document AI cannot read {mime_type}")

        client = self._get_client()
        request = documentai.ProcessRequest(
            name=self.processor_name,
            raw_document=documentai.RawDocument(
                content=data, mime_type=mime_types.normalize_mime_type(mime_type)
            ),
        )

        start = time.perf_counter()
        try:
            result = await client.process_document(
                request=request, timeout=self.config.document_ai_timeout_s
            )
        except (gexc.GoogleAPICallError, auth_exceptions.GoogleAuthError) as exc:
            raise translate_error(exc) from exc

        document = result.document
        lines = lines_from_document(document)
        confidence = (
            round(sum(conf for _, conf in lines) / len(lines) * 100, 2) if lines else 0.0
        )
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            "Document AI extracted %d lines from %d pages (confidence %.2f)",
            len(lines),
            len(document.pages),
            confidence,
        )
        return ExtractedText(
            full_text="\n".join(text for text, _ in lines),
            confidence=confidence,
            metadata={
                "provider": self.provider_name,
                "processing_time_ms": elapsed_ms,
                "page_count": len(document.pages),
                "block_count": len(lines),
            },
        )

    async def validate_permissions(self) -> bool:
        client = self._get_client()
        try:
            await client.get_processor(
                name=self.processor_name, timeout=self.config.document_ai_timeout_s
            )
        except (gexc.GoogleAPICallError, auth_exceptions.GoogleAuthError) as exc:
            error = translate_error(exc)
            if error.kind in (
                OCRErrorKind.NOT_CONFIGURED,
                OCRErrorKind.INVALID_CREDENTIALS,
                OCRErrorKind.INVALID_REGION,
            ):
                raise ConfigurationError(str(error)) from exc
            raise error from exc
        logger.info("Document AI processor %s is reachable", self.config.document_ai_processor_id)
        return True
