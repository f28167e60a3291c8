"""QR-aware text extraction stage.

Runs QR processing for sub-types that declare a QR code and decides which
bytes are finally read: a document downloaded through the QR code, the QR
payload itself, or the original upload.
"""

from dataclasses import dataclass
from typing import Any

from credocr.qr.content_types import QRErrorType, QRProcessingResult
from credocr.qr.orchestrator import QRProcessingOrchestrator
from credocr.utils.errors import QRRequiredError, UnsupportedInputError
from credocr.utils.logger import get_logger

from . import mime_types
from .base import ExtractedText, TextExtractor

logger = get_logger(__name__)

QR_CONTENT_PROVIDER = "qr-code-detection"

_REQUIRED_QR_MESSAGES = {
    QRErrorType.QR_NOT_FOUND.value: "Please upload a document that contains a valid QR code",
    QRErrorType.PROCESSING_ERROR.value: (
        "QR code could not be read from this document. "
        "Please ensure the QR code is clear and try again"
    ),
}
_DEFAULT_REQUIRED_QR_MESSAGE = "This document requires a valid QR code for processing"


def required_qr_message(error_type: str | None) -> str:
    """User-facing message for a failed required QR code."""
    return _REQUIRED_QR_MESSAGES.get(error_type or "", _DEFAULT_REQUIRED_QR_MESSAGE)


@dataclass(frozen=True)
class OCRStageResult:
    """Text extracted for one upload, with the QR outcome that shaped it.

    Attributes:
        extracted: Recognized text.
        qr_processing: QR result, or ``None`` when QR did not apply.
        source: ``upload``, ``qr_document`` or ``qr_content``.
    """

    extracted: ExtractedText
    qr_processing: QRProcessingResult | None = None
    source: str = "upload"

    def to_dict(self) -> dict[str, Any]:
        data = self.extracted.to_dict()
        data["source"] = self.source
        data["qrProcessing"] = self.qr_processing.to_dict() if self.qr_processing else None
        return data


class DocumentProcessor:
    """Text extraction with optional QR redirection.

    Args:
        extractor: Text extraction provider.
        qr_orchestrator: QR stage; when ``None`` documents are read directly.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        qr_orchestrator: QRProcessingOrchestrator | None = None,
    ) -> None:
        self.extractor = extractor
        self.qr_orchestrator = qr_orchestrator

    def get_provider_name(self) -> str:
        return self.extractor.get_provider_name()

    def is_file_type_supported(self, mime_type: str) -> bool:
        return self.extractor.supports_file_type(mime_type)

    def get_supported_file_types(self) -> tuple[str, ...]:
        return mime_types.PROVIDER_SUPPORTED_TYPES.get(self.get_provider_name(), ())

    def _validate(self, data: bytes, mime_type: str) -> None:
        if not data:
            raise UnsupportedInputError("OCR_FILE_BUFFER_EMPTY: document is empty")
        if not self.extractor.supports_file_type(mime_type):
            raise UnsupportedInputError(
                f"File type '{mime_type}' is not supported by {self.get_provider_name()}"
            )

    async def extract_text(self, data: bytes, mime_type: str) -> ExtractedText:
        """Extract text from a document without any QR handling.

        Raises:
            UnsupportedInputError: If the document is empty or its type is
                not accepted by the provider.
        """
        self._validate(data, mime_type)
        result = await self.extractor.extract_text(data, mime_type)
        logger.info(
            "Text extraction successful: %d characters, %.2f%% confidence",
            len(result.full_text),
            result.confidence,
        )
        return result

    async def extract_text_with_qr(
        self, data: bytes, mime_type: str, document_sub_type: str | None = None
    ) -> OCRStageResult:
        """Extract text, following the document's QR code when configured.

        Args:
            data: Uploaded document bytes.
            mime_type: Declared MIME type of ``data``.
            document_sub_type: Configuration key of the document template.

        Returns:
            The extracted text and QR outcome.

        Raises:
            UnsupportedInputError: If the upload is empty or unsupported.
            QRRequiredError: If the sub-type requires a QR code and QR
                processing failed.
        """
        self._validate(data, mime_type)
        logger.info(
            "Extracting text (%d bytes, type %s, sub-type %s)",
            len(data),
            mime_type,
            document_sub_type,
        )

        qr_result: QRProcessingResult | None = None
        if self.qr_orchestrator is not None:
            qr_result = await self.qr_orchestrator.process_if_required(
                data, mime_type, document_sub_type
            )

        if qr_result is not None and qr_result.downloaded_document is not None:
            downloaded = qr_result.downloaded_document
            downloaded_type = mime_types.normalize_mime_type(
                downloaded.mime_type, default=mime_types.OCTET_STREAM
            )
            if self.extractor.supports_file_type(downloaded_type):
                logger.info("Reading document downloaded from %s", downloaded.url)
                extracted = await self.extractor.extract_text(downloaded.buffer, downloaded_type)
                return OCRStageResult(extracted, qr_result, "qr_document")
            logger.warning(
                "Downloaded document type %s is not supported by %s, reading the upload instead",
                downloaded.mime_type,
                self.get_provider_name(),
            )

        elif qr_result is not None and qr_result.ok and qr_result.qr_code_content:
            logger.info("QR code carries data content, returning it as text")
            extracted = ExtractedText(
                full_text=qr_result.qr_code_content,
                confidence=100.0,
                metadata={
                    "provider": QR_CONTENT_PROVIDER,
                    "processing_time_ms": 0,
                    "qr_content_type": qr_result.content_type,
                },
            )
            return OCRStageResult(extracted, qr_result, "qr_content")

        elif qr_result is not None and qr_result.error:
            if qr_result.is_required:
                logger.error("Required QR processing failed: %s", qr_result.error)
                raise QRRequiredError(required_qr_message(qr_result.error_type), qr_result)
            logger.warning(
                "QR processing had issues: %s; reading the original document", qr_result.error
            )

        extracted = await self.extract_text(data, mime_type)
        return OCRStageResult(extracted, qr_result, "upload")
