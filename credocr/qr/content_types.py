"""QR payload categories, error types and the QR processing result."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class QRContentType(str, Enum):
    """Declared shape of a QR payload for a document sub-type."""

    PLAIN_TEXT = "PLAIN_TEXT"
    JSON = "JSON"
    JSON_URL = "JSON_URL"
    XML = "XML"
    XML_URL = "XML_URL"
    TEXT_AND_URL = "TEXT_AND_URL"
    VC_URL = "VC_URL"
    DOC_URL = "DOC_URL"

    @classmethod
    def parse(cls, value: "str | QRContentType | None") -> "QRContentType | None":
        """Return the member for ``value``, or ``None`` if it is not one."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class QRErrorType(str, Enum):
    """Structured failure categories reported in QR results."""

    QR_NOT_FOUND = "QR_NOT_FOUND"
    INVALID_JSON = "INVALID_JSON"
    INVALID_XML = "INVALID_XML"
    INVALID_URL = "INVALID_URL"
    NETWORK_ERROR = "NETWORK_ERROR"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    TIMEOUT = "TIMEOUT"
    UNSUPPORTED_CONTENT_TYPE = "UNSUPPORTED_CONTENT_TYPE"
    UNSUPPORTED_ISSUER = "UNSUPPORTED_ISSUER"
    UNSUPPORTED_METHOD = "UNSUPPORTED_METHOD"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class DownloadedDocument:
    """A document fetched from a URL found in a QR code."""

    buffer: bytes
    mime_type: str
    url: str


@dataclass(frozen=True)
class QRProcessingResult:
    """Outcome of detecting and routing one document's QR code.

    Built once by the QR stage and never mutated afterwards.
    """

    qr_code_detected: bool
    qr_code_content: str | None = None
    content_type: str | None = None
    processed_data: dict[str, Any] | None = None
    downloaded_document: DownloadedDocument | None = None
    error: str | None = None
    error_type: str | None = None
    technical_error: str | None = None
    is_required: bool = False

    @property
    def ok(self) -> bool:
        return self.qr_code_detected and self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with external key names; the raw download is summarized."""
        downloaded = None
        if self.downloaded_document is not None:
            downloaded = {
                "mimeType": self.downloaded_document.mime_type,
                "url": self.downloaded_document.url,
                "size": len(self.downloaded_document.buffer),
            }
        return {
            "qrCodeDetected": self.qr_code_detected,
            "qrCodeContent": self.qr_code_content,
            "contentType": self.content_type,
            "processedData": self.processed_data,
            "downloadedDocument": downloaded,
            "error": self.error,
            "errorType": self.error_type,
            "technicalError": self.technical_error,
            "isRequired": self.is_required,
        }
