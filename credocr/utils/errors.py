"""Exception types shared across the OCR, QR and mapping stages.

Provider adapters translate their SDK or HTTP failures into these types so
callers never see provider-specific exception classes.
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from credocr.qr.content_types import QRProcessingResult


class OCRErrorKind(str, Enum):
    """Closed vocabulary of provider failure kinds."""

    NOT_CONFIGURED = "OCR_NOT_CONFIGURED"
    INVALID_CREDENTIALS = "OCR_INVALID_CREDENTIALS"
    CREDENTIALS_EXPIRED = "OCR_CREDENTIALS_EXPIRED"
    INVALID_REGION = "OCR_INVALID_REGION"
    UNSUPPORTED_FORMAT = "OCR_UNSUPPORTED_FORMAT"
    SERVICE_BUSY = "OCR_SERVICE_BUSY"
    SERVICE_UNAVAILABLE = "OCR_SERVICE_UNAVAILABLE"
    TIMEOUT = "OCR_TIMEOUT"
    NETWORK_ERROR = "OCR_NETWORK_ERROR"
    INVALID_REQUEST = "OCR_INVALID_REQUEST"
    MALFORMED_RESPONSE = "OCR_MALFORMED_RESPONSE"
    EXTRACTION_FAILED = "OCR_TEXT_EXTRACTION_FAILED"


_TRANSIENT_KINDS = frozenset(
    {
        OCRErrorKind.TIMEOUT,
        OCRErrorKind.SERVICE_BUSY,
        OCRErrorKind.SERVICE_UNAVAILABLE,
        OCRErrorKind.NETWORK_ERROR,
    }
)


class CredOCRError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(CredOCRError):
    """Raised when provider credentials or settings are missing or invalid."""


class UnsupportedInputError(CredOCRError):
    """Raised when a document cannot be handled by the selected provider."""


class ProviderError(CredOCRError):
    """A failure reported by an OCR or AI provider.

    Args:
        kind: Normalized failure kind.
        message: Human-readable description.
        provider: Name of the provider that failed.
    """

    def __init__(
        self, kind: OCRErrorKind, message: str, provider: str | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider

    @property
    def transient(self) -> bool:
        """Whether a caller may reasonably retry the same request."""
        return self.kind in _TRANSIENT_KINDS

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.args[0]}"


class MalformedResponseError(ProviderError):
    """Provider answered, but the payload was empty or wrongly shaped."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        finish_reason: str | None = None,
    ) -> None:
        super().__init__(OCRErrorKind.MALFORMED_RESPONSE, message, provider)
        self.finish_reason = finish_reason


class DownloadError(CredOCRError):
    """A referenced document could not be fetched.

    Args:
        kind: ``invalid_url``, ``network``, ``timeout``, ``http_status``,
            ``too_large`` or ``invalid_body``.
        message: Description of the failure.
        status_code: HTTP status for ``http_status`` failures.
    """

    def __init__(self, kind: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class QRRequiredError(CredOCRError):
    """A document sub-type requires a QR code and QR processing failed."""

    def __init__(self, message: str, qr_result: "QRProcessingResult") -> None:
        super().__init__(message)
        self.qr_result = qr_result
