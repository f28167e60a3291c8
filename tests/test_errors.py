"""Tests for the shared exception types."""

import pytest

from credocr.qr.content_types import QRErrorType, QRProcessingResult
from credocr.utils.errors import (
    CredOCRError,
    DownloadError,
    MalformedResponseError,
    OCRErrorKind,
    ProviderError,
    QRRequiredError,
)


class TestProviderError:
    """Tests for ProviderError kinds and transience."""

    @pytest.mark.parametrize(
        "kind",
        [
            OCRErrorKind.TIMEOUT,
            OCRErrorKind.SERVICE_BUSY,
            OCRErrorKind.SERVICE_UNAVAILABLE,
            OCRErrorKind.NETWORK_ERROR,
        ],
    )
    def test_transient_kinds(self, kind: OCRErrorKind) -> None:
        assert ProviderError(kind, "boom").transient is True

    def test_permanent_kind(self) -> None:
        error = ProviderError(OCRErrorKind.INVALID_CREDENTIALS, "bad key", "google-gemini")
        assert error.transient is False
        assert error.provider == "google-gemini"

    def test_str_includes_kind(self) -> None:
        error = ProviderError(OCRErrorKind.EXTRACTION_FAILED, "nothing read")
        assert str(error) == "[OCR_TEXT_EXTRACTION_FAILED] nothing read"

    def test_malformed_response(self) -> None:
        error = MalformedResponseError("no text", "google-gemini", "SAFETY")
        assert isinstance(error, ProviderError)
        assert error.kind == OCRErrorKind.MALFORMED_RESPONSE
        assert error.finish_reason == "SAFETY"


class TestOtherErrors:
    """Tests for download and QR errors."""

    def test_download_error(self) -> None:
        error = DownloadError("http_status", "not found", 404)
        assert isinstance(error, CredOCRError)
        assert error.kind == "http_status"
        assert error.status_code == 404

    def test_qr_required_error_carries_result(self) -> None:
        result = QRProcessingResult(
            qr_code_detected=False,
            error="QR code not found in the uploaded document",
            error_type=QRErrorType.QR_NOT_FOUND.value,
            is_required=True,
        )
        error = QRRequiredError("Please upload a document that contains a valid QR code", result)
        assert error.qr_result is result
        assert "valid QR code" in str(error)
