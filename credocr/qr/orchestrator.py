"""Decides whether a document needs QR processing and runs it.

The per-document-type configuration declares which sub-types carry a QR
code and what shape its payload has. Every failure on that path is turned
into a result marked ``is_required`` so the OCR stage can refuse the
document with a clear message.
"""

from collections.abc import Callable

from credocr.utils.config import DocumentTypeConfig
from credocr.utils.logger import get_logger, preview

from .content_types import QRErrorType, QRProcessingResult
from .detector import QRCodeDetector
from .router import QRContentRouter

logger = get_logger(__name__)

DocumentConfigLookup = Callable[[str | None], DocumentTypeConfig | None]

QR_NOT_FOUND_MESSAGE = "QR code not found in the uploaded document"
QR_PROCESSING_MESSAGE = "Unable to process QR code from the document"


class QRProcessingOrchestrator:
    """Runs QR detection and routing for sub-types that declare a QR code.

    Args:
        detector: QR detector.
        router: Content router.
        lookup: Returns the configuration of a document sub-type.
    """

    def __init__(
        self,
        detector: QRCodeDetector,
        router: QRContentRouter,
        lookup: DocumentConfigLookup,
    ) -> None:
        self.detector = detector
        self.router = router
        self.lookup = lookup

    async def process_if_required(
        self, data: bytes, mime_type: str, document_sub_type: str | None
    ) -> QRProcessingResult | None:
        """Process the QR code of a document if its sub-type declares one.

        Args:
            data: Document bytes.
            mime_type: Declared MIME type of ``data``.
            document_sub_type: Configuration key of the document template.

        Returns:
            ``None`` when no QR processing applies, otherwise the result.
        """
        if not document_sub_type:
            return None

        try:
            doc_config = self.lookup(document_sub_type)
            if doc_config is None or not doc_config.qr_content_type:
                logger.debug("No QR configuration for sub-type %s", document_sub_type)
                return None

            if not self.detector.supports_file_type(mime_type):
                logger.info("QR detection does not support %s, skipping", mime_type)
                return None

            logger.info(
                "QR processing required for %s (content type %s, issuer %s)",
                document_sub_type,
                doc_config.qr_content_type,
                doc_config.issuer or "default",
            )
            qr_content = await self.detector.detect_qr_code(data, mime_type)
            if not qr_content:
                logger.warning("No QR code found for sub-type %s", document_sub_type)
                return QRProcessingResult(
                    qr_code_detected=False,
                    content_type=doc_config.qr_content_type,
                    error=QR_NOT_FOUND_MESSAGE,
                    error_type=QRErrorType.QR_NOT_FOUND.value,
                    is_required=True,
                )

            logger.debug("QR payload: %s", preview(qr_content))
            return await self.router.process(
                qr_content,
                doc_config.qr_content_type,
                doc_config.issuer,
                doc_config.options,
            )
        except Exception as exc:
            logger.exception("QR processing failed for sub-type %s", document_sub_type)
            return QRProcessingResult(
                qr_code_detected=False,
                error=QR_PROCESSING_MESSAGE,
                error_type=QRErrorType.PROCESSING_ERROR.value,
                technical_error=str(exc),
                is_required=True,
            )
