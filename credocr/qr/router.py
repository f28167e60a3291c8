"""Routes decoded QR payloads to the configured issuer's processor."""

from collections.abc import Mapping
from typing import Any

from credocr.utils.config import QRConfig
from credocr.utils.logger import get_logger

from .content_types import QRContentType, QRErrorType, QRProcessingResult
from .downloader import DocumentDownloader
from .processors import DEFAULT_PROCESSOR, ISSUER_PROCESSORS, QRProcessor, failure

logger = get_logger(__name__)


class QRContentRouter:
    """Selects an issuer processor and runs it against a QR payload.

    Args:
        config: QR configuration (default issuer, credential fetch timeout).
        downloader: Downloader handed to processors for referenced documents.
        processors: Issuer processors by name. Defaults to the built-in set.
    """

    def __init__(
        self,
        config: QRConfig,
        downloader: DocumentDownloader,
        processors: Mapping[str, QRProcessor] | None = None,
    ) -> None:
        self.config = config
        self.downloader = downloader
        self._processors = dict(ISSUER_PROCESSORS if processors is None else processors)

    def get_processor(self, issuer: str | None) -> QRProcessor | None:
        """Look up the processor for an issuer name.

        A blank issuer selects the default processor; an unknown one
        returns ``None``.
        """
        name = (issuer or self.config.default_issuer or "").strip().lower()
        if not name or name == DEFAULT_PROCESSOR.issuer:
            return DEFAULT_PROCESSOR
        return self._processors.get(name)

    def all_processors(self) -> list[QRProcessor]:
        return [DEFAULT_PROCESSOR, *self._processors.values()]

    def processors_for(self, content_type: QRContentType | str) -> list[QRProcessor]:
        """Return every processor that accepts ``content_type``."""
        return [p for p in self.all_processors() if p.can_process(content_type)]

    async def process(
        self,
        qr_content: str,
        content_type: QRContentType | str,
        issuer: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> QRProcessingResult:
        """Process a decoded payload for an issuer.

        Unknown issuers, unaccepted content types and unexpected processor
        failures are reported as structured results, never raised.

        Args:
            qr_content: Decoded QR payload.
            content_type: Declared content type of the payload.
            issuer: Issuer name from the document configuration.
            options: Issuer options from the document configuration.

        Returns:
            The processing result.
        """
        processor = self.get_processor(issuer)
        if processor is None:
            logger.warning("No QR processor registered for issuer %s", issuer)
            return failure(
                qr_content,
                getattr(content_type, "value", content_type),
                QRErrorType.UNSUPPORTED_ISSUER,
                f"Unsupported QR issuer: {issuer}",
            )

        parsed_type = QRContentType.parse(content_type)
        if parsed_type is None or not processor.can_process(parsed_type):
            declared = getattr(content_type, "value", content_type)
            logger.warning("Issuer %s does not accept %s QR content", processor.issuer, declared)
            return failure(
                qr_content,
                declared,
                QRErrorType.UNSUPPORTED_CONTENT_TYPE,
                f"Unsupported QR content type '{declared}' for issuer {processor.issuer}",
            )

        try:
            result = await processor.process(
                qr_content,
                parsed_type,
                self.downloader,
                options,
                self.config.vc_fetch_timeout_s,
            )
        except Exception as exc:
            logger.exception("QR processor %s failed", processor.issuer)
            return failure(
                qr_content,
                parsed_type,
                QRErrorType.PROCESSING_ERROR,
                f"Failed to process QR content: {exc}",
                str(exc),
            )

        if result.error:
            logger.warning("QR processing returned %s: %s", result.error_type, result.error)
        else:
            logger.info("QR content processed as %s by %s", parsed_type.value, processor.issuer)
        return result
