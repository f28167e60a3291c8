"""End-to-end document pipeline.

One upload runs sequentially through QR detection, the optional re-fetch
of a QR-referenced document, text extraction and schema mapping.
"""

from dataclasses import dataclass
from typing import Any

from credocr.mapping.ai_adapters import create_mapping_adapter
from credocr.mapping.coordinator import MappingCoordinator
from credocr.mapping.keyword_mapper import KeywordMappingEngine
from credocr.mapping.schema import MappingResult
from credocr.mapping.synonyms import SynonymTable
from credocr.ocr.base import ExtractedText, TextExtractor
from credocr.ocr.document_processor import DocumentProcessor
from credocr.ocr.factory import create_text_extractor
from credocr.qr.content_types import QRProcessingResult
from credocr.qr.detector import QRCodeDetector
from credocr.qr.downloader import DocumentDownloader
from credocr.qr.orchestrator import QRProcessingOrchestrator
from credocr.qr.router import QRContentRouter
from credocr.utils.config import AppConfig
from credocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Everything produced for one document."""

    extracted_text: ExtractedText
    mapping: MappingResult
    qr_processing: QRProcessingResult | None = None
    source: str = "upload"

    def to_dict(self) -> dict[str, Any]:
        return {
            "extractedText": self.extracted_text.to_dict(),
            "source": self.source,
            "qrProcessing": self.qr_processing.to_dict() if self.qr_processing else None,
            "mapping": self.mapping.to_dict(),
        }


class DocumentPipeline:
    """Wires the OCR, QR and mapping stages from one configuration.

    Args:
        config: Application configuration.
        extractor: Text extractor. Built from ``config.ocr`` if omitted.
        coordinator: Mapping coordinator. Built from ``config.mapping`` if
            omitted.
        downloader: Downloader shared by QR detection and routing.
    """

    def __init__(
        self,
        config: AppConfig,
        extractor: TextExtractor | None = None,
        coordinator: MappingCoordinator | None = None,
        downloader: DocumentDownloader | None = None,
    ) -> None:
        self.config = config
        self.extractor = extractor or create_text_extractor(config.ocr)
        self.downloader = downloader or DocumentDownloader(config.qr)

        detector = QRCodeDetector(config.qr, self.downloader)
        router = QRContentRouter(config.qr, self.downloader)
        self.qr_orchestrator = QRProcessingOrchestrator(detector, router, config.document)
        self.processor = DocumentProcessor(self.extractor, self.qr_orchestrator)

        if coordinator is None:
            synonyms = SynonymTable.from_yaml(config.mapping.synonyms_path)
            coordinator = MappingCoordinator(
                create_mapping_adapter(config.mapping),
                KeywordMappingEngine(synonyms),
                config.mapping.merge_keyword_fallback,
            )
        self.coordinator = coordinator

    async def process(
        self,
        data: bytes,
        mime_type: str,
        doc_type: str | None = None,
        doc_sub_type: str | None = None,
    ) -> PipelineResult:
        """Run one document through the pipeline.

        Args:
            data: Uploaded document bytes.
            mime_type: Declared MIME type.
            doc_type: Document type. Defaults to the sub-type's configured type.
            doc_sub_type: Document sub-type selecting the schema and QR rules.

        Returns:
            Extracted text, QR outcome and mapping result.

        Raises:
            UnsupportedInputError: If the document is empty or unsupported.
            QRRequiredError: If a required QR code could not be processed.
            ProviderError: If text extraction fails.
        """
        doc_config = self.config.document(doc_sub_type)
        if doc_sub_type and doc_config is None:
            logger.warning("No configuration for document sub-type %s", doc_sub_type)
        if doc_type is None and doc_config is not None:
            doc_type = doc_config.doc_type
        schema = doc_config.fields if doc_config is not None else {}

        stage = await self.processor.extract_text_with_qr(data, mime_type, doc_sub_type)
        mapping = await self.coordinator.map_after_ocr(
            stage.extracted.full_text, doc_type, doc_sub_type, schema
        )
        return PipelineResult(
            extracted_text=stage.extracted,
            mapping=mapping,
            qr_processing=stage.qr_processing,
            source=stage.source,
        )

    async def aclose(self) -> None:
        """Release HTTP and SDK clients."""
        await self.extractor.aclose()
        await self.downloader.aclose()
        if self.coordinator.adapter is not None:
            await self.coordinator.adapter.aclose()
