"""Mapping coordinator combining AI and keyword strategies.

AI mapping runs first when a configured adapter is available; keyword
mapping is the deterministic fallback. The merged result is normalized
against the schema types and scored by document-field coverage.
"""

import time
from typing import Any

from credocr.utils.logger import get_logger

from .ai_adapters import AiMappingAdapter
from .coercion import coerce_value
from .json_parser import is_provider_envelope
from .keyword_mapper import KeywordMappingEngine
from .schema import FieldSchema, MappingResult, document_fields, schema_to_json_schema

logger = get_logger(__name__)

NO_SCHEMA_WARNING = "No field schema provided"


def is_present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def validate_and_normalize(
    data: dict[str, Any], schema: FieldSchema
) -> tuple[dict[str, Any], list[str]]:
    """Coerce mapped values to their schema types.

    Object fields keep dict or list values unchanged. Values that cannot be
    coerced are dropped with a warning. Keys outside the schema are dropped.

    Args:
        data: Raw mapped values.
        schema: Field schema.

    Returns:
        ``(normalized_data, warnings)``.
    """
    normalized: dict[str, Any] = {}
    warnings: list[str] = []

    for name, spec in schema.items():
        value = data.get(name)
        if value is None:
            continue
        if spec.type == "object" and isinstance(value, (dict, list)):
            normalized[name] = value
            continue
        coerced = coerce_value(value, spec.type)
        if coerced is None:
            warnings.append(
                f'Failed to coerce value "{value}" for field "{name}" to type "{spec.type}"'
            )
        else:
            normalized[name] = coerced

    return normalized, warnings


class MappingCoordinator:
    """Maps OCR text onto a field schema, AI first and keyword second.

    Args:
        adapter: AI mapping adapter, or ``None`` for keyword mapping only.
        keyword_engine: Keyword mapping engine.
        merge_keyword_fallback: Fill fields missing from a partial AI result
            with keyword matches, reporting ``hybrid``.
    """

    def __init__(
        self,
        adapter: AiMappingAdapter | None = None,
        keyword_engine: KeywordMappingEngine | None = None,
        merge_keyword_fallback: bool = False,
    ) -> None:
        self.adapter = adapter
        self.keyword_engine = keyword_engine or KeywordMappingEngine()
        self.merge_keyword_fallback = merge_keyword_fallback

    async def try_ai_mapping(
        self,
        text: str,
        schema: FieldSchema,
        doc_type: str | None = None,
        doc_sub_type: str | None = None,
    ) -> dict[str, Any] | None:
        """Run the AI adapter, returning ``None`` for any unusable outcome."""
        if self.adapter is None or not self.adapter.is_configured():
            return None

        json_schema = schema_to_json_schema(schema)
        try:
            mapped = await self.adapter.map_text_to_schema(
                text, json_schema, doc_type, doc_sub_type
            )
        except Exception as exc:
            logger.error("AI mapping failed: %s", exc)
            return None

        if is_provider_envelope(mapped):
            logger.warning("AI returned an unparsed response object")
            return None
        if not mapped:
            logger.warning("AI mapping returned an empty result")
            return None

        logger.info(
            "AI mapping successful: %d/%d fields extracted",
            len(mapped),
            len(json_schema["properties"]),
        )
        return mapped

    def fill_missing_with_keywords(
        self, text: str, schema: FieldSchema, mapped: dict[str, Any]
    ) -> tuple[dict[str, Any], int]:
        missing = {
            name: schema[name]
            for name in document_fields(schema)
            if not is_present(mapped.get(name))
        }
        if not missing:
            return mapped, 0
        found = self.keyword_engine.map(text, missing)
        logger.info("Keyword mapping filled %d/%d fields missing from AI", len(found), len(missing))
        return {**mapped, **found}, len(found)

    def compute_result(
        self, mapped: dict[str, Any], schema: FieldSchema, method: str
    ) -> MappingResult:
        """Normalize mapped values and score coverage of document fields."""
        data, warnings = validate_and_normalize(mapped, schema)

        doc_fields = document_fields(schema)
        present = [name for name in doc_fields if is_present(data.get(name))]
        missing = [name for name in doc_fields if name not in present]
        missing_required = [name for name in missing if schema[name].required]
        confidence = round(len(present) / len(doc_fields), 2) if doc_fields else 0.0

        logger.info(
            "Mapping complete: %d/%d fields (%d%% confidence) - method: %s",
            len(present),
            len(doc_fields),
            round(confidence * 100),
            method,
        )
        if missing_required:
            logger.warning(
                "Missing %d required field(s): [%s]",
                len(missing_required),
                ", ".join(missing_required),
            )

        return MappingResult(
            mapped_data=data,
            missing_fields=missing,
            confidence=confidence,
            processing_method=method,
            warnings=warnings,
            missing_required_fields=missing_required,
        )

    async def map_after_ocr(
        self,
        text: str,
        doc_type: str | None,
        doc_sub_type: str | None,
        schema: FieldSchema | None,
    ) -> MappingResult:
        """Map extracted text onto a document's field schema.

        Never raises: failures produce an empty result with a warning.

        Args:
            text: Extracted document text.
            doc_type: Document type.
            doc_sub_type: Document sub-type.
            schema: Field schema for the sub-type.

        Returns:
            The mapping result.
        """
        try:
            logger.info("OCR mapping started: %s/%s", doc_type, doc_sub_type)
            if not schema:
                logger.warning("No field schema provided for mapping")
                return MappingResult({}, [], 0.0, "keyword", [NO_SCHEMA_WARNING])

            start = time.perf_counter()
            mapped = await self.try_ai_mapping(text, schema, doc_type, doc_sub_type)
            logger.debug("AI mapping took %d ms", int((time.perf_counter() - start) * 1000))

            if mapped:
                method = "ai"
                if self.merge_keyword_fallback:
                    mapped, filled = self.fill_missing_with_keywords(text, schema, mapped)
                    if filled:
                        method = "hybrid"
            else:
                method = "keyword"
                mapped = self.keyword_engine.map(text, schema)

            return self.compute_result(mapped, schema, method)
        except Exception as exc:
            logger.error("OCR mapping failed: %s", exc)
            return MappingResult({}, [], 0.0, "keyword", [f"Mapping failed: {exc}"])
