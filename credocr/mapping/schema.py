"""Field schema and mapping result types.

A field schema describes, per document sub-type, which fields should be
pulled out of the OCR text and how their values are typed.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from pydantic import BaseModel

FieldType = Literal["string", "number", "integer", "boolean", "object"]
ProcessingMethod = Literal["ai", "keyword", "hybrid"]


class FieldSpec(BaseModel):
    """Declaration of a single schema field."""

    type: FieldType = "string"
    description: str | None = None
    required: bool = False
    document_field: bool = True
    role: str | None = None


FieldSchema = dict[str, FieldSpec]


def document_fields(schema: FieldSchema) -> list[str]:
    """Return the names of fields that are read from the document itself.

    Args:
        schema: Field schema for one document sub-type.

    Returns:
        Field names in schema order, excluding metadata-only fields.
    """
    return [name for name, spec in schema.items() if spec.document_field]


def schema_to_json_schema(schema: FieldSchema) -> dict[str, Any]:
    """Build the JSON-schema object sent to AI mapping providers.

    Only document fields are included. A field without a description is
    described by its own name with underscores turned into spaces.

    Args:
        schema: Field schema for one document sub-type.

    Returns:
        JSON-schema ``object`` definition.
    """
    properties: dict[str, dict[str, str]] = {}
    for name, spec in schema.items():
        if not spec.document_field:
            continue
        properties[name] = {
            "type": spec.type,
            "description": spec.description or name.replace("_", " "),
        }
    return {
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
    }


@dataclass(frozen=True)
class MappingResult:
    """Outcome of mapping OCR text onto a field schema."""

    mapped_data: dict[str, Any]
    missing_fields: list[str]
    confidence: float
    processing_method: ProcessingMethod
    warnings: list[str] = field(default_factory=list)
    missing_required_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
