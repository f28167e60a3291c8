"""Deterministic keyword mapping of OCR text onto a field schema.

Each field is located through its synonym labels using ordered regex
templates, then cleaned, checked for plausibility and coerced to the field
type. Numeric fields fall back to range-checked pattern families and to the
number closest to a label.
"""

import re
from dataclasses import dataclass
from typing import Any

from credocr.utils.logger import get_logger

from .coercion import coerce_value
from .schema import FieldSchema, FieldSpec, document_fields
from .synonyms import SynonymTable

logger = get_logger(__name__)

MAX_VALUE_LENGTH = 100
MIN_ALNUM_RATIO = 0.2
PROXIMITY_WINDOW = 50

# Label templates tried in order: (name, pattern with a {label} slot)
_LABEL_TEMPLATES: list[tuple[str, str]] = [
    ("colon", r"{label}\s*:\s*([^\n]+)"),
    ("dash", r"{label}[ \t]*[-–—][ \t]*([^\n]+)"),
    ("next_line", r"{label}[ \t]*:?[ \t]*\n\s*([^\n]+)"),
    ("same_line", r"{label}[ \t]+([^\n]+)"),
    ("punctuation", r"{label}[\s.:;,|=\-]*([^\n]+)"),
]

# Numeric pattern families: (name, field keywords, value pattern, min, max)
_NUMERIC_FAMILIES: list[tuple[str, tuple[str, ...], str, float, float]] = [
    ("percentage", ("percent", "%"), r"(\d{1,3}(?:\.\d+)?)\s*%?", 0, 100),
    ("gpa", ("cgpa", "gpa", "sgpa", "cpi", "grade point"), r"(\d{1,2}(?:\.\d+)?)", 0, 10),
    ("marks", ("mark", "score"), r"(\d{1,5}(?:\.\d+)?)", 0, 10000),
]

_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_NOISE = re.compile(r"[^\w\s.,/\-:%()&'@+#]")
_REPEATED_PUNCT = re.compile(r"([.,/\-:_])\1+")
_WHITESPACE = re.compile(r"\s+")
_EDGE_PUNCT = " \t.,:;|_-=*"
_FIELD_LABEL = re.compile(
    r"(?:\bno\.|\bnumber)\s*:?\s*$|\b(?:enter|fill|click|select|write|tick|sign)\b",
    re.IGNORECASE,
)


@dataclass
class KeywordMatch:
    """A raw value located for a field."""

    field_name: str
    value: str
    label: str
    method: str


def label_pattern(label: str) -> str:
    """Regex fragment matching a label with flexible inner whitespace.

    Word boundaries are added only on sides where the label starts or ends
    with a word character, so labels such as ``%`` still match.
    """
    parts = [re.escape(part) for part in label.split()]
    body = r"\s+".join(parts)
    if label[:1].isalnum():
        body = r"(?<![a-z0-9])" + body
    if label[-1:].isalnum():
        body = body + r"(?![a-z0-9])"
    return body


def clean_value(raw: str) -> str:
    """Strip OCR artifacts from a captured value."""
    value = raw[:MAX_VALUE_LENGTH]
    value = _NOISE.sub(" ", value)
    value = _REPEATED_PUNCT.sub(r"\1", value)
    value = _WHITESPACE.sub(" ", value)
    return value.strip(_EDGE_PUNCT)


def is_name_field(field_name: str) -> bool:
    return "name" in field_name.lower()


def is_numeric_type(field_type: str | None) -> bool:
    return field_type in ("number", "integer")


def is_plausible(value: str, field_name: str, field_type: str | None) -> bool:
    """Check that a cleaned value looks like data rather than layout text.

    Args:
        value: Cleaned candidate value.
        field_name: Schema field name.
        field_type: Schema field type.

    Returns:
        ``True`` if the value can be accepted for the field.
    """
    if not value:
        return False
    alnum = sum(1 for ch in value if ch.isalnum())
    if alnum / len(value) < MIN_ALNUM_RATIO:
        return False
    if _FIELD_LABEL.search(value):
        return False
    if is_name_field(field_name):
        if len(value) < 2 or not any(ch.isalpha() for ch in value):
            return False
    if is_numeric_type(field_type) and not any(ch.isdigit() for ch in value):
        return False
    return True


def numeric_family(field_name: str, labels: list[str]):
    """Return the numeric family matching a field, if any."""
    haystack = " ".join([field_name.lower(), *labels])
    for family in _NUMERIC_FAMILIES:
        if any(keyword in haystack for keyword in family[1]):
            return family
    return None


class KeywordMappingEngine:
    """Maps OCR text onto schema fields using synonym labels and regexes.

    Matching is case-insensitive against the original text so extracted
    values keep their casing.

    Args:
        synonyms: Synonym table. Defaults to the built-in table.
    """

    def __init__(self, synonyms: SynonymTable | None = None) -> None:
        self.synonyms = synonyms or SynonymTable()

    def map(self, text: str, schema: FieldSchema) -> dict[str, Any]:
        """Map text onto the document fields of a schema.

        Args:
            text: Extracted document text.
            schema: Field schema.

        Returns:
            Coerced values for the fields that were found.
        """
        mapped: dict[str, Any] = {}
        if not text:
            return mapped

        names = document_fields(schema)
        for field_name in names:
            value = self.map_field(text, field_name, schema[field_name])
            if value is not None:
                mapped[field_name] = value

        logger.info(
            "Keyword mapping found %d/%d fields",
            len(mapped),
            len(names),
        )
        return mapped

    def map_field(self, text: str, field_name: str, spec: FieldSpec) -> Any:
        """Locate and coerce one field, or return ``None``."""
        labels = self.synonyms.get(field_name)
        numeric = is_numeric_type(spec.type)
        family = numeric_family(field_name, labels) if numeric else None

        match = self.find_labelled_value(text, field_name, spec.type, labels)
        if match is not None:
            value = coerce_value(match.value, spec.type)
            if value is not None and family is not None and not family[3] <= value <= family[4]:
                logger.debug(
                    "Field %s value %s outside the %s range", field_name, value, family[0]
                )
                value = None
            if value is not None:
                logger.debug(
                    "Field %s matched by %s template on '%s'", field_name, match.method, match.label
                )
                return value

        if not numeric:
            return None

        number = self.find_family_value(text, labels, family)
        if number is None:
            number = self.find_nearby_number(text, labels, family)
        if number is None:
            return None
        return coerce_value(number, spec.type)

    def find_labelled_value(
        self, text: str, field_name: str, field_type: str | None, labels: list[str]
    ) -> KeywordMatch | None:
        for label in labels:
            label_re = label_pattern(label)
            for method, template in _LABEL_TEMPLATES:
                pattern = template.replace("{label}", label_re)
                for found in re.finditer(pattern, text, re.IGNORECASE):
                    value = clean_value(found.group(1))
                    if is_plausible(value, field_name, field_type):
                        return KeywordMatch(field_name, value, label, method)
        return None

    def find_family_value(self, text: str, labels: list[str], family) -> str | None:
        """Search numeric values anchored on a label within a family's range."""
        if family is None:
            return None
        _, _, value_pattern, low, high = family
        for label in labels:
            pattern = label_pattern(label) + r"[^\d\n]{0,20}?" + value_pattern
            for found in re.finditer(pattern, text, re.IGNORECASE):
                if low <= float(found.group(1)) <= high:
                    return found.group(1)
        return None

    def find_nearby_number(self, text: str, labels: list[str], family=None) -> str | None:
        """Closest number within the proximity window of any label occurrence."""
        best: tuple[int, str] | None = None
        for label in labels:
            for occurrence in re.finditer(label_pattern(label), text, re.IGNORECASE):
                start = max(0, occurrence.start() - PROXIMITY_WINDOW)
                window = text[start : occurrence.end() + PROXIMITY_WINDOW]
                for number in _NUMBER.finditer(window):
                    absolute = start + number.start()
                    if absolute >= occurrence.end():
                        distance = absolute - occurrence.end()
                    else:
                        distance = occurrence.start() - (start + number.end())
                    if distance < 0 or distance > PROXIMITY_WINDOW:
                        continue
                    if family is not None and not family[3] <= float(number.group(0)) <= family[4]:
                        continue
                    if best is None or distance < best[0]:
                        best = (distance, number.group(0))
        return best[1] if best else None
