"""Type coercion of mapped values against schema field types."""

import math
import re
from typing import Any

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_LABEL_DOT = re.compile(r"\.(?!\d)")
_FLOAT_PREFIX = re.compile(r"\d+(?:\.\d*)?|\.\d+")

TRUE_VALUES = frozenset({"true", "yes", "y", "1"})
FALSE_VALUES = frozenset({"false", "no", "n", "0"})


def coerce_number(value: str, integer: bool = False) -> float | int | None:
    """Parse a numeric value out of OCR or model output.

    Everything except digits, ``.`` and ``-`` is removed, so separators
    inside an identifier such as ``2234 1417 8889`` are dropped rather than
    splitting it. Dots that are not followed by a digit (``Rs.``) are not
    decimal points and go first. Leading minus signs are stripped:
    identifiers and scores on credentials are never negative, and OCR often
    reads a leading separator as a minus sign. The longest numeric prefix
    of what remains is parsed.

    Args:
        value: Raw value text.
        integer: Round to an ``int`` when true.

    Returns:
        The parsed number, or ``None`` if nothing numeric remains.
    """
    cleaned = _NON_NUMERIC.sub("", _LABEL_DOT.sub("", value)).lstrip("-")
    match = _FLOAT_PREFIX.match(cleaned)
    if not match:
        return None
    try:
        number = float(match.group(0))
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    if integer:
        return int(round(number))
    return number


def coerce_boolean(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def coerce_value(value: Any, field_type: str | None) -> Any:
    """Coerce a value to a schema field type.

    Args:
        value: Raw value, usually a string.
        field_type: One of ``string``, ``number``, ``integer``, ``boolean``
            or ``object``. Unknown types are treated as ``string``.

    Returns:
        The coerced value, or ``None`` when the value is blank or cannot be
        represented in the requested type.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value).strip()
    if not text:
        return None

    if field_type in ("number", "integer"):
        return coerce_number(text, integer=field_type == "integer")
    if field_type == "boolean":
        return coerce_boolean(text)
    return text
