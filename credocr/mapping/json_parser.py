"""Tolerant extraction of JSON objects from AI model responses.

Models are asked for raw JSON but regularly wrap it in code fences, prefix
it with prose or return a provider envelope around the generated text. The
helpers here peel those layers off and return the mapped object, or
``None`` when nothing usable is found.
"""

import json
import re
from typing import Any

from credocr.utils.logger import get_logger, preview

logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_JSON_PREFIX = re.compile(
    r"here is the json object:\s*(?:```(?:json)?)?\s*(\{[\s\S]*?\})\s*(?:```)?", re.IGNORECASE
)
_OBJECT_CANDIDATE = re.compile(r"\{[\s\S]*?\}")

ENVELOPE_KEYS = ("generation", "content", "generated_text", "completion", "results", "choices")


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _balanced_candidates(text: str) -> list[str]:
    """Return every brace-balanced ``{...}`` substring of ``text``."""
    candidates = []
    for start, char in enumerate(text):
        if char != "{":
            continue
        depth = 0
        for end in range(start, len(text)):
            if text[end] == "{":
                depth += 1
            elif text[end] == "}":
                depth -= 1
                if depth == 0:
                    candidates.append(text[start : end + 1])
                    break
    return candidates


def extract_json_from_text(text: str | None) -> dict[str, Any] | None:
    """Find a JSON object inside free-form model output.

    Strategies, in order: the whole text, a fenced code block, a block after
    "Here is the JSON object:", the largest valid candidate object with at
    least one key, then everything between the first ``{`` and the last
    ``}``.

    Args:
        text: Raw model output.

    Returns:
        The parsed object, or ``None``.
    """
    if not text or not isinstance(text, str):
        return None
    text = text.strip()

    direct = _loads_object(text)
    if direct is not None:
        return direct

    for pattern in (_CODE_FENCE, _JSON_PREFIX):
        match = pattern.search(text)
        if match:
            parsed = _loads_object(match.group(1).strip())
            if parsed is not None:
                logger.debug("Found JSON using %s", "code fence" if pattern is _CODE_FENCE else "prefix")
                return parsed

    candidates = set(_OBJECT_CANDIDATE.findall(text)) | set(_balanced_candidates(text))
    for candidate in sorted(candidates, key=len, reverse=True):
        parsed = _loads_object(candidate.strip())
        if parsed:
            logger.debug("Parsed JSON candidate with %d keys", len(parsed))
            return parsed

    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        parsed = _loads_object(text[start : end + 1])
        if parsed is not None:
            return parsed

    logger.debug("No JSON object found in response: %s", preview(text))
    return None


def _first_text(items: Any, key: str) -> str | None:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        value = items[0].get(key)
        if isinstance(value, str) and value:
            return value
    return None


def unwrap_envelope(payload: dict[str, Any]) -> tuple[bool, str | None]:
    """Pull the generated text out of a known provider envelope.

    Args:
        payload: Parsed provider response.

    Returns:
        ``(is_envelope, text)``. ``text`` is ``None`` when the payload is an
        envelope without usable generated text.
    """
    generation = payload.get("generation")
    if isinstance(generation, str) and generation:
        return True, generation

    text = _first_text(payload.get("content"), "text")
    if text:
        return True, text

    for key in ("generated_text", "completion"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return True, value

    text = _first_text(payload.get("results"), "outputText")
    if text:
        return True, text

    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str) and content:
            return True, content

    if any(key in payload for key in ENVELOPE_KEYS):
        return True, None
    return False, None


def is_provider_envelope(obj: Any) -> bool:
    """Whether a parsed mapping still looks like a raw provider response."""
    return isinstance(obj, dict) and ("generation" in obj or "content" in obj)


def parse_ai_response(body: str | None) -> dict[str, Any] | None:
    """Parse a provider response body into the mapped object.

    The body may be the model's text or a JSON provider envelope holding
    it. Empty results are returned as ``None``.

    Args:
        body: Response body or generated text.

    Returns:
        The mapped object, or ``None`` when nothing usable was found.
    """
    if not body or not isinstance(body, str):
        logger.debug("Empty response body")
        return None

    envelope = _loads_object(body.strip())
    if envelope is not None:
        is_envelope, inner = unwrap_envelope(envelope)
        if not is_envelope:
            return envelope or None
        if inner is None:
            logger.warning("Provider envelope carried no generated text")
            return None
        result = extract_json_from_text(inner)
    else:
        result = extract_json_from_text(body)

    return result or None
