"""Cloud vision-LLM text extraction through the Gemini REST API.

The whole document is sent inline, base64-encoded, together with a fixed
extraction instruction. The model's first answer is taken as the text.
"""

import base64
import time
from typing import Any

import httpx

from credocr.utils.config import OCRConfig
from credocr.utils.errors import (
    ConfigurationError,
    MalformedResponseError,
    OCRErrorKind,
    ProviderError,
    UnsupportedInputError,
)
from credocr.utils.logger import get_logger

from . import mime_types
from .base import ExtractedText, TextExtractor

logger = get_logger(__name__)

DEFAULT_EXTRACTION_PROMPT = (
    "Extract all text from this document. Return only the extracted text, "
    "preserving the original layout and formatting as much as possible. "
    "Do not add any explanations, comments, or additional formatting."
)

GEMINI_CONFIDENCE = 90.0

_GENERATION_CONFIG = {
    "temperature": 0.1,
    "topK": 32,
    "topP": 1,
    "maxOutputTokens": 8192,
}


def classify_gemini_error(status_code: int, body: str) -> tuple[OCRErrorKind, str]:
    """Map a Gemini HTTP failure to an error kind and message.

    Args:
        status_code: HTTP status returned by the API.
        body: Response body text.

    Returns:
        ``(kind, message)`` pair.
    """
    lowered = body.lower()
    if status_code == 400:
        if "api key not valid" in lowered:
            return OCRErrorKind.INVALID_CREDENTIALS, "Invalid Gemini API key"
        if "unsupported mime type" in lowered:
            return OCRErrorKind.UNSUPPORTED_FORMAT, "File format not supported by Gemini"
        return OCRErrorKind.INVALID_REQUEST, f"Invalid request to Gemini: {body[:200]}"
    if status_code == 403:
        return OCRErrorKind.NOT_CONFIGURED, "Access to the Gemini API was denied"
    if status_code == 429:
        return OCRErrorKind.SERVICE_BUSY, "Gemini rate limit exceeded"
    if status_code in (500, 502, 503):
        return OCRErrorKind.SERVICE_UNAVAILABLE, "Gemini service is temporarily unavailable"
    return OCRErrorKind.EXTRACTION_FAILED, f"Gemini request failed with status {status_code}"


def extract_candidate_text(payload: dict[str, Any]) -> tuple[str, str | None]:
    """Pull the first candidate's first text part out of a response.

    Args:
        payload: Decoded ``generateContent`` response.

    Returns:
        ``(text, finish_reason)``.

    Raises:
        MalformedResponseError: If no candidate or text part is present.
    """
    candidates = payload.get("candidates") or []
    if not candidates:
        raise MalformedResponseError("Gemini returned no candidates", "google-gemini")
    candidate = candidates[0]
    finish_reason = candidate.get("finishReason")
    parts = (candidate.get("content") or {}).get("parts") or []
    if not parts or "text" not in parts[0]:
        raise MalformedResponseError(
            f"Gemini returned no text part (finish reason: {finish_reason})",
            "google-gemini",
            finish_reason,
        )
    return parts[0]["text"], finish_reason


class GeminiVisionExtractor(TextExtractor):
    """Text extractor using a multimodal Gemini model.

    Args:
        config: OCR configuration with the Gemini key and model.
        transport: Optional httpx transport, used by tests.
    """

    provider_name = "google-gemini"

    def __init__(
        self, config: OCRConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        if not config.gemini_api_key:
            raise ConfigurationError("Gemini OCR requires GEMINI_API_KEY")
        self.config = config
        self.prompt = config.extraction_prompt or DEFAULT_EXTRACTION_PROMPT
        self._client = httpx.AsyncClient(
            base_url=config.gemini_base_url,
            timeout=config.gemini_timeout_s,
            transport=transport,
        )

    @property
    def _endpoint(self) -> str:
        return f"/models/{self.config.gemini_model}:generateContent"

    async def _generate(
        self, body: dict[str, Any], timeout: float
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                self._endpoint,
                params={"key": self.config.gemini_api_key},
                json=body,
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                OCRErrorKind.TIMEOUT, "Gemini request timed out", self.provider_name
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderError(
                OCRErrorKind.NETWORK_ERROR,
                f"Could not reach Gemini: {exc}",
                self.provider_name,
            ) from exc

        if response.status_code != 200:
            kind, message = classify_gemini_error(response.status_code, response.text)
            raise ProviderError(kind, message, self.provider_name)

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                "Gemini returned a non-JSON body", self.provider_name
            ) from exc

    async def extract_text(self, data: bytes, mime_type: str) -> ExtractedText:
        if not self.supports_file_type(mime_type):
            raise UnsupportedInputError(f"Gemini cannot read {mime_type}")

        mime_type = mime_types.normalize_mime_type(mime_type)
        body = {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(data).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": _GENERATION_CONFIG,
        }

        start = time.perf_counter()
        payload = await self._generate(body, self.config.gemini_timeout_s)
        text, finish_reason = extract_candidate_text(payload)
        text = text.strip()
        if not text:
            raise MalformedResponseError(
                f"Gemini returned empty text (finish reason: {finish_reason})",
                self.provider_name,
                finish_reason,
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info("Gemini extracted %d characters in %d ms", len(text), elapsed_ms)
        return ExtractedText(
            full_text=text,
            confidence=GEMINI_CONFIDENCE,
            metadata={
                "provider": self.provider_name,
                "processing_time_ms": elapsed_ms,
                "page_count": 1,
                "model": self.config.gemini_model,
                "finish_reason": finish_reason,
            },
        )

    async def validate_permissions(self) -> bool:
        body = {
            "contents": [{"parts": [{"text": "Test"}]}],
            "generationConfig": {"maxOutputTokens": 10},
        }
        await self._generate(body, self.config.gemini_validation_timeout_s)
        logger.info("Gemini credentials validated for model %s", self.config.gemini_model)
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
