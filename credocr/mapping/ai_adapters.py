"""AI-backed schema mapping adapters.

Each adapter sends one prompt containing the OCR text and the JSON schema
of the document fields, then parses the model answer into a dict. Any
provider or parsing failure yields ``None`` so the caller falls back to
keyword mapping.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx
import openai

from credocr.utils.config import MappingConfig
from credocr.utils.errors import ConfigurationError
from credocr.utils.logger import get_logger, preview

from .json_parser import is_provider_envelope, parse_ai_response
from .prompt_builder import build_mapping_prompt

logger = get_logger(__name__)


class AiMappingAdapter(ABC):
    """Base class for AI mapping providers.

    Args:
        config: Mapping configuration.
    """

    provider_name: str = ""

    def __init__(self, config: MappingConfig) -> None:
        self.config = config

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials are present. Never touches the network."""

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Send a prompt and return the raw model output."""

    def build_prompt(
        self,
        text: str,
        json_schema: dict[str, Any],
        doc_type: str | None = None,
        doc_sub_type: str | None = None,
    ) -> str:
        return build_mapping_prompt(
            text,
            json_schema,
            doc_type=doc_type,
            template=self.config.prompt_template,
            doc_sub_type=doc_sub_type,
        )

    async def map_text_to_schema(
        self,
        text: str,
        json_schema: dict[str, Any],
        doc_type: str | None = None,
        doc_sub_type: str | None = None,
    ) -> dict[str, Any] | None:
        """Map OCR text onto a JSON schema using the model.

        Args:
            text: Extracted document text.
            json_schema: JSON schema of the document fields.
            doc_type: Document type, used for contextual prompt hints.
            doc_sub_type: Document sub-type, also used for hints.

        Returns:
            The mapped object, or ``None`` when there is no usable result.
        """
        if not self.is_configured():
            logger.warning("%s mapping adapter is not configured", self.provider_name)
            return None

        prompt = self.build_prompt(text, json_schema, doc_type, doc_sub_type)
        field_count = len(json_schema.get("properties", {}))
        logger.debug("Sending mapping request to %s (%d fields)", self.provider_name, field_count)

        try:
            raw = await self._complete(prompt)
        except Exception as exc:
            logger.error("%s mapping request failed: %s", self.provider_name, exc)
            return None

        logger.debug("%s response: %s", self.provider_name, preview(raw, 500))
        parsed = parse_ai_response(raw)
        if not parsed:
            logger.warning("%s returned an empty mapping", self.provider_name)
            return None
        if is_provider_envelope(parsed):
            logger.warning("%s returned an unparsed response object", self.provider_name)
            return None

        logger.debug("%s extracted %d fields", self.provider_name, len(parsed))
        return parsed

    async def aclose(self) -> None:
        """Release provider clients."""


class OpenAIMappingAdapter(AiMappingAdapter):
    """Mapping through the OpenAI chat completions API.

    Args:
        config: Mapping configuration.
        client: Optional pre-built client, used by tests.
    """

    provider_name = "openai"

    def __init__(
        self, config: MappingConfig, client: openai.AsyncOpenAI | None = None
    ) -> None:
        super().__init__(config)
        self._client = client
        if self._client is None and config.openai_api_key:
            self._client = openai.AsyncOpenAI(
                api_key=config.openai_api_key,
                base_url=config.openai_base_url,
                timeout=config.timeout_s,
                max_retries=0,
            )

    def is_configured(self) -> bool:
        return self._client is not None

    async def _complete(self, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self.config.openai_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            top_p=self.config.top_p,
            max_tokens=self.config.max_output_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


class GeminiMappingAdapter(AiMappingAdapter):
    """Mapping through a hosted Gemini model over REST.

    Args:
        config: Mapping configuration.
        transport: Optional httpx transport, used by tests.
    """

    provider_name = "google-gemini"

    def __init__(
        self, config: MappingConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        super().__init__(config)
        self._client = httpx.AsyncClient(
            base_url=config.gemini_base_url,
            timeout=config.timeout_s,
            transport=transport,
        )

    def is_configured(self) -> bool:
        return bool(self.config.gemini_api_key)

    async def _complete(self, prompt: str) -> str:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "topP": self.config.top_p,
                "maxOutputTokens": self.config.max_output_tokens,
            },
        }
        response = await self._client.post(
            f"/models/{self.config.gemini_model}:generateContent",
            params={"key": self.config.gemini_api_key},
            json=body,
        )
        response.raise_for_status()
        payload = response.json()
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    async def aclose(self) -> None:
        await self._client.aclose()


_ADAPTERS: dict[str, type[AiMappingAdapter]] = {
    "openai": OpenAIMappingAdapter,
    "google-gemini": GeminiMappingAdapter,
    "gemini": GeminiMappingAdapter,
}


def available_mapping_providers() -> list[str]:
    return sorted(_ADAPTERS)


def create_mapping_adapter(config: MappingConfig) -> AiMappingAdapter | None:
    """Create the mapping adapter named by ``config.provider``.

    Args:
        config: Mapping configuration.

    Returns:
        The adapter, or ``None`` when the provider is ``none``.

    Raises:
        ConfigurationError: If the provider name is unknown.
    """
    name = (config.provider or "").strip().lower()
    if name in ("", "none", "keyword"):
        logger.info("AI mapping disabled, keyword mapping only")
        return None
    adapter_cls = _ADAPTERS.get(name)
    if adapter_cls is None:
        raise ConfigurationError(
            f"Unknown mapping provider '{config.provider}'. "
            f"Available: {', '.join(available_mapping_providers())}"
        )
    adapter = adapter_cls(config)
    if not adapter.is_configured():
        logger.warning("Mapping provider %s has no credentials, keyword mapping will be used", name)
    return adapter
