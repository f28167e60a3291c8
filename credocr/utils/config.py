"""Configuration management for the credential document pipeline.

Loads and validates YAML configuration with sensible defaults for the OCR
providers, QR processing, AI mapping and per-document-type settings.
Provider credentials are read from the environment once, at load time,
and carried on the config object from then on.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from credocr.mapping.schema import FieldSchema

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
)


class OCRConfig(BaseModel):
    """Configuration for text extraction providers."""

    provider: str = "tesseract"

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash-exp"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_s: float = 60.0
    gemini_validation_timeout_s: float = 10.0
    extraction_prompt: str | None = None

    document_ai_project_id: str | None = None
    document_ai_location: str = "us"
    document_ai_processor_id: str | None = None
    document_ai_credentials_file: str | None = None
    document_ai_timeout_s: float = 60.0


class MappingConfig(BaseModel):
    """Configuration for AI-backed schema mapping."""

    provider: str = "openai"

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    temperature: float = 0.1
    top_p: float = 0.9
    max_output_tokens: int = 2000
    timeout_s: float = 30.0
    prompt_template: str | None = None
    merge_keyword_fallback: bool = False
    synonyms_path: str | None = None


class QRConfig(BaseModel):
    """Configuration for QR detection and referenced-document download."""

    download_timeout_s: float = 30.0
    max_download_bytes: int = 10 * 1024 * 1024
    max_redirects: int = 5
    user_agent: str = DEFAULT_USER_AGENT
    vc_fetch_timeout_s: float = 10.0
    threshold: int = 150
    default_issuer: str | None = None


class DocumentTypeConfig(BaseModel):
    """Per-document-sub-type settings: QR requirements and field schema."""

    document_sub_type: str
    doc_type: str | None = None
    name: str | None = None
    label: str | None = None
    qr_content_type: str | None = None
    issuer: str | None = None
    fields: FieldSchema = Field(default_factory=dict)
    options: dict[str, Any] = Field(default_factory=dict)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    mapping: MappingConfig = Field(default_factory=MappingConfig)
    qr: QRConfig = Field(default_factory=QRConfig)
    documents: list[DocumentTypeConfig] = Field(default_factory=list)
    log_level: str = "INFO"

    def document(self, document_sub_type: str | None) -> DocumentTypeConfig | None:
        """Look up the configuration for a document sub-type.

        Args:
            document_sub_type: Sub-type key, matched case-insensitively.

        Returns:
            The matching document configuration, or ``None``.
        """
        if not document_sub_type:
            return None
        key = document_sub_type.lower()
        for doc in self.documents:
            if doc.document_sub_type.lower() == key:
                return doc
        return None


# (environment variable, config section, attribute)
_ENV_OVERRIDES: list[tuple[str, str | None, str]] = [
    ("OCR_PROVIDER", "ocr", "provider"),
    ("TESSERACT_CMD", "ocr", "tesseract_cmd"),
    ("GEMINI_API_KEY", "ocr", "gemini_api_key"),
    ("GEMINI_OCR_MODEL", "ocr", "gemini_model"),
    ("OCR_EXTRACTION_PROMPT", "ocr", "extraction_prompt"),
    ("DOCUMENT_AI_PROJECT_ID", "ocr", "document_ai_project_id"),
    ("DOCUMENT_AI_LOCATION", "ocr", "document_ai_location"),
    ("DOCUMENT_AI_PROCESSOR_ID", "ocr", "document_ai_processor_id"),
    ("GOOGLE_APPLICATION_CREDENTIALS", "ocr", "document_ai_credentials_file"),
    ("OCR_MAPPING_PROVIDER", "mapping", "provider"),
    ("OPENAI_API_KEY", "mapping", "openai_api_key"),
    ("OCR_MAPPING_OPENAI_MODEL", "mapping", "openai_model"),
    ("OCR_MAPPING_GEMINI_API_KEY", "mapping", "gemini_api_key"),
    ("OCR_MAPPING_GEMINI_MODEL_NAME", "mapping", "gemini_model"),
    ("OCR_MAPPING_PROMPT_TEMPLATE", "mapping", "prompt_template"),
    ("QR_DEFAULT_ISSUER", "qr", "default_issuer"),
    ("LOG_LEVEL", None, "log_level"),
]


def apply_env_overrides(
    config: AppConfig, environ: Mapping[str, str] | None = None
) -> AppConfig:
    """Overlay credentials and provider choices from environment variables.

    Args:
        config: Configuration loaded from YAML or defaults.
        environ: Variables to read. Defaults to ``os.environ``.

    Returns:
        A new configuration with non-empty environment values applied.
    """
    environ = os.environ if environ is None else environ
    section_updates: dict[str, dict[str, str]] = {}
    top_updates: dict[str, str] = {}

    for var, section, attr in _ENV_OVERRIDES:
        value = environ.get(var)
        if not value:
            continue
        if section is None:
            top_updates[attr] = value
        else:
            section_updates.setdefault(section, {})[attr] = value

    for section, updates in section_updates.items():
        current = getattr(config, section)
        top_updates[section] = current.model_copy(update=updates)

    if top_updates:
        logger.debug("Applied environment overrides: %s", sorted(top_updates))
    return config.model_copy(update=top_updates)


def load_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.
        environ: Environment used for credential overrides.
            Defaults to ``os.environ``.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        config = AppConfig(**raw)
    else:
        logger.info("No config file found at %s, using defaults", path)
        config = AppConfig()

    return apply_env_overrides(config, environ)
