"""MIME type tables and helpers for the supported OCR providers.

Every provider declares the document formats it accepts; these helpers
normalize declared types and answer capability questions without side
effects.
"""

from urllib.parse import urlparse

SUPPORTED_IMAGE_TYPES: tuple[str, ...] = ("image/jpeg", "image/jpg", "image/png")
SUPPORTED_PDF_TYPES: tuple[str, ...] = ("application/pdf",)
SUPPORTED_OCR_TYPES: tuple[str, ...] = SUPPORTED_IMAGE_TYPES + SUPPORTED_PDF_TYPES

GEMINI_SUPPORTED_TYPES: tuple[str, ...] = SUPPORTED_OCR_TYPES + (
    "image/webp",
    "image/heic",
    "image/heif",
)
DOCUMENT_AI_SUPPORTED_TYPES: tuple[str, ...] = SUPPORTED_OCR_TYPES
TESSERACT_SUPPORTED_TYPES: tuple[str, ...] = SUPPORTED_IMAGE_TYPES

# PDF is accepted here so the detector can reject it with guidance.
QR_SUPPORTED_TYPES: tuple[str, ...] = SUPPORTED_IMAGE_TYPES + SUPPORTED_PDF_TYPES

PROVIDER_SUPPORTED_TYPES: dict[str, tuple[str, ...]] = {
    "google-document-ai": DOCUMENT_AI_SUPPORTED_TYPES,
    "google-gemini": GEMINI_SUPPORTED_TYPES,
    "tesseract": TESSERACT_SUPPORTED_TYPES,
    "qr": QR_SUPPORTED_TYPES,
}

_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg", "image/x-png": "image/png"}

_KNOWN_TYPES = frozenset(GEMINI_SUPPORTED_TYPES)

_EXTENSION_TO_MIME: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".pdf": "application/pdf",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
}

OCTET_STREAM = "application/octet-stream"


def _strip_parameters(mime_type: str) -> str:
    return mime_type.split(";", 1)[0].strip().lower()


def normalize_mime_type(mime_type: str | None, default: str = "image/jpeg") -> str:
    """Normalize a declared MIME type.

    Lowercases the type, drops parameters such as ``charset`` and maps known
    aliases to their canonical form.

    Args:
        mime_type: Declared MIME type, possibly ``None``.
        default: Value returned when the type is missing or unrecognized.

    Returns:
        Canonical MIME type.
    """
    if not mime_type:
        return default
    base = _strip_parameters(mime_type)
    base = _ALIASES.get(base, base)
    return base if base in _KNOWN_TYPES else default


def supports(provider: str, mime_type: str | None) -> bool:
    """Check whether a provider accepts a MIME type.

    Args:
        provider: Provider name as used in ``PROVIDER_SUPPORTED_TYPES``.
        mime_type: Declared MIME type.

    Returns:
        ``True`` if the provider lists the type.
    """
    if not mime_type:
        return False
    return _strip_parameters(mime_type) in PROVIDER_SUPPORTED_TYPES.get(provider, ())


def is_image_type(mime_type: str | None) -> bool:
    return bool(mime_type) and _strip_parameters(mime_type).startswith("image/")


def is_pdf_type(mime_type: str | None) -> bool:
    return bool(mime_type) and _strip_parameters(mime_type) in SUPPORTED_PDF_TYPES


def detect_mime_type_from_url(url: str) -> str:
    """Guess a MIME type from the extension of a URL path.

    Args:
        url: Absolute or relative URL; query string and fragment are ignored.

    Returns:
        The matching MIME type, or ``application/octet-stream``.
    """
    path = urlparse(url).path.lower()
    for extension, mime_type in _EXTENSION_TO_MIME.items():
        if path.endswith(extension):
            return mime_type
    return OCTET_STREAM
