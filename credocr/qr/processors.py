"""Content handlers for decoded QR payloads.

A handler turns a payload of one :class:`QRContentType` into a
:class:`QRProcessingResult`. :data:`DEFAULT_HANDLERS` holds the shared
behaviour; each issuer is a :class:`QRProcessor` that lists the content
types it accepts and overrides only the handlers it customizes.
"""

import json
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from credocr.utils.errors import DownloadError
from credocr.utils.logger import get_logger, preview

from .content_types import DownloadedDocument, QRContentType, QRErrorType, QRProcessingResult
from .downloader import DocumentDownloader, validate_url

logger = get_logger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s]+", re.IGNORECASE)
_XML_URL_TAG = re.compile(r"<url>(.*?)</url>", re.IGNORECASE | re.DOTALL)
_XML_URL_ATTR = re.compile(r"url=['\"]([^'\"]*)['\"]", re.IGNORECASE)

VC_ACCEPT_HEADER = "application/json, application/ld+json"

_URL_ERROR_MESSAGES: dict[QRErrorType, str] = {
    QRErrorType.INVALID_URL: "QR code does not contain a valid URL",
    QRErrorType.NETWORK_ERROR: "Could not connect to the document URL",
    QRErrorType.DOCUMENT_NOT_FOUND: "Document not found at the provided URL",
    QRErrorType.ACCESS_DENIED: "Access denied to the document URL",
    QRErrorType.TIMEOUT: "Document download timed out",
    QRErrorType.UNKNOWN_ERROR: "Failed to process document URL",
}


@dataclass(frozen=True)
class ProcessingContext:
    """Everything a handler needs besides the payload itself."""

    issuer: str
    downloader: DocumentDownloader
    options: Mapping[str, Any] = field(default_factory=dict)
    vc_fetch_timeout_s: float = 10.0


Handler = Callable[[ProcessingContext, str, QRContentType], Awaitable[QRProcessingResult]]


def classify_url_error(exc: Exception) -> tuple[QRErrorType, str]:
    """Classify a failure that happened while resolving a QR URL.

    Args:
        exc: The exception raised while validating or fetching the URL.

    Returns:
        ``(error_type, user_message)``.
    """
    error_type = QRErrorType.UNKNOWN_ERROR
    if isinstance(exc, DownloadError):
        if exc.kind == "invalid_url":
            error_type = QRErrorType.INVALID_URL
        elif exc.kind == "network":
            error_type = QRErrorType.NETWORK_ERROR
        elif exc.kind == "timeout":
            error_type = QRErrorType.TIMEOUT
        elif exc.status_code == 404:
            error_type = QRErrorType.DOCUMENT_NOT_FOUND
        elif exc.status_code == 403:
            error_type = QRErrorType.ACCESS_DENIED
    return error_type, _URL_ERROR_MESSAGES[error_type]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def success(
    ctx: ProcessingContext,
    content: str,
    content_type: QRContentType,
    data: dict[str, Any],
    downloaded: DownloadedDocument | None = None,
) -> QRProcessingResult:
    """Build a successful result, tagging the data with the issuer."""
    return QRProcessingResult(
        qr_code_detected=True,
        qr_code_content=content,
        content_type=content_type.value,
        processed_data={**data, "issuerType": ctx.issuer},
        downloaded_document=downloaded,
    )


def failure(
    content: str,
    content_type: QRContentType | str,
    error_type: QRErrorType,
    message: str,
    technical: str | None = None,
) -> QRProcessingResult:
    """Build a failed result for a payload that was decoded but not usable."""
    return QRProcessingResult(
        qr_code_detected=True,
        qr_code_content=content,
        content_type=getattr(content_type, "value", content_type),
        error=message,
        error_type=error_type.value,
        technical_error=technical,
    )


def url_failure(
    exc: Exception, content: str, content_type: QRContentType
) -> QRProcessingResult:
    error_type, message = classify_url_error(exc)
    logger.error("URL processing failed: %s (%s)", message, exc)
    return failure(content, content_type, error_type, message, str(exc))


async def _download(ctx: ProcessingContext, url: str) -> DownloadedDocument:
    downloaded = await ctx.downloader.download(url)
    return DownloadedDocument(
        buffer=downloaded.buffer, mime_type=downloaded.mime_type, url=url
    )


def check_domain(ctx: ProcessingContext, url: str, patterns: tuple[str, ...]) -> None:
    """Reject ``url`` when domain validation is enabled and nothing matches.

    Raises:
        DownloadError: With kind ``invalid_url``.
    """
    if not ctx.options.get("validate_domain"):
        return
    lowered = url.lower()
    if not any(pattern in lowered for pattern in patterns):
        raise DownloadError(
            "invalid_url", f"URL does not match {ctx.issuer} domain requirements"
        )


def split_text_and_url(content: str) -> tuple[str, str]:
    """Separate the first embedded http(s) URL from the surrounding text.

    Raises:
        DownloadError: With kind ``invalid_url`` if no URL is present.
    """
    match = URL_PATTERN.search(content)
    if not match:
        raise DownloadError("invalid_url", "No URL found in QR content")
    url = match.group(0)
    text = (content[: match.start()] + content[match.end() :]).strip()
    return text, url


# Default handlers


async def handle_plain_text(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    return success(ctx, content, content_type, {"text": content.strip()})


async def handle_json(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        return failure(
            content, content_type, QRErrorType.INVALID_JSON, f"Invalid JSON format: {exc}", str(exc)
        )
    data = parsed if isinstance(parsed, dict) else {"data": parsed}
    return success(ctx, content, content_type, data)


async def handle_json_url(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        return failure(
            content, content_type, QRErrorType.INVALID_JSON, f"Invalid JSON format: {exc}", str(exc)
        )
    try:
        if not isinstance(parsed, dict) or not parsed.get("url"):
            raise DownloadError("invalid_url", "URL field not found in JSON data")
        url = validate_url(str(parsed["url"]))
        logger.info("Processing JSON URL: %s", url)
        downloaded = await _download(ctx, url)
    except DownloadError as exc:
        return url_failure(exc, content, content_type)
    return success(ctx, content, content_type, parsed, downloaded)


async def handle_xml(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    trimmed = content.strip()
    if not (trimmed.startswith("<") and trimmed.endswith(">")):
        return failure(
            content,
            content_type,
            QRErrorType.INVALID_XML,
            "Invalid XML format: payload must start with '<' and end with '>'",
            "Invalid XML format",
        )
    return success(ctx, content, content_type, {"xml": trimmed})


def extract_xml_url(content: str) -> str:
    """Find the URL in an XML payload, or treat the payload as a URL.

    Raises:
        DownloadError: With kind ``invalid_url`` if XML carries no URL.
    """
    trimmed = content.strip()
    if not trimmed.startswith("<"):
        return trimmed
    match = _XML_URL_TAG.search(content) or _XML_URL_ATTR.search(content)
    if not match or not match.group(1).strip():
        raise DownloadError("invalid_url", "No URL found in XML content")
    return match.group(1).strip()


async def handle_xml_url(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        url = validate_url(extract_xml_url(content))
        logger.info("Processing XML URL: %s", url)
        downloaded = await _download(ctx, url)
    except DownloadError as exc:
        return url_failure(exc, content, content_type)
    return success(ctx, content, content_type, {"url": url}, downloaded)


async def handle_text_and_url(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        text, url = split_text_and_url(content)
        url = validate_url(url)
        downloaded = await _download(ctx, url)
    except DownloadError as exc:
        return url_failure(exc, content, content_type)
    return success(ctx, content, content_type, {"text": text, "url": url}, downloaded)


async def handle_doc_url(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        url = validate_url(content)
        downloaded = await _download(ctx, url)
    except DownloadError as exc:
        return url_failure(exc, content, content_type)
    return success(ctx, content, content_type, {"url": url}, downloaded)


DEFAULT_HANDLERS: dict[QRContentType, Handler] = {
    QRContentType.PLAIN_TEXT: handle_plain_text,
    QRContentType.JSON: handle_json,
    QRContentType.JSON_URL: handle_json_url,
    QRContentType.XML: handle_xml,
    QRContentType.XML_URL: handle_xml_url,
    QRContentType.TEXT_AND_URL: handle_text_and_url,
    QRContentType.DOC_URL: handle_doc_url,
}


# Issuer-specific handlers

JHARSEVA_DOMAINS = ("jharseva", "gov.in")
EODISHA_DOMAINS = ("odisha", "eodisha", "gov.in")
DHIWAY_VC_PATTERNS = (
    "fetch-vc-json",
    "tekdinext.com",
    "digivrtti.com",
    "/depwd/",
    "dhiway",
    "credential",
    "vc",
)


async def handle_jharseva_text_and_url(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        text, url = split_text_and_url(content)
        url = validate_url(url)
        check_domain(ctx, url, JHARSEVA_DOMAINS)
        downloaded = await _download(ctx, url)
    except DownloadError as exc:
        return url_failure(exc, content, content_type)
    metadata = {
        "processedAt": _now(),
        "documentSource": "jharseva_qr",
        "processingMethod": "TEXT_AND_URL_SPECIALIZED",
    }
    return success(
        ctx,
        content,
        content_type,
        {"text": text, "url": url, "jharsevaMetadata": metadata},
        downloaded,
    )


def split_eodisha_payload(content: str) -> tuple[str, str, str]:
    """Split an eOdisha payload on ``|``, then ``,``, then by URL search.

    Returns:
        ``(text, url, delimiter)`` where delimiter is ``pipe``, ``comma``
        or ``regex``.

    Raises:
        DownloadError: With kind ``invalid_url`` if no URL part is found.
    """
    for char, name in (("|", "pipe"), (",", "comma")):
        if char in content:
            parts = content.split(char)
            text = parts[0].strip()
            url = parts[1].strip() if len(parts) > 1 else ""
            if not url:
                raise DownloadError("invalid_url", "No valid URL found in eOdisha QR content")
            return text, url, name
    text, url = split_text_and_url(content)
    return text, url, "regex"


async def handle_eodisha_text_and_url(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        text, url, delimiter = split_eodisha_payload(content)
        url = validate_url(url)
        check_domain(ctx, url, EODISHA_DOMAINS)
        downloaded = await _download(ctx, url)
    except DownloadError as exc:
        return url_failure(exc, content, content_type)
    metadata = {
        "processedAt": _now(),
        "documentSource": "eodisha_qr",
        "delimiter": delimiter,
        "processingMethod": "TEXT_AND_URL_SPECIALIZED",
    }
    return success(
        ctx,
        content,
        content_type,
        {"text": text, "url": url, "eodishaMetadata": metadata},
        downloaded,
    )


def vc_format(vc_data: Any) -> str:
    """Return ``json-ld`` for credential-shaped bodies, ``json`` otherwise."""
    if isinstance(vc_data, dict) and (
        "type" in vc_data or "@type" in vc_data or "credentialSubject" in vc_data
    ):
        return "json-ld"
    return "json"


async def handle_dhiway_vc_url(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    try:
        original_url = validate_url(content)
        check_domain(ctx, original_url, DHIWAY_VC_PATTERNS)
        vc_data_url = f"{original_url}.vc"
        logger.info("Fetching verifiable credential from %s", vc_data_url)
        vc_data = await ctx.downloader.fetch_json(
            vc_data_url,
            headers={"Accept": VC_ACCEPT_HEADER},
            timeout=ctx.vc_fetch_timeout_s,
        )
    except DownloadError as exc:
        return url_failure(exc, content, content_type)

    fmt = vc_format(vc_data)
    if fmt == "json":
        logger.info("VC endpoint returned JSON without a credential structure")
    metadata = {
        "processedAt": _now(),
        "documentSource": "dhiway_vc_qr",
        "vcFormat": fmt,
        "processingMethod": "VC_URL_SPECIALIZED",
        "hasStructuredVcData": bool(vc_data),
        "urlModification": "appended_.vc",
        "apiCall": True,
    }
    return success(
        ctx,
        content,
        content_type,
        {
            "originalUrl": original_url,
            "vcDataUrl": vc_data_url,
            "vcData": vc_data,
            "dhiwayMetadata": metadata,
        },
    )


async def unsupported_method(
    ctx: ProcessingContext, content: str, content_type: QRContentType
) -> QRProcessingResult:
    message = f"{content_type.value} processing is not implemented for {ctx.issuer} issuer"
    logger.warning(message)
    return failure(content, content_type, QRErrorType.UNSUPPORTED_METHOD, message)


@dataclass(frozen=True)
class QRProcessor:
    """An issuer's QR handling: accepted types plus handler overrides.

    Attributes:
        issuer: Issuer name, also written to ``processedData.issuerType``.
        supported_types: Content types this issuer accepts.
        overrides: Handlers replacing the defaults for specific types.
    """

    issuer: str
    supported_types: tuple[QRContentType, ...]
    overrides: Mapping[QRContentType, Handler] = field(default_factory=dict)

    def can_process(self, content_type: QRContentType | str) -> bool:
        return QRContentType.parse(content_type) in self.supported_types

    def handler_for(self, content_type: QRContentType) -> Handler | None:
        return self.overrides.get(content_type) or DEFAULT_HANDLERS.get(content_type)

    async def process(
        self,
        content: str,
        content_type: QRContentType,
        downloader: DocumentDownloader,
        options: Mapping[str, Any] | None = None,
        vc_fetch_timeout_s: float = 10.0,
    ) -> QRProcessingResult:
        """Run the handler registered for ``content_type``.

        Args:
            content: Decoded QR payload.
            content_type: Declared content type.
            downloader: Downloader for referenced documents.
            options: Issuer options from the document configuration.
            vc_fetch_timeout_s: Timeout for credential fetches.

        Returns:
            The handler's result, or an ``UNSUPPORTED_METHOD`` failure when
            no handler exists for the type.
        """
        ctx = ProcessingContext(
            issuer=self.issuer,
            downloader=downloader,
            options=options or {},
            vc_fetch_timeout_s=vc_fetch_timeout_s,
        )
        handler = self.handler_for(content_type) or unsupported_method
        logger.debug(
            "Issuer %s handling %s payload: %s", self.issuer, content_type.value, preview(content)
        )
        return await handler(ctx, content, content_type)


DEFAULT_PROCESSOR = QRProcessor(
    issuer="default",
    supported_types=(
        QRContentType.PLAIN_TEXT,
        QRContentType.JSON,
        QRContentType.JSON_URL,
        QRContentType.XML,
        QRContentType.XML_URL,
        QRContentType.TEXT_AND_URL,
        QRContentType.DOC_URL,
    ),
)

JHARSEVA_PROCESSOR = QRProcessor(
    issuer="jharseva",
    supported_types=(
        QRContentType.TEXT_AND_URL,
        QRContentType.PLAIN_TEXT,
        QRContentType.XML_URL,
        QRContentType.XML,
        QRContentType.JSON_URL,
        QRContentType.JSON,
    ),
    overrides={QRContentType.TEXT_AND_URL: handle_jharseva_text_and_url},
)

EODISHA_PROCESSOR = QRProcessor(
    issuer="eodisha",
    supported_types=(
        QRContentType.TEXT_AND_URL,
        QRContentType.PLAIN_TEXT,
        QRContentType.XML_URL,
        QRContentType.XML,
        QRContentType.JSON_URL,
        QRContentType.JSON,
    ),
    overrides={QRContentType.TEXT_AND_URL: handle_eodisha_text_and_url},
)

DHIWAY_PROCESSOR = QRProcessor(
    issuer="dhiway",
    supported_types=(
        QRContentType.VC_URL,
        QRContentType.PLAIN_TEXT,
        QRContentType.XML_URL,
        QRContentType.XML,
        QRContentType.JSON_URL,
        QRContentType.JSON,
    ),
    overrides={
        QRContentType.VC_URL: handle_dhiway_vc_url,
        QRContentType.DOC_URL: unsupported_method,
        QRContentType.TEXT_AND_URL: unsupported_method,
    },
)

ISSUER_PROCESSORS: dict[str, QRProcessor] = {
    p.issuer: p for p in (JHARSEVA_PROCESSOR, EODISHA_PROCESSOR, DHIWAY_PROCESSOR)
}
