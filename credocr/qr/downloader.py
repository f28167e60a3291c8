"""HTTP download of documents referenced by QR codes.

Downloads are bounded in time, size and redirect count, and are sent with a
browser-like User-Agent because some government portals reject other
clients.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from credocr.ocr import mime_types
from credocr.utils.config import QRConfig
from credocr.utils.errors import DownloadError
from credocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DownloadedFile:
    """Raw bytes and MIME type of a downloaded document."""

    buffer: bytes
    mime_type: str


def validate_url(url: str) -> str:
    """Check that ``url`` is an absolute http(s) URL.

    Args:
        url: Candidate URL.

    Returns:
        The URL with surrounding whitespace removed.

    Raises:
        DownloadError: With kind ``invalid_url`` if the URL is not usable.
    """
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise DownloadError("invalid_url", f"Invalid URL: {candidate!r}")
    return candidate


class DocumentDownloader:
    """Fetches referenced documents over HTTP.

    Args:
        config: QR configuration with timeout, size and redirect limits.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self, config: QRConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.config = config
        self._client = httpx.AsyncClient(
            timeout=config.download_timeout_s,
            follow_redirects=True,
            max_redirects=config.max_redirects,
            headers={"User-Agent": config.user_agent},
            transport=transport,
        )

    async def download(self, url: str) -> DownloadedFile:
        """Download a document.

        Args:
            url: Absolute http(s) URL.

        Returns:
            Downloaded bytes and their MIME type.

        Raises:
            DownloadError: On invalid URL, connection failure, timeout,
                non-2xx status or oversized payload.
        """
        url = validate_url(url)
        limit = self.config.max_download_bytes
        logger.info("Downloading document from %s", url)

        try:
            async with self._client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise DownloadError(
                        "http_status",
                        f"Request failed with status code {response.status_code}",
                        response.status_code,
                    )

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > limit:
                    raise DownloadError(
                        "too_large", f"Document exceeds {limit} bytes ({declared} declared)"
                    )

                chunks: list[bytes] = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > limit:
                        raise DownloadError("too_large", f"Document exceeds {limit} bytes")
                    chunks.append(chunk)
                content_type = response.headers.get("content-type")
        except httpx.TooManyRedirects as exc:
            raise DownloadError("network", f"Too many redirects: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise DownloadError("timeout", f"Download timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise DownloadError("network", f"Connection failed: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise DownloadError("invalid_url", f"Invalid URL: {exc}") from exc

        buffer = b"".join(chunks)
        if len(buffer) > limit:
            raise DownloadError("too_large", f"Document exceeds {limit} bytes")

        if content_type:
            mime_type = content_type.split(";", 1)[0].strip().lower()
        else:
            mime_type = mime_types.detect_mime_type_from_url(url)

        logger.info("Downloaded %d bytes (%s) from %s", len(buffer), mime_type, url)
        return DownloadedFile(buffer=buffer, mime_type=mime_type)

    async def fetch_json(
        self, url: str, headers: dict[str, str] | None = None, timeout: float | None = None
    ) -> object:
        """GET a JSON document.

        Args:
            url: Absolute http(s) URL.
            headers: Extra request headers.
            timeout: Per-request timeout in seconds.

        Returns:
            The decoded JSON body.

        Raises:
            DownloadError: On transport failure, non-2xx status or a body
                that is not JSON.
        """
        url = validate_url(url)
        try:
            response = await self._client.get(
                url, headers=headers, timeout=timeout or self.config.download_timeout_s
            )
        except httpx.TimeoutException as exc:
            raise DownloadError("timeout", f"Request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise DownloadError("network", f"Connection failed: {exc}") from exc

        if response.status_code >= 400:
            raise DownloadError(
                "http_status",
                f"Request failed with status code {response.status_code}",
                response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise DownloadError("invalid_body", f"Response is not JSON: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()
