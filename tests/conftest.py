"""Shared test fixtures for the credential document test suite."""

from collections.abc import Callable
from pathlib import Path

import cv2
import httpx
import numpy as np
import pytest

from credocr.mapping.schema import FieldSpec
from credocr.qr.downloader import DocumentDownloader
from credocr.utils.config import AppConfig, DocumentTypeConfig, QRConfig


def make_qr_image(payload: str, scale: int = 8, border: int = 40) -> np.ndarray:
    """Render ``payload`` as a BGR QR code image with a white quiet zone."""
    encoder = cv2.QRCodeEncoder.create()
    code = encoder.encode(payload)
    code = cv2.resize(code, None, fx=scale, fy=scale, interpolation=cv2.INTER_NEAREST)
    code = cv2.copyMakeBorder(
        code, border, border, border, border, cv2.BORDER_CONSTANT, value=255
    )
    return cv2.cvtColor(code, cv2.COLOR_GRAY2BGR)


def encode_png(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic BGR test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def blank_png() -> bytes:
    """A white PNG without any QR code."""
    return encode_png(np.full((120, 160, 3), 255, dtype=np.uint8))


@pytest.fixture
def qr_image() -> Callable[..., np.ndarray]:
    """Factory producing a BGR QR code image."""
    return make_qr_image


@pytest.fixture
def qr_png() -> Callable[[str], bytes]:
    """Factory producing PNG bytes of a QR code carrying a payload."""

    def _make(payload: str) -> bytes:
        return encode_png(make_qr_image(payload))

    return _make


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def marksheet_schema() -> dict[str, FieldSpec]:
    """Schema of a school marksheet with one metadata-only field."""
    return {
        "studentname": FieldSpec(type="string", required=True),
        "rollnumber": FieldSpec(type="string", required=True),
        "percentage": FieldSpec(type="number"),
        "marks": FieldSpec(type="integer"),
        "original_vc": FieldSpec(type="object", document_field=False, role="original_vc"),
    }


@pytest.fixture
def qr_config() -> QRConfig:
    return QRConfig(download_timeout_s=5, max_download_bytes=1024)


@pytest.fixture
def app_config(marksheet_schema: dict[str, FieldSpec]) -> AppConfig:
    """Configuration with a plain marksheet and a QR-backed certificate."""
    return AppConfig(
        documents=[
            DocumentTypeConfig(
                document_sub_type="marksheet",
                doc_type="marksheet",
                fields=marksheet_schema,
            ),
            DocumentTypeConfig(
                document_sub_type="qrCertificate",
                doc_type="income certificate",
                qr_content_type="PLAIN_TEXT",
                fields={"fullname": FieldSpec(type="string", required=True)},
            ),
        ]
    )



@pytest.fixture
def mock_downloader(qr_config: QRConfig) -> Callable[..., DocumentDownloader]:
    """Factory building a downloader whose requests go to a handler function."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> DocumentDownloader:
        return DocumentDownloader(qr_config, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def unreachable() -> Callable[[httpx.Request], httpx.Response]:
    """Transport handler that fails every request with a connection error."""

    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    return _handler
