"""Tests for QR content handlers, issuer processors and the content router."""

import json

import httpx
import pytest

from credocr.qr.content_types import QRContentType, QRErrorType
from credocr.qr.processors import (
    DEFAULT_PROCESSOR,
    DHIWAY_PROCESSOR,
    EODISHA_PROCESSOR,
    ISSUER_PROCESSORS,
    JHARSEVA_PROCESSOR,
    classify_url_error,
    extract_xml_url,
    split_eodisha_payload,
    split_text_and_url,
    vc_format,
)
from credocr.qr.router import QRContentRouter
from credocr.utils.config import QRConfig
from credocr.utils.errors import DownloadError


def _pdf_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"})


class TestPayloadHelpers:
    """Tests for URL splitting and classification helpers."""

    def test_split_text_and_url(self) -> None:
        text, url = split_text_and_url("Cert No 12 https://example.gov.in/c/12 issued")
        assert url == "https://example.gov.in/c/12"
        assert text == "Cert No 12  issued"

    def test_split_without_url(self) -> None:
        with pytest.raises(DownloadError) as exc_info:
            split_text_and_url("no link here")
        assert exc_info.value.kind == "invalid_url"

    @pytest.mark.parametrize(
        "payload, delimiter",
        [
            ("ABC123|https://edistrict.odisha.gov.in/v/1", "pipe"),
            ("ABC123,https://edistrict.odisha.gov.in/v/1", "comma"),
            ("ABC123 https://edistrict.odisha.gov.in/v/1", "regex"),
        ],
    )
    def test_split_eodisha_payload(self, payload: str, delimiter: str) -> None:
        text, url, found = split_eodisha_payload(payload)
        assert text == "ABC123"
        assert url == "https://edistrict.odisha.gov.in/v/1"
        assert found == delimiter

    def test_eodisha_payload_with_empty_url_part(self) -> None:
        with pytest.raises(DownloadError):
            split_eodisha_payload("ABC123|")

    def test_extract_xml_url_from_tag_and_attribute(self) -> None:
        assert extract_xml_url("<doc><url>https://a.org/x</url></doc>") == "https://a.org/x"
        assert extract_xml_url("<doc url='https://a.org/y'/>") == "https://a.org/y"
        assert extract_xml_url(" https://a.org/z ") == "https://a.org/z"

    def test_extract_xml_url_missing(self) -> None:
        with pytest.raises(DownloadError):
            extract_xml_url("<doc><name>x</name></doc>")

    @pytest.mark.parametrize(
        "error, expected",
        [
            (DownloadError("invalid_url", "bad"), QRErrorType.INVALID_URL),
            (DownloadError("network", "down"), QRErrorType.NETWORK_ERROR),
            (DownloadError("timeout", "slow"), QRErrorType.TIMEOUT),
            (DownloadError("http_status", "gone", 404), QRErrorType.DOCUMENT_NOT_FOUND),
            (DownloadError("http_status", "no", 403), QRErrorType.ACCESS_DENIED),
            (DownloadError("http_status", "oops", 500), QRErrorType.UNKNOWN_ERROR),
            (RuntimeError("boom"), QRErrorType.UNKNOWN_ERROR),
        ],
    )
    def test_classify_url_error(self, error: Exception, expected: QRErrorType) -> None:
        error_type, message = classify_url_error(error)
        assert error_type == expected
        assert message

    def test_vc_format(self) -> None:
        assert vc_format({"credentialSubject": {}}) == "json-ld"
        assert vc_format({"@type": "VerifiableCredential"}) == "json-ld"
        assert vc_format({"type": []}) == "json-ld"
        assert vc_format({"name": "x"}) == "json"
        assert vc_format([1, 2]) == "json"


class TestProcessorTables:
    """Tests for issuer content-type acceptance."""

    def test_issuers_are_registered(self) -> None:
        assert set(ISSUER_PROCESSORS) == {"jharseva", "eodisha", "dhiway"}

    @pytest.mark.parametrize(
        "processor", [DEFAULT_PROCESSOR, JHARSEVA_PROCESSOR, EODISHA_PROCESSOR, DHIWAY_PROCESSOR]
    )
    def test_can_process_matches_supported_types(self, processor) -> None:
        for content_type in QRContentType:
            expected = content_type in processor.supported_types
            assert processor.can_process(content_type) is expected
            assert processor.can_process(content_type.value) is expected

    def test_only_dhiway_accepts_vc_url(self) -> None:
        assert DHIWAY_PROCESSOR.can_process("VC_URL")
        assert not DEFAULT_PROCESSOR.can_process("VC_URL")
        assert not DHIWAY_PROCESSOR.can_process("DOC_URL")

    def test_unknown_type_is_not_processable(self) -> None:
        assert not DEFAULT_PROCESSOR.can_process("BARCODE")


class TestDefaultHandlers:
    """Tests for the shared content handlers run through the router."""

    @pytest.fixture
    def router(self, qr_config: QRConfig, mock_downloader) -> QRContentRouter:
        return QRContentRouter(qr_config, mock_downloader(_pdf_response))

    @pytest.mark.asyncio
    async def test_plain_text(self, router: QRContentRouter) -> None:
        result = await router.process("HELLO-WORLD", "PLAIN_TEXT")
        assert result.qr_code_detected is True
        assert result.qr_code_content == "HELLO-WORLD"
        assert result.processed_data["text"] == "HELLO-WORLD"
        assert result.processed_data["issuerType"] == "default"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_json_object(self, router: QRContentRouter) -> None:
        result = await router.process('{"name": "Asha", "id": 7}', QRContentType.JSON)
        assert result.processed_data["name"] == "Asha"
        assert result.processed_data["id"] == 7

    @pytest.mark.asyncio
    async def test_json_array_is_wrapped(self, router: QRContentRouter) -> None:
        result = await router.process("[1, 2]", "JSON")
        assert result.processed_data["data"] == [1, 2]

    @pytest.mark.asyncio
    async def test_invalid_json(self, router: QRContentRouter) -> None:
        result = await router.process("{not json", "JSON")
        assert result.error_type == QRErrorType.INVALID_JSON.value
        assert result.qr_code_detected is True
        assert result.processed_data is None

    @pytest.mark.asyncio
    async def test_json_url_downloads_document(self, router: QRContentRouter) -> None:
        payload = json.dumps({"url": "https://example.org/doc.pdf", "id": "A1"})
        result = await router.process(payload, "JSON_URL")
        assert result.ok
        assert result.processed_data["id"] == "A1"
        assert result.downloaded_document.buffer == b"%PDF-1.4"
        assert result.downloaded_document.mime_type == "application/pdf"
        assert result.downloaded_document.url == "https://example.org/doc.pdf"

    @pytest.mark.asyncio
    async def test_json_url_without_url_field(self, router: QRContentRouter) -> None:
        result = await router.process('{"id": "A1"}', "JSON_URL")
        assert result.error_type == QRErrorType.INVALID_URL.value

    @pytest.mark.asyncio
    async def test_json_url_unreachable_host(
        self, qr_config: QRConfig, mock_downloader, unreachable
    ) -> None:
        router = QRContentRouter(qr_config, mock_downloader(unreachable))
        result = await router.process('{"url":"https://nonexistent.invalid/doc"}', "JSON_URL")
        assert result.error
        assert result.error_type == QRErrorType.NETWORK_ERROR.value
        assert result.downloaded_document is None
        assert result.technical_error

    @pytest.mark.asyncio
    async def test_xml(self, router: QRContentRouter) -> None:
        result = await router.process("  <cert><id>1</id></cert> ", "XML")
        assert result.processed_data["xml"] == "<cert><id>1</id></cert>"

    @pytest.mark.asyncio
    async def test_invalid_xml(self, router: QRContentRouter) -> None:
        result = await router.process("cert id=1", "XML")
        assert result.error_type == QRErrorType.INVALID_XML.value

    @pytest.mark.asyncio
    async def test_xml_url(self, router: QRContentRouter) -> None:
        result = await router.process("<d><url>https://example.org/c.pdf</url></d>", "XML_URL")
        assert result.processed_data["url"] == "https://example.org/c.pdf"
        assert result.downloaded_document is not None

    @pytest.mark.asyncio
    async def test_text_and_url(self, router: QRContentRouter) -> None:
        result = await router.process("Certificate 99 https://example.org/c.pdf", "TEXT_AND_URL")
        assert result.processed_data["text"] == "Certificate 99"
        assert result.processed_data["url"] == "https://example.org/c.pdf"
        assert result.downloaded_document is not None

    @pytest.mark.asyncio
    async def test_doc_url(self, router: QRContentRouter) -> None:
        result = await router.process("https://example.org/c.pdf", "DOC_URL")
        assert result.processed_data["url"] == "https://example.org/c.pdf"
        assert result.downloaded_document.buffer == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_doc_url_not_found(self, qr_config: QRConfig, mock_downloader) -> None:
        router = QRContentRouter(qr_config, mock_downloader(lambda r: httpx.Response(404)))
        result = await router.process("https://example.org/gone.pdf", "DOC_URL")
        assert result.error_type == QRErrorType.DOCUMENT_NOT_FOUND.value

    @pytest.mark.asyncio
    async def test_doc_url_forbidden(self, qr_config: QRConfig, mock_downloader) -> None:
        router = QRContentRouter(qr_config, mock_downloader(lambda r: httpx.Response(403)))
        result = await router.process("https://example.org/private.pdf", "DOC_URL")
        assert result.error_type == QRErrorType.ACCESS_DENIED.value

    @pytest.mark.asyncio
    async def test_doc_url_with_garbage(self, router: QRContentRouter) -> None:
        result = await router.process("not a url", "DOC_URL")
        assert result.error_type == QRErrorType.INVALID_URL.value


class TestIssuerHandlers:
    """Tests for the jharseva, eodisha and dhiway specializations."""

    @pytest.fixture
    def router(self, qr_config: QRConfig, mock_downloader) -> QRContentRouter:
        return QRContentRouter(qr_config, mock_downloader(_pdf_response))

    @pytest.mark.asyncio
    async def test_jharseva_text_and_url(self, router: QRContentRouter) -> None:
        result = await router.process(
            "JHR/INC/2023/1 https://jharsewa.jharkhand.gov.in/v/1", "TEXT_AND_URL", "jharseva"
        )
        assert result.ok
        assert result.processed_data["issuerType"] == "jharseva"
        metadata = result.processed_data["jharsevaMetadata"]
        assert metadata["documentSource"] == "jharseva_qr"
        assert metadata["processingMethod"] == "TEXT_AND_URL_SPECIALIZED"

    @pytest.mark.asyncio
    async def test_jharseva_domain_validation(self, router: QRContentRouter) -> None:
        result = await router.process(
            "JHR/1 https://example.com/v/1",
            "TEXT_AND_URL",
            "jharseva",
            {"validate_domain": True},
        )
        assert result.error_type == QRErrorType.INVALID_URL.value
        assert result.downloaded_document is None

    @pytest.mark.asyncio
    async def test_jharseva_domain_not_checked_by_default(self, router: QRContentRouter) -> None:
        result = await router.process("JHR/1 https://example.com/v/1", "TEXT_AND_URL", "jharseva")
        assert result.ok

    @pytest.mark.asyncio
    async def test_eodisha_pipe_payload(self, router: QRContentRouter) -> None:
        result = await router.process(
            "OD-CASTE-77|https://edistrict.odisha.gov.in/v/77", "TEXT_AND_URL", "eodisha"
        )
        assert result.processed_data["text"] == "OD-CASTE-77"
        assert result.processed_data["eodishaMetadata"]["delimiter"] == "pipe"
        assert result.downloaded_document is not None

    @pytest.mark.asyncio
    async def test_dhiway_fetches_credential(self, qr_config: QRConfig, mock_downloader) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"type": ["VerifiableCredential"], "credentialSubject": {"name": "R"}}
            )

        router = QRContentRouter(qr_config, mock_downloader(handler))
        result = await router.process("https://dhiway.example/cred/1", "VC_URL", "dhiway")

        assert result.ok
        assert str(seen[0].url) == "https://dhiway.example/cred/1.vc"
        assert "application/ld+json" in seen[0].headers["accept"]
        data = result.processed_data
        assert data["vcDataUrl"] == "https://dhiway.example/cred/1.vc"
        assert data["vcData"]["credentialSubject"]["name"] == "R"
        assert data["dhiwayMetadata"]["vcFormat"] == "json-ld"
        assert result.downloaded_document is None

    @pytest.mark.asyncio
    async def test_dhiway_fetch_failure(
        self, qr_config: QRConfig, mock_downloader, unreachable
    ) -> None:
        router = QRContentRouter(qr_config, mock_downloader(unreachable))
        result = await router.process("https://dhiway.example/cred/1", "VC_URL", "dhiway")
        assert result.error_type == QRErrorType.NETWORK_ERROR.value

    @pytest.mark.asyncio
    async def test_dhiway_rejects_doc_url(self, router: QRContentRouter) -> None:
        result = await router.process("https://dhiway.example/c.pdf", "DOC_URL", "dhiway")
        assert result.error_type == QRErrorType.UNSUPPORTED_CONTENT_TYPE.value


class TestQRContentRouter:
    """Tests for issuer selection and structured routing failures."""

    @pytest.fixture
    def router(self, qr_config: QRConfig, mock_downloader) -> QRContentRouter:
        return QRContentRouter(qr_config, mock_downloader(_pdf_response))

    def test_blank_issuer_selects_default(self, router: QRContentRouter) -> None:
        assert router.get_processor(None) is DEFAULT_PROCESSOR
        assert router.get_processor("default") is DEFAULT_PROCESSOR

    def test_issuer_lookup_is_case_insensitive(self, router: QRContentRouter) -> None:
        assert router.get_processor("JharSeva") is JHARSEVA_PROCESSOR

    def test_default_issuer_from_config(self, mock_downloader) -> None:
        router = QRContentRouter(QRConfig(default_issuer="eodisha"), mock_downloader(_pdf_response))
        assert router.get_processor(None) is EODISHA_PROCESSOR

    def test_processors_for(self, router: QRContentRouter) -> None:
        assert router.processors_for("VC_URL") == [DHIWAY_PROCESSOR]
        assert DEFAULT_PROCESSOR in router.processors_for("DOC_URL")

    @pytest.mark.asyncio
    async def test_unknown_issuer(self, router: QRContentRouter) -> None:
        result = await router.process("HELLO", "PLAIN_TEXT", "nowhere")
        assert result.error_type == QRErrorType.UNSUPPORTED_ISSUER.value
        assert result.qr_code_detected is True

    @pytest.mark.asyncio
    async def test_unknown_issuer_reports_enum_value(self, router: QRContentRouter) -> None:
        result = await router.process("{}", QRContentType.JSON, "nowhere")
        assert result.error_type == QRErrorType.UNSUPPORTED_ISSUER.value
        assert result.content_type == "JSON"

    @pytest.mark.asyncio
    async def test_unknown_content_type(self, router: QRContentRouter) -> None:
        result = await router.process("HELLO", "BARCODE")
        assert result.error_type == QRErrorType.UNSUPPORTED_CONTENT_TYPE.value
        assert result.content_type == "BARCODE"

    @pytest.mark.asyncio
    async def test_every_issuer_and_type_returns_a_result(self, router: QRContentRouter) -> None:
        for issuer in ("default", *ISSUER_PROCESSORS):
            for content_type in QRContentType:
                result = await router.process("payload", content_type, issuer)
                assert result.qr_code_detected is True

    @pytest.mark.asyncio
    async def test_processor_exception_becomes_processing_error(
        self, qr_config: QRConfig, mock_downloader
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("unexpected")

        router = QRContentRouter(qr_config, mock_downloader(handler))
        result = await router.process("https://example.org/c.pdf", "DOC_URL")
        assert result.error_type == QRErrorType.PROCESSING_ERROR.value
        assert "unexpected" in result.technical_error
