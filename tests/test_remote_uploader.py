from __future__ import annotations

import json

import httpx
import pytest

from gradient_mint.errors import UploadIntegrityError, UploadTransportError
from gradient_mint.storage.remote import RemoteUploader

URL = "http://mint.test/api/ipfs/upload"

OK_BODY = {
    "success": True,
    "ipfsUrl": "ipfs://bafymeta",
    "result": {
        "imageContentId": "bafyimage",
        "metadataContentId": "bafymeta",
        "canonicalUri": "ipfs://bafymeta",
        "imageUri": "ipfs://bafyimage",
    },
}


def _uploader(handler) -> RemoteUploader:
    return RemoteUploader(URL, transport=httpx.MockTransport(handler))


@pytest.fixture
def descriptor(artifact):
    return artifact.describe("Gradient NFT #1", "Generated with gradient effect on Base")


class TestRemoteUploader:
    @pytest.mark.asyncio
    async def test_success_returns_upload_result(self, artifact, descriptor) -> None:
        seen: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.read())
            return httpx.Response(200, json=OK_BODY)

        result = await _uploader(handler).upload(artifact, descriptor)

        assert result.canonical_uri == "ipfs://bafymeta"
        assert result.image_content_id == "bafyimage"
        body = seen[0]
        assert b'name="file"; filename="gradient-nft.png"' in body
        assert b'name="metadata"' in body
        metadata = json.loads(body.split(b'name="metadata"\r\n\r\n')[1].split(b"\r\n")[0])
        assert metadata["name"] == "Gradient NFT #1"
        assert metadata["gradient"] == ["#ff0080", "#7928ca"]
        assert metadata["imageSize"] == {"height": 6, "width": 8}

    @pytest.mark.asyncio
    async def test_non_json_response_quotes_status_and_text(self, artifact, descriptor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad gateway</html>")

        with pytest.raises(UploadTransportError) as exc_info:
            await _uploader(handler).upload(artifact, descriptor)

        message = str(exc_info.value)
        assert "non-JSON (502)" in message
        assert "Bad gateway" in message
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_empty_non_json_response(self, artifact, descriptor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(504)

        with pytest.raises(UploadTransportError) as exc_info:
            await _uploader(handler).upload(artifact, descriptor)
        assert "empty response" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_error_body_uses_error_and_detail(self, artifact, descriptor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, json={"error": "Failed to upload to IPFS", "detail": "quota exceeded"})

        with pytest.raises(UploadTransportError) as exc_info:
            await _uploader(handler).upload(artifact, descriptor)

        assert str(exc_info.value) == "Failed to upload to IPFS: quota exceeded"
        assert exc_info.value.payload["detail"] == "quota exceeded"

    @pytest.mark.asyncio
    async def test_success_flag_required(self, artifact, descriptor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "nope"})

        with pytest.raises(UploadTransportError) as exc_info:
            await _uploader(handler).upload(artifact, descriptor)
        assert str(exc_info.value) == "nope"

    @pytest.mark.asyncio
    async def test_missing_uri_is_integrity_error(self, artifact, descriptor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True})

        with pytest.raises(UploadIntegrityError):
            await _uploader(handler).upload(artifact, descriptor)

    @pytest.mark.asyncio
    async def test_uri_mismatch_is_integrity_error(self, artifact, descriptor) -> None:
        body = dict(OK_BODY, ipfsUrl="ipfs://somethingelse")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        with pytest.raises(UploadIntegrityError) as exc_info:
            await _uploader(handler).upload(artifact, descriptor)
        assert "mismatch" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_failure_is_transport_error(self, artifact, descriptor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UploadTransportError):
            await _uploader(handler).upload(artifact, descriptor)
