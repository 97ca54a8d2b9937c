from __future__ import annotations

import asyncio
import io
from collections.abc import Mapping
from typing import Any, Optional

import pytest
from PIL import Image

from gradient_mint.chain.client import ChainClient, ConfirmationReceipt
from gradient_mint.errors import UploadTransportError
from gradient_mint.render.compositor import GradientCompositor
from gradient_mint.render.types import RenderedArtifact, SourceImage
from gradient_mint.schema import GradientSpec, UploadResult
from gradient_mint.storage.client import StorageClient

ACCOUNT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TX_HASH = "0x" + "ab" * 32


def make_png(size: tuple[int, int] = (8, 6), color: tuple[int, int, int, int] = (200, 100, 50, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def source_image(png_bytes: bytes) -> SourceImage:
    return SourceImage.from_bytes(png_bytes, filename="photo.png")


@pytest.fixture
def gradient() -> GradientSpec:
    return GradientSpec.model_validate(["#ff0080", "#7928ca"])


@pytest.fixture
def artifact(source_image: SourceImage, gradient: GradientSpec) -> RenderedArtifact:
    return GradientCompositor().render(source_image, gradient)


class FakeStorage(StorageClient):
    """Hands out ``bafy<n>`` ids; can fail or answer without an id on the n-th call."""

    def __init__(
        self,
        requires_credential: bool = True,
        fail_on: Optional[int] = None,
        malformed_on: Optional[int] = None,
        error: Optional[BaseException] = None,
    ):
        self._requires_credential = requires_credential
        self.fail_on = fail_on
        self.malformed_on = malformed_on
        self.error = error
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_id(self) -> str:
        return "fake"

    @property
    def requires_credential(self) -> bool:
        return self._requires_credential

    async def upload_binary(
        self,
        data: bytes,
        credential: Optional[str],
        filename: str = "artifact.bin",
        mime_type: str = "application/octet-stream",
    ) -> Mapping[str, Any]:
        return self._next("binary", data, credential, filename, mime_type)

    async def upload_text(self, text: str, credential: Optional[str], filename: str) -> Mapping[str, Any]:
        return self._next("text", text, credential, filename, "application/json")

    def _next(self, kind: str, body: Any, credential: Optional[str], filename: str, mime_type: str) -> dict[str, Any]:
        self.calls.append(
            {"kind": kind, "body": body, "credential": credential, "filename": filename, "mime_type": mime_type}
        )
        n = len(self.calls)
        if self.fail_on == n:
            raise self.error or UploadTransportError(
                "storage unavailable", payload={"error": "unavailable"}, status_code=503
            )
        if self.malformed_on == n:
            return {"payload": {"ok": True}}
        return {"contentId": f"bafy{n}"}


class FakeUploader:
    def __init__(
        self,
        result: Optional[UploadResult] = None,
        error: Optional[BaseException] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.result = result or UploadResult(
            image_content_id="bafyimage",
            metadata_content_id="bafymeta",
            canonical_uri="ipfs://bafymeta",
        )
        self.error = error
        self.gate = gate
        self.calls: list[tuple[RenderedArtifact, Any]] = []

    async def upload(self, artifact: RenderedArtifact, descriptor: Any) -> UploadResult:
        self.calls.append((artifact, descriptor))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class FakeChain(ChainClient):
    def __init__(
        self,
        account: Optional[str] = ACCOUNT,
        tx_hash: str = TX_HASH,
        submit_error: Optional[BaseException] = None,
        confirm_error: Optional[BaseException] = None,
        receipt: Optional[ConfirmationReceipt] = None,
    ):
        self.account = account
        self.tx_hash = tx_hash
        self.submit_error = submit_error
        self.confirm_error = confirm_error
        self.receipt = receipt
        self.submissions: list[dict[str, Any]] = []
        self.waits: list[str] = []

    @property
    def provider_id(self) -> str:
        return "fake"

    @property
    def default_account(self) -> Optional[str]:
        return self.account

    async def submit_transaction(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> str:
        self.submissions.append({"contract_address": contract_address, "function_name": function_name, "args": args})
        if self.submit_error is not None:
            raise self.submit_error
        return self.tx_hash

    async def wait_for_confirmation(self, transaction_hash: str) -> ConfirmationReceipt:
        self.waits.append(transaction_hash)
        if self.confirm_error is not None:
            raise self.confirm_error
        if self.receipt is not None:
            return self.receipt
        return ConfirmationReceipt(transaction_hash=transaction_hash, block_number=7, status=1, token_id=42)
