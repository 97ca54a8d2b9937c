from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..canonical import stable_json
from ..errors import UploadIntegrityError, UploadTransportError
from ..schema import MintIntent, UploadDescriptor, UploadResult

if TYPE_CHECKING:
    from ..render.types import RenderedArtifact

logger = logging.getLogger(__name__)


class RemoteUploader:
    """Runs the upload pipeline through the HTTP upload boundary."""

    def __init__(
        self,
        upload_url: str,
        timeout_sec: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.upload_url = upload_url
        self.timeout_sec = timeout_sec
        self._transport = transport

    async def upload(self, artifact: "RenderedArtifact", descriptor: UploadDescriptor) -> UploadResult:
        intent = MintIntent(
            name=descriptor.name,
            description=descriptor.description,
            gradient=descriptor.gradient,
            image_size=descriptor.image_size,
        )
        files = {"file": (descriptor.filename, artifact.data, descriptor.mime_type)}
        data = {"metadata": stable_json(intent.model_dump(by_alias=True, mode="json", exclude_none=True))}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self._transport) as client:
                response = await client.post(self.upload_url, files=files, data=data)
        except httpx.HTTPError as e:
            raise UploadTransportError(f"Upload request failed: {e}") from e

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            text = response.text
            raise UploadTransportError(
                f"Upload returned non-JSON ({response.status_code}): {text[:200] or 'empty response'}",
                payload=text,
                status_code=response.status_code,
            )

        try:
            body: Any = response.json()
        except ValueError as e:
            raise UploadTransportError(
                f"Upload returned invalid JSON ({response.status_code})",
                payload=response.text,
                status_code=response.status_code,
            ) from e

        if not isinstance(body, dict) or response.is_error or body.get("success") is not True:
            detail = body if isinstance(body, dict) else {}
            message = detail.get("error") or detail.get("detail") or f"Upload failed ({response.status_code})"
            if detail.get("error") and detail.get("detail"):
                message = f"{detail['error']}: {detail['detail']}"
            raise UploadTransportError(message, payload=body, status_code=response.status_code)

        ipfs_url = body.get("ipfsUrl")
        if not isinstance(ipfs_url, str) or not ipfs_url:
            raise UploadIntegrityError("Upload response did not include a content URI", payload=body)

        try:
            result = UploadResult.model_validate(body.get("result") or {})
        except PydanticValidationError as e:
            raise UploadIntegrityError(f"Upload response carried incomplete identifiers: {e}", payload=body) from e
        if result.canonical_uri != ipfs_url:
            raise UploadIntegrityError(
                f"Upload response URI mismatch: {ipfs_url} != {result.canonical_uri}",
                payload=body,
            )

        logger.info(f"Remote upload stored metadata at {result.canonical_uri}")
        return result
