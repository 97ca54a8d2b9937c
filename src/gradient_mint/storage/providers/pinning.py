from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

import httpx

from ...errors import UploadIntegrityError, UploadTransportError
from ..client import StorageClient

if TYPE_CHECKING:
    from ...config import PinningStorageConfig

logger = logging.getLogger(__name__)


def _response_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class PinningStorage(StorageClient):
    """HTTP pinning service client (Lighthouse / Pinata style multipart API)."""

    def __init__(
        self,
        config: "PinningStorageConfig",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._transport = transport

    @property
    def provider_id(self) -> str:
        return "pinning"

    async def upload_binary(
        self,
        data: bytes,
        credential: Optional[str],
        filename: str = "artifact.bin",
        mime_type: str = "application/octet-stream",
    ) -> Mapping[str, Any]:
        return await self._post(credential, {"file": (filename, data, mime_type)})

    async def upload_text(
        self,
        text: str,
        credential: Optional[str],
        filename: str,
    ) -> Mapping[str, Any]:
        return await self._post(credential, {"file": (filename, text.encode("utf-8"), "application/json")})

    async def _post(self, credential: Optional[str], files: dict[str, Any]) -> Mapping[str, Any]:
        headers = {"Authorization": f"Bearer {credential}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_sec,
                transport=self._transport,
            ) as client:
                response = await client.post(self._config.endpoint, files=files, headers=headers)
        except httpx.HTTPError as e:
            raise UploadTransportError(f"Storage request failed: {e}") from e

        payload = _response_payload(response)
        if response.is_error:
            logger.warning(f"Storage service returned {response.status_code}: {payload!r}")
            raise UploadTransportError(
                f"Storage service returned {response.status_code}",
                payload=payload,
                status_code=response.status_code,
            )
        if not isinstance(payload, dict):
            raise UploadIntegrityError("Storage service returned a non-JSON success response", payload=payload)

        return {"contentId": payload.get(self._config.content_id_field), "payload": payload}
