from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from ...canonical import sha256_bytes
from ...journal import now_utc_iso, write_sidecar
from ..client import StorageClient

if TYPE_CHECKING:
    from ...config import LocalStorageConfig


class LocalStorage(StorageClient):
    """Content-addressed directory store keyed by the sha256 of each object."""

    def __init__(self, config: "LocalStorageConfig | None" = None, root: Optional[Path] = None):
        if root is None:
            root = config.root if config is not None else Path(".gradient_mint/store")
        self.root = Path(root)

    @property
    def provider_id(self) -> str:
        return "local"

    @property
    def requires_credential(self) -> bool:
        return False

    async def upload_binary(
        self,
        data: bytes,
        credential: Optional[str],
        filename: str = "artifact.bin",
        mime_type: str = "application/octet-stream",
    ) -> Mapping[str, Any]:
        return self._put(data, filename, mime_type)

    async def upload_text(
        self,
        text: str,
        credential: Optional[str],
        filename: str,
    ) -> Mapping[str, Any]:
        return self._put(text.encode("utf-8"), filename, "application/json")

    def path_for(self, content_id: str) -> Path:
        return self.root / content_id

    def read(self, content_id: str) -> bytes:
        return self.path_for(content_id).read_bytes()

    def _put(self, data: bytes, filename: str, mime_type: str) -> dict[str, Any]:
        content_id = sha256_bytes(data)
        out_path = self.path_for(content_id)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        if not out_path.exists():
            out_path.write_bytes(data)
            write_sidecar(
                out_path,
                {
                    "content_id": content_id,
                    "filename": filename,
                    "mime_type": mime_type,
                    "size": len(data),
                    "stored_at": now_utc_iso(),
                },
            )
        return {"contentId": content_id, "path": str(out_path)}
