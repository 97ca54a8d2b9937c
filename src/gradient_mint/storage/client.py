from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional


class StorageClient(ABC):
    """Content-addressable storage collaborator.

    Both upload operations return a mapping that should carry a ``contentId``
    string; callers treat its absence as an integrity failure.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str: ...

    @property
    def requires_credential(self) -> bool:
        return True

    @abstractmethod
    async def upload_binary(
        self,
        data: bytes,
        credential: Optional[str],
        filename: str = "artifact.bin",
        mime_type: str = "application/octet-stream",
    ) -> Mapping[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def upload_text(
        self,
        text: str,
        credential: Optional[str],
        filename: str,
    ) -> Mapping[str, Any]:
        raise NotImplementedError
