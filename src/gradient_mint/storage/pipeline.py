from __future__ import annotations

import logging
from collections.abc import Awaitable, Mapping
from typing import TYPE_CHECKING, Any, Optional, Protocol

from ..canonical import content_uri
from ..errors import ConfigurationError, UploadError, UploadIntegrityError, UploadTransportError
from ..schema import MetadataDocument, UploadDescriptor, UploadResult
from .client import StorageClient

if TYPE_CHECKING:
    from ..render.types import RenderedArtifact

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.json"


class Uploader(Protocol):
    async def upload(self, artifact: "RenderedArtifact", descriptor: UploadDescriptor) -> UploadResult: ...


def extract_content_id(receipt: Any, label: str) -> str:
    """Pull ``contentId`` out of a storage receipt or raise an integrity error."""
    if not isinstance(receipt, Mapping):
        raise UploadIntegrityError(f"{label} upload returned a malformed response", payload=receipt)
    content_id = receipt.get("contentId")
    if not isinstance(content_id, str) or not content_id.strip():
        raise UploadIntegrityError(
            f"{label} upload succeeded but returned no content id",
            payload=receipt.get("payload", dict(receipt)),
        )
    return content_id.strip()


class UploadPipeline:
    """Publishes an image, then a metadata document that references it.

    The two uploads are strictly sequential and never retried here. The
    returned ``canonical_uri`` points at the metadata document, which in turn
    embeds the image URI.
    """

    def __init__(
        self,
        storage: StorageClient,
        credential: Optional[str] = None,
        scheme: str = "ipfs",
        credential_hint: str = "storage credential",
    ):
        self.storage = storage
        self.credential = credential
        self.scheme = scheme
        self.credential_hint = credential_hint

    def require_credential(self) -> Optional[str]:
        if self.storage.requires_credential and not self.credential:
            raise ConfigurationError(f"{self.credential_hint} not configured")
        return self.credential

    async def upload(self, artifact: "RenderedArtifact", descriptor: UploadDescriptor) -> UploadResult:
        credential = self.require_credential()

        image_receipt = await self._call(
            "image",
            self.storage.upload_binary(
                artifact.data,
                credential,
                filename=artifact.filename,
                mime_type=artifact.mime_type,
            ),
        )
        image_id = extract_content_id(image_receipt, "image")
        image_uri = content_uri(self.scheme, image_id)
        logger.info(f"Uploaded image {artifact.filename} as {image_uri}")

        document = MetadataDocument.build(descriptor, image_uri)
        metadata_receipt = await self._call(
            "metadata",
            self.storage.upload_text(document.to_json(), credential, METADATA_FILENAME),
        )
        metadata_id = extract_content_id(metadata_receipt, "metadata")
        canonical_uri = content_uri(self.scheme, metadata_id)
        logger.info(f"Uploaded metadata as {canonical_uri}")

        return UploadResult(
            image_content_id=image_id,
            metadata_content_id=metadata_id,
            canonical_uri=canonical_uri,
        )

    async def _call(self, label: str, pending: Awaitable[Any]) -> Any:
        try:
            return await pending
        except UploadError:
            raise
        except OSError as e:
            raise UploadTransportError(f"{label} upload failed: {e}") from e
        except Exception as e:
            logger.exception(f"Storage client raised while uploading {label}")
            raise UploadTransportError(f"{label} upload failed: {e}", payload=str(e)) from e
