from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ..canonical import sha256_bytes
from ..errors import RenderError
from ..schema import GradientSpec, ImageSize, UploadDescriptor

ARTIFACT_FILENAME = "gradient-nft.png"
ARTIFACT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class SourceImage:
    data: bytes
    width: int
    height: int
    mime_type: str
    filename: str = "source"

    @classmethod
    def from_bytes(cls, data: bytes, filename: str = "source") -> "SourceImage":
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                width, height = img.size
                fmt = img.format
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise RenderError(f"Could not decode source image {filename}: {e}") from e
        mime_type = Image.MIME.get(fmt or "", "application/octet-stream")
        return cls(data=data, width=width, height=height, mime_type=mime_type, filename=filename)

    @classmethod
    def from_path(cls, path: Path) -> "SourceImage":
        try:
            data = path.read_bytes()
        except OSError as e:
            raise RenderError(f"Could not read source image {path}: {e}") from e
        return cls.from_bytes(data, filename=path.name)

    @property
    def size(self) -> ImageSize:
        return ImageSize(width=self.width, height=self.height)


@dataclass(frozen=True)
class RenderedArtifact:
    data: bytes
    width: Optional[int] = None
    height: Optional[int] = None
    gradient: Optional[GradientSpec] = None
    mime_type: str = ARTIFACT_MIME_TYPE
    filename: str = ARTIFACT_FILENAME

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def digest(self) -> str:
        return sha256_bytes(self.data)

    @property
    def image_size(self) -> Optional[ImageSize]:
        if self.width is None or self.height is None:
            return None
        return ImageSize(width=self.width, height=self.height)

    def describe(self, name: str, description: str) -> UploadDescriptor:
        return UploadDescriptor(
            name=name,
            description=description,
            gradient=self.gradient,
            image_size=self.image_size,
            mime_type=self.mime_type,
            size=self.size,
            filename=self.filename,
        )

    def save(self, out_path: Path) -> Path:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(self.data)
        return out_path
