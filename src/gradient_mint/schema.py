from __future__ import annotations

from typing import Any, Optional

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer, model_validator

from .canonical import content_uri, stable_json

RGB = tuple[int, int, int]


class GradientSpec(BaseModel):
    """Ordered (start, end) color pair; serializes as a two-element list."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        if isinstance(data, str):
            data = [part.strip() for part in data.split(",")]
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError(f"gradient must have exactly two colors, got {len(data)}")
            return {"start": data[0], "end": data[1]}
        return data

    @field_validator("start", "end")
    @classmethod
    def _known_color(cls, v: str) -> str:
        v = v.strip()
        try:
            ImageColor.getrgb(v)
        except ValueError as e:
            raise ValueError(f"unrecognized color: {v!r}") from e
        return v

    @model_serializer
    def _as_pair(self) -> list[str]:
        return [self.start, self.end]

    def rgb(self) -> tuple[RGB, RGB]:
        return ImageColor.getcolor(self.start, "RGB"), ImageColor.getcolor(self.end, "RGB")


class ImageSize(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)


class UploadDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    gradient: Optional[GradientSpec] = None
    image_size: Optional[ImageSize] = None
    mime_type: str = "image/png"
    size: int = Field(ge=0)
    filename: str = "gradient-nft.png"


class OriginalFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(alias="mimeType")
    size: int
    name: str


class MetadataProperties(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gradient: Optional[GradientSpec] = None
    original_image_size: Optional[ImageSize] = Field(default=None, alias="originalImageSize")
    original_file: OriginalFile = Field(alias="originalFile")


class MetadataDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    image: str
    properties: MetadataProperties

    @classmethod
    def build(cls, descriptor: UploadDescriptor, image_uri: str) -> "MetadataDocument":
        return cls(
            name=descriptor.name,
            description=descriptor.description,
            image=image_uri,
            properties=MetadataProperties(
                gradient=descriptor.gradient,
                original_image_size=descriptor.image_size,
                original_file=OriginalFile(
                    mime_type=descriptor.mime_type,
                    size=descriptor.size,
                    name=descriptor.filename,
                ),
            ),
        )

    def to_json(self) -> str:
        return stable_json(self.model_dump(by_alias=True, mode="json", exclude_none=True))


class UploadResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    image_content_id: str = Field(alias="imageContentId", min_length=1)
    metadata_content_id: str = Field(alias="metadataContentId", min_length=1)
    canonical_uri: str = Field(alias="canonicalUri", min_length=1)

    @property
    def scheme(self) -> str:
        return self.canonical_uri.partition("://")[0]

    @property
    def image_uri(self) -> str:
        return content_uri(self.scheme, self.image_content_id)

    def to_payload(self) -> dict[str, str]:
        payload = self.model_dump(by_alias=True)
        payload["imageUri"] = self.image_uri
        return payload


class MintIntent(BaseModel):
    """JSON metadata part sent alongside the file at the upload boundary."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    gradient: Optional[GradientSpec] = None
    image_size: Optional[ImageSize] = Field(default=None, alias="imageSize")
