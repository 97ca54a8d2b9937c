"""HTTP upload boundary: one multipart request in, one content URI out."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, File, Form, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from ..config import MintConfig
from ..errors import ConfigurationError, UploadError, ValidationError
from ..render.types import RenderedArtifact
from ..schema import MintIntent, UploadDescriptor
from ..storage.pipeline import UploadPipeline
from ..storage.registry import build_upload_pipeline

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Gradient NFT"
DEFAULT_DESCRIPTION = "Generated with gradient effect"

router = APIRouter(prefix="/api/ipfs", tags=["ipfs"])


def _error(status_code: int, error: str, detail: Optional[str] = None, payload: Any = None) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if detail:
        content["detail"] = detail
    if payload is not None:
        content["payload"] = jsonable_encoder(payload)
    return JSONResponse(status_code=status_code, content=content)


def parse_intent(raw_metadata: Optional[str]) -> MintIntent:
    if not raw_metadata:
        return MintIntent()
    try:
        data = json.loads(raw_metadata)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid metadata JSON: {raw_metadata!r}")
        raise ValidationError("Invalid metadata JSON", detail=str(e)) from e
    if not isinstance(data, dict):
        raise ValidationError("Invalid metadata JSON", detail="metadata must be a JSON object")
    try:
        return MintIntent.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid metadata", detail=str(e)) from e


@router.post("/upload")
async def upload(
    request: Request,
    file: Optional[UploadFile] = File(None),
    metadata: Optional[str] = Form(None),
) -> dict[str, Any]:
    if file is None:
        raise ValidationError("No file provided")
    intent = parse_intent(metadata)

    pipeline: UploadPipeline = request.app.state.pipeline
    pipeline.require_credential()

    data = await file.read()
    if not data:
        raise ValidationError("No file provided", detail="uploaded file is empty")

    mime_type = file.content_type or "application/octet-stream"
    filename = file.filename or "upload.bin"
    size = intent.image_size
    artifact = RenderedArtifact(
        data=data,
        width=size.width if size else None,
        height=size.height if size else None,
        gradient=intent.gradient,
        mime_type=mime_type,
        filename=filename,
    )
    descriptor = UploadDescriptor(
        name=intent.name or DEFAULT_NAME,
        description=intent.description or DEFAULT_DESCRIPTION,
        gradient=intent.gradient,
        image_size=intent.image_size,
        mime_type=mime_type,
        size=len(data),
        filename=filename,
    )

    result = await pipeline.upload(artifact, descriptor)
    return {"success": True, "ipfsUrl": result.canonical_uri, "result": result.to_payload()}


def create_app(config: Optional[MintConfig] = None, pipeline: Optional[UploadPipeline] = None) -> FastAPI:
    if pipeline is None:
        pipeline = build_upload_pipeline(config or MintConfig())

    app = FastAPI(title="gradient-mint upload boundary")
    app.state.pipeline = pipeline

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, exc.message, detail=exc.detail)

    @app.exception_handler(ConfigurationError)
    async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error(f"Upload boundary misconfigured: {exc.message}")
        return _error(500, exc.message)

    @app.exception_handler(UploadError)
    async def _upload_error(request: Request, exc: UploadError) -> JSONResponse:
        logger.error(f"IPFS upload error: {exc.message}")
        return _error(502, "Failed to upload to IPFS", detail=exc.message, payload=exc.payload)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error in {request.url.path}")
        return _error(500, "Failed to upload to IPFS", detail=str(exc) or exc.__class__.__name__)

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        storage = app.state.pipeline.storage
        return {
            "status": "ok",
            "storage": storage.provider_id,
            "credential": bool(app.state.pipeline.credential) or not storage.requires_credential,
        }

    app.include_router(router)
    return app
