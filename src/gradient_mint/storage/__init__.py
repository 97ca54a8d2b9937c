from .client import StorageClient
from .pipeline import METADATA_FILENAME, UploadPipeline, Uploader, extract_content_id
from .registry import StorageRegistry, build_upload_pipeline
from .remote import RemoteUploader

__all__ = [
    "METADATA_FILENAME",
    "RemoteUploader",
    "StorageClient",
    "StorageRegistry",
    "UploadPipeline",
    "Uploader",
    "build_upload_pipeline",
    "extract_content_id",
]
