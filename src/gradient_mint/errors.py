from __future__ import annotations

from pathlib import Path
from typing import Any, Optional


class MintError(Exception):
    """Base class for every failure the mint pipeline reports to callers."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(MintError):
    def __init__(self, message: str, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(message)


class ConfigurationError(MintError):
    def __init__(self, message: str, path: Optional[Path] = None, line: Optional[int] = None):
        self.path = path
        self.line = line
        if path:
            loc = f"{path}"
            if line:
                loc += f":{line}"
            message = f"{loc}: {message}"
        super().__init__(message)


class PreconditionError(MintError):
    pass


class MintBusyError(PreconditionError):
    def __init__(self, message: str = "A mint is already in progress"):
        super().__init__(message)


class RenderError(MintError):
    pass


class UploadError(MintError):
    """Storage upload failed; ``payload`` holds the raw upstream response."""

    def __init__(self, message: str, payload: Any = None):
        self.payload = payload
        super().__init__(message)


class UploadTransportError(UploadError):
    """Nothing was stored: network error or non-2xx response."""

    def __init__(self, message: str, payload: Any = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, payload)


class UploadIntegrityError(UploadError):
    """Storage reported success but the response carried no usable identifier."""


class WalletError(MintError):
    pass


class ChainError(MintError):
    pass
