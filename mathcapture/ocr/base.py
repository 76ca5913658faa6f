"""
OCR Adapter Base Interface

Defines the adapter protocol shared by the image, strokes and PDF clients,
the debug record each adapter keeps, and the error taxonomy.
"""

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Protocol, Optional, Dict, Any

from config.constants import EXTENSION_TYPES


class AdapterKind(Enum):
    """Remote endpoint family. Passed explicitly alongside every payload."""
    IMAGE = "image"
    STROKES = "strokes"
    PDF = "pdf"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DebugRecord:
    """
    Diagnostic snapshot of one adapter operation.

    Each adapter retains at most one (its most recent), written on success
    and on failure.
    """
    source: AdapterKind
    operation: str
    endpoint: str
    timestamp: datetime = field(default_factory=utc_now)
    request: Dict[str, Any] = field(default_factory=dict)
    response: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timing: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, Any]] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display or copying."""
        return {
            "source": self.source.value,
            "operation": self.operation,
            "endpoint": self.endpoint,
            "timestamp": self.timestamp.isoformat(),
            "request": self.request,
            "response": self.response,
            "metadata": self.metadata,
            "timing": self.timing,
            "error": self.error,
        }


@dataclass
class UploadFile:
    """A file handed to the pipeline: uploaded image/PDF or a captured camera frame."""
    name: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lower()

    @classmethod
    def from_path(cls, path: Path, content_type: Optional[str] = None) -> "UploadFile":
        """
        Read a file from disk, guessing its MIME type from the extension.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if content_type is None:
            content_type = EXTENSION_TYPES.get(path.suffix.lower())
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, content=path.read_bytes(), content_type=content_type)

    def info(self) -> Dict[str, Any]:
        """Name/size/type summary handed to the consent collaborator."""
        return {"name": self.name, "size": self.size, "type": self.content_type}


class ClientAdapter(Protocol):
    """
    Remote OCR adapter interface

    Implementations:
    - MathPixImageClient  (POST /text)
    - MathPixStrokesClient (POST /strokes)
    - MathPixPdfClient (POST /pdf, GET /pdf/{id}, GET /pdf/{id}.{ext})
    """

    kind: AdapterKind

    def has_credentials(self) -> bool:
        ...

    def ensure_credentials(self) -> None:
        """
        Raises:
            OcrAuthError: If app_id or app_key is missing
        """
        ...

    def validate(self, payload: Any, options: Optional[dict] = None) -> None:
        """
        Structural validation, never touches the network.

        Raises:
            OcrInvalidInputError: If the payload cannot be submitted
        """
        ...

    async def submit(self, payload: Any, options: Optional[dict] = None) -> dict:
        """
        Send the payload and return the decoded response body.

        Raises:
            OcrError: If the request fails
        """
        ...

    def get_last_debug_data(self) -> Optional[DebugRecord]:
        ...

    def reset(self) -> None:
        """Drop the retained debug record."""
        ...


class OcrError(Exception):
    """Base exception for OCR-related errors"""

    # Attached by the pipeline when the error surfaces through a completion callback
    mode: Optional[str] = None
    elapsed_seconds: Optional[float] = None


class OcrInvalidInputError(OcrError):
    """Invalid input shape; never sent to the network"""
    pass


class OcrAuthError(OcrError):
    """Missing or rejected credentials"""
    pass


class OcrConnectionError(OcrError):
    """OCR service connection error (retryable by the caller)"""
    pass


class OcrAPIError(OcrError):
    """Non-2xx response from the OCR service"""

    def __init__(self, message: str, status_code: Optional[int] = None, details: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class OcrQuotaError(OcrAPIError):
    """OCR quota/rate limit exceeded"""
    pass


class OcrTimeoutError(OcrError):
    """PDF status polling exhausted its attempts"""
    pass


class OperationCancelled(Exception):
    """Base for cancellation outcomes. Not an OcrError: nothing failed."""
    pass


class ConsentDeclined(OperationCancelled):
    """User declined transmitting the data"""
    pass


class OcrCancelledError(OperationCancelled):
    """User cancelled a pollable job"""
    pass
