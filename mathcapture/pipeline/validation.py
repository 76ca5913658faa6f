"""
Input routing and validation per capture mode.

Everything here runs before consent and before any network call.
"""

from typing import Any, Optional

from config.constants import SUPPORTED_PDF_TYPES
from ..capture.modes import Mode
from ..ocr.base import AdapterKind, ClientAdapter, OcrInvalidInputError, UploadFile


def resolve_kind(mode: Mode, payload: Any) -> AdapterKind:
    """
    Pick the adapter for a mode and its input.

    UPLOAD routes by file type (PDF or image), DRAW goes to strokes and
    CAMERA frames go to the image endpoint.

    Raises:
        OcrInvalidInputError: UPLOAD without a file
    """
    if mode is Mode.DRAW:
        return AdapterKind.STROKES
    if mode is Mode.CAMERA:
        return AdapterKind.IMAGE
    if not isinstance(payload, UploadFile):
        raise OcrInvalidInputError("No file selected for upload")
    if payload.content_type in SUPPORTED_PDF_TYPES:
        return AdapterKind.PDF
    return AdapterKind.IMAGE


def validate_input(
    mode: Mode,
    adapter: ClientAdapter,
    payload: Any,
    options: Optional[dict] = None,
) -> None:
    """
    Mode-level checks followed by the adapter's structural validation.

    Raises:
        OcrInvalidInputError: Describing why the input cannot be submitted
    """
    if mode is Mode.CAMERA:
        if not isinstance(payload, UploadFile) or payload.size == 0:
            raise OcrInvalidInputError("No photo captured. Please capture a photo first.")
    elif mode is Mode.DRAW:
        if payload is None:
            raise OcrInvalidInputError("Please draw something first")
    elif payload is None:
        raise OcrInvalidInputError("No file selected for upload")

    adapter.validate(payload, options)
