"""
MathPix Image Client - POST /text

Submits an uploaded image or a captured camera frame as multipart form data
(``file`` + ``options_json``) and returns the raw MathPix response.
"""

import json
import time
from typing import Any, Dict, Optional

from config.constants import (
    DEFAULT_DATA_OPTIONS,
    DEFAULT_IMAGE_FORMATS,
    DEFAULT_METADATA,
    SUPPORTED_IMAGE_TYPES,
)
from config.settings import settings
from .base import AdapterKind, OcrError, OcrAPIError, OcrInvalidInputError, UploadFile
from .mathpix_client import MathPixClient, delimiter_options, merge_options

from config.logging_config import get_logger
logger = get_logger(__name__)


def validate_image_file(upload: Any, max_size_bytes: int) -> None:
    """
    Check an image upload before it goes anywhere near the network.

    Raises:
        OcrInvalidInputError: Wrong type, unsupported format, empty or too large
    """
    if not isinstance(upload, UploadFile):
        raise OcrInvalidInputError(f"Expected an image file, got {type(upload).__name__}")
    if upload.content_type not in SUPPORTED_IMAGE_TYPES:
        raise OcrInvalidInputError(
            f"Unsupported image type '{upload.content_type}'. "
            f"Supported: {', '.join(SUPPORTED_IMAGE_TYPES)}"
        )
    if upload.size == 0:
        raise OcrInvalidInputError(f"Image '{upload.name}' is empty")
    if upload.size > max_size_bytes:
        raise OcrInvalidInputError(
            f"Image '{upload.name}' is too large: {upload.size / 1024 / 1024:.1f}MB "
            f"(max {max_size_bytes / 1024 / 1024:.0f}MB)"
        )


class MathPixImageClient(MathPixClient):
    """
    Image adapter for the MathPix Text API.

    Request options are the default set (formats, data_options,
    privacy metadata) with the caller's options merged on top.
    """

    kind = AdapterKind.IMAGE

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_key: Optional[str] = None,
        delimiter_format: Optional[str] = None,
        include_line_data: Optional[bool] = None,
        max_size_bytes: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app_id=app_id, app_key=app_key, **kwargs)
        self.delimiter_format = delimiter_format or settings.delimiter_format
        self.include_line_data = (
            include_line_data if include_line_data is not None else settings.include_line_data
        )
        self.max_size_bytes = max_size_bytes or settings.max_image_size_bytes

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/text"

    def validate(self, payload: Any, options: Optional[dict] = None) -> None:
        validate_image_file(payload, self.max_size_bytes)

    def build_request_options(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Merge caller options over the default image request.

        Args:
            options: Caller options; ``delimiter_format`` ("latex" | "markdown")
                     selects the math delimiters

        Returns:
            The options_json body
        """
        overrides = dict(options or {})
        delimiter_format = overrides.pop("delimiter_format", None) or self.delimiter_format

        defaults = {
            "formats": list(DEFAULT_IMAGE_FORMATS),
            "data_options": dict(DEFAULT_DATA_OPTIONS),
            "metadata": dict(DEFAULT_METADATA),
            "enable_tables_fallback": True,
            "include_line_data": self.include_line_data,
            **delimiter_options(delimiter_format),
        }
        return merge_options(defaults, overrides)

    async def submit(self, payload: UploadFile, options: Optional[dict] = None) -> dict:
        """
        Process an image with MathPix.

        Args:
            payload: Image upload (JPEG, PNG or WebP)
            options: Request options merged over the defaults

        Returns:
            Decoded MathPix response

        Raises:
            OcrAuthError: Missing or rejected credentials
            OcrInvalidInputError: Invalid image
            OcrQuotaError: Rate limit exceeded
            OcrConnectionError: Service unreachable
            OcrAPIError: Any other API failure
        """
        self.ensure_credentials()
        self.validate(payload)

        request_options = self.build_request_options(options)
        request_summary = {
            "file_name": payload.name,
            "file_size": payload.size,
            "file_type": payload.content_type,
            "options": request_options,
            "headers": self._masked_headers(),
        }

        logger.info(f"Processing image '{payload.name}' ({payload.size} bytes) with MathPix")
        start = time.perf_counter()

        try:
            response, duration = await self._request(
                "POST",
                self.endpoint,
                files={"file": (payload.name, payload.content, payload.content_type)},
                data={"options_json": json.dumps(request_options)},
            )
            body = self._json(response)
            if body.get("error") and not (body.get("text") or body.get("data")):
                raise OcrAPIError(
                    f"MathPix could not process the image: {body['error']}",
                    status_code=response.status_code,
                    details=json.dumps(body.get("error_info", {})),
                )
        except OcrError as e:
            logger.error(f"MathPix image request failed: {e}")
            self._record_debug(
                "processImage",
                self.endpoint,
                request_summary,
                timing={"total": time.perf_counter() - start},
                error=e,
            )
            raise

        self._record_debug(
            "processImage",
            self.endpoint,
            request_summary,
            response={
                "status": response.status_code,
                "confidence": body.get("confidence"),
                "content_type": _content_type(body),
                "data": body,
            },
            metadata={
                "confidence": body.get("confidence"),
                "is_handwritten": bool(body.get("is_handwritten")),
                "is_printed": bool(body.get("is_printed")),
                "image_dimensions": body.get("image_dimensions"),
                "auto_rotate_confidence": body.get("auto_rotate_confidence"),
            },
            timing={"api_request": duration, "total": time.perf_counter() - start},
        )

        logger.info(f"MathPix image processed in {duration:.2f}s (confidence={body.get('confidence')})")
        return body


def _content_type(body: Dict[str, Any]) -> str:
    if body.get("is_handwritten"):
        return "handwritten"
    if body.get("is_printed"):
        return "printed"
    return "mixed"
