"""
MathPix PDF Client - multi-format document conversion

Three calls make up one conversion:

    POST {base}/pdf                 upload, returns pdf_id
    GET  {base}/pdf/{pdf_id}        status (+ conversion_status per format)
    GET  {base}/pdf/{pdf_id}.{ext}  download one completed format

Polling is driven by the pipeline; this client only performs single requests.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from config.constants import (
    DEFAULT_METADATA,
    DEFAULT_PDF_FORMATS,
    PDF_CONVERSION_FORMATS,
    PDF_DOWNLOAD_EXTENSIONS,
    PDF_FORMAT_API_NAMES,
    PDF_TEXT_FORMATS,
    SUPPORTED_PDF_FORMATS,
    SUPPORTED_PDF_TYPES,
)
from config.settings import settings
from .base import AdapterKind, OcrError, OcrAPIError, OcrInvalidInputError, UploadFile
from .mathpix_client import MathPixClient, delimiter_options, merge_options

from config.logging_config import get_logger
logger = get_logger(__name__)


# Per-format states
STATE_PROCESSING = "processing"
STATE_COMPLETED = "completed"
STATE_ERROR = "error"
TERMINAL_STATES = (STATE_COMPLETED, STATE_ERROR)

_ALTERNATIVE_STATUS_KEYS = ("state", "processing_status", "job_status")
_ID_KEYS = ("pdf_id", "id", "processing_id", "document_id", "job_id", "request_id")


@dataclass
class PdfStatus:
    """Decoded GET /pdf/{pdf_id} response."""
    pdf_id: str
    status: str
    conversion_status: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    error: Optional[str] = None
    percent_done: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.status == STATE_ERROR

    @classmethod
    def from_response(cls, pdf_id: str, body: Dict[str, Any]) -> "PdfStatus":
        """
        Raises:
            OcrAPIError: If no status field is present
        """
        status = body.get("status")
        if not status:
            status = next((body[key] for key in _ALTERNATIVE_STATUS_KEYS if body.get(key)), None)
        if not status:
            raise OcrAPIError(
                "Invalid status response: missing status field. "
                f"Response keys: {', '.join(body.keys())}"
            )

        conversion_status = body.get("conversion_status")
        if not isinstance(conversion_status, dict):
            conversion_status = {}

        error = body.get("error")
        if isinstance(error, dict):
            error = error.get("message") or json.dumps(error)

        return cls(
            pdf_id=pdf_id,
            status=str(status).lower(),
            conversion_status=conversion_status,
            error=str(error) if error else None,
            percent_done=body.get("percent_done"),
            raw=body,
        )


def api_format_name(fmt: str) -> str:
    """UI format name to API conversion name (latex -> tex.zip, latexpdf -> latex.pdf)."""
    return PDF_FORMAT_API_NAMES.get(fmt, fmt)


def requested_formats(options: Optional[Dict[str, Any]] = None) -> List[str]:
    """Requested UI formats, defaults applied, unsupported names dropped, order kept."""
    formats = (options or {}).get("formats") or DEFAULT_PDF_FORMATS
    result = []
    for fmt in formats:
        if fmt not in SUPPORTED_PDF_FORMATS:
            logger.warning(f"Unknown PDF output format skipped: {fmt}")
            continue
        if fmt not in result:
            result.append(fmt)
    return result


def conversion_formats(formats: Sequence[str]) -> Dict[str, bool]:
    """
    Build the conversion_formats request field.

    mmd is the default output and is never a conversion format.
    """
    conversions = {}
    for fmt in formats:
        if fmt == "mmd":
            continue
        api_name = api_format_name(fmt)
        if api_name in PDF_CONVERSION_FORMATS:
            conversions[api_name] = True
        else:
            logger.warning(f"Unknown conversion format skipped: {fmt} -> {api_name}")
    return conversions


def format_states(status: PdfStatus, formats: Sequence[str]) -> Dict[str, str]:
    """
    Per-format state for each requested format.

    - A top-level error makes every format terminal-error.
    - mmd follows the top-level status.
    - Conversion formats follow conversion_status[api_name].status; while the
      server has not reported conversions at all they follow the top-level status.
    """
    states = {}
    for fmt in formats:
        if status.is_error:
            states[fmt] = STATE_ERROR
        elif fmt == "mmd":
            states[fmt] = _normalize_state(status.status)
        elif not status.conversion_status:
            states[fmt] = _normalize_state(status.status)
        else:
            entry = status.conversion_status.get(api_format_name(fmt))
            if isinstance(entry, dict):
                states[fmt] = _normalize_state(entry.get("status"))
            else:
                states[fmt] = STATE_PROCESSING
    return states


def format_error(status: PdfStatus, fmt: str) -> str:
    """Server-reported error text for a failed format."""
    entry = status.conversion_status.get(api_format_name(fmt))
    if isinstance(entry, dict) and entry.get("error_info"):
        info = entry["error_info"]
        if isinstance(info, dict):
            return str(info.get("message") or info.get("error") or json.dumps(info))
        return str(info)
    return status.error or "Conversion failed"


def _normalize_state(value: Any) -> str:
    value = str(value or "").lower()
    if value == STATE_COMPLETED:
        return STATE_COMPLETED
    if value == STATE_ERROR:
        return STATE_ERROR
    # queued, split, loaded, processing and unknown states keep polling
    return STATE_PROCESSING


def validate_pdf_file(upload: Any, max_size_bytes: int, options: Optional[Dict[str, Any]] = None) -> None:
    """
    Raises:
        OcrInvalidInputError: Not a PDF, empty, too large, or no supported output format
    """
    if not isinstance(upload, UploadFile):
        raise OcrInvalidInputError(f"Expected a PDF file, got {type(upload).__name__}")
    if upload.content_type not in SUPPORTED_PDF_TYPES:
        raise OcrInvalidInputError(
            f"Invalid file type: {upload.content_type}. Only PDF files are supported for document processing."
        )
    if upload.size == 0:
        raise OcrInvalidInputError(f"PDF '{upload.name}' is empty")
    if upload.size > max_size_bytes:
        raise OcrInvalidInputError(
            f"PDF too large: {upload.size / 1024 / 1024:.1f}MB (max {max_size_bytes / 1024 / 1024:.0f}MB)"
        )
    if not requested_formats(options):
        raise OcrInvalidInputError(
            f"No supported output format requested. Supported: {', '.join(SUPPORTED_PDF_FORMATS)}"
        )


class MathPixPdfClient(MathPixClient):
    """
    PDF adapter for the MathPix PDF API.

    submit() uploads and returns the processing id; check_status() and
    download() are single requests the pipeline calls while polling.
    """

    kind = AdapterKind.PDF

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_key: Optional[str] = None,
        upload_timeout: Optional[float] = None,
        status_timeout: Optional[float] = None,
        max_size_bytes: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app_id=app_id, app_key=app_key, **kwargs)
        self.upload_timeout = upload_timeout or settings.pdf_upload_timeout
        self.status_timeout = status_timeout or settings.status_timeout
        self.max_size_bytes = max_size_bytes or settings.max_pdf_size_bytes

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/pdf"

    def validate(self, payload: Any, options: Optional[dict] = None) -> None:
        validate_pdf_file(payload, self.max_size_bytes, options)

    def build_request_options(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Build the options_json body for an upload.

        Recognized caller options: formats (UI names), page_range,
        delimiter_format; anything else is passed through to the API.
        """
        overrides = dict(options or {})
        formats = requested_formats(overrides)
        overrides.pop("formats", None)
        page_range = overrides.pop("page_range", None)
        delimiter_format = overrides.pop("delimiter_format", None) or "markdown"

        defaults = {
            "metadata": dict(DEFAULT_METADATA),
            "rm_spaces": True,
            **delimiter_options(delimiter_format),
        }
        request_options = merge_options(defaults, overrides)
        request_options["conversion_formats"] = conversion_formats(formats)
        # "all" is the API default and is omitted
        if page_range and page_range != "all":
            request_options["page_ranges"] = page_range
        return request_options

    async def submit(self, payload: UploadFile, options: Optional[dict] = None) -> dict:
        """
        Upload a PDF for conversion.

        Returns:
            Upload response with ``pdf_id`` and ``requested_formats`` added

        Raises:
            OcrAuthError: Missing or rejected credentials
            OcrInvalidInputError: Invalid PDF or format selection
            OcrAPIError: Upload rejected or no processing id returned
            OcrConnectionError: Service unreachable
        """
        self.ensure_credentials()
        self.validate(payload, options)

        formats = requested_formats(options)
        request_options = self.build_request_options(options)
        request_summary = {
            "file_name": payload.name,
            "file_size": payload.size,
            "file_type": payload.content_type,
            "formats": formats,
            "options": request_options,
            "headers": self._masked_headers(),
        }

        logger.info(f"Uploading PDF '{payload.name}' ({payload.size} bytes), formats: {', '.join(formats)}")
        start = time.perf_counter()

        try:
            response, duration = await self._request(
                "POST",
                self.endpoint,
                timeout=self.upload_timeout,
                files={"file": (payload.name, payload.content, payload.content_type)},
                data={"options_json": json.dumps(request_options)},
            )
            body = self._json(response)
            pdf_id = next((str(body[key]) for key in _ID_KEYS if body.get(key)), None)
            if not pdf_id:
                raise OcrAPIError(
                    "PDF upload succeeded but no processing ID received. "
                    f"Available fields: {', '.join(body.keys())}",
                    status_code=response.status_code,
                )
        except OcrError as e:
            logger.error(f"PDF upload failed: {e}")
            self._record_debug(
                "processPDF",
                self.endpoint,
                request_summary,
                timing={"total": time.perf_counter() - start},
                error=e,
            )
            raise

        self._record_debug(
            "processPDF",
            self.endpoint,
            request_summary,
            response={"status": response.status_code, "pdf_id": pdf_id, "data": body},
            metadata={"pdf_id": pdf_id, "formats": formats},
            timing={"upload": duration},
        )

        logger.info(f"PDF uploaded in {duration:.2f}s, pdf_id={pdf_id}")
        return {**body, "pdf_id": pdf_id, "requested_formats": formats}

    async def check_status(self, pdf_id: str) -> PdfStatus:
        """
        Fetch the processing status of an uploaded PDF.

        Raises:
            OcrAPIError: Non-2xx response or missing status field
            OcrConnectionError: Service unreachable
        """
        self.ensure_credentials()
        response, _ = await self._request("GET", f"{self.endpoint}/{pdf_id}", timeout=self.status_timeout)
        status = PdfStatus.from_response(pdf_id, self._json(response))
        conversions = {
            name: entry.get("status")
            for name, entry in status.conversion_status.items()
            if isinstance(entry, dict)
        }
        logger.debug(f"PDF {pdf_id} status={status.status} conversions={conversions}")
        return status

    async def download(self, pdf_id: str, fmt: str) -> Union[str, bytes]:
        """
        Download one converted format.

        Args:
            pdf_id: Processing id from submit()
            fmt: UI format name (mmd, md, html, latex, latexpdf, pdf, docx, ...)

        Returns:
            str for text formats (mmd, md, html), bytes otherwise
        """
        self.ensure_credentials()
        extension = PDF_DOWNLOAD_EXTENSIONS.get(fmt, fmt)
        response, duration = await self._request(
            "GET", f"{self.endpoint}/{pdf_id}.{extension}", timeout=self.upload_timeout
        )

        if fmt in PDF_TEXT_FORMATS:
            content: Union[str, bytes] = response.text
        else:
            content = response.content
        logger.info(f"Downloaded {fmt} for {pdf_id}: {len(content)} {'chars' if isinstance(content, str) else 'bytes'}")
        return content

    def record_conversion(
        self,
        pdf_id: str,
        summary: Dict[str, Any],
        timing: Dict[str, Any],
        error: Optional[BaseException] = None,
    ) -> None:
        """Replace the upload debug record with the whole-conversion summary."""
        upload = self._last_debug
        self._record_debug(
            "processPDF",
            f"{self.endpoint}/{pdf_id}",
            upload.request if upload else {"pdf_id": pdf_id},
            response={
                "status": summary.get("status"),
                "completed": summary.get("completed", []),
                "failed": summary.get("failed", []),
                "errors": summary.get("errors", {}),
                "status_response": summary.get("status_response"),
            },
            metadata={"pdf_id": pdf_id, "polls": summary.get("polls")},
            timing=timing,
            error=error,
        )
