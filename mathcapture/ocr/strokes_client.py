"""
MathPix Strokes Client - POST /strokes

Sends handwritten stroke coordinates as JSON. Stroke data has the shape::

    {"strokes": {"strokes": {"x": [[x0, x1, ...], ...], "y": [[y0, y1, ...], ...]}}}
"""

import json
import time
from numbers import Real
from typing import Any, Dict, Mapping, Optional

from config.constants import (
    ALWAYS_INCLUDED_FORMATS,
    DEFAULT_DATA_OPTIONS,
    DEFAULT_IMAGE_FORMATS,
    DEFAULT_METADATA,
    MIN_POINTS_PER_STROKE,
)
from config.settings import settings
from .base import AdapterKind, OcrAPIError, OcrError, OcrInvalidInputError
from .mathpix_client import MathPixClient, delimiter_options, merge_options

from config.logging_config import get_logger
logger = get_logger(__name__)


def validate_strokes(strokes_data: Any) -> None:
    """
    Validate the nested stroke structure.

    Raises:
        OcrInvalidInputError: Describing the first problem found
    """
    if not isinstance(strokes_data, Mapping):
        raise OcrInvalidInputError("Invalid strokes data: must be an object")

    container = strokes_data.get("strokes")
    if not isinstance(container, Mapping):
        raise OcrInvalidInputError("Invalid strokes data: missing strokes container")

    nested = container.get("strokes")
    if not isinstance(nested, Mapping):
        raise OcrInvalidInputError("Invalid strokes data: missing nested strokes object")

    x, y = nested.get("x"), nested.get("y")
    if not isinstance(x, list) or not isinstance(y, list):
        raise OcrInvalidInputError("Invalid strokes data: x and y must be arrays")
    if len(x) != len(y):
        raise OcrInvalidInputError("Invalid strokes data: x and y arrays must have same length")
    if not x:
        raise OcrInvalidInputError("Invalid strokes data: no strokes provided")

    for i, (xs, ys) in enumerate(zip(x, y)):
        if not isinstance(xs, list) or not isinstance(ys, list):
            raise OcrInvalidInputError(f"Invalid strokes data: stroke {i} coordinates must be arrays")
        if len(xs) != len(ys):
            raise OcrInvalidInputError(
                f"Invalid strokes data: stroke {i} x and y arrays must have same length"
            )
        if len(xs) < MIN_POINTS_PER_STROKE:
            raise OcrInvalidInputError(
                f"Invalid strokes data: stroke {i} must have at least {MIN_POINTS_PER_STROKE} points"
            )
        for value in xs + ys:
            if isinstance(value, bool) or not isinstance(value, Real):
                raise OcrInvalidInputError(f"Invalid strokes data: stroke {i} has non-numeric coordinates")


def stroke_stats(strokes_data: Mapping) -> Dict[str, int]:
    """Stroke and point counts of an already validated payload."""
    x = strokes_data["strokes"]["strokes"]["x"]
    return {"stroke_count": len(x), "total_points": sum(len(stroke) for stroke in x)}


class MathPixStrokesClient(MathPixClient):
    """
    Strokes adapter for the MathPix Strokes API.

    The formats latex_styled, data and html are always requested on top
    of the caller's selection.
    """

    kind = AdapterKind.STROKES

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_key: Optional[str] = None,
        delimiter_format: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(app_id=app_id, app_key=app_key, **kwargs)
        self.delimiter_format = delimiter_format or settings.delimiter_format

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/strokes"

    def validate(self, payload: Any, options: Optional[dict] = None) -> None:
        validate_strokes(payload)

    def build_request_body(self, strokes_data: Mapping, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Build the JSON body: stroke data, merged options and the full format set.
        """
        overrides = dict(options or {})
        delimiter_format = overrides.pop("delimiter_format", None) or self.delimiter_format

        defaults = {
            "formats": list(DEFAULT_IMAGE_FORMATS),
            "data_options": dict(DEFAULT_DATA_OPTIONS),
            "metadata": dict(DEFAULT_METADATA),
            "enable_tables_fallback": True,
            "rm_spaces": True,
            **delimiter_options(delimiter_format),
        }
        body = merge_options(defaults, overrides)

        formats = list(body.get("formats") or [])
        for fmt in ALWAYS_INCLUDED_FORMATS:
            if fmt not in formats:
                formats.append(fmt)
        body["formats"] = formats

        body["strokes"] = strokes_data["strokes"]
        return body

    async def submit(self, payload: Mapping, options: Optional[dict] = None) -> dict:
        """
        Recognize handwritten strokes.

        Args:
            payload: Stroke data ({"strokes": {"strokes": {"x": ..., "y": ...}}})
            options: Request options merged over the defaults

        Returns:
            Decoded MathPix response

        Raises:
            OcrAuthError: Missing or rejected credentials
            OcrInvalidInputError: Malformed stroke data
            OcrError: Network or API failure
        """
        self.ensure_credentials()
        self.validate(payload)

        body = self.build_request_body(payload, options)
        stats = stroke_stats(payload)
        request_summary = {
            **stats,
            "formats": body["formats"],
            "options": {k: v for k, v in body.items() if k != "strokes"},
            "headers": self._masked_headers(json_body=True),
        }

        logger.info(
            f"Processing {stats['stroke_count']} strokes "
            f"({stats['total_points']} points) with MathPix"
        )
        start = time.perf_counter()

        try:
            response, duration = await self._request("POST", self.endpoint, json_body=True, json=body)
            result = self._json(response)
            if result.get("error") and not (result.get("latex_styled") or result.get("text") or result.get("data")):
                raise OcrAPIError(
                    f"MathPix could not process the strokes: {result['error']}",
                    status_code=response.status_code,
                    details=json.dumps(result.get("error_info", {})),
                )
        except OcrError as e:
            logger.error(f"MathPix strokes request failed: {e}")
            self._record_debug(
                "processStrokes",
                self.endpoint,
                request_summary,
                timing={"total": time.perf_counter() - start},
                error=e,
            )
            raise

        self._record_debug(
            "processStrokes",
            self.endpoint,
            request_summary,
            response={"status": response.status_code, "confidence": result.get("confidence"), "data": result},
            metadata={
                "confidence": result.get("confidence"),
                "is_handwritten": result.get("is_handwritten", True),
                **stats,
            },
            timing={"api_request": duration, "total": time.perf_counter() - start},
        )

        logger.info(f"MathPix strokes processed in {duration:.2f}s")
        return result
