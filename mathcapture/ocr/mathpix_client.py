#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
MathPix Client - Shared HTTP layer for the MathPix v3 API

Credential handling, request headers, status-code mapping and debug capture
shared by the image, strokes and PDF adapters.

API Documentation: https://docs.mathpix.com/

Configuration:
    Environment variables / .env (server-level default):
        MATHPIX_APP_ID=your_app_id
        MATHPIX_APP_KEY=your_app_key

    Or per-instance:
        client = MathPixImageClient(app_id="...", app_key="...")
"""

import copy
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from config.constants import DEFAULT_DELIMITER_FORMAT, DELIMITERS
from config.settings import settings
from .base import (
    AdapterKind,
    DebugRecord,
    OcrAPIError,
    OcrAuthError,
    OcrConnectionError,
    OcrQuotaError,
)

from config.logging_config import get_logger
logger = get_logger(__name__)


def mask_api_key(key: Optional[str]) -> str:
    """
    Mask an API key for logs and debug records.

    Returns:
        "****" for missing/short keys, otherwise asterisks plus the last 4 chars
    """
    if not key or len(key) < 8:
        return "****"
    return "*" * (len(key) - 4) + key[-4:]


def merge_options(defaults: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge caller options over a default set.

    The caller wins per key; nested dicts are merged recursively so that
    e.g. overriding one data_options flag keeps the others.
    """
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_options(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def delimiter_options(delimiter_format: str) -> Dict[str, list]:
    """math_inline_delimiters / math_display_delimiters for "latex" or "markdown"."""
    delimiters = DELIMITERS.get(delimiter_format)
    if delimiters is None:
        logger.warning(f"Unknown delimiter format '{delimiter_format}', using {DEFAULT_DELIMITER_FORMAT}")
        delimiters = DELIMITERS[DEFAULT_DELIMITER_FORMAT]
    return {
        "math_inline_delimiters": list(delimiters["inline"]),
        "math_display_delimiters": list(delimiters["display"]),
    }


class MathPixClient:
    """
    Base class for MathPix adapters.

    Requests are single-shot: a failed submission is surfaced to the caller,
    never silently resent.

    Usage:
        # Using .env / environment
        client = MathPixImageClient()

        # Using explicit keys and a test transport
        client = MathPixImageClient(
            app_id="...", app_key="...",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
    """

    kind: AdapterKind = AdapterKind.IMAGE

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize MathPix client.

        Args:
            app_id: MathPix App ID (or from MATHPIX_APP_ID)
            app_key: MathPix App Key (or from MATHPIX_APP_KEY)
            api_base: API base URL (defaults to the EU endpoint)
            timeout: Request timeout in seconds
            http_client: Shared AsyncClient; when omitted a client is opened per request
        """
        self.app_id = app_id if app_id is not None else settings.mathpix_app_id
        self.app_key = app_key if app_key is not None else settings.mathpix_app_key
        self.api_base = (api_base or settings.mathpix_api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._http_client = http_client
        self._last_debug: Optional[DebugRecord] = None

        logger.debug(
            f"{self.__class__.__name__} initialized "
            f"(base={self.api_base}, key={mask_api_key(self.app_key)})"
        )

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def has_credentials(self) -> bool:
        return bool(self.app_id and self.app_key)

    def ensure_credentials(self) -> None:
        """
        Raises:
            OcrAuthError: If app_id or app_key is missing
        """
        if not self.has_credentials():
            raise OcrAuthError(
                "MathPix API credentials not configured. Provide them via:\n"
                "  1. Environment variables / .env: MATHPIX_APP_ID, MATHPIX_APP_KEY\n"
                "  2. Constructor: app_id='...', app_key='...'"
            )

    def set_credentials(self, app_id: str, app_key: str) -> None:
        self.app_id = app_id
        self.app_key = app_key
        logger.info(f"MathPix credentials updated for {self.kind.value} client (key={mask_api_key(app_key)})")

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"app_id": self.app_id or "", "app_key": self.app_key or ""}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _masked_headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = self._headers(json_body)
        headers["app_key"] = mask_api_key(self.app_key)
        return headers

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        timeout: Optional[float] = None,
        json_body: bool = False,
        **kwargs,
    ) -> Tuple[httpx.Response, float]:
        """
        Send one request and map failures onto the OCR error taxonomy.

        Returns:
            (response, duration_seconds) for 2xx responses

        Raises:
            OcrAuthError: 401/403
            OcrQuotaError: 429
            OcrAPIError: Any other non-2xx status
            OcrConnectionError: Transport failure or timeout
        """
        timeout = timeout if timeout is not None else self.timeout
        headers = self._headers(json_body)
        start = time.perf_counter()

        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, headers=headers, timeout=timeout, **kwargs
                )
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise OcrConnectionError(f"MathPix request timed out after {timeout}s: {e}")
        except httpx.TransportError as e:
            raise OcrConnectionError(f"Cannot reach MathPix API: {e}")

        duration = time.perf_counter() - start
        logger.debug(f"{method} {url} -> {response.status_code} ({duration:.2f}s)")

        if response.is_success:
            return response, duration

        message = self._error_message(response)
        if response.status_code in (401, 403):
            raise OcrAuthError(f"MathPix rejected the credentials ({response.status_code}): {message}")
        if response.status_code == 429:
            raise OcrQuotaError(
                "MathPix API rate limit exceeded. Please wait or upgrade your plan.",
                status_code=429,
                details=message,
            )
        if response.status_code in (400, 422):
            raise OcrAPIError(f"Invalid request: {message}", status_code=response.status_code, details=message)
        raise OcrAPIError(
            f"MathPix API error: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
            details=message,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Server-provided error text, truncated."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, str) and error:
                return error
            info = body.get("error_info")
            if isinstance(info, dict) and info.get("message"):
                return str(info["message"])
        return response.text[:200]

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        """
        Raises:
            OcrAPIError: If the body is not a JSON object
        """
        try:
            body = response.json()
        except ValueError as e:
            raise OcrAPIError(f"Invalid JSON in MathPix response: {e}", status_code=response.status_code)
        if not isinstance(body, dict):
            raise OcrAPIError("Unexpected MathPix response shape", status_code=response.status_code)
        return body

    # ------------------------------------------------------------------
    # Debug capture
    # ------------------------------------------------------------------

    def _record_debug(
        self,
        operation: str,
        endpoint: str,
        request: Dict[str, Any],
        response: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        timing: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> DebugRecord:
        """Replace the retained debug record with a new one."""
        record = DebugRecord(
            source=self.kind,
            operation=operation,
            endpoint=endpoint,
            request=request,
            response=response,
            metadata=metadata or {},
            timing=timing or {},
            error=(
                {"type": type(error).__name__, "message": str(error)}
                if error is not None else None
            ),
        )
        self._last_debug = record
        return record

    def get_last_debug_data(self) -> Optional[DebugRecord]:
        return self._last_debug

    def reset(self) -> None:
        self._last_debug = None

    async def health_check(self) -> bool:
        """Check MathPix reachability with the configured credentials."""
        if not self.has_credentials():
            return False
        try:
            await self._request("GET", f"{self.api_base}/ocr-usage", timeout=10)
            return True
        except (OcrConnectionError, OcrAPIError, OcrAuthError) as e:
            logger.warning(f"MathPix health check failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base={self.api_base}, key={mask_api_key(self.app_key)})"
