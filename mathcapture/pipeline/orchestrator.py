"""
Pipeline orchestrator.

One run takes the input of the active capture mode through

    clear -> validate -> consent -> submit -> await/poll -> normalize -> cache & notify

and returns a RecognitionResult. Runs are sequential: a second run while
one is in flight is rejected.
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config.constants import PDF_MAX_POLLS, PDF_POLL_INTERVAL_SECONDS
from config.logging_config import get_logger

from ..capture.camera import CameraCapture, OpenCVCameraDevice
from ..capture.modes import Mode, ModeController
from ..capture.session import SessionStateStore
from ..ocr.base import (
    AdapterKind,
    ClientAdapter,
    ConsentDeclined,
    DebugRecord,
    OcrAPIError,
    OcrCancelledError,
    OcrError,
    OcrTimeoutError,
    OperationCancelled,
    UploadFile,
)
from ..ocr.image_client import MathPixImageClient
from ..ocr.normalizer import normalize
from ..ocr.pdf_client import (
    MathPixPdfClient,
    PdfStatus,
    STATE_COMPLETED,
    TERMINAL_STATES,
    format_error,
    format_states,
    requested_formats,
)
from ..ocr.result import ProcessingTiming, RecognitionResult
from ..ocr.strokes_client import MathPixStrokesClient
from .consent import AutoConsent, ConsentProvider, FileInfo
from .debug_reconciler import DebugReconciler
from .progress import CompletionInfo, Outcome, ProgressReporter, safe_call
from .renderer import NullRenderer, ResultRenderer
from .validation import resolve_kind, validate_input

logger = get_logger(__name__)


class PipelineBusyError(RuntimeError):
    """A run is already in progress"""
    pass


@dataclass
class OrchestratorConfig:
    """Configuration for PipelineOrchestrator."""
    poll_interval: float = PDF_POLL_INTERVAL_SECONDS
    max_polls: int = PDF_MAX_POLLS
    create_previews: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> "OrchestratorConfig":
        return cls(
            poll_interval=settings.pdf_poll_interval,
            max_polls=settings.pdf_max_polls,
        )


class PipelineOrchestrator:
    """
    Runs captures through the MathPix adapters.

    All collaborators are injected; create_default_orchestrator() wires the
    real ones.

    Usage:
        orchestrator = create_default_orchestrator()
        result = await orchestrator.run(Mode.UPLOAD, UploadFile.from_path("eq.png"))
        print(result.latex)
    """

    def __init__(
        self,
        store: SessionStateStore,
        modes: ModeController,
        image_client: ClientAdapter,
        strokes_client: ClientAdapter,
        pdf_client: MathPixPdfClient,
        consent: Optional[ConsentProvider] = None,
        renderer: Optional[ResultRenderer] = None,
        progress: Optional[ProgressReporter] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            store: Session state store (shared with the mode controller)
            modes: Mode controller providing camera frames and canvas strokes
            image_client: Adapter for POST /text
            strokes_client: Adapter for POST /strokes
            pdf_client: Adapter for the PDF endpoints
            consent: Consent provider (defaults to AutoConsent)
            renderer: Result renderer (defaults to NullRenderer)
            progress: Default progress reporter for runs that pass none
            config: Poll cadence and preview settings
        """
        self.store = store
        self.modes = modes
        self.adapters: Dict[AdapterKind, ClientAdapter] = {
            AdapterKind.IMAGE: image_client,
            AdapterKind.STROKES: strokes_client,
            AdapterKind.PDF: pdf_client,
        }
        self.consent = consent or AutoConsent()
        self.renderer = renderer or NullRenderer()
        self.progress = progress or ProgressReporter()
        self.config = config or OrchestratorConfig()

        self.reconciler = DebugReconciler(self.adapters.values())
        for adapter in self.adapters.values():
            self.store.register_component(adapter)

        self._running = False
        self._cancel_requested = False
        self._last_debug_record: Optional[DebugRecord] = None

        logger.info(
            f"PipelineOrchestrator initialized: "
            f"poll_interval={self.config.poll_interval}s, max_polls={self.config.max_polls}"
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_debug_record(self) -> Optional[DebugRecord]:
        return self._last_debug_record

    def cancel(self) -> bool:
        """
        Request cancellation of the running job.

        A PDF poll loop checks the flag once per cycle. An image or strokes
        response that arrives after the request is discarded. Returns False
        when nothing is running.
        """
        if not self._running:
            return False
        self._cancel_requested = True
        logger.info("Cancellation requested")
        return True

    async def run(
        self,
        mode: Mode,
        input: Any = None,
        format_options: Optional[Dict[str, Any]] = None,
        progress: Optional[ProgressReporter] = None,
    ) -> RecognitionResult:
        """
        Process one capture.

        Args:
            mode: Capture mode the input belongs to
            input: UploadFile (UPLOAD/CAMERA) or stroke data (DRAW); when
                   omitted CAMERA captures a frame and DRAW reads the canvas
            format_options: Request options merged over the adapter defaults
            progress: Reporter for this run (defaults to the orchestrator's)

        Returns:
            Normalized recognition result

        Raises:
            PipelineBusyError: Another run is in progress
            OcrInvalidInputError: Input failed validation (nothing was sent)
            OcrAuthError: Credentials missing or rejected
            ConsentDeclined: User declined processing
            OcrCancelledError: cancel() was called while the job was running
            OcrTimeoutError: PDF processing did not finish in time
            OcrError: Network or API failure
        """
        if self._running:
            raise PipelineBusyError("A capture is already being processed")

        self._running = True
        self._cancel_requested = False
        try:
            return await self._run(mode, input, format_options, progress or self.progress)
        finally:
            self._running = False
            self._cancel_requested = False

    async def _run(
        self,
        mode: Mode,
        payload: Any,
        format_options: Optional[Dict[str, Any]],
        reporter: ProgressReporter,
    ) -> RecognitionResult:
        start = time.perf_counter()

        # 1. Clear
        self.store.clear()
        self._last_debug_record = None

        # 2. Validate (raised directly, nothing sent yet)
        if payload is None and mode is Mode.CAMERA:
            payload = await self.modes.capture_frame()
        elif payload is None and mode is Mode.DRAW:
            payload = self.modes.stroke_payload()

        kind = resolve_kind(mode, payload)
        adapter = self.adapters[kind]
        validate_input(mode, adapter, payload, format_options)
        adapter.ensure_credentials()

        # 3. Consent
        info = _file_info(kind, payload)
        if not await self.consent.request_processing_consent(info):
            elapsed = time.perf_counter() - start
            logger.info(f"Processing declined for {info.name}")
            safe_call(
                reporter.complete,
                False,
                CompletionInfo(Outcome.CANCELLED, mode.value, kind, elapsed),
            )
            raise ConsentDeclined(f"Processing of {info.name} was declined")

        self.store.begin_session(mode, payload)
        logger.info(f"Processing {info.name} in {mode.value} mode via {kind.value} adapter")

        # 4-6. Submit, await, normalize
        try:
            safe_call(reporter.next_step, "uploading")
            submit_start = time.perf_counter()
            raw = await adapter.submit(payload, format_options)
            api_request = time.perf_counter() - submit_start
            if self._cancel_requested and kind is not AdapterKind.PDF:
                raise OcrCancelledError(f"Processing of {info.name} cancelled, response discarded")

            if kind is AdapterKind.PDF:
                safe_call(reporter.next_step, "converting")
                raw = await self._await_pdf(raw, reporter, start)
            else:
                confidence = raw.get("confidence") if isinstance(raw, dict) else None
                if isinstance(confidence, (int, float)):
                    safe_call(reporter.update_timing, f"{round(confidence * 100)}% confidence detected")

            safe_call(reporter.next_step, "formatting")
            result = normalize(kind, raw)
            total = time.perf_counter() - start
            result = result.with_timing(ProcessingTiming.from_durations(total, api_request))

        except OperationCancelled as e:
            elapsed = time.perf_counter() - start
            logger.info(f"Processing cancelled after {elapsed:.2f}s")
            safe_call(
                reporter.complete,
                False,
                CompletionInfo(Outcome.CANCELLED, mode.value, kind, elapsed, error=e),
            )
            self._refresh_debug()
            raise

        except asyncio.CancelledError:
            elapsed = time.perf_counter() - start
            logger.info(f"Processing task cancelled after {elapsed:.2f}s")
            safe_call(
                reporter.complete,
                False,
                CompletionInfo(Outcome.CANCELLED, mode.value, kind, elapsed),
            )
            self._refresh_debug()
            self.store.clear()
            raise

        except Exception as e:
            elapsed = time.perf_counter() - start
            e.mode = mode.value
            e.elapsed_seconds = elapsed
            logger.error(f"Processing failed in {mode.value} mode after {elapsed:.2f}s: {e}")
            safe_call(reporter.handle_error, e, "during API processing")
            safe_call(
                reporter.complete,
                False,
                CompletionInfo(Outcome.FAILED, mode.value, kind, elapsed, error=e),
            )
            self._refresh_debug()
            raise

        # 7. Cache & notify
        self.store.set_result(result)
        original = self._create_preview(kind, payload)
        safe_call(self.renderer.render, result, original)
        safe_call(
            reporter.complete,
            True,
            CompletionInfo(Outcome.SUCCESS, mode.value, kind, result.timing.total, result=result),
        )
        self._refresh_debug()

        logger.info(
            f"Processing completed in {result.timing.total:.2f}s "
            f"(api {result.timing.api_request:.2f}s, formats: {', '.join(result.available_formats())})"
        )
        return result

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def _await_pdf(
        self,
        upload: Dict[str, Any],
        reporter: ProgressReporter,
        start: float,
    ) -> Dict[str, Any]:
        """
        Poll a PDF conversion to completion and download the finished formats.

        Returns:
            Conversion summary handed to the normalizer

        Raises:
            OcrCancelledError: cancel() was called
            OcrTimeoutError: max_polls status checks without completion
            OcrAPIError: Every requested format failed
        """
        pdf_client: MathPixPdfClient = self.adapters[AdapterKind.PDF]
        pdf_id = upload["pdf_id"]
        formats: List[str] = list(upload.get("requested_formats") or requested_formats())

        status: Optional[PdfStatus] = None
        summary: Optional[Dict[str, Any]] = None
        polls = 0
        try:
            while True:
                if self._cancel_requested:
                    raise OcrCancelledError(f"PDF processing cancelled after {polls} status checks")

                status = await pdf_client.check_status(pdf_id)
                polls += 1
                states = format_states(status, formats)
                safe_call(reporter.update_timing, _status_message(status.status, time.perf_counter() - start))

                if all(state in TERMINAL_STATES for state in states.values()):
                    break
                if polls >= self.config.max_polls:
                    raise OcrTimeoutError(
                        f"PDF processing timed out after {polls} status checks "
                        f"({polls * self.config.poll_interval:.0f}s)"
                    )
                await asyncio.sleep(self.config.poll_interval)

            downloads: Dict[str, Any] = {}
            completed: List[str] = []
            failed: List[str] = []
            errors: Dict[str, str] = {}

            for fmt in formats:
                if states[fmt] != STATE_COMPLETED:
                    failed.append(fmt)
                    errors[fmt] = format_error(status, fmt)
                    continue
                try:
                    downloads[fmt] = await pdf_client.download(pdf_id, fmt)
                    completed.append(fmt)
                except OcrError as e:
                    logger.warning(f"Download of {fmt} for {pdf_id} failed: {e}")
                    failed.append(fmt)
                    errors[fmt] = str(e)

            summary = {
                "pdf_id": pdf_id,
                "status": status.status,
                "completed": completed,
                "failed": failed,
                "errors": errors,
                "downloads": downloads,
                "status_response": status.raw,
                "polls": polls,
            }

            if not completed:
                raise OcrAPIError(
                    "PDF processing failed: "
                    + "; ".join(f"{fmt}: {message}" for fmt, message in errors.items())
                )

        except (OcrError, OperationCancelled) as e:
            pdf_client.record_conversion(
                pdf_id,
                summary or {
                    "status": status.status if status else None,
                    "status_response": status.raw if status else None,
                    "polls": polls,
                },
                timing={"total": time.perf_counter() - start},
                error=e,
            )
            raise

        pdf_client.record_conversion(pdf_id, summary, timing={"total": time.perf_counter() - start})
        if failed:
            logger.warning(f"PDF {pdf_id} partially converted: {len(completed)} completed, {len(failed)} failed")
        return summary

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create_preview(self, kind: AdapterKind, payload: Any) -> Optional[str]:
        """Write the original input to a tracked preview file; returns its path."""
        if not self.config.create_previews:
            return None
        try:
            if isinstance(payload, UploadFile):
                handle = self.modes.create_preview(payload.content, payload.suffix)
            elif kind is AdapterKind.STROKES:
                snapshot = self.modes.canvas_snapshot()
                if snapshot is None:
                    return None
                handle = self.modes.create_preview(snapshot, ".png")
            else:
                return None
        except OSError as e:
            logger.warning(f"Could not create preview: {e}")
            return None
        return str(handle.path)

    def _refresh_debug(self) -> None:
        self._last_debug_record = self.reconciler.get_most_recent()


def _file_info(kind: AdapterKind, payload: Any) -> FileInfo:
    if isinstance(payload, UploadFile):
        return FileInfo(name=payload.name, size=payload.size, type=payload.content_type)
    size = len(json.dumps(payload, default=str))
    return FileInfo(name="handwritten strokes", size=size, type="application/json")


def _status_message(status: str, elapsed: float) -> str:
    minutes, seconds = divmod(int(elapsed), 60)
    elapsed_text = f"{minutes}:{seconds:02d}"
    if status in ("queued", "received"):
        return f"Document queued for processing... ({elapsed_text})"
    if status in ("processing", "split", "loaded"):
        return f"Converting document to formats... ({elapsed_text})"
    return f"Processing status: {status} ({elapsed_text})"


def create_default_orchestrator(
    settings: Any = None,
    consent: Optional[ConsentProvider] = None,
    renderer: Optional[ResultRenderer] = None,
    progress: Optional[ProgressReporter] = None,
) -> PipelineOrchestrator:
    """
    Wire the real adapters, store and mode controller from settings.

    Args:
        settings: Settings instance (defaults to config.settings.settings)
    """
    if settings is None:
        from config.settings import settings

    store = SessionStateStore()
    modes = ModeController(
        store,
        camera_factory=lambda: CameraCapture(OpenCVCameraDevice(settings.camera_device_index)),
    )
    common = {
        "app_id": settings.mathpix_app_id or "",
        "app_key": settings.mathpix_app_key or "",
        "api_base": settings.mathpix_api_base,
        "timeout": settings.request_timeout,
    }

    return PipelineOrchestrator(
        store=store,
        modes=modes,
        image_client=MathPixImageClient(
            delimiter_format=settings.delimiter_format,
            include_line_data=settings.include_line_data,
            max_size_bytes=settings.max_image_size_bytes,
            **common,
        ),
        strokes_client=MathPixStrokesClient(delimiter_format=settings.delimiter_format, **common),
        pdf_client=MathPixPdfClient(
            upload_timeout=settings.pdf_upload_timeout,
            status_timeout=settings.status_timeout,
            max_size_bytes=settings.max_pdf_size_bytes,
            **common,
        ),
        consent=consent,
        renderer=renderer,
        progress=progress,
        config=OrchestratorConfig.from_settings(settings),
    )
