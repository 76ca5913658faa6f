"""
Unit tests for progress reporting, consent providers, renderers and
input routing.
"""

import io

import pytest

from mathcapture.capture.modes import Mode
from mathcapture.ocr.base import AdapterKind, OcrInvalidInputError, UploadFile
from mathcapture.ocr.normalizer import normalize
from mathcapture.pipeline.consent import AutoConsent, CallbackConsent, FileInfo
from mathcapture.pipeline.progress import CompletionInfo, LoggingProgressReporter, Outcome, safe_call
from mathcapture.pipeline.renderer import ConsoleRenderer
from mathcapture.pipeline.validation import resolve_kind, validate_input


class TestProgress:
    """Tests for reporters and safe_call()."""

    def test_safe_call_swallows(self):
        def broken(*args):
            raise ValueError("bad callback")

        safe_call(broken, 1, 2)

    def test_safe_call_passes_arguments(self):
        seen = []
        safe_call(lambda *args, **kwargs: seen.append((args, kwargs)), "step", key="v")
        assert seen == [(("step",), {"key": "v"})]

    def test_completion_info_to_dict(self):
        info = CompletionInfo(Outcome.FAILED, "upload", AdapterKind.PDF, 1.23456, error=RuntimeError("x"))
        assert info.to_dict() == {
            "outcome": "failed",
            "mode": "upload",
            "kind": "pdf",
            "elapsed_seconds": 1.235,
            "error": "x",
        }

    def test_logging_reporter_logs(self, caplog):
        reporter = LoggingProgressReporter()
        with caplog.at_level("INFO"):
            reporter.next_step("uploading")
            reporter.complete(True, CompletionInfo(Outcome.SUCCESS, "draw", elapsed_seconds=0.5))
        assert "Step: uploading" in caplog.text
        assert "Processing success (draw, 0.50s)" in caplog.text


class TestConsent:
    """Tests for consent providers."""

    @pytest.mark.asyncio
    async def test_auto_consent_counts(self):
        consent = AutoConsent()
        assert await consent.request_processing_consent(FileInfo("a.png", 10, "image/png")) is True
        assert consent.files_processed == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer,expected", [(True, True), (False, False), ("y", True), ("", False)])
    async def test_sync_callback(self, answer, expected):
        consent = CallbackConsent(lambda info: answer)
        assert await consent.request_processing_consent(FileInfo("a.png", 10, "image/png")) is expected

    @pytest.mark.asyncio
    async def test_async_callback(self):
        async def decline(info):
            return False

        consent = CallbackConsent(decline)
        assert await consent.request_processing_consent(FileInfo("a.pdf", 10, "application/pdf")) is False


class TestRouting:
    """Tests for resolve_kind() and validate_input()."""

    def test_upload_routes_by_type(self, png_upload, pdf_upload):
        assert resolve_kind(Mode.UPLOAD, png_upload) is AdapterKind.IMAGE
        assert resolve_kind(Mode.UPLOAD, pdf_upload) is AdapterKind.PDF

    def test_draw_and_camera(self, png_upload):
        assert resolve_kind(Mode.DRAW, {}) is AdapterKind.STROKES
        assert resolve_kind(Mode.CAMERA, png_upload) is AdapterKind.IMAGE

    def test_upload_without_file(self):
        with pytest.raises(OcrInvalidInputError):
            resolve_kind(Mode.UPLOAD, None)

    def test_draw_none_rejected(self, strokes_client):
        with pytest.raises(OcrInvalidInputError, match="draw something"):
            validate_input(Mode.DRAW, strokes_client, None)

    def test_adapter_validation_applied(self, image_client):
        with pytest.raises(OcrInvalidInputError, match="Unsupported image type"):
            validate_input(Mode.UPLOAD, image_client, UploadFile("x.bmp", b"BM", "image/bmp"))


class TestConsoleRenderer:
    """Tests for ConsoleRenderer."""

    def test_prints_requested_format(self, image_response):
        stream = io.StringIO()
        ConsoleRenderer("asciimath", stream).render(normalize(AdapterKind.IMAGE, image_response), "/tmp/eq.png")

        output = stream.getvalue()
        assert "Source: /tmp/eq.png" in output
        assert "x^(2)+1" in output
        assert "confidence=93%" in output

    def test_missing_format(self, strokes_response):
        stream = io.StringIO()
        ConsoleRenderer("table-tsv", stream).render(normalize(AdapterKind.STROKES, strokes_response))
        assert "no table-tsv output" in stream.getvalue()
