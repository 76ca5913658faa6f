"""
Tests for the quick_capture command line entry point.
"""

import json
from unittest.mock import patch

import pytest

import quick_capture


@pytest.fixture
def cli_orchestrator(orchestrator):
    with patch.object(quick_capture, "create_default_orchestrator", return_value=orchestrator):
        yield orchestrator


class TestParser:
    """Tests for build_parser()."""

    def test_defaults(self):
        args = quick_capture.build_parser().parse_args(["formula.png"])
        assert args.mode == "upload"
        assert args.output_format == "latex"
        assert args.confirm is False

    def test_rejects_unknown_mode(self):
        with pytest.raises(SystemExit):
            quick_capture.build_parser().parse_args(["--mode", "scan"])


class TestLoadStrokes:
    """Tests for strokes file loading."""

    def test_api_shape(self, tmp_path, strokes_payload):
        path = tmp_path / "strokes.json"
        path.write_text(json.dumps(strokes_payload))
        payload, strokes = quick_capture._load_strokes(path)
        assert payload == strokes_payload
        assert strokes is None

    def test_point_lists(self, tmp_path):
        path = tmp_path / "strokes.json"
        path.write_text(json.dumps([[[0, 0], [5, 5]]]))
        payload, strokes = quick_capture._load_strokes(path)
        assert payload is None
        assert strokes == [[[0, 0], [5, 5]]]


class TestCapture:
    """Tests for capture() with a stubbed orchestrator."""

    @pytest.mark.asyncio
    async def test_upload_image(self, cli_orchestrator, stub, tmp_path, image_response):
        stub.add("POST", "/text", (200, image_response))
        image = tmp_path / "eq.png"
        image.write_bytes(b"\x89PNG\r\n\x1a\nfake-image")
        args = quick_capture.build_parser().parse_args([str(image)])

        assert await quick_capture.capture(args) == 0
        assert stub.count("POST", "/text") == 1

    @pytest.mark.asyncio
    async def test_draw_point_lists(self, cli_orchestrator, stub, tmp_path, strokes_response):
        """Test point lists are drawn onto the canvas and submitted as strokes."""
        stub.add("POST", "/strokes", (200, strokes_response))
        path = tmp_path / "strokes.json"
        path.write_text(json.dumps([[[0, 0], [5, 5]], [[10, 10], [12, 14], [15, 20]]]))
        args = quick_capture.build_parser().parse_args([str(path), "--mode", "draw"])

        assert await quick_capture.capture(args) == 0
        sent = json.loads(stub.calls[0].content)
        assert sent["strokes"]["strokes"]["x"] == [[0, 5], [10, 12, 15]]

    @pytest.mark.asyncio
    async def test_missing_input(self, cli_orchestrator, stub):
        args = quick_capture.build_parser().parse_args([])
        assert await quick_capture.capture(args) == 2
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_api_failure_exit_code(self, cli_orchestrator, stub, tmp_path, capsys):
        stub.add("POST", "/text", (500, {"error": "down"}))
        image = tmp_path / "eq.png"
        image.write_bytes(b"\x89PNG\r\n\x1a\nfake-image")
        args = quick_capture.build_parser().parse_args([str(image)])

        assert await quick_capture.capture(args) == 1
        assert "Error" in capsys.readouterr().out
