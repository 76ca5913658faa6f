"""
Unit tests for mathcapture.capture.canvas module.
"""

import io

import pytest
from PIL import Image

from mathcapture.capture.canvas import CanvasNotListeningError, StrokesCanvas
from mathcapture.ocr.strokes_client import validate_strokes


@pytest.fixture
def canvas():
    canvas = StrokesCanvas(width=100, height=50)
    canvas.attach()
    return canvas


class TestDrawing:
    """Tests for stroke recording."""

    def test_records_stroke(self, canvas):
        canvas.begin_stroke(1, 2)
        canvas.add_point(3, 4)
        canvas.add_point(5, 6)
        canvas.end_stroke()

        assert canvas.strokes == [{"x": [1, 3, 5], "y": [2, 4, 6]}]
        assert canvas.total_points == 3

    def test_single_point_stroke_discarded(self, canvas):
        """Test a tap without movement does not become a stroke."""
        canvas.begin_stroke(1, 1)
        canvas.end_stroke()
        assert canvas.has_strokes() is False

    def test_input_requires_attach(self):
        canvas = StrokesCanvas()
        with pytest.raises(CanvasNotListeningError):
            canvas.begin_stroke(0, 0)

    def test_add_point_without_stroke_ignored(self, canvas):
        canvas.add_point(1, 1)
        assert canvas.stroke_count == 0

    def test_detach_finishes_current_stroke(self, canvas):
        canvas.begin_stroke(0, 0)
        canvas.add_point(1, 1)
        canvas.detach()

        assert canvas.stroke_count == 1
        assert canvas.is_listening is False
        assert canvas.is_drawing is False

    def test_undo_and_clear(self, canvas):
        canvas.add_stroke([(0, 0), (1, 1)])
        canvas.add_stroke([(2, 2), (3, 3)])

        assert canvas.undo() is True
        assert canvas.stroke_count == 1

        canvas.clear()
        assert canvas.undo() is False


class TestOutput:
    """Tests for API payload and PNG rendering."""

    def test_format_for_api_is_valid(self, canvas):
        """Test the payload passes strokes validation unchanged."""
        canvas.add_stroke([(10, 5), (20, 6), (30, 7)])
        canvas.add_stroke([(15, 40), (25, 41)])

        payload = canvas.format_for_api()

        assert payload["strokes"]["strokes"]["x"] == [[10, 20, 30], [15, 25]]
        validate_strokes(payload)

    def test_payload_is_a_copy(self, canvas):
        canvas.add_stroke([(0, 0), (1, 1)])
        payload = canvas.format_for_api()
        payload["strokes"]["strokes"]["x"][0].append(99)
        assert canvas.strokes[0]["x"] == [0, 1]

    def test_render_png(self, canvas):
        canvas.add_stroke([(0, 0), (99, 49)])

        image = Image.open(io.BytesIO(canvas.render_png()))

        assert image.format == "PNG"
        assert image.size == (100, 50)
        assert image.getpixel((50, 25)) != (255, 255, 255)
