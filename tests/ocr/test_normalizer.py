"""
Unit tests for mathcapture.ocr.normalizer module.

Tests field precedence, table extraction, defaults for malformed input
and the PDF conversion summary shape.
"""

import json

import pytest

from mathcapture.ocr.base import AdapterKind
from mathcapture.ocr.normalizer import (
    extract_data_value,
    latex_to_markdown,
    normalize,
    tsv_to_markdown,
    to_pretty_json,
)
from mathcapture.ocr.result import ProcessingTiming


class TestLatexPrecedence:
    """Tests for which field wins the latex slot."""

    def test_text_wins_over_latex_styled(self, image_response):
        """Test that top-level text beats latex_styled and data[]."""
        result = normalize(AdapterKind.IMAGE, image_response)
        assert result.latex == "\\( x^{2}+1 \\)"

    def test_latex_styled_used_without_text(self):
        """Test latex_styled is the second choice."""
        result = normalize(AdapterKind.IMAGE, {
            "latex_styled": "a+b",
            "data": [{"type": "latex", "value": "c+d"}],
        })
        assert result.latex == "a+b"

    def test_data_latex_backfills_only_when_empty(self):
        """Test data[] latex entry is used only when nothing else is set."""
        result = normalize(AdapterKind.IMAGE, {"data": [{"type": "latex", "value": "c+d"}]})
        assert result.latex == "c+d"

    def test_data_latex_never_overrides_text(self):
        """Test data[] latex does not replace an existing text value."""
        result = normalize(AdapterKind.IMAGE, {
            "text": "from text",
            "data": [{"type": "latex", "value": "from data"}],
        })
        assert result.latex == "from text"


class TestFormatExtraction:
    """Tests for mathml, asciimath, html, markdown and tables."""

    def test_mathml_and_asciimath_from_data(self, image_response):
        """Test mathml/asciimath are pulled from data[] entries."""
        result = normalize(AdapterKind.IMAGE, image_response)
        assert result.mathml.startswith("<math>")
        assert result.asciimath == "x^(2)+1"

    def test_top_level_mathml_preferred(self):
        """Test a top-level mathml field beats data[]."""
        result = normalize(AdapterKind.IMAGE, {
            "mathml": "<math>top</math>",
            "data": [{"type": "mathml", "value": "<math>data</math>"}],
        })
        assert result.mathml == "<math>top</math>"

    def test_html_falls_back_to_data(self):
        """Test html comes from data[] when absent at top level."""
        result = normalize(AdapterKind.IMAGE, {"data": [{"type": "html", "value": "<p>x</p>"}]})
        assert result.html == "<p>x</p>"

    def test_markdown_converts_delimiters(self, image_response):
        """Test inline/display LaTeX delimiters become $ / $$."""
        result = normalize(AdapterKind.IMAGE, image_response)
        assert result.markdown == "$ x^{2}+1 $"

    def test_table_detection(self, image_response):
        """Test TSV and <table> html flag a table and produce table formats."""
        result = normalize(AdapterKind.IMAGE, image_response)
        assert result.contains_table is True
        assert result.tsv == "a\tb\n1\t2"
        assert result.table_markdown.splitlines()[0] == "| a | b |"
        assert result.table_html == "<table><tr><td>1</td></tr></table>"

    def test_no_table(self, strokes_response):
        """Test plain formulas are not flagged as tables."""
        result = normalize(AdapterKind.STROKES, strokes_response)
        assert result.contains_table is False
        assert result.table_markdown == ""


class TestMetadata:
    """Tests for confidence and content type flags."""

    def test_confidence_clamped(self):
        """Test confidence is clamped to [0, 1]."""
        assert normalize(AdapterKind.IMAGE, {"confidence": 1.7}).confidence == 1.0
        assert normalize(AdapterKind.IMAGE, {"confidence": -0.2}).confidence == 0.0

    def test_confidence_defaults_to_zero(self):
        """Test missing or non-numeric confidence becomes 0."""
        assert normalize(AdapterKind.IMAGE, {}).confidence == 0.0
        assert normalize(AdapterKind.IMAGE, {"confidence": "high"}).confidence == 0.0

    def test_strokes_default_handwritten(self, strokes_response):
        """Test strokes results are handwritten unless stated otherwise."""
        assert normalize(AdapterKind.STROKES, strokes_response).is_handwritten is True
        stated = dict(strokes_response, is_handwritten=False)
        assert normalize(AdapterKind.STROKES, stated).is_handwritten is False

    def test_image_default_not_handwritten(self):
        """Test image results are not handwritten by default."""
        assert normalize(AdapterKind.IMAGE, {"text": "x"}).is_handwritten is False


class TestMalformedInput:
    """Tests that normalize never raises."""

    @pytest.mark.parametrize("raw", [None, "not a dict", 42, [], {"data": "oops"}, {"data": [None, 3]}])
    def test_degrades_to_defaults(self, raw):
        """Test malformed responses give an empty result, not an exception."""
        result = normalize(AdapterKind.IMAGE, raw)
        assert result.latex == ""
        assert result.confidence == 0.0
        assert isinstance(result.raw_json, str)

    def test_raw_json_is_pretty_printed(self, image_response):
        """Test raw_json is indented JSON of the whole response."""
        result = normalize(AdapterKind.IMAGE, image_response)
        assert json.loads(result.raw_json) == image_response
        assert "\n  " in result.raw_json


class TestPdfSummary:
    """Tests for the PDF conversion summary."""

    def test_pdf_fields(self):
        """Test markdown comes from the mmd download and format lists are kept."""
        summary = {
            "pdf_id": "pdf-1",
            "status": "completed",
            "completed": ["mmd", "html"],
            "failed": ["docx"],
            "errors": {"docx": "conversion failed"},
            "downloads": {"mmd": "# Title\n$x$", "html": "<h1>Title</h1>", "latex": b"PK\x03\x04"},
        }
        result = normalize(AdapterKind.PDF, summary)
        assert result.pdf_id == "pdf-1"
        assert result.markdown == "# Title\n$x$"
        assert result.html == "<h1>Title</h1>"
        assert result.completed_formats == ("mmd", "html")
        assert result.failed_formats == ("docx",)
        assert result.format_errors == {"docx": "conversion failed"}
        assert result.is_partial is True
        assert "<4 bytes>" in result.raw_json


class TestRecognitionResult:
    """Tests for RecognitionResult helpers."""

    def test_with_timing_returns_copy(self, image_response):
        """Test with_timing leaves the original untouched."""
        result = normalize(AdapterKind.IMAGE, image_response)
        timed = result.with_timing(ProcessingTiming.from_durations(total=2.0, api_request=1.5))
        assert result.timing.total == 0.0
        assert timed.timing.processing == pytest.approx(0.5)
        assert timed.latex == result.latex

    def test_get_format(self, image_response):
        """Test format lookup by display name."""
        result = normalize(AdapterKind.IMAGE, image_response)
        assert result.get_format("asciimath") == "x^(2)+1"
        assert result.get_format("unknown") == ""
        assert "latex" in result.available_formats()


class TestHelpers:
    """Tests for module-level helpers."""

    def test_extract_data_value_missing(self):
        assert extract_data_value([{"type": "latex", "value": "x"}], "mathml") == ""
        assert extract_data_value(None, "latex") == ""

    def test_latex_to_markdown_display(self):
        assert latex_to_markdown("\\[ a \\]") == "$$ a $$"

    def test_tsv_to_markdown(self):
        table = tsv_to_markdown("h1\th2\nv1\tv2")
        assert table.splitlines() == ["| h1 | h2 |", "| --- | --- |", "| v1 | v2 |"]

    def test_to_pretty_json_bytes(self):
        assert json.loads(to_pretty_json({"blob": b"abc"})) == {"blob": "<3 bytes>"}


class TestImmutability:
    """Tests that a normalized result cannot be changed after creation."""

    def _pdf_result(self):
        return normalize(AdapterKind.PDF, {
            "pdf_id": "pdf-1",
            "completed": ["mmd"],
            "failed": ["docx"],
            "errors": {"docx": "conversion failed"},
            "downloads": {"mmd": "# Title"},
        })

    def test_mappings_are_read_only(self):
        result = self._pdf_result()

        with pytest.raises(TypeError):
            result.downloads["mmd"] = "edited"
        with pytest.raises(TypeError):
            result.format_errors["docx"] = "edited"

        assert result.downloads["mmd"] == "# Title"

    def test_source_dict_changes_do_not_leak(self):
        downloads = {"mmd": "# Title"}
        result = normalize(AdapterKind.PDF, {"completed": ["mmd"], "downloads": downloads})

        downloads["mmd"] = "edited"

        assert result.markdown == "# Title"
        assert result.downloads["mmd"] == "# Title"

    def test_hashable(self, image_response):
        result = normalize(AdapterKind.IMAGE, image_response)
        assert hash(result) == hash(normalize(AdapterKind.IMAGE, image_response))
        assert hash(self._pdf_result()) is not None

    def test_with_timing_keeps_read_only(self):
        timed = self._pdf_result().with_timing(ProcessingTiming.from_durations(total=1.0, api_request=0.5))
        with pytest.raises(TypeError):
            timed.downloads["mmd"] = "edited"
