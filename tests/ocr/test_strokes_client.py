"""
Unit tests for mathcapture.ocr.strokes_client module.

Tests stroke validation rules and the POST /strokes body.
"""

import json

import pytest

from mathcapture.ocr.base import AdapterKind, OcrAPIError, OcrInvalidInputError
from mathcapture.ocr.strokes_client import stroke_stats, validate_strokes


def _strokes(x, y):
    return {"strokes": {"strokes": {"x": x, "y": y}}}


class TestValidateStrokes:
    """Tests for validate_strokes()."""

    def test_valid_payload(self, strokes_payload):
        """Test a well-formed payload passes."""
        validate_strokes(strokes_payload)

    @pytest.mark.parametrize("payload,message", [
        (None, "must be an object"),
        ({}, "missing strokes container"),
        ({"strokes": {}}, "missing nested strokes object"),
        (_strokes("1,2", [[1, 2]]), "must be arrays"),
        (_strokes([[1, 2]], [[1, 2], [3, 4]]), "same length"),
        (_strokes([], []), "no strokes provided"),
        (_strokes([[1, 2, 3]], [[1, 2]]), "stroke 0 x and y arrays must have same length"),
        (_strokes([[1, 2], [5]], [[1, 2], [5]]), "stroke 1 must have at least 2 points"),
        (_strokes([[1, "a"]], [[1, 2]]), "non-numeric"),
        (_strokes([[1, True]], [[1, 2]]), "non-numeric"),
    ])
    def test_invalid_payloads(self, payload, message):
        """Test each structural rule rejects with a descriptive error."""
        with pytest.raises(OcrInvalidInputError, match=message):
            validate_strokes(payload)

    def test_stroke_stats(self, strokes_payload):
        assert stroke_stats(strokes_payload) == {"stroke_count": 2, "total_points": 5}


class TestRequestBody:
    """Tests for build_request_body()."""

    def test_always_included_formats_added(self, strokes_client, strokes_payload):
        """Test latex_styled, data and html are added to the caller's selection."""
        body = strokes_client.build_request_body(strokes_payload, {"formats": ["text"]})
        assert body["formats"][0] == "text"
        assert set(body["formats"]) == {"text", "latex_styled", "data", "html"}

    def test_no_duplicate_formats(self, strokes_client, strokes_payload):
        body = strokes_client.build_request_body(strokes_payload, {"formats": ["html", "data"]})
        assert sorted(body["formats"]) == ["data", "html", "latex_styled"]

    def test_strokes_nested_in_body(self, strokes_client, strokes_payload):
        """Test the wire body keeps the strokes.strokes.x/y nesting."""
        body = strokes_client.build_request_body(strokes_payload)
        assert body["strokes"]["strokes"]["x"] == [[10, 20, 30], [15, 25]]
        assert body["metadata"] == {"improve_mathpix": False}


class TestSubmit:
    """Tests for POST /strokes."""

    @pytest.mark.asyncio
    async def test_submit_success(self, strokes_client, stub, strokes_payload, strokes_response):
        """Test JSON submission and debug capture."""
        stub.add("POST", "/strokes", (200, strokes_response))

        body = await strokes_client.submit(strokes_payload)

        assert body == strokes_response
        request = stub.calls[0]
        assert request.headers["content-type"] == "application/json"
        sent = json.loads(request.content)
        assert sent["strokes"]["strokes"]["y"] == [[5, 6, 7], [40, 41]]

        record = strokes_client.get_last_debug_data()
        assert record.source is AdapterKind.STROKES
        assert record.operation == "processStrokes"
        assert record.request["stroke_count"] == 2
        assert record.request["total_points"] == 5
        assert "strokes" not in record.request["options"]

    @pytest.mark.asyncio
    async def test_invalid_strokes_not_sent(self, strokes_client, stub):
        """Test invalid strokes never reach the network."""
        with pytest.raises(OcrInvalidInputError):
            await strokes_client.submit(_strokes([[1]], [[1]]))
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_error_body_with_200(self, strokes_client, stub, strokes_payload):
        """Test a 200 carrying only an error is a failure."""
        stub.add("POST", "/strokes", (200, {"error": "Strokes have no content"}))

        with pytest.raises(OcrAPIError, match="no content"):
            await strokes_client.submit(strokes_payload)

        assert strokes_client.get_last_debug_data().failed is True
