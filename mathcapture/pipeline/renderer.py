"""
Result renderers.

The pipeline hands every successful result, together with a reference to
the original input, to a ResultRenderer.
"""

import sys
from typing import Any, Optional, Protocol, TextIO

from ..ocr.result import RecognitionResult


class ResultRenderer(Protocol):
    def render(self, result: RecognitionResult, original: Optional[Any] = None) -> None:
        ...


class NullRenderer:
    """Discards results."""

    def render(self, result: RecognitionResult, original: Optional[Any] = None) -> None:
        pass


class ConsoleRenderer:
    """
    Prints one format of the result, followed by a short summary.

    Args:
        output_format: Any name accepted by RecognitionResult.get_format()
        stream: Output stream (stdout by default)
    """

    def __init__(self, output_format: str = "latex", stream: Optional[TextIO] = None):
        self.output_format = output_format
        self.stream = stream or sys.stdout

    def render(self, result: RecognitionResult, original: Optional[Any] = None) -> None:
        content = result.get_format(self.output_format)
        if not content:
            available = ", ".join(result.available_formats()) or "none"
            content = f"(no {self.output_format} output; available: {available})"

        if original is not None:
            self.stream.write(f"Source: {original}\n")
        self.stream.write(f"{content}\n")
        self.stream.write(
            f"\nconfidence={result.confidence:.0%} "
            f"handwritten={result.is_handwritten} "
            f"total={result.timing.total:.2f}s\n"
        )
        if result.failed_formats:
            failed = ", ".join(f"{fmt} ({result.format_errors.get(fmt, 'failed')})" for fmt in result.failed_formats)
            self.stream.write(f"Failed formats: {failed}\n")
        self.stream.flush()
