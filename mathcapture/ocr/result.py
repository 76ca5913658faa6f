"""
Canonical recognition result shared by every adapter kind.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .base import AdapterKind


@dataclass(frozen=True)
class ProcessingTiming:
    """Seconds spent on a pipeline run."""
    total: float = 0.0
    api_request: float = 0.0
    processing: float = 0.0

    @classmethod
    def from_durations(cls, total: float, api_request: float) -> "ProcessingTiming":
        return cls(
            total=total,
            api_request=api_request,
            processing=max(0.0, total - api_request),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "total": round(self.total, 3),
            "api_request": round(self.api_request, 3),
            "processing": round(self.processing, 3),
        }


@dataclass(frozen=True)
class RecognitionResult:
    """
    Normalized output of one successful pipeline run.

    Immutable after creation; use with_timing() or dataclasses.replace()
    to derive a copy.
    """
    kind: AdapterKind
    latex: str = ""
    mathml: str = ""
    asciimath: str = ""
    html: str = ""
    markdown: str = ""
    raw_json: str = ""
    confidence: float = 0.0
    is_handwritten: bool = False
    is_printed: bool = False
    timing: ProcessingTiming = field(default_factory=ProcessingTiming)
    raw_response: Any = field(default=None, hash=False, compare=False)

    # Tables
    tsv: str = ""
    table_html: str = ""
    table_markdown: str = ""
    contains_table: bool = False
    line_data: Tuple[Any, ...] = field(default=(), hash=False)

    # Multi-format conversion (PDF)
    pdf_id: Optional[str] = None
    completed_formats: Tuple[str, ...] = ()
    failed_formats: Tuple[str, ...] = ()
    format_errors: Mapping[str, str] = field(default_factory=dict, hash=False)
    downloads: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        # Read-only views so a cached result cannot be edited in place
        object.__setattr__(self, "format_errors", MappingProxyType(dict(self.format_errors)))
        object.__setattr__(self, "downloads", MappingProxyType(dict(self.downloads)))
        object.__setattr__(self, "line_data", tuple(self.line_data))

    @property
    def is_partial(self) -> bool:
        """Some requested formats completed and some failed."""
        return bool(self.completed_formats) and bool(self.failed_formats)

    @property
    def is_empty(self) -> bool:
        return not any([self.latex, self.mathml, self.asciimath, self.html, self.markdown])

    def with_timing(self, timing: ProcessingTiming) -> "RecognitionResult":
        return replace(self, timing=timing)

    def get_format(self, name: str) -> str:
        """
        Look up a rendered format by its display name.

        Args:
            name: latex, mathml, asciimath, html, markdown, json,
                  table-html, table-markdown or table-tsv

        Returns:
            Format content, or empty string for unknown names
        """
        mapping = {
            "latex": self.latex,
            "mathml": self.mathml,
            "asciimath": self.asciimath,
            "html": self.html,
            "markdown": self.markdown,
            "json": self.raw_json,
            "table-html": self.table_html,
            "table-markdown": self.table_markdown,
            "table-tsv": self.tsv,
        }
        return mapping.get(name, "")

    def available_formats(self) -> Tuple[str, ...]:
        names = ("latex", "mathml", "asciimath", "html", "markdown",
                 "table-html", "table-markdown", "table-tsv", "json")
        return tuple(name for name in names if self.get_format(name))
