"""
Result Normalizer

Maps the three MathPix response shapes onto one RecognitionResult.
Pure functions: no state, no I/O, and normalize() never raises.
"""

import json
import re
from typing import Any, Dict, Mapping

from .base import AdapterKind
from .result import RecognitionResult

from config.logging_config import get_logger
logger = get_logger(__name__)


_TABLE_RE = re.compile(r"<table[^>]*>[\s\S]*?</table>", re.IGNORECASE)


def normalize(kind: AdapterKind, raw: Any) -> RecognitionResult:
    """
    Normalize a raw adapter response.

    Args:
        kind: Adapter that produced the response
        raw: Decoded response body (PDF: the conversion summary built by the pipeline)

    Returns:
        RecognitionResult; malformed fields degrade to empty/default values
    """
    try:
        return _normalize(kind, raw)
    except Exception as e:
        logger.warning(f"Normalization degraded to defaults for {kind.value} response: {e}")
        return RecognitionResult(
            kind=kind,
            raw_json=to_pretty_json(raw),
            is_handwritten=kind is AdapterKind.STROKES,
            raw_response=raw,
        )


def _normalize(kind: AdapterKind, raw: Any) -> RecognitionResult:
    body: Mapping = raw if isinstance(raw, Mapping) else {}
    data = body.get("data")

    # Priority: text > latex_styled > data[] latex entry
    latex = _text(body.get("text")) or _text(body.get("latex_styled"))
    if not latex:
        latex = extract_data_value(data, "latex")

    mathml = _text(body.get("mathml")) or extract_data_value(data, "mathml")
    asciimath = _text(body.get("asciimath")) or extract_data_value(data, "asciimath")
    html = _text(body.get("html")) or extract_data_value(data, "html")
    tsv = extract_data_value(data, "tsv")
    markdown = latex_to_markdown(latex)

    line_data = body.get("line_data")
    line_data = tuple(line_data) if isinstance(line_data, list) else ()

    extra: Dict[str, Any] = {}
    if kind is AdapterKind.PDF:
        downloads = body.get("downloads")
        downloads = dict(downloads) if isinstance(downloads, Mapping) else {}
        markdown = _text(downloads.get("mmd")) or _text(downloads.get("md")) or markdown
        html = html or _text(downloads.get("html"))
        extra = {
            "pdf_id": _text(body.get("pdf_id")) or None,
            "completed_formats": _str_tuple(body.get("completed")),
            "failed_formats": _str_tuple(body.get("failed")),
            "format_errors": _str_dict(body.get("errors")),
            "downloads": downloads,
        }

    result = RecognitionResult(
        kind=kind,
        latex=latex,
        mathml=mathml,
        asciimath=asciimath,
        html=html,
        markdown=markdown,
        raw_json=to_pretty_json(raw),
        confidence=_confidence(body.get("confidence")),
        is_handwritten=_handwritten(kind, body),
        is_printed=body.get("is_printed") is True,
        raw_response=raw,
        tsv=tsv,
        table_html=extract_table_html(html),
        table_markdown=tsv_to_markdown(tsv),
        contains_table=detect_table(tsv, html, line_data),
        line_data=line_data,
        **extra,
    )

    logger.debug(
        f"Normalized {kind.value} response: latex={bool(result.latex)}, "
        f"mathml={bool(result.mathml)}, asciimath={bool(result.asciimath)}, "
        f"html={bool(result.html)}, table={result.contains_table}"
    )
    return result


def extract_data_value(data: Any, entry_type: str) -> str:
    """Value of the first data[] entry of the given type, or empty string."""
    if not isinstance(data, list):
        return ""
    for item in data:
        if isinstance(item, Mapping) and item.get("type") == entry_type:
            return _text(item.get("value"))
    return ""


def latex_to_markdown(latex: str) -> str:
    """Swap LaTeX math delimiters for Markdown ones."""
    if not latex:
        return ""
    return (
        latex.replace("\\(", "$")
        .replace("\\)", "$")
        .replace("\\[", "$$")
        .replace("\\]", "$$")
    )


def tsv_to_markdown(tsv: str) -> str:
    """
    Convert tab-separated values to a Markdown table.

    The first row becomes the header row.
    """
    if not tsv or not isinstance(tsv, str):
        return ""

    rows = [line for line in tsv.split("\n") if line.strip()]
    if not rows:
        return ""

    table = [
        "| " + " | ".join(cell.strip() for cell in row.split("\t")) + " |"
        for row in rows
    ]
    column_count = len(rows[0].split("\t"))
    table.insert(1, "|" + " --- |" * column_count)
    return "\n".join(table)


def extract_table_html(html: str) -> str:
    if not html:
        return ""
    return "\n\n".join(_TABLE_RE.findall(html))


def detect_table(tsv: str, html: str, line_data: tuple) -> bool:
    if tsv:
        return True
    if html and re.search(r"<table[^>]*>", html, re.IGNORECASE):
        return True
    return any(isinstance(line, Mapping) and line.get("type") == "table" for line in line_data)


def to_pretty_json(raw: Any) -> str:
    """Indented JSON of the whole raw response; binary payloads shown by size."""
    try:
        return json.dumps(raw, indent=2, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError):
        return json.dumps(repr(raw), indent=2)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, (set, tuple)):
        return list(value)
    return str(value)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return min(1.0, max(0.0, float(value)))


def _handwritten(kind: AdapterKind, body: Mapping) -> bool:
    stated = body.get("is_handwritten")
    if isinstance(stated, bool):
        return stated
    return kind is AdapterKind.STROKES


def _str_tuple(value: Any) -> tuple:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value)


def _str_dict(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): str(v) for k, v in value.items()}


__all__ = [
    "normalize",
    "extract_data_value",
    "latex_to_markdown",
    "tsv_to_markdown",
    "extract_table_html",
    "detect_table",
    "to_pretty_json",
]
