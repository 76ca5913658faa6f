"""
Progress reporting for pipeline runs.

The pipeline reports to a ProgressReporter: step changes, timing updates,
errors and exactly one completion per run. Reporter exceptions are logged
and never interrupt processing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..ocr.base import AdapterKind
from ..ocr.result import RecognitionResult

from config.logging_config import get_logger

logger = get_logger(__name__)


class Outcome(Enum):
    """How a pipeline run ended."""
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class CompletionInfo:
    """Passed to ProgressReporter.complete()."""
    outcome: Outcome
    mode: str
    kind: Optional[AdapterKind] = None
    elapsed_seconds: float = 0.0
    result: Optional[RecognitionResult] = None
    error: Optional[BaseException] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "outcome": self.outcome.value,
            "mode": self.mode,
            "kind": self.kind.value if self.kind else None,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "error": str(self.error) if self.error else None,
        }


class ProgressReporter:
    """
    Progress collaborator with no-op defaults.

    Subclass and override only what you need.
    """

    def next_step(self, step: str) -> None:
        pass

    def update_timing(self, info: str) -> None:
        pass

    def handle_error(self, error: BaseException, context: str) -> None:
        pass

    def complete(self, success: bool, info: CompletionInfo) -> None:
        pass


class LoggingProgressReporter(ProgressReporter):
    """Writes progress to the application log."""

    def next_step(self, step: str) -> None:
        logger.info(f"Step: {step}")

    def update_timing(self, info: str) -> None:
        logger.info(info)

    def handle_error(self, error: BaseException, context: str) -> None:
        logger.error(f"Error {context}: {error}")

    def complete(self, success: bool, info: CompletionInfo) -> None:
        logger.info(
            f"Processing {info.outcome.value} ({info.mode}, {info.elapsed_seconds:.2f}s)"
        )


def safe_call(callback: Callable[..., Any], *args, **kwargs) -> None:
    """Invoke a reporter callback; exceptions are logged and swallowed."""
    try:
        callback(*args, **kwargs)
    except Exception as e:
        name = getattr(callback, "__name__", repr(callback))
        logger.warning(f"Progress callback {name} failed: {e}")
