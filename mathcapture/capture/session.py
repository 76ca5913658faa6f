"""
Session State Store

Holds the state of the current capture session: the active mode, the source
input, the last recognition result and every transient resource (preview
files) created along the way. Clearing the store releases those resources
and resets the registered adapters.
"""

import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional

from config.settings import settings
from ..ocr.base import utc_now
from ..ocr.result import RecognitionResult

from config.logging_config import get_logger
logger = get_logger(__name__)


class ResourceHandle:
    """
    A transient resource that must be revoked exactly once.

    release() is idempotent: the revoke callable runs on the first call only,
    even if it raises.
    """

    def __init__(self, name: str, revoke: Callable[[], None]):
        self.name = name
        self._revoke = revoke
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._revoke()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"{self.__class__.__name__}({self.name!r}, {state})"


class TempFileResource(ResourceHandle):
    """Temporary file on disk (preview image, captured frame); revoking deletes it."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(self.path.name, self._unlink)

    @classmethod
    def create(cls, data: bytes, suffix: str = "", directory: Optional[Path] = None) -> "TempFileResource":
        directory = Path(directory or settings.temp_dir)
        directory.mkdir(parents=True, exist_ok=True)
        fd, path = tempfile.mkstemp(suffix=suffix, prefix="capture_", dir=str(directory))
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except Exception:
            Path(path).unlink(missing_ok=True)
            raise
        logger.debug(f"Created temp resource {path} ({len(data)} bytes)")
        return cls(Path(path))

    def _unlink(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.debug(f"Removed temp resource {self.path}")


@dataclass
class CaptureSession:
    """One capture session: the mode it was started in and what was captured."""
    mode: Any
    source: Any = None
    started_at: datetime = field(default_factory=utc_now)
    transient_resources: List[ResourceHandle] = field(default_factory=list)


class SessionStateStore:
    """
    Single source of truth for the current session.

    Registered components (the OCR adapters) only need a reset() method;
    clear() calls it without touching their internals.
    """

    def __init__(self):
        self._session: Optional[CaptureSession] = None
        self._result: Optional[RecognitionResult] = None
        self._resources: List[ResourceHandle] = []
        self._components: List[Any] = []

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    def begin_session(self, mode: Any, source: Any = None) -> CaptureSession:
        """Start a session, carrying over resources registered since the last clear."""
        self._session = CaptureSession(
            mode=mode,
            source=source,
            transient_resources=list(self._resources),
        )
        logger.debug(f"Session started in {getattr(mode, 'value', mode)} mode")
        return self._session

    def set_result(self, result: RecognitionResult) -> None:
        self._result = result

    def get_result(self) -> Optional[RecognitionResult]:
        return self._result

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    @property
    def resources(self) -> List[ResourceHandle]:
        return list(self._resources)

    def register_resource(self, handle: ResourceHandle) -> ResourceHandle:
        """Track a resource for release; registering the same handle twice is a no-op."""
        if any(existing is handle for existing in self._resources):
            return handle
        self._resources.append(handle)
        if self._session is not None:
            self._session.transient_resources.append(handle)
        return handle

    def release_all(self) -> int:
        """
        Revoke every registered resource.

        A failing revoke is logged; the handle still counts as released and
        the remaining handles are processed.

        Returns:
            Number of handles revoked by this call
        """
        released = 0
        handles, self._resources = self._resources, []
        for handle in handles:
            if handle.released:
                continue
            try:
                handle.release()
                released += 1
            except Exception as e:
                released += 1
                logger.warning(f"Failed to release {handle.name}: {e}")
        if released:
            logger.debug(f"Released {released} transient resource(s)")
        return released

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def register_component(self, component: Any) -> None:
        """Register an object whose reset() is called on clear()."""
        if not callable(getattr(component, "reset", None)):
            raise TypeError(f"{type(component).__name__} has no reset() method")
        if not any(existing is component for existing in self._components):
            self._components.append(component)

    def clear(self) -> None:
        """Release resources, drop session and result, reset registered components."""
        self.release_all()
        self._session = None
        self._result = None
        for component in self._components:
            try:
                component.reset()
            except Exception as e:
                logger.warning(f"Failed to reset {type(component).__name__}: {e}")
