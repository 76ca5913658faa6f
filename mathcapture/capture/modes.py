"""
Mode Controller - UPLOAD / DRAW / CAMERA state machine

Exactly one capture mode is active. Switching modes tears down the live
subsystem of the old mode (camera stream, canvas listening), brings up the
new one and only then clears the session store, so that nothing from one
mode leaks into the next and a failed switch loses nothing.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional

from .camera import CameraCapture, CameraUnavailableError
from .canvas import StrokesCanvas
from .session import SessionStateStore, TempFileResource
from ..ocr.base import UploadFile

from config.logging_config import get_logger
logger = get_logger(__name__)


class Mode(Enum):
    """Capture mode"""
    UPLOAD = "upload"
    DRAW = "draw"
    CAMERA = "camera"


class ModeActivationError(RuntimeError):
    """Target mode could not be brought up; the controller stays in (or returns to) the previous mode"""
    pass


class ModeController:
    """
    Owns the capture subsystems and the current mode.

    Subsystems are built lazily on first use through the injected factories,
    and only once.

    Usage:
        controller = ModeController(store)
        await controller.switch_to(Mode.DRAW)
        controller.canvas.add_stroke([(0, 0), (10, 10)])
        payload = controller.stroke_payload()
    """

    def __init__(
        self,
        store: SessionStateStore,
        canvas_factory: Callable[[], StrokesCanvas] = StrokesCanvas,
        camera_factory: Callable[[], CameraCapture] = CameraCapture,
    ):
        self.store = store
        self._canvas_factory = canvas_factory
        self._camera_factory = camera_factory
        self._canvas: Optional[StrokesCanvas] = None
        self._camera: Optional[CameraCapture] = None
        self._mode = Mode.UPLOAD

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def canvas(self) -> Optional[StrokesCanvas]:
        return self._canvas

    @property
    def camera(self) -> Optional[CameraCapture]:
        return self._camera

    @property
    def camera_active(self) -> bool:
        return self._camera is not None and self._camera.is_active

    @property
    def canvas_listening(self) -> bool:
        return self._canvas is not None and self._canvas.is_listening

    def live_subsystems(self) -> Dict[str, bool]:
        return {"camera": self.camera_active, "canvas": self.canvas_listening}

    # ------------------------------------------------------------------
    # Switching
    # ------------------------------------------------------------------

    async def switch_to(self, mode: Mode) -> None:
        """
        Switch to another capture mode.

        Order: build target subsystem, deactivate current mode, activate
        target, clear the session store. The store is only cleared once the
        target mode is live, so a failed switch keeps the cached result.

        Raises:
            ModeActivationError: Target subsystem could not be built (state
                unchanged), or the current mode could not be torn down or the
                target could not be activated (previous mode restored)
        """
        if mode is self._mode:
            return

        try:
            self._ensure_subsystem(mode)
        except Exception as e:
            logger.error(f"Failed to initialise {mode.value} mode: {e}")
            raise ModeActivationError(f"Cannot initialise {mode.value} mode: {e}") from e

        previous = self._mode
        logger.info(f"Switching mode: {previous.value} -> {mode.value}")

        try:
            self._deactivate(previous)
        except Exception as e:
            logger.error(f"Failed to stop {previous.value} mode: {e}")
            await self._restore(previous)
            raise ModeActivationError(f"Cannot leave {previous.value} mode: {e}") from e

        try:
            await self._activate(mode)
        except Exception as e:
            logger.error(f"Failed to activate {mode.value} mode: {e}")
            try:
                self._deactivate(mode)
            except Exception as cleanup_error:
                logger.warning(f"Failed to stop {mode.value} mode after activation error: {cleanup_error}")
            await self._restore(previous)
            raise ModeActivationError(f"Cannot activate {mode.value} mode: {e}") from e

        self.store.clear()
        self._mode = mode

    async def _restore(self, mode: Mode) -> None:
        try:
            await self._activate(mode)
        except Exception as e:
            logger.error(f"Failed to restore {mode.value} mode: {e}")

    def _ensure_subsystem(self, mode: Mode) -> None:
        if mode is Mode.DRAW and self._canvas is None:
            self._canvas = self._canvas_factory()
            logger.debug("Canvas created")
        elif mode is Mode.CAMERA and self._camera is None:
            self._camera = self._camera_factory()
            logger.debug("Camera capture created")

    async def _activate(self, mode: Mode) -> None:
        if mode is Mode.DRAW:
            self._canvas.attach()
        elif mode is Mode.CAMERA:
            await self._camera.start()

    def _deactivate(self, mode: Mode) -> None:
        if mode is Mode.DRAW and self._canvas is not None:
            self._canvas.detach()
        elif mode is Mode.CAMERA and self._camera is not None:
            self._camera.stop()

    def shutdown(self) -> None:
        """Stop every live subsystem, clear the store and return to UPLOAD."""
        try:
            self._deactivate(self._mode)
        finally:
            self.store.clear()
            self._mode = Mode.UPLOAD
        logger.info("Mode controller shut down")

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    async def capture_frame(self) -> UploadFile:
        """
        Raises:
            CameraUnavailableError: Not in CAMERA mode or the stream is down
        """
        if self._mode is not Mode.CAMERA or not self.camera_active:
            raise CameraUnavailableError("Camera not active. Switch to camera mode first.")
        return await self._camera.capture_photo()

    def stroke_payload(self) -> Dict[str, Any]:
        """Current canvas strokes in API shape (empty when nothing was drawn)."""
        if self._canvas is None:
            return {"strokes": {"strokes": {"x": [], "y": []}}}
        return self._canvas.format_for_api()

    def canvas_snapshot(self) -> Optional[bytes]:
        if self._canvas is None or not self._canvas.has_strokes():
            return None
        return self._canvas.render_png()

    def create_preview(self, data: bytes, suffix: str = "") -> TempFileResource:
        """Write a preview file and register it with the store for release on clear."""
        handle = TempFileResource.create(data, suffix=suffix)
        self.store.register_resource(handle)
        return handle
