"""
Camera Capture

Live camera stream for CAMERA mode. The device itself sits behind the small
CameraDevice protocol so that the OpenCV backend stays optional
(``pip install math-capture[camera]``) and tests can use a fake device.
"""

import asyncio
import io
from datetime import datetime
from typing import Optional, Protocol

from PIL import Image, ImageOps

from config.constants import CAMERA_DEVICE_INDEX, CAMERA_WARMUP_FRAMES
from ..ocr.base import UploadFile

from config.logging_config import get_logger
logger = get_logger(__name__)


JPEG_QUALITY = 92
ROTATION_ANGLES = (0, 90, 180, 270)


class CameraUnavailableError(RuntimeError):
    """Camera missing, busy or permission denied"""
    pass


class CameraDevice(Protocol):
    """Frame source used by CameraCapture"""

    def open(self) -> None:
        """
        Raises:
            CameraUnavailableError: If the device cannot be opened
        """
        ...

    def read(self) -> bytes:
        """Return one encoded frame (PNG/JPEG bytes)."""
        ...

    def release(self) -> None:
        ...


class OpenCVCameraDevice:
    """Camera backed by cv2.VideoCapture."""

    def __init__(self, index: int = CAMERA_DEVICE_INDEX, warmup_frames: int = CAMERA_WARMUP_FRAMES):
        self.index = index
        self.warmup_frames = warmup_frames
        self._capture = None

    def open(self) -> None:
        try:
            import cv2
        except ImportError:
            raise CameraUnavailableError(
                "opencv-python-headless is not installed. Install it with:\n"
                "  pip install math-capture[camera]"
            )

        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailableError(
                f"No camera found at index {self.index}, or it is in use by another application"
            )
        # Auto-exposure settles over the first frames
        for _ in range(self.warmup_frames):
            capture.read()
        self._capture = capture

    def read(self) -> bytes:
        import cv2

        if self._capture is None:
            raise CameraUnavailableError("Camera not opened")
        ok, frame = self._capture.read()
        if not ok:
            raise CameraUnavailableError("Failed to read a frame from the camera")
        ok, encoded = cv2.imencode(".png", frame)
        if not ok:
            raise CameraUnavailableError("Failed to encode camera frame")
        return encoded.tobytes()

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None


class CameraCapture:
    """
    Camera stream with photo capture.

    Captured frames are rotated/mirrored as configured and re-encoded as JPEG.
    """

    def __init__(self, device: Optional[CameraDevice] = None):
        self.device = device or OpenCVCameraDevice()
        self._active = False
        self.rotation_angle = 0
        self.mirror = False

    @property
    def is_active(self) -> bool:
        return self._active

    async def start(self) -> None:
        """
        Open the camera stream. Starting an active camera is a no-op.

        Raises:
            CameraUnavailableError: Device missing, busy or not permitted
        """
        if self._active:
            logger.debug("Camera already active")
            return
        try:
            await asyncio.to_thread(self.device.open)
        except CameraUnavailableError:
            raise
        except Exception as e:
            raise CameraUnavailableError(f"Failed to access camera: {e}") from e
        self._active = True
        logger.info("Camera started")

    def stop(self) -> None:
        """
        Release the camera stream. The capture counts as stopped even when
        the device fails to release.

        Raises:
            CameraUnavailableError: The device raised while releasing
        """
        if not self._active:
            return
        self._active = False
        try:
            self.device.release()
        except CameraUnavailableError:
            raise
        except Exception as e:
            raise CameraUnavailableError(f"Failed to release camera: {e}") from e
        logger.info("Camera stopped")

    def rotate(self) -> int:
        """Rotate captures by a further 90 degrees clockwise. Returns the new angle."""
        index = ROTATION_ANGLES.index(self.rotation_angle)
        self.rotation_angle = ROTATION_ANGLES[(index + 1) % len(ROTATION_ANGLES)]
        return self.rotation_angle

    def set_rotation(self, angle: int) -> None:
        if angle not in ROTATION_ANGLES:
            raise ValueError(f"Rotation must be one of {ROTATION_ANGLES}, got {angle}")
        self.rotation_angle = angle

    def toggle_mirror(self) -> bool:
        self.mirror = not self.mirror
        return self.mirror

    async def capture_photo(self) -> UploadFile:
        """
        Capture one frame as a JPEG upload.

        Raises:
            CameraUnavailableError: Camera not active or frame unreadable
        """
        if not self._active:
            raise CameraUnavailableError("Camera not active. Please start camera first.")

        frame = await asyncio.to_thread(self.device.read)
        image = Image.open(io.BytesIO(frame)).convert("RGB")
        if self.mirror:
            image = ImageOps.mirror(image)
        if self.rotation_angle:
            # PIL rotates counter-clockwise
            image = image.rotate(-self.rotation_angle, expand=True)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=JPEG_QUALITY)
        name = f"camera-capture-{datetime.now().strftime('%Y%m%d-%H%M%S')}.jpg"
        logger.info(f"Captured photo {name} ({image.width}x{image.height})")
        return UploadFile(name=name, content=buffer.getvalue(), content_type="image/jpeg")
