"""
Capture Module - session state and input modes

Provides:
- SessionStateStore with transient resource tracking
- ModeController switching between UPLOAD, DRAW and CAMERA
- StrokesCanvas (DRAW) and CameraCapture (CAMERA)
"""

from .session import SessionStateStore, CaptureSession, ResourceHandle, TempFileResource
from .modes import Mode, ModeController, ModeActivationError
from .canvas import StrokesCanvas, CanvasNotListeningError
from .camera import CameraCapture, CameraDevice, OpenCVCameraDevice, CameraUnavailableError

__all__ = [
    'SessionStateStore',
    'CaptureSession',
    'ResourceHandle',
    'TempFileResource',
    'Mode',
    'ModeController',
    'ModeActivationError',
    'StrokesCanvas',
    'CanvasNotListeningError',
    'CameraCapture',
    'CameraDevice',
    'OpenCVCameraDevice',
    'CameraUnavailableError',
]
