"""
Pytest configuration and shared fixtures for Math Capture tests.
"""
import io
import sys
import pytest
from pathlib import Path
from typing import Any, Dict, List, Tuple

import httpx
from PIL import Image

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import settings
from mathcapture.capture.camera import CameraCapture, CameraUnavailableError
from mathcapture.capture.modes import ModeController
from mathcapture.capture.session import SessionStateStore
from mathcapture.ocr.base import UploadFile
from mathcapture.ocr.image_client import MathPixImageClient
from mathcapture.ocr.pdf_client import MathPixPdfClient
from mathcapture.ocr.strokes_client import MathPixStrokesClient
from mathcapture.pipeline.consent import AutoConsent
from mathcapture.pipeline.orchestrator import OrchestratorConfig, PipelineOrchestrator


API_BASE = "https://mathpix.test/v3"
APP_ID = "test_app_id"
APP_KEY = "test_app_key_1234"


# ============================================================================
# Helpers: MathPix wire stub
# ============================================================================

class MathPixStub:
    """
    Request router for httpx.MockTransport.

    Each route holds a queue of responses; the last one repeats. A response
    is a (status, body) tuple (dict -> JSON, str -> text, bytes -> content)
    or an exception instance to raise.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.calls: List[httpx.Request] = []

    def add(self, method: str, path: str, *responses: Any) -> None:
        self.routes[(method, f"/v3{path}")] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": f"no route for {request.method} {request.url.path}"})
        spec = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(spec, Exception):
            raise spec
        status, body = spec
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, text=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def count(self, method: str = None, path: str = None) -> int:
        return sum(
            1 for call in self.calls
            if (method is None or call.method == method)
            and (path is None or call.url.path == f"/v3{path}")
        )


class FakeCameraDevice:
    """Camera device returning a generated PNG frame."""

    def __init__(self, fail_open: bool = False, size=(64, 32)):
        self.fail_open = fail_open
        self.size = size
        self.opened = 0
        self.released = 0
        self.reads = 0

    def open(self) -> None:
        if self.fail_open:
            raise CameraUnavailableError("Camera permission denied")
        self.opened += 1

    def read(self) -> bytes:
        self.reads += 1
        buffer = io.BytesIO()
        Image.new("RGB", self.size, "white").save(buffer, format="PNG")
        return buffer.getvalue()

    def release(self) -> None:
        self.released += 1


# ============================================================================
# Fixtures: Settings isolation
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_temp_dir(tmp_path_factory, monkeypatch):
    """Keep preview files out of the project tree."""
    temp_dir = tmp_path_factory.mktemp("previews")
    monkeypatch.setattr(settings, "temp_dir", temp_dir)
    return temp_dir


# ============================================================================
# Fixtures: Sample Data
# ============================================================================

@pytest.fixture
def image_response():
    """MathPix /text response with data[] entries and a table."""
    return {
        "request_id": "2025_01_01_abc",
        "text": "\\( x^{2}+1 \\)",
        "latex_styled": "x^{2}+1",
        "confidence": 0.93,
        "confidence_rate": 0.98,
        "is_printed": True,
        "is_handwritten": False,
        "html": "<div><table><tr><td>1</td></tr></table></div>",
        "data": [
            {"type": "latex", "value": "x^{2}+1"},
            {"type": "mathml", "value": "<math><msup><mi>x</mi><mn>2</mn></msup></math>"},
            {"type": "asciimath", "value": "x^(2)+1"},
            {"type": "tsv", "value": "a\tb\n1\t2"},
        ],
    }


@pytest.fixture
def strokes_response():
    """MathPix /strokes response."""
    return {
        "request_id": "2025_01_01_def",
        "latex_styled": "\\frac{1}{2}",
        "confidence": 0.88,
        "data": [
            {"type": "mathml", "value": "<math><mfrac><mn>1</mn><mn>2</mn></mfrac></math>"},
        ],
        "html": "<div>1/2</div>",
    }


@pytest.fixture
def png_upload():
    return UploadFile(name="formula.png", content=b"\x89PNG\r\n\x1a\nfake-image", content_type="image/png")


@pytest.fixture
def pdf_upload():
    return UploadFile(name="paper.pdf", content=b"%PDF-1.7 fake document", content_type="application/pdf")


@pytest.fixture
def strokes_payload():
    return {
        "strokes": {
            "strokes": {
                "x": [[10, 20, 30], [15, 25]],
                "y": [[5, 6, 7], [40, 41]],
            }
        }
    }


# ============================================================================
# Fixtures: Adapters on a stubbed transport
# ============================================================================

@pytest.fixture
def stub():
    return MathPixStub()


@pytest.fixture
def image_client(stub):
    return MathPixImageClient(
        app_id=APP_ID, app_key=APP_KEY, api_base=API_BASE, http_client=stub.client(),
        delimiter_format="latex", include_line_data=True,
    )


@pytest.fixture
def strokes_client(stub):
    return MathPixStrokesClient(
        app_id=APP_ID, app_key=APP_KEY, api_base=API_BASE, http_client=stub.client(),
        delimiter_format="latex",
    )


@pytest.fixture
def pdf_client(stub):
    return MathPixPdfClient(app_id=APP_ID, app_key=APP_KEY, api_base=API_BASE, http_client=stub.client())


# ============================================================================
# Fixtures: Capture and pipeline
# ============================================================================

@pytest.fixture
def camera_device():
    return FakeCameraDevice()


@pytest.fixture
def denied_camera_device():
    return FakeCameraDevice(fail_open=True)


@pytest.fixture
def store():
    return SessionStateStore()


@pytest.fixture
def modes(store, camera_device):
    return ModeController(store, camera_factory=lambda: CameraCapture(camera_device))


@pytest.fixture
def orchestrator(store, modes, image_client, strokes_client, pdf_client):
    return PipelineOrchestrator(
        store=store,
        modes=modes,
        image_client=image_client,
        strokes_client=strokes_client,
        pdf_client=pdf_client,
        consent=AutoConsent(),
        config=OrchestratorConfig(poll_interval=0, max_polls=10),
    )
