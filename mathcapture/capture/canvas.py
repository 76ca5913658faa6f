"""
Strokes Canvas - in-memory recorder for handwritten input

Collects pointer strokes while attached (listening), formats them for the
MathPix Strokes API and renders them to PNG for side-by-side comparison.
"""

import io
from typing import Dict, List, Optional, Tuple

from PIL import Image, ImageDraw

from config.constants import CANVAS_HEIGHT, CANVAS_LINE_WIDTH, CANVAS_WIDTH, MIN_POINTS_PER_STROKE

from config.logging_config import get_logger
logger = get_logger(__name__)


Stroke = Dict[str, List[float]]


class CanvasNotListeningError(RuntimeError):
    """Input arrived while the canvas is detached"""
    pass


class StrokesCanvas:
    """
    Drawing surface for DRAW mode.

    Usage:
        canvas = StrokesCanvas()
        canvas.attach()
        canvas.begin_stroke(10, 10)
        canvas.add_point(40, 12)
        canvas.end_stroke()
        payload = canvas.format_for_api()
    """

    def __init__(self, width: int = CANVAS_WIDTH, height: int = CANVAS_HEIGHT,
                 line_width: int = CANVAS_LINE_WIDTH):
        self.width = width
        self.height = height
        self.line_width = line_width
        self.strokes: List[Stroke] = []
        self._current: Optional[Stroke] = None
        self._listening = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_listening(self) -> bool:
        return self._listening

    def attach(self) -> None:
        self._listening = True
        logger.debug("Canvas attached")

    def detach(self) -> None:
        """Stop listening; a stroke in progress is finished first."""
        if self._current is not None:
            self.end_stroke()
        self._listening = False
        logger.debug("Canvas detached")

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    @property
    def is_drawing(self) -> bool:
        return self._current is not None

    def begin_stroke(self, x: float, y: float) -> None:
        if not self._listening:
            raise CanvasNotListeningError("Canvas is not attached")
        if self._current is not None:
            self.end_stroke()
        self._current = {"x": [x], "y": [y]}

    def add_point(self, x: float, y: float) -> None:
        if self._current is None:
            return
        self._current["x"].append(x)
        self._current["y"].append(y)

    def end_stroke(self) -> None:
        """Commit the current stroke; single-point strokes are discarded."""
        if self._current is None:
            return
        stroke, self._current = self._current, None
        if len(stroke["x"]) >= MIN_POINTS_PER_STROKE:
            self.strokes.append(stroke)
            logger.debug(f"Finished stroke with {len(stroke['x'])} points. Total strokes: {len(self.strokes)}")
        else:
            logger.debug("Stroke discarded (single point)")

    def add_stroke(self, points: List[Tuple[float, float]]) -> None:
        """Record a whole stroke at once."""
        if not points:
            return
        self.begin_stroke(*points[0])
        for x, y in points[1:]:
            self.add_point(x, y)
        self.end_stroke()

    def undo(self) -> bool:
        """Remove the last stroke. Returns False when there was nothing to undo."""
        if not self.strokes:
            logger.warning("No strokes to undo")
            return False
        self.strokes.pop()
        return True

    def clear(self) -> None:
        self.strokes = []
        self._current = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_strokes(self) -> bool:
        return bool(self.strokes)

    @property
    def stroke_count(self) -> int:
        return len(self.strokes)

    @property
    def total_points(self) -> int:
        return sum(len(stroke["x"]) for stroke in self.strokes)

    def format_for_api(self) -> Dict:
        """Stroke payload in MathPix shape: {"strokes": {"strokes": {"x": [...], "y": [...]}}}."""
        return {
            "strokes": {
                "strokes": {
                    "x": [list(stroke["x"]) for stroke in self.strokes],
                    "y": [list(stroke["y"]) for stroke in self.strokes],
                }
            }
        }

    def render_png(self) -> bytes:
        """Render the strokes black on white as PNG bytes."""
        image = Image.new("RGB", (self.width, self.height), "white")
        draw = ImageDraw.Draw(image)
        for stroke in self.strokes:
            points = list(zip(stroke["x"], stroke["y"]))
            draw.line(points, fill="black", width=self.line_width, joint="curve")

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
