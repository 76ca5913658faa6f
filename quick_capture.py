#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Quick Capture Script - Recognize mathematics with MathPix
Usage: python3 quick_capture.py <input> [options]

Examples:
  # Typed or photographed formula
  python3 quick_capture.py formula.png

  # PDF to Markdown + LaTeX
  python3 quick_capture.py paper.pdf --pdf-formats mmd,latex --page-range 1-3

  # Handwriting from a strokes JSON file
  python3 quick_capture.py strokes.json --mode draw --output-format mathml

  # Take a photo with the default camera
  python3 quick_capture.py --mode camera
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config.logging_config import get_logger, set_console_level
from config.settings import settings
from mathcapture.capture import CameraUnavailableError, Mode, ModeActivationError
from mathcapture.ocr import OcrError, OperationCancelled, UploadFile
from mathcapture.pipeline import (
    CallbackConsent,
    ConsoleRenderer,
    LoggingProgressReporter,
    create_default_orchestrator,
)

logger = get_logger(__name__)


def _prompt_consent(info) -> bool:
    answer = input(f"\n🔒 Send '{info.name}' ({info.size} bytes) to MathPix for processing? (y/n) [n]: ")
    return answer.strip().lower() == "y"


def _load_strokes(path: Path):
    """
    Read strokes JSON: either the API shape {"strokes": {"strokes": {...}}}
    or a plain list of strokes, each a list of [x, y] points.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return None, data
    return data, None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recognize handwritten, photographed, typed or PDF mathematics with MathPix",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument("input", nargs="?", help="Image, PDF or strokes JSON file")
    parser.add_argument("--mode", choices=[m.value for m in Mode], default=Mode.UPLOAD.value,
                        help="Capture mode (default: upload)")
    parser.add_argument("--output-format", default="latex",
                        help="Format to print: latex, mathml, asciimath, html, markdown, json, "
                             "table-html, table-markdown, table-tsv (default: latex)")
    parser.add_argument("--delimiters", choices=["latex", "markdown"], default=None,
                        help=f"Math delimiters (default: {settings.delimiter_format})")
    parser.add_argument("--pdf-formats", default=None,
                        help="Comma-separated PDF output formats, e.g. mmd,html,latex,docx")
    parser.add_argument("--page-range", default=None, help="PDF page range, e.g. 1-10 (default: all)")
    parser.add_argument("--mathpix-id", help="MathPix App ID (default: MATHPIX_APP_ID)")
    parser.add_argument("--mathpix-key", help="MathPix App Key (default: MATHPIX_APP_KEY)")
    parser.add_argument("--confirm", action="store_true",
                        help="Ask before sending anything to MathPix")
    parser.add_argument("--debug", action="store_true", help="Print the last API debug record")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging on the console")
    return parser


async def capture(args) -> int:
    if args.mathpix_id:
        settings.mathpix_app_id = args.mathpix_id
    if args.mathpix_key:
        settings.mathpix_app_key = args.mathpix_key

    consent = None
    if args.confirm or settings.privacy_prompt_enabled:
        consent = CallbackConsent(_prompt_consent)

    orchestrator = create_default_orchestrator(
        settings,
        consent=consent,
        renderer=ConsoleRenderer(args.output_format),
        progress=LoggingProgressReporter(),
    )
    mode = Mode(args.mode)

    options = {}
    if args.delimiters:
        options["delimiter_format"] = args.delimiters
    if args.pdf_formats:
        options["formats"] = [fmt.strip() for fmt in args.pdf_formats.split(",") if fmt.strip()]
    if args.page_range:
        options["page_range"] = args.page_range

    payload = None
    try:
        await orchestrator.modes.switch_to(mode)

        if mode is Mode.UPLOAD:
            if not args.input:
                print("❌ Error: an input file is required in upload mode")
                return 2
            payload = UploadFile.from_path(Path(args.input))
        elif mode is Mode.DRAW:
            if not args.input:
                print("❌ Error: a strokes JSON file is required in draw mode")
                return 2
            payload, strokes = _load_strokes(Path(args.input))
            for points in strokes or []:
                orchestrator.modes.canvas.add_stroke([tuple(point) for point in points])

        await orchestrator.run(mode, payload, options or None)
        return 0

    except OperationCancelled as e:
        print(f"\n⚠️  {e}")
        return 1
    except (OcrError, CameraUnavailableError, ModeActivationError, FileNotFoundError, ValueError) as e:
        print(f"\n❌ Error: {e}")
        return 1
    finally:
        if args.debug and orchestrator.last_debug_record is not None:
            print("\n🔍 Debug record:")
            print(json.dumps(orchestrator.last_debug_record.to_dict(), indent=2, default=str))
        orchestrator.modes.shutdown()


def main() -> int:
    args = build_parser().parse_args()
    if args.verbose:
        set_console_level(logging.DEBUG)

    try:
        return asyncio.run(capture(args))
    except KeyboardInterrupt:
        print("\n\n👋 Cancelled")
        return 130


if __name__ == "__main__":
    sys.exit(main())
