"""
OCR Module - MathPix adapters and result normalization

Provides:
- Adapter interface, debug records and the OCR error taxonomy
- Image (POST /text), strokes (POST /strokes) and PDF (POST /pdf) adapters
- Result normalizer mapping every response shape onto RecognitionResult

Example usage:

    from mathcapture.ocr import MathPixImageClient, UploadFile, normalize

    client = MathPixImageClient(app_id="...", app_key="...")
    raw = await client.submit(UploadFile.from_path("formula.png"))
    result = normalize(client.kind, raw)
    print(result.latex)
"""

from .base import (
    AdapterKind,
    ClientAdapter,
    DebugRecord,
    UploadFile,
    OcrError,
    OcrInvalidInputError,
    OcrAuthError,
    OcrConnectionError,
    OcrAPIError,
    OcrQuotaError,
    OcrTimeoutError,
    OperationCancelled,
    ConsentDeclined,
    OcrCancelledError,
)
from .result import RecognitionResult, ProcessingTiming
from .normalizer import normalize
from .mathpix_client import MathPixClient, mask_api_key, merge_options
from .image_client import MathPixImageClient
from .strokes_client import MathPixStrokesClient, validate_strokes
from .pdf_client import MathPixPdfClient, PdfStatus, format_states

__all__ = [
    # Interface and types
    'AdapterKind',
    'ClientAdapter',
    'DebugRecord',
    'UploadFile',
    'RecognitionResult',
    'ProcessingTiming',

    # Exceptions
    'OcrError',
    'OcrInvalidInputError',
    'OcrAuthError',
    'OcrConnectionError',
    'OcrAPIError',
    'OcrQuotaError',
    'OcrTimeoutError',
    'OperationCancelled',
    'ConsentDeclined',
    'OcrCancelledError',

    # Adapters
    'MathPixClient',
    'MathPixImageClient',
    'MathPixStrokesClient',
    'MathPixPdfClient',
    'PdfStatus',
    'format_states',
    'validate_strokes',
    'mask_api_key',
    'merge_options',

    # Normalization
    'normalize',
]
