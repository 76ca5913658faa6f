"""
Centralized constants for Math Capture.
All magic numbers for capture, OCR and polling live here.
"""

# ===========================================
# MATHPIX API
# ===========================================
MATHPIX_API_BASE = "https://eu-central-1.api.mathpix.com/v3"   # EU processing endpoint
MATHPIX_TIMEOUT = 30                  # seconds per image/strokes request
MATHPIX_STATUS_TIMEOUT = 30           # seconds per PDF status check
MATHPIX_PDF_UPLOAD_TIMEOUT = 300      # seconds for PDF upload

# ===========================================
# PDF POLLING
# ===========================================
PDF_POLL_INTERVAL_SECONDS = 2.0       # fixed interval between status checks
PDF_MAX_POLLS = 150                   # 150 x 2s = 5 minutes

# ===========================================
# FILE HANDLING
# ===========================================
MAX_IMAGE_SIZE_BYTES = 10 * 1024 * 1024      # 10MB
MAX_PDF_SIZE_BYTES = 512 * 1024 * 1024       # 512MB
SUPPORTED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]
SUPPORTED_PDF_TYPES = ["application/pdf"]
EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
}
TEMP_DIR = 'data/temp'

# ===========================================
# STROKES
# ===========================================
MIN_POINTS_PER_STROKE = 2
CANVAS_WIDTH = 800
CANVAS_HEIGHT = 400
CANVAS_LINE_WIDTH = 3

# ===========================================
# OUTPUT FORMATS
# ===========================================
# Requested for every image submission unless the caller overrides them
DEFAULT_IMAGE_FORMATS = ["text", "data", "html"]
# Always added to a strokes request, regardless of user selection
ALWAYS_INCLUDED_FORMATS = ["latex_styled", "data", "html"]
DEFAULT_DATA_OPTIONS = {
    "include_latex": True,
    "include_mathml": True,
    "include_asciimath": True,
    "include_table_html": True,
    "include_tsv": True,
}
# Privacy: no training on submitted content
DEFAULT_METADATA = {"improve_mathpix": False}

DEFAULT_PDF_FORMATS = ["mmd", "html"]
SUPPORTED_PDF_FORMATS = ["mmd", "md", "html", "latex", "latexpdf", "pdf", "docx", "tex.zip"]
PDF_FORMAT_API_NAMES = {
    "latex": "tex.zip",
    "latexpdf": "latex.pdf",
}
PDF_CONVERSION_FORMATS = [
    "md", "html", "pdf", "latex.pdf", "docx", "pptx",
    "tex.zip", "mmd.zip", "md.zip", "html.zip",
]
PDF_DOWNLOAD_EXTENSIONS = {
    "latex": "tex",
    "latexpdf": "latex.pdf",
}
PDF_TEXT_FORMATS = ["mmd", "md", "html"]

DELIMITERS = {
    "latex": {"inline": ["\\(", "\\)"], "display": ["\\[", "\\]"]},
    "markdown": {"inline": ["$", "$"], "display": ["$$", "$$"]},
}
DEFAULT_DELIMITER_FORMAT = "latex"

# ===========================================
# CAMERA
# ===========================================
CAMERA_DEVICE_INDEX = 0
CAMERA_WARMUP_FRAMES = 3

# ===========================================
# LOGGING
# ===========================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = 'logs/mathcapture.log'
LOG_MAX_SIZE_MB = 10
LOG_BACKUP_COUNT = 5
