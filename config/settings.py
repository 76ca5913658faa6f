#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings

from .constants import (
    MATHPIX_API_BASE,
    MATHPIX_TIMEOUT,
    MATHPIX_STATUS_TIMEOUT,
    MATHPIX_PDF_UPLOAD_TIMEOUT,
    PDF_POLL_INTERVAL_SECONDS,
    PDF_MAX_POLLS,
    MAX_IMAGE_SIZE_BYTES,
    MAX_PDF_SIZE_BYTES,
    DEFAULT_DELIMITER_FORMAT,
    CAMERA_DEVICE_INDEX,
)


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== MathPix Credentials ==========
    # Read-only here: credentials are stored by the environment / .env, never written back
    mathpix_app_id: Optional[str] = None
    mathpix_app_key: Optional[str] = None

    # ========== Endpoint & Timeouts ==========
    mathpix_api_base: str = MATHPIX_API_BASE
    request_timeout: float = MATHPIX_TIMEOUT
    status_timeout: float = MATHPIX_STATUS_TIMEOUT
    pdf_upload_timeout: float = MATHPIX_PDF_UPLOAD_TIMEOUT

    # ========== PDF Polling ==========
    pdf_poll_interval: float = PDF_POLL_INTERVAL_SECONDS
    pdf_max_polls: int = PDF_MAX_POLLS

    # ========== Upload Limits ==========
    max_image_size_bytes: int = MAX_IMAGE_SIZE_BYTES
    max_pdf_size_bytes: int = MAX_PDF_SIZE_BYTES

    # ========== Output Preferences ==========
    delimiter_format: str = DEFAULT_DELIMITER_FORMAT  # latex | markdown
    include_line_data: bool = True

    # ========== Privacy ==========
    # When False, processing consent is granted automatically (privacy options still applied)
    privacy_prompt_enabled: bool = False

    # ========== Camera ==========
    camera_device_index: int = CAMERA_DEVICE_INDEX

    # ========== Directories ==========
    temp_dir: Path = BASE_DIR / "data" / "temp"
    logs_dir: Path = BASE_DIR / "logs"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Create directories
        for dir_path in [self.temp_dir, self.logs_dir]:
            dir_path.mkdir(exist_ok=True, parents=True)

    def has_credentials(self) -> bool:
        """Both MathPix credentials are configured"""
        return bool(self.mathpix_app_id and self.mathpix_app_key)

    def get_credentials(self) -> tuple:
        """Get (app_id, app_key) or raise if either is missing"""
        if not self.has_credentials():
            raise ValueError("MATHPIX_APP_ID and MATHPIX_APP_KEY must be set in .env")
        return self.mathpix_app_id, self.mathpix_app_key

    def describe(self) -> dict:
        """Configuration summary with credentials masked"""
        return {
            "api_base": self.mathpix_api_base,
            "has_credentials": self.has_credentials(),
            "request_timeout": self.request_timeout,
            "pdf_poll_interval": self.pdf_poll_interval,
            "pdf_max_polls": self.pdf_max_polls,
            "delimiter_format": self.delimiter_format,
            "privacy_prompt_enabled": self.privacy_prompt_enabled,
        }


# Global settings instance
settings = Settings()
