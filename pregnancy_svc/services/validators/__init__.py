"""
Checks applied to uploaded images before they are stored or rendered.

Lab-report photos (OCR) and captured report regions (PDF export) share them.
"""
from services.validators.upload_validator import (
    ALLOWED_IMAGE_TYPES,
    validate_file_size,
    validate_upload_file,
)

__all__ = ["ALLOWED_IMAGE_TYPES", "validate_file_size", "validate_upload_file"]
