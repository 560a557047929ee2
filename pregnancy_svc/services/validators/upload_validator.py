"""
Checks for uploaded lab-report photos and captured report regions.

Only JPEG, PNG and WebP are accepted, and the filename extension has to
agree with the declared content type.
"""
import logging
from pathlib import Path
from typing import Tuple

from fastapi import UploadFile

from core.exceptions import FileTooLargeError, InvalidFileTypeError, UploadError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/webp": (".webp",),
}
ALLOWED_EXTENSIONS = sorted(ext for exts in ALLOWED_IMAGE_TYPES.values() for ext in exts)


def validate_upload_file(file: UploadFile) -> Tuple[str, str]:
    """
    Check presence, content type and extension. Size is checked separately
    once the body has been read.

    Returns:
        (content_type, extension), the extension lower-cased with its dot.

    Raises:
        UploadError: 400, no file.
        InvalidFileTypeError: 415, type or extension not allowed or mismatched.
    """
    if file is None or not file.filename:
        logger.error("Upload request without a file")
        raise UploadError("No file provided")

    content_type = file.content_type
    if content_type not in ALLOWED_IMAGE_TYPES:
        logger.error(f"Rejected upload content type {content_type!r}")
        raise InvalidFileTypeError(
            f"Invalid file type. Allowed types: {', '.join(ALLOWED_IMAGE_TYPES)}"
        )

    extension = Path(file.filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        logger.error(f"Rejected upload extension {extension!r}")
        raise InvalidFileTypeError(
            f"Invalid file extension. Allowed extensions: {', '.join(ALLOWED_EXTENSIONS)}"
        )
    if extension not in ALLOWED_IMAGE_TYPES[content_type]:
        logger.error(f"Extension {extension} does not match {content_type}")
        raise InvalidFileTypeError("File extension does not match content type")

    return content_type, extension


def validate_file_size(file_size: int, max_size: int) -> None:
    """
    Raises:
        UploadError: 400, empty body.
        FileTooLargeError: 413, larger than ``max_size`` bytes.
    """
    if file_size == 0:
        logger.error("Empty file uploaded")
        raise UploadError("File is empty")
    if file_size > max_size:
        logger.error(f"Upload of {file_size} bytes exceeds {max_size}")
        raise FileTooLargeError(
            f"File size exceeds maximum allowed size of {max_size / (1024 * 1024):.1f}MB"
        )
