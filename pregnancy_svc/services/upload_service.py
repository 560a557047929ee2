"""
Service for handling image uploads.
"""
import logging
import uuid
from pathlib import Path
from typing import Tuple

from fastapi import UploadFile

from core.config import UPLOAD_DIR, UPLOAD_MAX_SIZE
from core.exceptions import UploadError
from services.validators import validate_file_size, validate_upload_file

logger = logging.getLogger(__name__)


class UploadService:
    """Service for validating and storing uploaded images."""

    def __init__(self, upload_dir: str = UPLOAD_DIR, max_size: int = UPLOAD_MAX_SIZE):
        """
        Initialize the upload service.

        Args:
            upload_dir: Directory where uploaded files will be stored
            max_size: Maximum allowed file size in bytes
        """
        self.upload_dir = Path(upload_dir)
        self.max_size = max_size
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    async def read_image(self, file: UploadFile) -> Tuple[bytes, str]:
        """
        Validate an uploaded image and return its content.

        Returns:
            Tuple[bytes, str]: (content, file_extension).

        Raises:
            UploadError, InvalidFileTypeError, FileTooLargeError: On validation failure.
        """
        _, file_extension = validate_upload_file(file)
        content = await file.read()
        validate_file_size(len(content), self.max_size)
        return content, file_extension

    async def save_uploaded_file(self, file: UploadFile) -> Tuple[str, str]:
        """
        Validate an uploaded lab-report image and save it under a unique name.

        Returns:
            Tuple[str, str]: (unique_filename, file_path).

        Raises:
            UploadError: If the file fails validation or cannot be written.
        """
        content, file_extension = await self.read_image(file)

        unique_filename = f"{uuid.uuid4()}{file_extension}"
        upload_path = self.upload_dir / unique_filename

        try:
            with open(upload_path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Failed to write file to disk: {str(e)}")
            raise UploadError("Failed to save file to disk", status_code=500) from e

        logger.info(f"Successfully uploaded file: {unique_filename} (size: {len(content)} bytes)")
        return unique_filename, str(upload_path)

    def discard(self, file_path: str) -> None:
        """Remove a stored upload once it has been read. Missing files are ignored."""
        try:
            Path(file_path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove upload {file_path}: {e}")
