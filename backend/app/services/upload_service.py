"""
Upload Service
Stores product images on local disk, served by the API under /uploads
"""
import logging
import secrets
import time
from pathlib import Path
from typing import List, Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class UploadError(ValueError):
    """Raised for a file that cannot be accepted"""


class UploadService:
    """Service for storing uploaded product images"""

    def __init__(self, upload_dir: str = None, base_url: str = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.base_url = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    @staticmethod
    def validate(filename: str, content_type: str, size: int) -> str:
        """
        Check one file against the upload rules

        Returns:
            The normalized file extension

        Raises:
            UploadError: not an image, unsupported extension or too large
        """
        if not content_type or not content_type.startswith("image/"):
            raise UploadError("Only image files are allowed")

        extension = Path(filename or "").suffix.lower()
        if extension not in ALLOWED_EXTENSIONS:
            raise UploadError(f"Unsupported image type: {extension or 'none'}")

        if size > settings.MAX_UPLOAD_BYTES:
            limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
            raise UploadError(f"File too large (max {limit_mb}MB)")

        return extension

    def unique_name(self, extension: str) -> str:
        return f"images-{int(time.time() * 1000)}-{secrets.token_hex(6)}{extension}"

    def save_images(self, files: List[Tuple[str, str, bytes]]) -> List[str]:
        """
        Validate and write a batch of images

        Args:
            files: (filename, content_type, content) per file

        Returns:
            Absolute public URLs of the stored images
        """
        if not files:
            raise UploadError("No files uploaded")
        if len(files) > settings.MAX_UPLOAD_FILES:
            raise UploadError(f"Too many files (max {settings.MAX_UPLOAD_FILES})")

        # Validate everything before writing anything
        names = []
        for filename, content_type, content in files:
            extension = self.validate(filename, content_type, len(content))
            names.append(self.unique_name(extension))

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        urls = []
        for name, (_, _, content) in zip(names, files):
            (self.upload_dir / name).write_bytes(content)
            urls.append(f"{self.base_url}/uploads/{name}")

        logger.info(f"Stored {len(urls)} uploaded images")
        return urls
