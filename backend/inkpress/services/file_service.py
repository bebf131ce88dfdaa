"""
Inkpress Backend — Image Upload Service
========================================

What:  Validates, stores, resolves and removes uploaded post images.
Why:   Centralizes all file system operations with security checks.
How:   Validates extension, size and actual image content, then stores the
       bytes in date-organized directories under UPLOAD_PATH with a UUID
       file name.
Who:   Called by PostService (create/update/delete) and the uploads route.

Security Model:
    1. Extension check:  fast rejection of obviously wrong files
    2. Size check:       empty files and files over MAX_FILE_SIZE are refused
    3. Content check:    Pillow must recognize the bytes as JPEG/PNG/GIF/WEBP
    4. UUID filename:    no user input in the stored path
    5. Path resolution:  served paths must stay inside UPLOAD_PATH

Directory Structure:
    uploads/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-....jpg
                └── e5f6g7h8-....png
"""

import io
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import Image, UnidentifiedImageError

from inkpress.config import settings
from inkpress.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Pillow format name → stored extension
ALLOWED_FORMATS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
    "WEBP": ".webp",
}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


@dataclass
class ImageUpload:
    """An image read from a multipart request, not yet validated."""

    filename: str
    content: bytes
    content_length: Optional[int] = None


class FileService:
    """
    Manages upload validation and the storage lifecycle of post images.

    Lifecycle of an uploaded image:
        1. PostService passes the multipart bytes to validate_and_store()
        2. Extension, size and content checks
        3. File is written to YYYY/MM/DD/<uuid>.<ext>
        4. Relative path is stored on the Post (featured_image)
        5. Replaced or deleted posts call cleanup_file() on the old path
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default upload path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.upload_path).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def _validate_extension(self, filename: str) -> str:
        """Returns the lower-cased extension or raises ValidationError."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext},
            )
        return ext

    def _validate_size(self, content: bytes, content_length: Optional[int]) -> None:
        """
        Checks the declared Content-Length first, then the real byte count.

        Raises:
            ValidationError: empty file, or larger than MAX_FILE_SIZE
        """
        if not content:
            raise ValidationError(message="Uploaded file is empty", field="image")

        self.check_declared_size(content_length)
        self.check_declared_size(len(content))

    def check_declared_size(self, size: Optional[int]) -> None:
        """
        Rejects a size above MAX_FILE_SIZE. Routes call this with the upload's
        reported size before reading it into memory.
        """
        if size and size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File is too large. Maximum size is {max_mb:.0f}MB.",
                field="image",
                context={"max_size": settings.max_file_size, "actual_size": size},
            )

    def _validate_image_content(self, content: bytes) -> str:
        """
        Confirms the bytes decode as an allowed image format.

        Returns:
            The canonical extension for the detected format (".jpg", ".png", ...)
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                detected = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
            raise ValidationError(
                message="File content is not a valid image. Please upload a JPEG, PNG, GIF or WEBP.",
                field="image",
            )

        if detected not in ALLOWED_FORMATS:
            raise ValidationError(
                message=f"Image format '{detected}' is not supported.",
                field="image",
                context={"detected_format": detected},
            )
        return ALLOWED_FORMATS[detected]

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new YYYY/MM/DD/<uuid><ext> file."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Writes validated bytes to disk.

        Raises:
            FileStorageError: directory creation or write failed
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return str(absolute_path), relative_path

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Complete validation and storage pipeline, cheapest check first.

        Returns:
            (absolute_path, relative_path_for_db)
        """
        self._validate_extension(filename)
        self._validate_size(content, content_length)
        extension = self._validate_image_content(content)
        return await self.store_file(content, extension)

    def resolve(self, relative_path: str) -> Path:
        """
        Maps a stored relative path to a file inside the upload root.

        Raises:
            ValidationError: the path escapes the upload root (../ traversal)
            NotFoundError: no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    async def cleanup_file(self, relative_path: Optional[str]) -> None:
        """
        Removes a previously stored upload; best effort.

        The default image name and paths outside the upload root are ignored.
        Failures are logged, never raised: a stray file is not a user-facing error.
        """
        if not relative_path:
            return
        try:
            path = (self.storage_root / relative_path).resolve()
            if not path.is_relative_to(self.storage_root):
                return
            if path.is_file():
                os.remove(path)
                logger.info("Cleaned up file: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", relative_path, str(e))


file_service = FileService()
