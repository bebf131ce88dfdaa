"""
Inkpress Backend — File Service Unit Tests
===========================================

What:  Tests for upload validation (extension, size, image content), storage
       layout, path resolution and cleanup.
How:   Each test gets its own FileService rooted in a temporary directory.

Test Strategy:
    ✅ Allowed extensions (.jpg, .jpeg, .png, .gif, .webp), case-insensitive
    ✅ Rejected extensions (.pdf, .exe, none)
    ✅ Size limits and empty files
    ✅ Bytes that are not an image, even with an image extension
    ✅ Path traversal is refused when serving
"""

import pytest

from inkpress.config import settings
from inkpress.exceptions import NotFoundError, ValidationError
from inkpress.services.file_service import FileService


class TestFileValidation:
    """Tests for validation logic in FileService."""

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(storage_root=temp_storage)

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["photo.jpg", "photo.jpeg", "photo.png", "anim.gif", "pic.webp"])
    def test_validate_extension_allowed(self, filename):
        self.service._validate_extension(filename)

    def test_validate_extension_uppercase(self):
        """Extension check should be case-insensitive."""
        assert self.service._validate_extension("photo.JPG") == ".jpg"
        assert self.service._validate_extension("photo.Png") == ".png"

    @pytest.mark.parametrize("filename", ["document.pdf", "malware.exe", "noextension"])
    def test_validate_extension_rejected(self, filename):
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            self.service._validate_extension(filename)
        assert exc_info.value.errors[0]["field"] == "image"

    # ── Size Validation ───────────────────────────────────────────────────

    def test_validate_size_within_limit(self):
        self.service._validate_size(b"x" * 1000, None)

    def test_validate_size_at_limit(self):
        self.service._validate_size(b"x" * settings.max_file_size, settings.max_file_size)

    def test_validate_size_over_limit(self):
        content = b"x" * (settings.max_file_size + 1)
        with pytest.raises(ValidationError, match="too large"):
            self.service._validate_size(content, len(content))

    def test_validate_size_declared_length_over_limit(self):
        """A Content-Length over the limit is refused even if fewer bytes arrived."""
        with pytest.raises(ValidationError, match="too large"):
            self.service._validate_size(b"x" * 10, settings.max_file_size + 1)

    def test_validate_size_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service._validate_size(b"", 0)

    # ── Content Validation ────────────────────────────────────────────────

    def test_validate_image_content_png(self, sample_image_bytes):
        assert self.service._validate_image_content(sample_image_bytes) == ".png"

    def test_validate_image_content_rejects_text(self):
        with pytest.raises(ValidationError, match="not a valid image"):
            self.service._validate_image_content(b"#!/bin/sh\necho pwned\n")


class TestFileStorage:
    """Tests for storing, resolving and removing uploads on disk."""

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.root = temp_storage
        self.service = FileService(storage_root=temp_storage)

    @pytest.mark.asyncio
    async def test_validate_and_store_creates_date_directory(self, sample_image_bytes):
        abs_path, rel_path = await self.service.validate_and_store(
            filename="holiday.png",
            content=sample_image_bytes,
            content_length=len(sample_image_bytes),
        )

        # YYYY/MM/DD/<uuid>.png
        parts = rel_path.split("/")
        assert len(parts) == 4
        assert parts[0].isdigit() and len(parts[0]) == 4
        assert rel_path.endswith(".png")
        assert "holiday" not in rel_path

        with open(abs_path, "rb") as f:
            assert f.read() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_stored_extension_follows_content(self, sample_image_bytes):
        """PNG bytes uploaded as .jpg are stored with the detected extension."""
        _, rel_path = await self.service.validate_and_store("mislabelled.jpg", sample_image_bytes)
        assert rel_path.endswith(".png")

    @pytest.mark.asyncio
    async def test_resolve_stored_file(self, sample_image_bytes):
        abs_path, rel_path = await self.service.validate_and_store("a.png", sample_image_bytes)
        assert str(self.service.resolve(rel_path)) == abs_path

    def test_resolve_missing_file(self):
        with pytest.raises(NotFoundError):
            self.service.resolve("2024/01/01/missing.png")

    def test_resolve_rejects_traversal(self):
        with pytest.raises(ValidationError, match="Invalid file path"):
            self.service.resolve("../../etc/passwd")

    # ── Cleanup ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self, sample_image_bytes):
        abs_path, rel_path = await self.service.validate_and_store("a.png", sample_image_bytes)

        await self.service.cleanup_file(rel_path)

        with pytest.raises(NotFoundError):
            self.service.resolve(rel_path)

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self):
        """cleanup_file should not raise for files that are already gone."""
        await self.service.cleanup_file("2024/01/01/nonexistent.jpg")

    @pytest.mark.asyncio
    async def test_cleanup_file_ignores_outside_root(self, tmp_path):
        outside = tmp_path / "keep.txt"
        outside.write_text("do not delete")

        await self.service.cleanup_file("../keep.txt")

        assert outside.exists()
