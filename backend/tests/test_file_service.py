"""
CivicBridge Backend: File Service Unit Tests
============================================

Test Strategy:
    ✅ Content-type allow-list (jpeg, jpg, png, gif, pdf; parameters ignored)
    ✅ Size limits (empty, over the maximum)
    ✅ File name sanitization
    ✅ Store / replace / remove inside a temporary storage root
    ✅ Path resolution never leaves the project directory
"""

import pytest
from unittest.mock import patch

from civicbridge.exceptions import (
    FileStorageError,
    NotFoundError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from civicbridge.services.file_service import FileService


class TestContentTypeValidation:

    def setup_method(self):
        self.service = FileService()

    @pytest.mark.parametrize(
        "content_type",
        ["image/jpeg", "image/jpg", "image/png", "image/gif", "application/pdf"],
    )
    def test_allowed_types(self, content_type):
        assert self.service.validate_content_type(content_type) == content_type

    def test_parameters_and_case_are_ignored(self):
        assert self.service.validate_content_type("Application/PDF; charset=binary") == "application/pdf"

    def test_rejects_other_types(self):
        with pytest.raises(UnsupportedMediaTypeError, match="Unaccepted mimetype: text/plain"):
            self.service.validate_content_type("text/plain")

    def test_missing_type_rejected(self):
        with pytest.raises(UnsupportedMediaTypeError):
            self.service.validate_content_type(None)

    def test_unsupported_type_is_a_validation_error(self):
        # Rendered as 400 by the global handler
        with pytest.raises(ValidationError):
            self.service.validate_content_type("application/x-msdownload")


class TestSizeValidation:

    def setup_method(self):
        self.service = FileService()

    def test_within_limit(self):
        self.service.validate_size(1024)

    def test_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0)

    def test_over_limit(self):
        with patch("civicbridge.services.file_service.settings") as mock_settings:
            mock_settings.max_file_size = 1024 * 1024
            with pytest.raises(ValidationError, match="exceeds maximum"):
                self.service.validate_size(1024 * 1024 + 1)


class TestFilenameSanitization:

    def test_keeps_plain_names(self):
        assert FileService.sanitize_filename("flyer 2024.pdf") == "flyer 2024.pdf"

    def test_strips_directories(self):
        assert FileService.sanitize_filename("../../etc/passwd") == "passwd"
        assert FileService.sanitize_filename("C:\\Users\\me\\poster.png") == "poster.png"

    def test_replaces_unsafe_characters(self):
        assert FileService.sanitize_filename("plan<v2>.pdf") == "plan_v2_.pdf"

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            FileService.sanitize_filename("..")


class TestStorage:

    @pytest.fixture
    def service(self, temp_storage):
        return FileService(storage_root=temp_storage)

    @pytest.mark.asyncio
    async def test_store_writes_into_project_directory(self, service, sample_pdf_bytes):
        name = await service.store("abc123", "flyer.pdf", sample_pdf_bytes, "application/pdf")

        assert name == "flyer.pdf"
        stored = service.projects_root / "abc123" / "flyer.pdf"
        assert stored.read_bytes() == sample_pdf_bytes

    @pytest.mark.asyncio
    async def test_storing_leaves_other_files(self, service, sample_pdf_bytes, sample_png_bytes):
        await service.store("abc123", "flyer.pdf", sample_pdf_bytes, "application/pdf")
        name = await service.store("abc123", "poster.png", sample_png_bytes, "image/png")

        directory = service.projects_root / "abc123"
        assert name == "poster.png"
        assert sorted(p.name for p in directory.iterdir()) == ["flyer.pdf", "poster.png"]

    @pytest.mark.asyncio
    async def test_same_name_is_overwritten(self, service, sample_pdf_bytes):
        await service.store("abc123", "flyer.pdf", b"old", "application/pdf")
        await service.store("abc123", "flyer.pdf", sample_pdf_bytes, "application/pdf")

        assert (service.projects_root / "abc123" / "flyer.pdf").read_bytes() == sample_pdf_bytes

    @pytest.mark.asyncio
    async def test_invalid_upload_writes_nothing(self, service):
        with pytest.raises(UnsupportedMediaTypeError):
            await service.store("abc123", "notes.txt", b"hello", "text/plain")
        assert not (service.projects_root / "abc123").exists()

    @pytest.mark.asyncio
    async def test_write_failure_becomes_storage_error(self, service, sample_pdf_bytes):
        with patch("civicbridge.services.file_service.aiofiles.open", side_effect=OSError("disk full")):
            with pytest.raises(FileStorageError):
                await service.store("abc123", "flyer.pdf", sample_pdf_bytes, "application/pdf")

    @pytest.mark.asyncio
    async def test_remove_project_dir(self, service, sample_pdf_bytes):
        await service.store("abc123", "flyer.pdf", sample_pdf_bytes, "application/pdf")
        await service.remove_project_dir("abc123")
        assert not (service.projects_root / "abc123").exists()

    @pytest.mark.asyncio
    async def test_remove_missing_things_does_not_raise(self, service):
        await service.remove_file("nope", "missing.pdf")
        await service.remove_project_dir("nope")


class TestResolve:

    @pytest.fixture
    def service(self, temp_storage):
        return FileService(storage_root=temp_storage)

    @pytest.mark.asyncio
    async def test_resolves_stored_file(self, service, sample_pdf_bytes):
        await service.store("abc123", "flyer.pdf", sample_pdf_bytes, "application/pdf")
        path = service.resolve("abc123", "flyer.pdf")
        assert path.read_bytes() == sample_pdf_bytes

    def test_missing_file(self, service):
        with pytest.raises(NotFoundError):
            service.resolve("abc123", "flyer.pdf")

    @pytest.mark.asyncio
    async def test_traversal_is_not_found(self, service, sample_pdf_bytes):
        await service.store("abc123", "flyer.pdf", sample_pdf_bytes, "application/pdf")
        await service.store("other", "secret.pdf", sample_pdf_bytes, "application/pdf")

        with pytest.raises(NotFoundError):
            service.resolve("abc123", "../other/secret.pdf")
        with pytest.raises(NotFoundError):
            service.resolve("..", "projects/other/secret.pdf")
