"""
CivicBridge Backend: Project Attachment Storage
===============================================

What:  Validates, stores, replaces and removes project attachments.
How:   Each project owns one directory, <storage_root>/projects/<project_id>/,
       holding at most one attachment. The database stores only the file name.
Who:   Called by ProjectService on create/update/delete and by the blob route.

Security Model:
    1. Content-type allow-list (jpeg, jpg, png, gif, pdf)
    2. Size limit from settings.max_file_size
    3. File name reduced to its final path component
    4. Every resolved path must stay inside the storage root

Replacement Policy:
    Storing writes the new blob only. ProjectService removes the replaced one
    once the row pointing at the new name has been flushed. Deleting a
    project removes its whole directory.
"""

import logging
import re
import shutil
from pathlib import Path
from typing import Optional

import aiofiles

from civicbridge.config import settings
from civicbridge.constants import ALLOWED_ATTACHMENT_TYPES
from civicbridge.exceptions import (
    FileStorageError,
    NotFoundError,
    UnsupportedMediaTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PROJECTS_DIR = "projects"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


class FileService:
    """
    Manages the per-project attachment namespace.

    Directory Structure:
        storage/
        └── projects/
            ├── 3f9c1a.../
            │   └── flyer.pdf
            └── 7b20de.../
                └── poster.png
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                         If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.projects_root = self.storage_root / PROJECTS_DIR
        self.projects_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """
        Check the declared content type against the allow-list.

        Parameters such as "; charset=..." are ignored.
        """
        mime_type = (content_type or "").split(";")[0].strip().lower()
        if mime_type not in ALLOWED_ATTACHMENT_TYPES:
            raise UnsupportedMediaTypeError(
                content_type=mime_type or "unknown",
                allowed=ALLOWED_ATTACHMENT_TYPES,
            )
        return mime_type

    def validate_size(self, actual_size: int) -> None:
        max_mb = settings.max_file_size / (1024 * 1024)
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")
        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    @staticmethod
    def sanitize_filename(filename: Optional[str]) -> str:
        """Keep only the final path component and a conservative character set."""
        name = Path((filename or "").replace("\\", "/")).name
        name = _UNSAFE_CHARS.sub("_", name).strip(" .")
        if not name:
            raise ValidationError(message="Uploaded file has no usable name.", field="file")
        return name[:255]

    def project_dir(self, project_id: str) -> Path:
        path = (self.projects_root / project_id).resolve()
        if path.parent != self.projects_root:
            raise ValidationError(message="Invalid project id", field="id")
        return path

    async def store(
        self,
        project_id: str,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
    ) -> str:
        """
        Validate and write an attachment; return the stored file name.

        Validation order: content type, size, name. A file with the same name
        is overwritten; other files in the directory are left alone.
        """
        self.validate_content_type(content_type)
        self.validate_size(len(content))
        name = self.sanitize_filename(filename)

        directory = self.project_dir(project_id)
        target = directory / name
        try:
            directory.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store attachment at %s: %s", target, str(e))
            raise FileStorageError(
                message="Failed to save the uploaded file. Please try again.",
                context={"project_id": project_id},
            )

        logger.info("Attachment stored: project=%s file=%s (%d bytes)", project_id, name, len(content))
        return name

    async def remove_file(self, project_id: str, filename: str) -> None:
        """Best-effort removal of a single attachment."""
        try:
            path = self.project_dir(project_id) / Path(filename).name
            if path.exists():
                path.unlink()
                logger.info("Removed attachment: project=%s file=%s", project_id, path.name)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to remove attachment %s/%s: %s", project_id, filename, str(e))

    async def remove_project_dir(self, project_id: str) -> None:
        """Best-effort removal of a project's whole attachment directory."""
        try:
            directory = self.project_dir(project_id)
            if directory.exists():
                shutil.rmtree(directory)
                logger.info("Removed attachment directory for project %s", project_id)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to remove attachment directory %s: %s", project_id, str(e))

    def resolve(self, project_id: str, file_path: str) -> Path:
        """
        Map a request path below a project directory to a file on disk.

        Raises NotFoundError for anything outside the storage root or missing.
        """
        try:
            directory = self.project_dir(project_id)
        except ValidationError:
            raise NotFoundError(resource="file", resource_id=file_path)
        full_path = (directory / file_path).resolve()
        if not full_path.is_relative_to(directory) or not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=file_path)
        return full_path


file_service = FileService()
