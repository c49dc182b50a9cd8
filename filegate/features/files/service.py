"""
File operations on tenant containers.

Routes gate access before calling in here; this layer runs admission,
talks to storage and records activity.
"""

import logging
import os
from datetime import datetime, timezone
from typing import BinaryIO

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.config import settings
from filegate.core.exceptions import FileExistsConflict, bad_request, not_found
from filegate.core.metrics import file_bytes_uploaded_total, file_operations_total
from filegate.features.access.registry import get_access_registry_for
from filegate.features.activity.service import activity_service
from filegate.features.auth.caller import CallerContext
from filegate.features.files.sanitizer import sanitize_filename
from filegate.features.files.storage import (
    PLACEHOLDER_NAME,
    BlobExistsError,
    BlobInfo,
    BlobNotFoundError,
    StorageBackend,
    blob_path,
)
from filegate.features.files.validation import AdmissionValidator
from filegate.models.activity import ActivityAction
from filegate.schemas.file import FileUploadResponse

logger = logging.getLogger(__name__)

MAX_LISTED_FILES = 100
LISTED_TIER = "Hot"


def upload_size(file: UploadFile | None) -> int | None:
    """Size of an uploaded file, measuring the spooled stream if needed."""
    if file is None:
        return None
    if file.size is not None:
        return file.size

    position = file.file.tell()
    size = file.file.seek(0, os.SEEK_END)
    file.file.seek(position)
    return size


class FileService:
    """Container and file operations."""

    @staticmethod
    async def list_containers(
        db: AsyncSession,
        storage: StorageBackend,
        caller: CallerContext,
    ) -> list[str]:
        """Existing containers under the prefix that the caller may see."""
        existing = await storage.list_containers(settings.container_prefix)

        registry = get_access_registry_for(db)
        accessible = await registry.accessible_containers(
            caller.caller_id,
            caller.is_admin,
            caller.is_org_user,
        )

        return [name for name in existing if name in accessible]

    @staticmethod
    async def list_files(
        storage: StorageBackend,
        container: str,
        directory: str,
    ) -> list[BlobInfo]:
        """Hot-tier files of one directory, placeholders hidden."""
        blobs = await storage.list_blobs(container, directory)
        visible = [
            blob for blob in blobs
            if blob.name != PLACEHOLDER_NAME and blob.access_tier == LISTED_TIER
        ]
        return visible[:MAX_LISTED_FILES]

    @staticmethod
    async def upload_file(
        db: AsyncSession,
        storage: StorageBackend,
        validator: AdmissionValidator,
        container: str,
        directory: str,
        file: UploadFile | None,
        caller: CallerContext,
    ) -> FileUploadResponse:
        """
        Admit and store an upload, then record it.

        Raises:
            AdmissionError: a gate rejected the file
            FileExistsConflict: the sanitized name is already taken
        """
        size_bytes = upload_size(file)
        validator.check_size(size_bytes)

        file_name = validator.check_file_name(file.filename)
        validator.check_extension(file_name)
        validator.check_content(file.file, file_name)

        try:
            info = await storage.put(container, blob_path(directory, file_name), file.file)
        except BlobExistsError:
            logger.info(f"Upload conflict: {container}/{directory}/{file_name}")
            raise FileExistsConflict(f"File '{file_name}' already exists in {directory}.")

        file_operations_total.labels(action=ActivityAction.UPLOAD.value).inc()
        file_bytes_uploaded_total.inc(size_bytes)

        await activity_service.log_activity(
            db,
            container=container,
            action=ActivityAction.UPLOAD,
            file_name=file_name,
            directory=directory,
            performed_by=caller.performed_by,
            size_bytes=size_bytes,
        )

        return FileUploadResponse(
            container=container,
            directory=directory,
            file_name=file_name,
            size_bytes=size_bytes,
            uploaded_at=info.modified_at or datetime.now(timezone.utc),
        )

    @staticmethod
    async def download_file(
        db: AsyncSession,
        storage: StorageBackend,
        container: str,
        directory: str,
        raw_name: str,
        caller: CallerContext,
    ) -> tuple[str, BinaryIO]:
        """
        Open a stored file for download and record the download.

        Returns:
            (sanitized file name, open binary stream)
        """
        file_name = FileService._clean_name(raw_name)

        try:
            stream = await storage.get(container, blob_path(directory, file_name))
        except BlobNotFoundError:
            raise not_found("File not found.", code="FILE_NOT_FOUND")

        file_operations_total.labels(action=ActivityAction.DOWNLOAD.value).inc()

        await activity_service.log_activity(
            db,
            container=container,
            action=ActivityAction.DOWNLOAD,
            file_name=file_name,
            directory=directory,
            performed_by=caller.performed_by,
        )

        return file_name, stream

    @staticmethod
    async def delete_file(
        db: AsyncSession,
        storage: StorageBackend,
        container: str,
        directory: str,
        raw_name: str,
        caller: CallerContext,
    ) -> bool:
        """Delete a file if present. Only an actual deletion is recorded."""
        file_name = FileService._clean_name(raw_name)

        deleted = await storage.delete(container, blob_path(directory, file_name))
        if not deleted:
            return False

        file_operations_total.labels(action=ActivityAction.DELETE.value).inc()

        await activity_service.log_activity(
            db,
            container=container,
            action=ActivityAction.DELETE,
            file_name=file_name,
            directory=directory,
            performed_by=caller.performed_by,
        )
        return True

    @staticmethod
    def _clean_name(raw_name: str) -> str:
        file_name = sanitize_filename(raw_name)
        if file_name is None:
            raise bad_request("Invalid file name.", code="INVALID_FILENAME")
        if file_name == PLACEHOLDER_NAME:
            # Directory marker, hidden from listings
            raise not_found("File not found.", code="FILE_NOT_FOUND")
        return file_name


# Singleton instance
file_service = FileService()
