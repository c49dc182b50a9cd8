"""
Blob storage abstraction layer.

Containers hold two directories, ``inbound/`` and ``outbound/``. The
backend guarantees that ``put`` is atomic with its existence check: two
concurrent uploads of the same path yield one success and one
BlobExistsError, never a silent overwrite.
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from filegate.config import settings
from filegate.features.files.sanitizer import VALID_DIRECTORIES

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = ".keep"


class BlobExistsError(Exception):
    """Raised when writing to a path that already exists."""
    pass


class BlobNotFoundError(Exception):
    """Raised when reading a path that doesn't exist."""
    pass


@dataclass(frozen=True)
class BlobInfo:
    """Listing entry for one stored blob."""

    name: str
    size_bytes: int
    modified_at: datetime
    access_tier: str = "Hot"


class StorageBackend(ABC):
    """Abstract storage backend interface."""

    @abstractmethod
    async def exists(self, container: str, path: str) -> bool:
        """Check if a blob exists."""
        pass

    @abstractmethod
    async def put(self, container: str, path: str, content: BinaryIO) -> BlobInfo:
        """
        Store a new blob.

        Raises:
            BlobExistsError: path already exists (checked atomically with the write)
        """
        pass

    @abstractmethod
    async def get(self, container: str, path: str) -> BinaryIO:
        """
        Open a blob for reading.

        Raises:
            BlobNotFoundError: path doesn't exist
        """
        pass

    @abstractmethod
    async def delete(self, container: str, path: str) -> bool:
        """Delete a blob. Returns False if it wasn't there."""
        pass

    @abstractmethod
    async def list_containers(self, prefix: str) -> list[str]:
        """Container names starting with ``prefix``."""
        pass

    @abstractmethod
    async def list_blobs(self, container: str, prefix: str) -> list[BlobInfo]:
        """Blobs under ``prefix``; names are relative to the prefix."""
        pass

    @abstractmethod
    async def create_container(self, container: str) -> None:
        """Create a container with its inbound/outbound directories."""
        pass

    @abstractmethod
    async def archive_container(self, container: str) -> bool:
        """Take a container out of service, keeping its data."""
        pass


class LocalFileStorage(StorageBackend):
    """
    Local filesystem storage.

    Layout:
    {root}/
      ├── containers/
      │   └── {container}/
      │       ├── inbound/
      │       └── outbound/
      └── archive/
          └── {container}-{timestamp}/
    """

    def __init__(self, base_path: str | None = None):
        self.base_path = Path(base_path or settings.storage_root).resolve()
        self.containers_path = self.base_path / "containers"
        self.archive_path = self.base_path / "archive"
        self.containers_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized local storage: {self.base_path}")

    def _container_path(self, container: str) -> Path:
        full_path = (self.containers_path / container).resolve()
        if full_path.parent != self.containers_path:
            raise ValueError(f"Invalid container name: {container!r}")
        return full_path

    def _blob_path(self, container: str, path: str) -> Path:
        container_path = self._container_path(container)
        full_path = (container_path / path).resolve()
        if container_path not in full_path.parents:
            raise ValueError(f"Path escapes container: {path!r}")
        return full_path

    @staticmethod
    def _info(path: Path, name: str) -> BlobInfo:
        stat = path.stat()
        return BlobInfo(
            name=name,
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    async def exists(self, container: str, path: str) -> bool:
        return self._blob_path(container, path).is_file()

    async def put(self, container: str, path: str, content: BinaryIO) -> BlobInfo:
        """Write with O_EXCL so the existence check and create are one step."""
        full_path = self._blob_path(container, path)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            f = open(full_path, "xb")
        except FileExistsError:
            raise BlobExistsError(f"File '{full_path.name}' already exists in {container}/{path.rsplit('/', 1)[0]}.")

        try:
            with f:
                shutil.copyfileobj(content, f)
        except BaseException:
            # No partial blobs
            full_path.unlink(missing_ok=True)
            raise

        logger.info(f"File saved: {container}/{path}")
        return self._info(full_path, full_path.name)

    async def get(self, container: str, path: str) -> BinaryIO:
        full_path = self._blob_path(container, path)

        if not full_path.is_file():
            raise BlobNotFoundError(f"File not found: {container}/{path}")

        return open(full_path, "rb")

    async def delete(self, container: str, path: str) -> bool:
        full_path = self._blob_path(container, path)

        if full_path.is_file():
            full_path.unlink()
            logger.info(f"File deleted: {container}/{path}")
            return True

        logger.warning(f"File not found for deletion: {container}/{path}")
        return False

    async def list_containers(self, prefix: str) -> list[str]:
        return sorted(
            entry.name
            for entry in self.containers_path.iterdir()
            if entry.is_dir() and entry.name.startswith(prefix)
        )

    async def list_blobs(self, container: str, prefix: str) -> list[BlobInfo]:
        directory = self._blob_path(container, prefix)
        if not directory.is_dir():
            return []

        return [
            self._info(entry, entry.name)
            for entry in sorted(directory.iterdir())
            if entry.is_file()
        ]

    async def create_container(self, container: str) -> None:
        container_path = self._container_path(container)
        for directory in sorted(VALID_DIRECTORIES):
            (container_path / directory).mkdir(parents=True, exist_ok=True)
            (container_path / directory / PLACEHOLDER_NAME).touch(exist_ok=True)

        logger.info(f"Container created: {container}")

    async def archive_container(self, container: str) -> bool:
        container_path = self._container_path(container)
        if not container_path.is_dir():
            return False

        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        self.archive_path.mkdir(parents=True, exist_ok=True)
        os.replace(container_path, self.archive_path / f"{container}-{stamp}")

        logger.info(f"Container archived: {container}")
        return True


def blob_path(directory: str, file_name: str) -> str:
    """Storage path for a file within a container."""
    return f"{directory}/{file_name}"


def get_storage() -> StorageBackend:
    """
    Get storage backend based on configuration.

    Returns:
        Configured storage backend instance
    """
    return LocalFileStorage()
