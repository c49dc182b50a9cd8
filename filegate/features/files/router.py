"""
Container and file endpoints.

Every file route checks the directory tag first, then the authorization
gate, before anything reaches storage.
"""

from functools import lru_cache
from typing import Annotated, BinaryIO, Iterator

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.config import settings
from filegate.core.database import get_db
from filegate.features.access.gate import ContainerCaller
from filegate.features.auth.dependencies import IdentifiedCaller
from filegate.features.files.service import file_service
from filegate.features.files.storage import StorageBackend, get_storage
from filegate.features.files.validation import AdmissionValidator, FileValidationOptions
from filegate.schemas.file import ContainerList, FileList, FileRead, FileUploadResponse

router = APIRouter(prefix="/containers", tags=["Files"])

DOWNLOAD_CHUNK_SIZE = 64 * 1024


@lru_cache()
def get_admission_validator() -> AdmissionValidator:
    """Validator built once from settings."""
    return AdmissionValidator(FileValidationOptions.from_settings(settings))


Validator = Annotated[AdmissionValidator, Depends(get_admission_validator)]
Storage = Annotated[StorageBackend, Depends(get_storage)]


async def require_directory(
    validator: Validator,
    directory: str | None = Query(None, alias="dir", description="inbound or outbound"),
) -> str:
    """Reject anything but the two directory tags (runs before the gate)."""
    return validator.check_directory(directory)


Directory = Annotated[str, Depends(require_directory)]


def _iter_chunks(stream: BinaryIO) -> Iterator[bytes]:
    with stream:
        while chunk := stream.read(DOWNLOAD_CHUNK_SIZE):
            yield chunk


@router.get("", response_model=ContainerList)
async def list_containers(
    caller: IdentifiedCaller,
    storage: Storage,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ContainerList:
    """List containers the caller can access."""
    containers = await file_service.list_containers(db, storage, caller)
    return ContainerList(containers=containers)


@router.get("/{container_name}/files", response_model=FileList)
async def list_files(
    container_name: str,
    directory: Directory,
    caller: ContainerCaller,
    storage: Storage,
) -> FileList:
    """List files (Hot tier only) in a container directory."""
    blobs = await file_service.list_files(storage, container_name, directory)
    return FileList(
        container=container_name,
        directory=directory,
        files=[FileRead.model_validate(blob) for blob in blobs],
    )


@router.get("/{container_name}/files/{file_name}")
async def download_file(
    container_name: str,
    file_name: str,
    directory: Directory,
    caller: ContainerCaller,
    storage: Storage,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StreamingResponse:
    """
    Download a file.

    Served as an opaque attachment.
    """
    clean_name, stream = await file_service.download_file(
        db, storage, container_name, directory, file_name, caller
    )

    return StreamingResponse(
        _iter_chunks(stream),
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{clean_name}"',
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.post(
    "/{container_name}/files",
    response_model=FileUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_file(
    container_name: str,
    directory: Directory,
    caller: ContainerCaller,
    validator: Validator,
    storage: Storage,
    db: Annotated[AsyncSession, Depends(get_db)],
    file: UploadFile | None = File(None, description="File to upload"),
) -> FileUploadResponse:
    """
    Upload a file.

    Accepts .pdf, .xlsx, .xls, .csv and .txt by default; binary formats
    must start with their format's signature bytes. Existing files are
    never overwritten.
    """
    return await file_service.upload_file(
        db, storage, validator, container_name, directory, file, caller
    )


@router.delete("/{container_name}/files/{file_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    container_name: str,
    file_name: str,
    directory: Directory,
    caller: ContainerCaller,
    storage: Storage,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    """Delete a file. Deleting a missing file is not an error."""
    await file_service.delete_file(db, storage, container_name, directory, file_name, caller)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
