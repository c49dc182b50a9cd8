"""
Pydantic schemas for container and file operations.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from filegate.schemas.common import BaseSchema


class ContainerList(BaseModel):
    """Containers visible to the caller."""

    containers: list[str]


class FileRead(BaseSchema):
    """One file in a container directory."""

    name: str
    size_bytes: int
    modified_at: datetime
    access_tier: str = "Hot"


class FileList(BaseModel):
    """Directory listing."""

    container: str
    directory: str
    files: list[FileRead]


class FileUploadResponse(BaseModel):
    """Metadata for an accepted upload."""

    container: str
    directory: str
    file_name: str = Field(..., description="Sanitized name the file was stored under")
    size_bytes: int
    uploaded_at: datetime
