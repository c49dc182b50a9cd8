"""
Pydantic schemas package.
"""

from filegate.schemas.activity import ActivityRead
from filegate.schemas.common import (
    BaseSchema,
    ErrorBody,
    ErrorResponse,
    MessageResponse,
)
from filegate.schemas.file import (
    ContainerList,
    FileList,
    FileRead,
    FileUploadResponse,
)
from filegate.schemas.tenant import (
    DeprovisionResponse,
    ThirdPartyCreate,
    ThirdPartyRead,
    ThirdPartyUpdate,
)

__all__ = [
    # Common
    "BaseSchema",
    "MessageResponse",
    "ErrorBody",
    "ErrorResponse",
    # Third parties
    "ThirdPartyCreate",
    "ThirdPartyRead",
    "ThirdPartyUpdate",
    "DeprovisionResponse",
    # Files
    "ContainerList",
    "FileRead",
    "FileList",
    "FileUploadResponse",
    # Activity
    "ActivityRead",
]
