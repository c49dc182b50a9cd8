"""
Activity (audit) log model.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from filegate.models.base import TableEntity

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MAX_MICROS = (datetime.max.replace(tzinfo=timezone.utc) - _EPOCH) // _EPOCH.resolution


class ActivityAction(str, Enum):
    """File operation recorded in the activity log."""
    UPLOAD = "Upload"
    DOWNLOAD = "Download"
    DELETE = "Delete"


def reverse_chronological_key(now: datetime | None = None) -> str:
    """
    Row key that sorts newest first.

    Format: 20-digit (max - now) microsecond count, "_", random hex suffix.
    """
    now = now or datetime.now(timezone.utc)
    micros = (now - _EPOCH) // _EPOCH.resolution
    return f"{_MAX_MICROS - micros:020d}_{uuid.uuid4().hex}"


class ActivityRecord(TableEntity):
    """
    One file operation.

    partition_key is the container name; row_key comes from
    ``reverse_chronological_key`` so scanning a partition in key order
    yields newest records first. Written once, never updated.
    """

    __tablename__ = "activity"

    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Upload | Download | Delete"
    )

    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Sanitized file name"
    )

    directory: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="inbound | outbound"
    )

    performed_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name of the acting caller"
    )

    size_bytes: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="Bytes transferred (uploads only)"
    )

    correlation_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
        comment="Request correlation id"
    )

    @property
    def container(self) -> str:
        return self.partition_key

    def __repr__(self) -> str:
        return f"<ActivityRecord({self.partition_key}, {self.action} {self.file_name})>"
