"""
Base model with common fields for all table-store entities.

Provides:
- Composite key (partition_key, row_key)
- Timestamps (created_at, updated_at)
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from filegate.core.database import Base


class TableEntity(Base):
    """
    Abstract base for table-store shaped rows.

    Every row is addressed by (partition_key, row_key). Queries scan one
    partition in row_key order, so row keys are chosen to sort the way
    callers want to read them.

    Note: This is an abstract class (no __tablename__).
    Subclasses must define __tablename__.
    """

    __abstract__ = True

    partition_key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Partition the row belongs to"
    )

    row_key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Key unique within the partition"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp when record was created"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Timestamp when record was last updated"
    )

    # Fields the filter language may reference, mapped to columns.
    @classmethod
    def filter_columns(cls) -> dict[str, Any]:
        return {column.key: getattr(cls, column.key) for column in cls.__table__.columns}

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.partition_key}/{self.row_key})>"
