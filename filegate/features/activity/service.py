"""
Activity log service.

Every file operation leaves one append-only record. Writing the record is
best effort: the file operation has already happened and stays done even
when the log write fails.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.core.context import get_correlation_id
from filegate.core.filters import eq
from filegate.core.table_store import TableStore
from filegate.models.activity import (
    ActivityAction,
    ActivityRecord,
    reverse_chronological_key,
)

logger = structlog.get_logger(__name__)

CONTAINER_ACTIVITY_LIMIT = 50
ALL_ACTIVITY_LIMIT = 100


class ActivityService:
    """Activity log reads and writes."""

    @staticmethod
    async def log_activity(
        db: AsyncSession,
        container: str,
        action: ActivityAction,
        file_name: str,
        directory: str,
        performed_by: str,
        size_bytes: int = 0,
        correlation_id: str | None = None,
    ) -> ActivityRecord | None:
        """
        Append an activity record.

        Returns the record, or None when the write failed (logged, not raised).
        """
        record = ActivityRecord(
            partition_key=container,
            row_key=reverse_chronological_key(),
            action=action.value,
            file_name=file_name,
            directory=directory,
            performed_by=performed_by,
            size_bytes=size_bytes,
            correlation_id=correlation_id or get_correlation_id() or "",
        )

        try:
            return await TableStore(db, ActivityRecord).insert(record)
        except Exception as e:
            logger.warning(
                "activity_log_failed",
                container=container,
                action=action.value,
                file_name=file_name,
                error=str(e),
            )
            return None

    @staticmethod
    async def get_activity(
        db: AsyncSession,
        container: str,
        take: int = CONTAINER_ACTIVITY_LIMIT,
    ) -> list[ActivityRecord]:
        """Newest ``take`` records for one container."""
        store = TableStore(db, ActivityRecord)
        return [
            record
            async for record in store.query(eq("partition_key", container), limit=take)
        ]

    @staticmethod
    async def get_all_activity(
        db: AsyncSession,
        take: int = ALL_ACTIVITY_LIMIT,
    ) -> list[ActivityRecord]:
        """Newest ``take`` records across every container."""
        store = TableStore(db, ActivityRecord)
        return [record async for record in store.query(limit=take)]


# Singleton instance
activity_service = ActivityService()
