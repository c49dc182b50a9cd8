"""
Pydantic schemas for the activity log.
"""

from datetime import datetime

from filegate.schemas.common import BaseSchema


class ActivityRead(BaseSchema):
    """One activity log entry."""

    container: str
    action: str
    file_name: str
    directory: str
    performed_by: str
    size_bytes: int
    correlation_id: str
    created_at: datetime
