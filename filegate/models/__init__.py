"""
Database models package.
"""

from filegate.core.database import Base
from filegate.models.base import TableEntity
from filegate.models.tenant import (
    ALLOWED_TRANSITIONS,
    LIVE_STATUSES,
    THIRD_PARTY_PARTITION,
    TenantStatus,
    ThirdParty,
)
from filegate.models.activity import (
    ActivityAction,
    ActivityRecord,
    reverse_chronological_key,
)

__all__ = [
    "Base",
    "TableEntity",
    "ALLOWED_TRANSITIONS",
    "LIVE_STATUSES",
    "THIRD_PARTY_PARTITION",
    "TenantStatus",
    "ThirdParty",
    "ActivityAction",
    "ActivityRecord",
    "reverse_chronological_key",
]
