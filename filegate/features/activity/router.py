"""
Activity log endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.core.database import get_db
from filegate.features.access.gate import ContainerCaller
from filegate.features.activity.service import (
    ALL_ACTIVITY_LIMIT,
    CONTAINER_ACTIVITY_LIMIT,
    activity_service,
)
from filegate.features.auth.dependencies import AdminCaller
from filegate.schemas.activity import ActivityRead

router = APIRouter(tags=["Activity"])


@router.get("/containers/{container_name}/activity", response_model=list[ActivityRead])
async def get_container_activity(
    container_name: str,
    caller: ContainerCaller,
    db: Annotated[AsyncSession, Depends(get_db)],
    take: int = Query(CONTAINER_ACTIVITY_LIMIT, ge=1, le=CONTAINER_ACTIVITY_LIMIT),
) -> list[ActivityRead]:
    """Newest activity for one container (newest first)."""
    records = await activity_service.get_activity(db, container_name, take)
    return [ActivityRead.model_validate(record) for record in records]


@router.get("/activity", response_model=list[ActivityRead])
async def get_all_activity(
    caller: AdminCaller,
    db: Annotated[AsyncSession, Depends(get_db)],
    take: int = Query(ALL_ACTIVITY_LIMIT, ge=1, le=ALL_ACTIVITY_LIMIT),
) -> list[ActivityRead]:
    """
    Newest activity across all containers.

    Requires the admin role.
    """
    records = await activity_service.get_all_activity(db, take)
    return [ActivityRead.model_validate(record) for record in records]
