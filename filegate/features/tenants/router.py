"""
Third-party onboarding endpoints (admin only).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.core.database import get_db
from filegate.features.auth.dependencies import AdminCaller
from filegate.features.tenants.service import DEFAULT_LIST_LIMIT, onboarding_service
from filegate.schemas.tenant import (
    DeprovisionResponse,
    ThirdPartyCreate,
    ThirdPartyRead,
    ThirdPartyUpdate,
)

router = APIRouter(prefix="/admin/third-parties", tags=["Onboarding"])


@router.get("", response_model=list[ThirdPartyRead])
async def list_third_parties(
    caller: AdminCaller,
    db: Annotated[AsyncSession, Depends(get_db)],
    top: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=1000, description="Maximum records to return"),
) -> list[ThirdPartyRead]:
    """List registered third parties."""
    parties = await onboarding_service.list_third_parties(db, top)
    return [ThirdPartyRead.model_validate(party) for party in parties]


@router.post("", response_model=ThirdPartyRead, status_code=status.HTTP_201_CREATED)
async def create_third_party(
    data: ThirdPartyCreate,
    caller: AdminCaller,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ThirdPartyRead:
    """
    Register a third party.

    The container name is derived from the company name. Provisioning
    (container, optional app identity) runs in the background; the record
    stays "provisioning" until it finishes.
    """
    party = await onboarding_service.create_third_party(db, data)
    return ThirdPartyRead.model_validate(party)


@router.get("/{third_party_id}", response_model=ThirdPartyRead)
async def get_third_party(
    third_party_id: str,
    caller: AdminCaller,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ThirdPartyRead:
    """Get third-party details."""
    party = await onboarding_service.get_third_party(db, third_party_id)
    return ThirdPartyRead.model_validate(party)


@router.put("/{third_party_id}", response_model=ThirdPartyRead)
async def update_third_party(
    third_party_id: str,
    data: ThirdPartyUpdate,
    caller: AdminCaller,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ThirdPartyRead:
    """Update company name and contact email."""
    party = await onboarding_service.update_third_party(db, third_party_id, data)
    return ThirdPartyRead.model_validate(party)


@router.delete(
    "/{third_party_id}",
    response_model=DeprovisionResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def deprovision_third_party(
    third_party_id: str,
    caller: AdminCaller,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeprovisionResponse:
    """
    Deprovision a third party.

    The record is kept; its container is archived in the background.
    """
    party = await onboarding_service.request_deprovisioning(db, third_party_id)
    return DeprovisionResponse(
        id=party.row_key,
        status=party.status,
        message="Deprovisioning requested" if party.status == "deprovisioning" else f"Third party is {party.status}",
    )
