"""
Pydantic schemas for third-party onboarding.
"""

from datetime import datetime

from pydantic import Field

from filegate.schemas.common import BaseSchema


class ThirdPartyCreate(BaseSchema):
    """
    Schema for onboarding a third party.

    Blank names and emails are rejected by the service with INVALID_INPUT,
    so they are not constrained here.
    """

    company_name: str = Field("", max_length=255, description="Organisation name")
    contact_email: str = Field("", max_length=255, description="Contact address")
    automation_enabled: bool = Field(False, description="Provision an app identity for the third party")


class ThirdPartyUpdate(BaseSchema):
    """Editable fields. Container name and automation flag are fixed at creation."""

    company_name: str | None = Field(None, max_length=255)
    contact_email: str | None = Field(None, max_length=255)


class ThirdPartyRead(BaseSchema):
    """Schema for reading a registry entry."""

    id: str
    company_name: str
    contact_email: str
    container_name: str
    status: str
    automation_enabled: bool
    app_registration_id: str | None = None
    external_identity_ref: str | None = None
    created_at: datetime
    updated_at: datetime


class DeprovisionResponse(BaseSchema):
    """Outcome of a deprovisioning request."""

    id: str
    status: str
    message: str
