"""Pydantic schemas for organizations."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OrganizationCreate(BaseModel):
    """Schema for creating an organization."""

    name: str = Field(..., min_length=1, max_length=255)


class OrganizationResponse(BaseModel):
    """Schema for organization response."""

    id: str
    name: str
    created_by_id: str | None = None
    created_at: datetime | None = None
    role: str | None = None

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    """Schema for organization member list item."""

    user_id: str
    email: str
    full_name: str
    role: str
    joined_at: datetime | None = None
