"""Pydantic schemas for invitations."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from taskboard.db.models import MemberRole


class InvitationCreate(BaseModel):
    """Body of an invitation request.

    Both fields are optional at the schema level so that a missing value is
    reported as a 400 by the service rather than a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr | None = None
    organization_id: str | None = Field(None, alias="organizationId")
    role: MemberRole = MemberRole.MEMBER

    @field_validator("email", "organization_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class InvitationSummary(BaseModel):
    id: str
    email: str | None = None


class InvitationCreateResponse(BaseModel):
    """Result of creating an invitation.

    ``warning`` is set when the invitation was stored but the email was not
    delivered.
    """

    success: bool = True
    invitation: InvitationSummary
    warning: str | None = None


class InvitationPreview(BaseModel):
    """What an invitation link grants, shown before accepting."""

    id: str
    organization_id: str
    organization_name: str
    email: str | None = None
    role: str
    expires_at: datetime


class InvitationOutcome(BaseModel):
    """Result of accepting an invitation.

    Attributes:
        status: "joined" when a membership was created, "already_member" when
            the user already belonged to the organization.
        message: Message to show the user.
        redirect_url: Where the client should go next.
    """

    status: Literal["joined", "already_member"]
    message: str
    organization_id: str
    organization_name: str
    redirect_url: str


class InvitationResponse(BaseModel):
    """Invitation as listed to organization admins."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None = None
    role: str
    status: str
    created_at: datetime | None = None
    expires_at: datetime
    accepted_at: datetime | None = None
    invited_by_name: str | None = None
    is_expired: bool = False
