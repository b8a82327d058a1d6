"""API routes for invitations and the invitation capability link."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from taskboard.auth.utils import INVITE_REDIRECT_COOKIE, INVITE_REDIRECT_MAX_AGE
from taskboard.config import get_settings
from taskboard.dependencies import CurrentUser, CurrentUserOptional, get_db
from taskboard.errors import ValidationError
from taskboard.invitations.schemas import (
    InvitationCreate,
    InvitationCreateResponse,
    InvitationOutcome,
    InvitationPreview,
    InvitationResponse,
)
from taskboard.invitations.service import (
    MIN_TOKEN_LENGTH,
    InvitationService,
    get_invitation_service,
)

router = APIRouter()
page_router = APIRouter()
settings = get_settings()


def get_service(db: Annotated[Session, Depends(get_db)]) -> InvitationService:
    """Get invitation service dependency."""
    return get_invitation_service(db)


@router.post(
    "/invitations",
    response_model=InvitationCreateResponse,
    response_model_exclude_none=True,
)
async def create_invitation(
    data: InvitationCreate,
    service: Annotated[InvitationService, Depends(get_service)],
    current_user: CurrentUser,
):
    """Invite someone to an organization by email.

    Args:
        data: Email, organization ID and optional role.
        service: Invitation service.
        current_user: Inviting admin or owner.

    Returns:
        InvitationCreateResponse: ``{success, invitation: {id, email}}`` with
        a ``warning`` when the email could not be sent.
    """
    return service.create_invitation(
        data.organization_id,
        data.email,
        current_user,
        role=data.role,
    )


@router.get("/invitations")
async def invitations_status():
    """Acknowledge that the invitation API is reachable."""
    return {"message": "Invitation API is working! Use POST to send invitations."}


@router.get("/invitations/by-token/{token}", response_model=InvitationPreview)
async def preview_invitation(
    token: str,
    service: Annotated[InvitationService, Depends(get_service)],
):
    """Show the organization and expiry behind an invitation link."""
    return service.resolve(token)


@router.post("/invitations/by-token/{token}/accept", response_model=InvitationOutcome)
async def accept_invitation(
    token: str,
    service: Annotated[InvitationService, Depends(get_service)],
    current_user: CurrentUser,
):
    """Accept an invitation as the logged-in user."""
    return service.accept(token, current_user)


@router.delete("/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invitation(
    invitation_id: str,
    service: Annotated[InvitationService, Depends(get_service)],
    current_user: CurrentUser,
):
    """Revoke a pending invitation (admins and owners only)."""
    service.revoke_invitation(invitation_id, current_user)


@router.get("/organizations/{org_id}/invitations", response_model=list[InvitationResponse])
async def list_invitations(
    org_id: str,
    service: Annotated[InvitationService, Depends(get_service)],
    current_user: CurrentUser,
):
    """List an organization's invitations (admins and owners only)."""
    return service.list_invitations(org_id, current_user)


@page_router.get("/invite/{token}", response_model=InvitationOutcome)
async def open_invitation(
    token: str,
    request: Request,
    service: Annotated[InvitationService, Depends(get_service)],
    current_user: CurrentUserOptional,
):
    """Follow an invitation link.

    Without a session, the link is remembered in a short-lived cookie and the
    browser is sent to login; login hands the link back as ``redirect_to``.
    With a session the invitation is accepted right away. Browsers are then
    redirected to the organization; API clients get the outcome, whose
    ``redirect_url`` names the same page.
    """
    if len(token) < MIN_TOKEN_LENGTH:
        raise ValidationError("Invalid invitation link format")

    if current_user is None:
        invite_path = f"/invite/{token}"
        response = RedirectResponse(
            url=f"/login?redirect={invite_path}",
            status_code=status.HTTP_303_SEE_OTHER,
        )
        response.set_cookie(
            key=INVITE_REDIRECT_COOKIE,
            value=invite_path,
            httponly=True,
            secure=settings.environment == "production",
            samesite="lax",
            max_age=INVITE_REDIRECT_MAX_AGE,
            path="/",
        )
        return response

    outcome = service.accept(token, current_user)
    if "text/html" in request.headers.get("accept", ""):
        return RedirectResponse(url=outcome.redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    return outcome
