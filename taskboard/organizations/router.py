"""API router for organizations."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskboard.dependencies import CurrentUser, get_db
from taskboard.organizations.schemas import (
    MemberResponse,
    OrganizationCreate,
    OrganizationResponse,
)
from taskboard.organizations.service import OrganizationService

router = APIRouter()


def get_org_service(
    db: Annotated[Session, Depends(get_db)],
) -> OrganizationService:
    """Get organization service dependency."""
    return OrganizationService(db)


@router.get("", response_model=list[OrganizationResponse])
async def list_organizations(
    service: Annotated[OrganizationService, Depends(get_org_service)],
    current_user: CurrentUser,
):
    """List organizations the current user belongs to."""
    return service.list_for_user(current_user)


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreate,
    service: Annotated[OrganizationService, Depends(get_org_service)],
    current_user: CurrentUser,
):
    """Create a new organization.

    The creator becomes its owner.
    """
    org = service.create_organization(data.name, current_user)
    return service.get_for_user(org.id, current_user)


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: str,
    service: Annotated[OrganizationService, Depends(get_org_service)],
    current_user: CurrentUser,
):
    """Get an organization by ID."""
    return service.get_for_user(org_id, current_user)


@router.delete("/{org_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(
    org_id: str,
    service: Annotated[OrganizationService, Depends(get_org_service)],
    current_user: CurrentUser,
):
    """Delete an organization (admins and owners only)."""
    service.delete_organization(org_id, current_user)


@router.get("/{org_id}/members", response_model=list[MemberResponse])
async def list_members(
    org_id: str,
    service: Annotated[OrganizationService, Depends(get_org_service)],
    current_user: CurrentUser,
):
    """List members of an organization."""
    return service.list_members(org_id, current_user)


@router.delete("/{org_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    org_id: str,
    user_id: str,
    service: Annotated[OrganizationService, Depends(get_org_service)],
    current_user: CurrentUser,
):
    """Remove a member from an organization (admins and owners only)."""
    service.remove_member(org_id, user_id, current_user)
