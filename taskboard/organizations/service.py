"""Organization service layer."""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.db.models import MemberRole, Organization, OrganizationMember, User
from taskboard.errors import Conflict, NotFound, PermissionDenied, PersistenceFailure
from taskboard.organizations.guard import MembershipGuard
from taskboard.organizations.schemas import MemberResponse, OrganizationResponse

logger = logging.getLogger(__name__)


class OrganizationService:
    """Service for organization CRUD and membership management."""

    def __init__(self, db: Session):
        """Initialize organization service.

        Args:
            db: Database session.
        """
        self.db = db
        self.guard = MembershipGuard(db)

    def get_organization(self, org_id: str) -> Organization | None:
        """Get an organization by ID."""
        return self.db.query(Organization).filter(Organization.id == org_id).first()

    def require_organization(self, org_id: str) -> Organization:
        """Get an organization or raise NotFound."""
        org = self.get_organization(org_id)
        if not org:
            raise NotFound("Organization not found")
        return org

    def require_member(self, org_id: str, user: User) -> MemberRole:
        """Ensure the user belongs to the organization.

        Returns:
            MemberRole: The user's role.

        Raises:
            PermissionDenied: If the user is not a member.
        """
        role = self.guard.role_of(org_id, user.id)
        if role is None:
            raise PermissionDenied("You are not a member of this organization")
        return role

    def create_organization(self, name: str, user: User) -> Organization:
        """Create an organization and enroll the creator as owner.

        The organization and the owner membership are committed together so an
        organization never exists without an elevated member.

        Raises:
            PersistenceFailure: If the insert fails.
        """
        org = Organization(name=name, created_by_id=user.id, created_at=datetime.now(UTC))
        self.db.add(org)
        try:
            self.db.flush()
            self.db.add(
                OrganizationMember(
                    organization_id=org.id,
                    user_id=user.id,
                    role=MemberRole.OWNER,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create organization {name!r}: {e}")
            raise PersistenceFailure("Failed to create organization")

        self.db.refresh(org)
        logger.info(f"Organization {org.id} created by {user.email}")
        return org

    def list_for_user(self, user: User) -> list[OrganizationResponse]:
        """List organizations the user belongs to, with the user's role."""
        rows = (
            self.db.query(Organization, OrganizationMember.role)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .filter(OrganizationMember.user_id == user.id)
            .order_by(Organization.created_at.desc())
            .all()
        )
        return [
            OrganizationResponse(
                id=org.id,
                name=org.name,
                created_by_id=org.created_by_id,
                created_at=org.created_at,
                role=role.value,
            )
            for org, role in rows
        ]

    def get_for_user(self, org_id: str, user: User) -> OrganizationResponse:
        """Get an organization visible to the user."""
        org = self.require_organization(org_id)
        role = self.require_member(org_id, user)
        return OrganizationResponse(
            id=org.id,
            name=org.name,
            created_by_id=org.created_by_id,
            created_at=org.created_at,
            role=role.value,
        )

    def delete_organization(self, org_id: str, user: User) -> None:
        """Delete an organization with its boards, members and invitations.

        A single delete; dependents go with it via cascade.

        Raises:
            NotFound: If the organization does not exist.
            PermissionDenied: If the user is not an admin or owner.
        """
        org = self.require_organization(org_id)
        if not self.guard.can_delete_org(org_id, user.id):
            raise PermissionDenied("Only admins and owners can delete an organization")

        try:
            self.db.delete(org)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete organization {org_id}: {e}")
            raise PersistenceFailure("Failed to delete organization")
        logger.info(f"Organization {org_id} deleted by {user.email}")

    def list_members(self, org_id: str, user: User) -> list[MemberResponse]:
        """List members of an organization (members only)."""
        self.require_organization(org_id)
        self.require_member(org_id, user)

        rows = (
            self.db.query(OrganizationMember, User)
            .join(User, User.id == OrganizationMember.user_id)
            .filter(OrganizationMember.organization_id == org_id)
            .order_by(OrganizationMember.joined_at)
            .all()
        )
        return [
            MemberResponse(
                user_id=u.id,
                email=u.email,
                full_name=u.full_name,
                role=m.role.value,
                joined_at=m.joined_at,
            )
            for m, u in rows
        ]

    def remove_member(self, org_id: str, member_user_id: str, user: User) -> None:
        """Remove a user from an organization.

        Raises:
            NotFound: If the organization or membership does not exist.
            PermissionDenied: If the caller is not an admin or owner.
            Conflict: If the member is the organization's last owner.
        """
        self.require_organization(org_id)
        if not self.guard.can_remove_member(org_id, user.id):
            raise PermissionDenied("Only admins and owners can remove members")

        membership = (
            self.db.query(OrganizationMember)
            .filter(
                OrganizationMember.organization_id == org_id,
                OrganizationMember.user_id == member_user_id,
            )
            .first()
        )
        if not membership:
            raise NotFound("Member not found")

        if membership.role == MemberRole.OWNER:
            owners = (
                self.db.query(OrganizationMember)
                .filter(
                    OrganizationMember.organization_id == org_id,
                    OrganizationMember.role == MemberRole.OWNER,
                )
                .count()
            )
            if owners <= 1:
                raise Conflict("Cannot remove the last owner of an organization")

        try:
            self.db.delete(membership)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove member {member_user_id} from {org_id}: {e}")
            raise PersistenceFailure("Failed to remove member")
