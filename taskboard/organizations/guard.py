"""Role-based permission checks for organization membership."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.db.models import MemberRole, OrganizationMember

logger = logging.getLogger(__name__)

ELEVATED_ROLES = frozenset({MemberRole.ADMIN, MemberRole.OWNER})


class MembershipGuard:
    """Answers "may this user do X in this organization?".

    Every check fails closed: a missing membership or a storage error
    yields False, never an exception.
    """

    def __init__(self, db: Session):
        self.db = db

    def role_of(self, organization_id: str, user_id: str) -> MemberRole | None:
        """Get the user's role in an organization.

        Returns:
            MemberRole | None: Role, or None if not a member or lookup failed.
        """
        try:
            membership = (
                self.db.query(OrganizationMember)
                .filter(
                    OrganizationMember.organization_id == organization_id,
                    OrganizationMember.user_id == user_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Membership lookup failed for org {organization_id}: {e}")
            return None
        return membership.role if membership else None

    def is_member(self, organization_id: str, user_id: str) -> bool:
        return self.role_of(organization_id, user_id) is not None

    def has_elevated_role(self, organization_id: str, user_id: str) -> bool:
        return self.role_of(organization_id, user_id) in ELEVATED_ROLES

    def can_invite(self, organization_id: str, user_id: str) -> bool:
        return self.has_elevated_role(organization_id, user_id)

    def can_delete_org(self, organization_id: str, user_id: str) -> bool:
        return self.has_elevated_role(organization_id, user_id)

    def can_remove_member(self, organization_id: str, user_id: str) -> bool:
        return self.has_elevated_role(organization_id, user_id)
