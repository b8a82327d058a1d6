"""Invitation lifecycle: create, resolve and accept organization invitations.

An invitation is stored as ``pending`` and becomes ``accepted`` once used.
Expiry is never written back; it is derived from ``expires_at`` whenever the
invitation is read.
"""

import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.config import get_settings
from taskboard.db.models import (
    Invitation,
    InvitationStatus,
    MemberRole,
    Organization,
    OrganizationMember,
    User,
)
from taskboard.email.service import EmailService
from taskboard.errors import (
    AlreadyUsed,
    Conflict,
    EmailMismatch,
    Expired,
    NotFound,
    PermissionDenied,
    PersistenceFailure,
    UpstreamDeliveryFailure,
    ValidationError,
)
from taskboard.invitations.schemas import (
    InvitationCreateResponse,
    InvitationOutcome,
    InvitationPreview,
    InvitationResponse,
    InvitationSummary,
)
from taskboard.organizations.guard import MembershipGuard

logger = logging.getLogger(__name__)

# Shorter tokens cannot have come from an invitation link
MIN_TOKEN_LENGTH = 10


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def organization_url(organization_id: str) -> str:
    return f"/organizations/{organization_id}"


class InvitationService:
    """Service for the invitation lifecycle.

    Args:
        db: Database session.
        email_service: Outbound email boundary. Resolved lazily through
            ``get_email_service`` when not given.
        clock: Returns the current UTC time; expiry is judged against it.
    """

    def __init__(
        self,
        db: Session,
        email_service: EmailService | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.guard = MembershipGuard(db)
        self.settings = get_settings()
        self.email_service = email_service
        self.clock = clock

    def is_expired(self, invitation: Invitation) -> bool:
        return _as_utc(invitation.expires_at) < self.clock()

    # --- Create ---

    def create_invitation(
        self,
        organization_id: str | None,
        email: str | None,
        inviter: User,
        role: MemberRole = MemberRole.MEMBER,
        base_url: str | None = None,
    ) -> InvitationCreateResponse:
        """Create an invitation and email its link.

        Args:
            organization_id: Organization to invite into.
            email: Invitee's email address.
            inviter: User sending the invitation; must be an admin or owner.
            role: Role recorded on the invitation.
            base_url: Public base URL for the link (defaults to ``app_url``).

        Returns:
            InvitationCreateResponse: The stored invitation, with a warning if
            the email was not delivered.

        Raises:
            ValidationError: If email or organization ID is missing.
            NotFound: If the organization does not exist.
            PermissionDenied: If the inviter is not an admin or owner.
            Conflict: If an active invitation already exists for the email.
            PersistenceFailure: If the invitation cannot be stored.
        """
        if not email or not organization_id:
            raise ValidationError("Email and organization ID are required")
        email = email.strip().lower()

        organization = (
            self.db.query(Organization).filter(Organization.id == organization_id).first()
        )
        if not organization:
            raise NotFound("Organization not found")

        if not self.guard.can_invite(organization_id, inviter.id):
            raise PermissionDenied("Only admins and owners can invite members")

        # Fast path only; two concurrent requests can both pass this check
        pending = (
            self.db.query(Invitation)
            .filter(
                Invitation.organization_id == organization_id,
                Invitation.email == email,
                Invitation.status == InvitationStatus.PENDING,
            )
            .all()
        )
        if any(not self.is_expired(inv) for inv in pending):
            raise Conflict("An active invitation already exists for this email")

        now = self.clock()
        token = secrets.token_hex(32)
        invitation = Invitation(
            organization_id=organization_id,
            email=email,
            token=token,
            invited_by_id=inviter.id,
            role=MemberRole(role),
            status=InvitationStatus.PENDING,
            created_at=now,
            expires_at=now + timedelta(days=self.settings.invitation_expire_days),
        )
        self.db.add(invitation)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create invitation for {email}: {e}")
            raise PersistenceFailure("Failed to create invitation")
        self.db.refresh(invitation)
        logger.info(f"Invitation {invitation.id} created for {email} in {organization_id}")

        invite_url = f"{(base_url or self.settings.app_url).rstrip('/')}/invite/{token}"
        warning = None
        try:
            self._deliver(invitation, organization.name, inviter, invite_url)
        except UpstreamDeliveryFailure as e:
            logger.warning(f"Invitation {invitation.id}: {e.message}")
            warning = e.message

        return InvitationCreateResponse(
            invitation=InvitationSummary(id=invitation.id, email=invitation.email),
            warning=warning,
        )

    def _deliver(
        self,
        invitation: Invitation,
        organization_name: str,
        inviter: User,
        invite_url: str,
    ) -> None:
        """Email the invitation link.

        Raises:
            UpstreamDeliveryFailure: If delivery is not configured or fails.
        """
        email_service = self.email_service
        if email_service is None:
            from taskboard.email.service import get_email_service

            email_service = get_email_service()

        if not email_service.is_configured:
            raise UpstreamDeliveryFailure(
                "Invitation created but email not sent - email delivery is not configured"
            )

        try:
            sent = email_service.send_invitation_email(
                to_email=invitation.email,
                organization_name=organization_name,
                inviter_name=inviter.full_name or inviter.email,
                invite_url=invite_url,
                expires_at=_as_utc(invitation.expires_at),
            )
        except Exception as e:
            raise UpstreamDeliveryFailure("Invitation created but email failed") from e
        if not sent:
            raise UpstreamDeliveryFailure("Invitation created but email failed to send")

    # --- Resolve / accept ---

    def _lookup(self, token: str) -> Invitation:
        """Find a usable invitation by token.

        Raises:
            ValidationError: If the token is malformed.
            NotFound: If no invitation has this token.
            Expired: If the invitation is past its expiry.
            AlreadyUsed: If the invitation was already accepted.
            PersistenceFailure: If the lookup fails.
        """
        if not token or len(token) < MIN_TOKEN_LENGTH:
            raise ValidationError("Invalid invitation link format")

        try:
            invitation = self.db.query(Invitation).filter(Invitation.token == token).first()
        except SQLAlchemyError as e:
            logger.error(f"Invitation lookup failed: {e}")
            raise PersistenceFailure("Failed to retrieve invitation details")

        if not invitation:
            raise NotFound("This invitation link is invalid or has been deleted")

        if self.is_expired(invitation):
            expires_at = _as_utc(invitation.expires_at)
            raise Expired(f"This invitation expired on {expires_at:%B %d, %Y}")

        if invitation.status == InvitationStatus.ACCEPTED:
            raise AlreadyUsed("This invitation has already been used")

        return invitation

    def resolve(self, token: str) -> InvitationPreview:
        """Describe a usable invitation without accepting it."""
        invitation = self._lookup(token)
        return InvitationPreview(
            id=invitation.id,
            organization_id=invitation.organization_id,
            organization_name=invitation.organization.name,
            email=invitation.email,
            role=invitation.role.value,
            expires_at=invitation.expires_at,
        )

    def accept(self, token: str, user: User) -> InvitationOutcome:
        """Accept an invitation on behalf of the logged-in user.

        The membership is always created with the ``member`` role; the role
        stored on the invitation is not applied. Marking the invitation as
        accepted happens afterwards and a failure there does not undo the
        membership.

        Args:
            token: Invitation token from the link.
            user: Authenticated user accepting the invitation.

        Returns:
            InvitationOutcome: ``joined`` or ``already_member``.

        Raises:
            ValidationError, NotFound, Expired, AlreadyUsed: See ``_lookup``.
            EmailMismatch: If the invitation names another email.
            PersistenceFailure: If the membership cannot be stored.
        """
        invitation = self._lookup(token)

        if invitation.email and invitation.email.lower() != user.email.lower():
            raise EmailMismatch(invitation.email, user.email)

        invitation_id = invitation.id
        organization_id = invitation.organization_id
        organization_name = invitation.organization.name

        if self.guard.is_member(organization_id, user.id):
            logger.info(f"{user.email} already belongs to {organization_id}")
            return self._already_member(organization_id, organization_name)

        now = self.clock()
        self.db.add(
            OrganizationMember(
                organization_id=organization_id,
                user_id=user.id,
                role=MemberRole.MEMBER,
                joined_at=now,
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            # Another acceptance inserted the same membership first
            self.db.rollback()
            logger.info(f"Concurrent acceptance of {invitation_id} by {user.email}")
            return self._already_member(organization_id, organization_name)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to add {user.email} to {organization_id}: {e}")
            raise PersistenceFailure("Failed to add you to the organization")

        self._mark_accepted(invitation_id, user.id, now)
        logger.info(f"{user.email} joined {organization_id} via invitation {invitation_id}")
        return InvitationOutcome(
            status="joined",
            message=f"You've successfully joined {organization_name}!",
            organization_id=organization_id,
            organization_name=organization_name,
            redirect_url=organization_url(organization_id),
        )

    def _mark_accepted(self, invitation_id: str, user_id: str, accepted_at: datetime) -> bool:
        """Record the acceptance on the invitation, swallowing storage errors."""
        try:
            invitation = self.db.query(Invitation).filter(Invitation.id == invitation_id).first()
            if invitation is None:
                return False
            invitation.status = InvitationStatus.ACCEPTED
            invitation.accepted_at = accepted_at
            invitation.accepted_by_id = user_id
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Failed to mark invitation {invitation_id} accepted: {e}")
            return False
        return True

    @staticmethod
    def _already_member(organization_id: str, organization_name: str) -> InvitationOutcome:
        return InvitationOutcome(
            status="already_member",
            message=f"You're already a member of {organization_name}",
            organization_id=organization_id,
            organization_name=organization_name,
            redirect_url=organization_url(organization_id),
        )

    # --- Administration ---

    def list_invitations(self, organization_id: str, user: User) -> list[InvitationResponse]:
        """List an organization's invitations, newest first.

        Raises:
            NotFound: If the organization does not exist.
            PermissionDenied: If the user is not an admin or owner.
        """
        if not self.db.query(Organization).filter(Organization.id == organization_id).first():
            raise NotFound("Organization not found")
        if not self.guard.can_invite(organization_id, user.id):
            raise PermissionDenied("Only admins and owners can view invitations")

        rows = (
            self.db.query(Invitation, User.full_name)
            .outerjoin(User, User.id == Invitation.invited_by_id)
            .filter(Invitation.organization_id == organization_id)
            .order_by(Invitation.created_at.desc())
            .all()
        )
        return [
            InvitationResponse(
                id=inv.id,
                email=inv.email,
                role=inv.role.value,
                status=inv.status.value,
                created_at=inv.created_at,
                expires_at=inv.expires_at,
                accepted_at=inv.accepted_at,
                invited_by_name=inviter_name,
                is_expired=inv.status == InvitationStatus.PENDING and self.is_expired(inv),
            )
            for inv, inviter_name in rows
        ]

    def revoke_invitation(self, invitation_id: str, user: User) -> None:
        """Delete a pending invitation so its link stops working.

        Raises:
            NotFound: If the invitation does not exist.
            PermissionDenied: If the user is not an admin or owner.
            Conflict: If the invitation was already accepted.
        """
        invitation = self.db.query(Invitation).filter(Invitation.id == invitation_id).first()
        if not invitation:
            raise NotFound("Invitation not found")
        if not self.guard.can_invite(invitation.organization_id, user.id):
            raise PermissionDenied("Only admins and owners can revoke invitations")
        if invitation.status != InvitationStatus.PENDING:
            raise Conflict("Only pending invitations can be revoked")

        try:
            self.db.delete(invitation)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to revoke invitation {invitation_id}: {e}")
            raise PersistenceFailure("Failed to revoke invitation")
        logger.info(f"Invitation {invitation_id} revoked by {user.email}")


def get_invitation_service(db: Session) -> InvitationService:
    """Factory function for InvitationService."""
    return InvitationService(db)
