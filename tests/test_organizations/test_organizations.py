"""Tests for organizations module."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from taskboard.db.models import (
    Board,
    Invitation,
    MemberRole,
    Organization,
    OrganizationMember,
    User,
)
from taskboard.errors import Conflict, NotFound, PermissionDenied
from taskboard.organizations.guard import MembershipGuard
from taskboard.organizations.service import OrganizationService


class TestMembershipGuard:
    """Tests for role-based checks."""

    def test_roles(self, db: Session, test_organization: Organization, test_user, test_admin):
        guard = MembershipGuard(db)
        assert guard.role_of(test_organization.id, test_user.id) == MemberRole.OWNER
        assert guard.role_of(test_organization.id, test_admin.id) == MemberRole.ADMIN

    @pytest.mark.parametrize(
        "fixture_name,allowed",
        [("test_user", True), ("test_admin", True), ("test_member", False), ("outsider", False)],
    )
    def test_elevated_roles_only(
        self, request, db: Session, test_organization: Organization, fixture_name, allowed
    ):
        user = request.getfixturevalue(fixture_name)
        guard = MembershipGuard(db)
        assert guard.can_invite(test_organization.id, user.id) is allowed
        assert guard.can_delete_org(test_organization.id, user.id) is allowed
        assert guard.can_remove_member(test_organization.id, user.id) is allowed

    def test_storage_error_fails_closed(
        self, db: Session, test_organization: Organization, test_user: User
    ):
        guard = MembershipGuard(db)
        with patch.object(db, "query", side_effect=OperationalError("SELECT", {}, Exception())):
            assert guard.role_of(test_organization.id, test_user.id) is None
            assert guard.can_invite(test_organization.id, test_user.id) is False


class TestOrganizationService:
    """Tests for OrganizationService."""

    def test_creator_becomes_owner(self, db: Session, outsider: User):
        service = OrganizationService(db)
        org = service.create_organization("Bob's Workshop", outsider)

        membership = (
            db.query(OrganizationMember)
            .filter(OrganizationMember.organization_id == org.id)
            .one()
        )
        assert membership.user_id == outsider.id
        assert membership.role == MemberRole.OWNER

    def test_list_for_user_includes_role(
        self, db: Session, test_organization: Organization, test_member: User
    ):
        result = OrganizationService(db).list_for_user(test_member)
        assert [(o.name, o.role) for o in result] == [("Acme", "member")]

    def test_get_for_non_member(
        self, db: Session, test_organization: Organization, outsider: User
    ):
        with pytest.raises(PermissionDenied):
            OrganizationService(db).get_for_user(test_organization.id, outsider)

    def test_get_organization_not_found(self, db: Session, test_user: User):
        with pytest.raises(NotFound):
            OrganizationService(db).get_for_user("missing", test_user)

    def test_delete_removes_dependents(
        self,
        db: Session,
        test_organization: Organization,
        test_board: Board,
        test_user: User,
        invitation_factory,
    ):
        invitation_factory(test_organization, test_user, "new@example.com")

        OrganizationService(db).delete_organization(test_organization.id, test_user)

        assert db.query(Organization).count() == 0
        assert db.query(Board).count() == 0
        assert db.query(OrganizationMember).count() == 0
        assert db.query(Invitation).count() == 0

    def test_member_cannot_delete(
        self, db: Session, test_organization: Organization, test_member: User
    ):
        with pytest.raises(PermissionDenied):
            OrganizationService(db).delete_organization(test_organization.id, test_member)
        assert db.query(Organization).count() == 1

    def test_admin_removes_member(
        self, db: Session, test_organization: Organization, test_admin: User, test_member: User
    ):
        service = OrganizationService(db)
        service.remove_member(test_organization.id, test_member.id, test_admin)
        members = service.list_members(test_organization.id, test_admin)
        assert test_member.email not in [m.email for m in members]

    def test_last_owner_cannot_be_removed(
        self, db: Session, test_organization: Organization, test_admin: User, test_user: User
    ):
        with pytest.raises(Conflict):
            OrganizationService(db).remove_member(test_organization.id, test_user.id, test_admin)

    def test_member_cannot_remove_others(
        self, db: Session, test_organization: Organization, test_member: User, test_admin: User
    ):
        with pytest.raises(PermissionDenied):
            OrganizationService(db).remove_member(
                test_organization.id, test_admin.id, test_member
            )


class TestOrganizationRoutes:
    """Tests for the organization HTTP routes."""

    def test_create_and_list(self, authenticated_client):
        response = authenticated_client.post("/api/organizations", json={"name": "Labs"})
        assert response.status_code == 201
        assert response.json()["role"] == "owner"

        listed = authenticated_client.get("/api/organizations").json()
        assert [o["name"] for o in listed] == ["Labs"]

    def test_unauthenticated(self, client):
        response = client.get("/api/organizations")
        assert response.status_code == 401

    def test_forbidden_delete_returns_403(
        self, client_as, test_organization: Organization, test_member: User
    ):
        response = client_as(test_member).delete(f"/api/organizations/{test_organization.id}")
        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "permission_denied"
        assert body["retryable"] is False
