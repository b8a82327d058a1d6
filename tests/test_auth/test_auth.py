"""Tests for authentication module."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from taskboard.auth.utils import (
    create_access_token,
    decode_access_token,
    safe_redirect_path,
)
from taskboard.db.models import User


class TestRegister:
    """Tests for user registration."""

    def test_register_success(self, client: TestClient, db: Session):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "Jane@Example.com",
                "full_name": "Jane Doe",
                "password": "securepassword123",
            },
        )

        assert response.status_code == 201
        assert response.json()["email"] == "jane@example.com"
        assert db.query(User).filter(User.email == "jane@example.com").first() is not None

    def test_register_duplicate_email(self, client: TestClient, test_user: User):
        response = client.post(
            "/api/auth/register",
            json={
                "email": test_user.email,
                "full_name": "Someone Else",
                "password": "securepassword123",
            },
        )
        assert response.status_code == 400
        assert "already registered" in response.json()["detail"]

    def test_register_short_password(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={"email": "x@example.com", "full_name": "X Y", "password": "short"},
        )
        assert response.status_code == 422


class TestLogin:
    """Tests for user login."""

    def test_login_success(self, client: TestClient, test_user: User):
        response = client.post(
            "/api/auth/login",
            json={"email": "test@example.com", "password": "testpassword123"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token"]["access_token"]
        assert data["redirect_to"] is None
        assert "access_token" in response.cookies

    def test_login_wrong_password(self, client: TestClient, test_user: User):
        response = client.post(
            "/api/auth/login",
            json={"email": "test@example.com", "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_login_resumes_invitation(
        self, client: TestClient, test_organization, test_admin: User, outsider: User,
        invitation_factory,
    ):
        invitation = invitation_factory(test_organization, test_admin, "bob@example.com")
        invite_path = f"/invite/{invitation.token}"
        client.get(invite_path, follow_redirects=False)

        response = client.post(
            "/api/auth/login",
            json={"email": "bob@example.com", "password": "testpassword123"},
        )

        assert response.status_code == 200
        assert response.json()["redirect_to"] == invite_path
        cleared = response.headers.get_list("set-cookie")
        assert any(c.startswith('invite_redirect=""') for c in cleared)

        joined = client.get(invite_path)
        assert joined.status_code == 200
        assert joined.json()["status"] == "joined"

    def test_cookie_session_authenticates(self, client: TestClient, test_user: User):
        client.post(
            "/api/auth/login",
            json={"email": "test@example.com", "password": "testpassword123"},
        )
        response = client.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json()["email"] == "test@example.com"


class TestMe:
    """Tests for the current user endpoint."""

    def test_me(self, authenticated_client: TestClient, test_user: User):
        response = authenticated_client.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json()["full_name"] == "Test User"

    def test_me_unauthenticated(self, client: TestClient):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {
            "error": "unauthorized",
            "detail": "Not authenticated",
            "retryable": False,
        }
        assert response.headers["www-authenticate"] == "Bearer"

    def test_me_with_invalid_token(self, client: TestClient):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_disabled_account(self, client: TestClient, db: Session, test_user: User):
        token = create_access_token(test_user.id, test_user.email)
        test_user.is_active = False
        db.commit()

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"


class TestAuthUtils:
    """Tests for token and redirect helpers."""

    def test_token_round_trip(self):
        token = create_access_token("user-1", "a@example.com")
        data = decode_access_token(token)
        assert (data.user_id, data.email) == ("user-1", "a@example.com")

    def test_invalid_token(self):
        assert decode_access_token("not-a-jwt") is None

    def test_safe_redirect_path(self):
        assert safe_redirect_path("/invite/abc123def456") == "/invite/abc123def456"
        assert safe_redirect_path("https://evil.example.com/") is None
        assert safe_redirect_path("/invite//evil.example.com") is None
        assert safe_redirect_path(None) is None
