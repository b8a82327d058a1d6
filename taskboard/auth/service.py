"""Authentication service."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from taskboard.auth.schemas import Token, UserLogin, UserRegister
from taskboard.auth.utils import create_access_token, get_password_hash, verify_password
from taskboard.db.models import User

logger = logging.getLogger(__name__)


class AuthService:
    """Service class for registration and login."""

    def __init__(self, db: Session):
        """Initialize auth service.

        Args:
            db: Database session.
        """
        self.db = db

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by (case-insensitive) email."""
        return self.db.query(User).filter(User.email == email.lower()).first()

    def register(self, data: UserRegister) -> User:
        """Register a new user.

        Args:
            data: Registration data.

        Returns:
            User: Created user.

        Raises:
            ValueError: If the email is already registered.
        """
        if self.get_user_by_email(data.email):
            raise ValueError("Email already registered")

        user = User(
            email=data.email.lower(),
            full_name=data.full_name,
            password_hash=get_password_hash(data.password),
            is_active=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Registered user {user.email}")
        return user

    def login(self, data: UserLogin) -> tuple[User | None, Token | None, str]:
        """Authenticate user and return token.

        Args:
            data: Login credentials.

        Returns:
            tuple: (User or None, Token or None, status message).
        """
        user = self.get_user_by_email(data.email)

        if not user or not verify_password(data.password, user.password_hash):
            return None, None, "Invalid email or password."

        if not user.is_active:
            return None, None, "Your account has been deactivated."

        user.last_login = datetime.now(UTC)
        self.db.commit()

        token = Token(access_token=create_access_token(user.id, user.email))
        return user, token, "Login successful."


def get_auth_service(db: Session) -> AuthService:
    """Factory function for AuthService."""
    return AuthService(db)
