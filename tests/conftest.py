"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from uuid import uuid4

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DEBUG"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["APP_URL"] = "http://testserver"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskboard.auth.utils import get_password_hash
from taskboard.db.database import enable_sqlite_foreign_keys
from taskboard.db.models import (
    Base,
    Board,
    BoardList,
    Card,
    Invitation,
    InvitationStatus,
    MemberRole,
    Organization,
    OrganizationMember,
    User,
)
from taskboard.realtime import change_feed

# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
event.listen(engine, "connect", enable_sqlite_foreign_keys)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
change_feed.bind(TestingSessionLocal)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    # Import here to ensure env vars are set
    from taskboard.dependencies import get_db
    from taskboard.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db: Session, email: str, full_name: str) -> User:
    user = User(
        id=str(uuid4()),
        email=email,
        password_hash=get_password_hash("testpassword123"),
        full_name=full_name,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_member(db: Session, org: Organization, user: User, role: MemberRole) -> None:
    db.add(OrganizationMember(organization_id=org.id, user_id=user.id, role=role))
    db.commit()


def make_invitation(
    db: Session,
    org: Organization,
    inviter: User,
    email: str | None,
    expires_at: datetime | None = None,
    status: InvitationStatus = InvitationStatus.PENDING,
) -> Invitation:
    """Insert an invitation directly, bypassing the service."""
    now = datetime.now(UTC)
    invitation = Invitation(
        organization_id=org.id,
        email=email,
        token=uuid4().hex + uuid4().hex,
        invited_by_id=inviter.id,
        status=status,
        created_at=now,
        expires_at=expires_at or now + timedelta(days=7),
    )
    db.add(invitation)
    db.commit()
    db.refresh(invitation)
    return invitation


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user (organization owner)."""
    return make_user(db, "test@example.com", "Test User")


@pytest.fixture
def test_admin(db: Session) -> User:
    """Create a user with the admin role."""
    return make_user(db, "admin@example.com", "Admin User")


@pytest.fixture
def test_member(db: Session) -> User:
    """Create a user with the plain member role."""
    return make_user(db, "member@example.com", "Member User")


@pytest.fixture
def outsider(db: Session) -> User:
    """Create a user who belongs to no organization."""
    return make_user(db, "bob@example.com", "Bob")


@pytest.fixture
def test_organization(
    db: Session, test_user: User, test_admin: User, test_member: User
) -> Organization:
    """Create an organization with an owner, an admin and a member."""
    org = Organization(
        id=str(uuid4()),
        name="Acme",
        created_by_id=test_user.id,
        created_at=datetime.now(UTC),
    )
    db.add(org)
    db.commit()
    db.refresh(org)
    add_member(db, org, test_user, MemberRole.OWNER)
    add_member(db, org, test_admin, MemberRole.ADMIN)
    add_member(db, org, test_member, MemberRole.MEMBER)
    return org


@pytest.fixture
def test_board(db: Session, test_organization: Organization, test_user: User) -> Board:
    """Create a board in the test organization."""
    board = Board(
        organization_id=test_organization.id,
        name="Roadmap",
        created_by_id=test_user.id,
        created_at=datetime.now(UTC),
    )
    db.add(board)
    db.commit()
    db.refresh(board)
    return board


@pytest.fixture
def todo_list(db: Session, test_board: Board) -> BoardList:
    board_list = BoardList(
        board_id=test_board.id,
        name="To Do",
        position=0,
        positioned_at=datetime.now(UTC),
        created_at=datetime.now(UTC),
    )
    db.add(board_list)
    db.commit()
    db.refresh(board_list)
    return board_list


@pytest.fixture
def done_list(db: Session, test_board: Board) -> BoardList:
    board_list = BoardList(
        board_id=test_board.id,
        name="Done",
        position=1,
        positioned_at=datetime.now(UTC),
        created_at=datetime.now(UTC),
    )
    db.add(board_list)
    db.commit()
    db.refresh(board_list)
    return board_list


@pytest.fixture
def cards(db: Session, todo_list: BoardList, test_user: User) -> list[Card]:
    """Three cards in the To Do list at positions 0, 1 and 2."""
    base = datetime.now(UTC)
    result = []
    for i, title in enumerate(["Write docs", "Fix bug", "Ship it"]):
        card = Card(
            list_id=todo_list.id,
            title=title,
            position=i,
            positioned_at=base + timedelta(milliseconds=i),
            created_by_id=test_user.id,
        )
        db.add(card)
        result.append(card)
    db.commit()
    for card in result:
        db.refresh(card)
    return result


def _client_as(client: TestClient, user: User | None) -> TestClient:
    from taskboard.dependencies import get_current_user, get_current_user_optional
    from taskboard.main import app

    if user is None:
        app.dependency_overrides.pop(get_current_user, None)
        app.dependency_overrides[get_current_user_optional] = lambda: None
    else:
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_current_user_optional] = lambda: user
    return client


@pytest.fixture
def client_as(client: TestClient):
    """Switch the test client to act as a given user (None for anonymous)."""

    def switch(user: User | None) -> TestClient:
        return _client_as(client, user)

    return switch


@pytest.fixture
def authenticated_client(client: TestClient, test_user: User) -> TestClient:
    """Create an authenticated test client (organization owner)."""
    return _client_as(client, test_user)


@pytest.fixture
def user_factory(db: Session):
    """Create extra users: ``user_factory(email, full_name)``."""

    def create(email: str, full_name: str = "Someone") -> User:
        return make_user(db, email, full_name)

    return create


@pytest.fixture
def member_factory(db: Session):
    """Enroll a user: ``member_factory(org, user, role)``."""

    def create(org: Organization, user: User, role: MemberRole = MemberRole.MEMBER) -> None:
        add_member(db, org, user, role)

    return create


@pytest.fixture
def invitation_factory(db: Session):
    """Insert invitations directly, bypassing the service."""

    def create(
        org: Organization,
        inviter: User,
        email: str | None,
        expires_at: datetime | None = None,
        status: InvitationStatus = InvitationStatus.PENDING,
    ) -> Invitation:
        return make_invitation(db, org, inviter, email, expires_at, status)

    return create
