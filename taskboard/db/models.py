"""SQLAlchemy database models."""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.mysql import CHAR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys.

    Returns:
        str: UUID as 36-character string.
    """
    return str(uuid4())


class MemberRole(str, enum.Enum):
    """Role of a user inside an organization."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class InvitationStatus(str, enum.Enum):
    """Persisted invitation status.

    Expiry is derived from expires_at at read time and never stored.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"


class User(Base):
    """User account.

    Attributes:
        id: Primary key UUID.
        email: Login email, stored lowercase.
        password_hash: Bcrypt password hash.
        full_name: Display name.
        is_active: Whether the account can log in.
        created_at: Creation timestamp.
        last_login: Last login timestamp.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    memberships: Mapped[list["OrganizationMember"]] = relationship(
        "OrganizationMember", back_populates="user", cascade="all, delete-orphan"
    )


class Organization(Base):
    """Organization (workspace) grouping boards and members.

    Attributes:
        id: Primary key UUID.
        name: Organization name.
        created_by_id: User who created the organization.
        created_at: Creation timestamp.
    """

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relationships
    members: Mapped[list["OrganizationMember"]] = relationship(
        "OrganizationMember", back_populates="organization", cascade="all, delete-orphan"
    )
    boards: Mapped[list["Board"]] = relationship(
        "Board", back_populates="organization", cascade="all, delete-orphan"
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation", back_populates="organization", cascade="all, delete-orphan"
    )


class OrganizationMember(Base):
    """Membership of a user in an organization.

    The (organization_id, user_id) pair is unique; concurrent inserts of the
    same pair surface as an IntegrityError.
    """

    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_org_member"),
        Index("ix_organization_members_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[MemberRole] = mapped_column(
        Enum(MemberRole, values_callable=lambda x: [e.value for e in x]),
        default=MemberRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    organization: Mapped["Organization"] = relationship("Organization", back_populates="members")
    user: Mapped["User"] = relationship("User", back_populates="memberships")


class Board(Base):
    """Kanban board owned by an organization."""

    __tablename__ = "boards"
    __table_args__ = (Index("ix_boards_organization_id", "organization_id"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(20), default="#0079BF")
    created_by_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    organization: Mapped["Organization"] = relationship("Organization", back_populates="boards")
    lists: Mapped[list["BoardList"]] = relationship(
        "BoardList", back_populates="board", cascade="all, delete-orphan"
    )


class BoardList(Base):
    """Ordered column of cards within a board.

    Attributes:
        position: Ordering key among the board's lists. Not contiguous.
        positioned_at: When position was last written. Lists sharing a
            position sort most-recently-positioned first.
    """

    __tablename__ = "lists"
    __table_args__ = (Index("ix_lists_board_id_position", "board_id", "position"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    board_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("boards.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    positioned_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    board: Mapped["Board"] = relationship("Board", back_populates="lists")
    cards: Mapped[list["Card"]] = relationship(
        "Card", back_populates="board_list", cascade="all, delete-orphan"
    )


class Card(Base):
    """Task card owned by exactly one list.

    Attributes:
        position: Ordering key among the list's cards.
        positioned_at: When list_id/position were last written. Cards sharing
            a position sort most-recently-positioned first.
    """

    __tablename__ = "cards"
    __table_args__ = (Index("ix_cards_list_id_position", "list_id", "position"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    list_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    positioned_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    created_by_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    board_list: Mapped["BoardList"] = relationship("BoardList", back_populates="cards")
    activities: Mapped[list["CardActivity"]] = relationship(
        "CardActivity", back_populates="card", cascade="all, delete-orphan"
    )


class CardActivity(Base):
    """Append-only audit record for a card."""

    __tablename__ = "card_activities"
    __table_args__ = (Index("ix_card_activities_card_id", "card_id"),)

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    card_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    card: Mapped["Card"] = relationship("Card", back_populates="activities")
    user: Mapped["User | None"] = relationship("User")


class Invitation(Base):
    """Email invitation to join an organization.

    The token is the only credential needed to view or accept the
    invitation.

    Attributes:
        id: Primary key UUID.
        organization_id: Organization the invitee will join.
        email: Invited email (lowercase). None means any authenticated user.
        token: 64 hex characters (32 random bytes).
        invited_by_id: Admin/owner who sent the invitation.
        role: Role requested for the invitee.
        status: pending or accepted.
        expires_at: End of the validity window.
        accepted_at: When the invitation was accepted.
        accepted_by_id: User who accepted the invitation.
    """

    __tablename__ = "invitations"
    __table_args__ = (
        Index("ix_invitations_organization_id", "organization_id"),
        Index("ix_invitations_email", "email"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    invited_by_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    role: Mapped[MemberRole] = mapped_column(
        Enum(MemberRole, values_callable=lambda x: [e.value for e in x]),
        default=MemberRole.MEMBER,
    )
    status: Mapped[InvitationStatus] = mapped_column(
        Enum(InvitationStatus, values_callable=lambda x: [e.value for e in x]),
        default=InvitationStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    accepted_by_id: Mapped[str | None] = mapped_column(
        CHAR(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="invitations"
    )
    invited_by: Mapped["User | None"] = relationship("User", foreign_keys=[invited_by_id])
