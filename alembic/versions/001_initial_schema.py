"""Initial schema for organizations, boards and invitations.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Adds:
- users, organizations and organization_members (unique per org/user)
- boards, lists, cards and card_activities
- invitations with token, role, status and expiry
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

MEMBER_ROLES = ("owner", "admin", "member")


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, default=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("last_login", sa.DateTime, nullable=True),
    )

    op.create_table(
        "organizations",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "created_by_id",
            sa.CHAR(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        "organization_members",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column(
            "organization_id",
            sa.CHAR(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.CHAR(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.Enum(*MEMBER_ROLES, name="memberrole"), default="member"),
        sa.Column("joined_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("organization_id", "user_id", name="uq_org_member"),
    )
    op.create_index("ix_organization_members_user_id", "organization_members", ["user_id"])

    op.create_table(
        "boards",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column(
            "organization_id",
            sa.CHAR(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("color", sa.String(20), default="#0079BF"),
        sa.Column(
            "created_by_id",
            sa.CHAR(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_boards_organization_id", "boards", ["organization_id"])

    op.create_table(
        "lists",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column(
            "board_id",
            sa.CHAR(36),
            sa.ForeignKey("boards.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("position", sa.Integer, nullable=False, default=0),
        sa.Column("positioned_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_lists_board_id_position", "lists", ["board_id", "position"])

    op.create_table(
        "cards",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column(
            "list_id",
            sa.CHAR(36),
            sa.ForeignKey("lists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("position", sa.Integer, nullable=False, default=0),
        sa.Column("positioned_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column(
            "created_by_id",
            sa.CHAR(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_cards_list_id_position", "cards", ["list_id", "position"])

    op.create_table(
        "card_activities",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column(
            "card_id",
            sa.CHAR(36),
            sa.ForeignKey("cards.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.CHAR(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_card_activities_card_id", "card_activities", ["card_id"])

    op.create_table(
        "invitations",
        sa.Column("id", sa.CHAR(36), primary_key=True),
        sa.Column(
            "organization_id",
            sa.CHAR(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("token", sa.String(64), unique=True, nullable=False),
        sa.Column(
            "invited_by_id",
            sa.CHAR(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("role", sa.Enum(*MEMBER_ROLES, name="memberrole"), default="member"),
        sa.Column(
            "status",
            sa.Enum("pending", "accepted", name="invitationstatus"),
            default="pending",
        ),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime, nullable=False),
        sa.Column("accepted_at", sa.DateTime, nullable=True),
        sa.Column(
            "accepted_by_id",
            sa.CHAR(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_invitations_organization_id", "invitations", ["organization_id"])
    op.create_index("ix_invitations_email", "invitations", ["email"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_invitations_email", table_name="invitations")
    op.drop_index("ix_invitations_organization_id", table_name="invitations")
    op.drop_table("invitations")
    op.drop_index("ix_card_activities_card_id", table_name="card_activities")
    op.drop_table("card_activities")
    op.drop_index("ix_cards_list_id_position", table_name="cards")
    op.drop_table("cards")
    op.drop_index("ix_lists_board_id_position", table_name="lists")
    op.drop_table("lists")
    op.drop_index("ix_boards_organization_id", table_name="boards")
    op.drop_table("boards")
    op.drop_index("ix_organization_members_user_id", table_name="organization_members")
    op.drop_table("organization_members")
    op.drop_table("organizations")
    op.drop_table("users")
