"""Database module."""

from taskboard.db.database import SessionLocal, engine, init_db
from taskboard.db.models import (
    Base,
    Board,
    BoardList,
    Card,
    CardActivity,
    Invitation,
    Organization,
    OrganizationMember,
    User,
)

__all__ = [
    "SessionLocal",
    "engine",
    "init_db",
    "Base",
    "User",
    "Organization",
    "OrganizationMember",
    "Board",
    "BoardList",
    "Card",
    "CardActivity",
    "Invitation",
]
