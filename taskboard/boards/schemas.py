"""Pydantic schemas for boards, lists and cards."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BoardCreate(BaseModel):
    """Schema for creating a board."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    color: str = Field(default="#0079BF", pattern=r"^#[0-9A-Fa-f]{6}$")


class BoardResponse(BaseModel):
    """Schema for board response."""

    id: str
    organization_id: str
    name: str
    description: str | None = None
    color: str
    created_by_id: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ListCreate(BaseModel):
    """Schema for creating a list (appended at the end of the board)."""

    name: str = Field(..., min_length=1, max_length=255)


class ListUpdate(BaseModel):
    """Schema for renaming a list."""

    name: str = Field(..., min_length=1, max_length=255)


class ListMove(BaseModel):
    """Schema for moving a list.

    Give an explicit ``position``, or ``before_list_id`` to take that list's
    slot; with neither the list moves to the end of the board.
    """

    position: int | None = Field(None, ge=0)
    before_list_id: str | None = None


class ListResponse(BaseModel):
    """Schema for list response."""

    id: str
    board_id: str
    name: str
    position: int
    positioned_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CardCreate(BaseModel):
    """Schema for creating a card (appended at the end of its list)."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None


class CardUpdate(BaseModel):
    """Schema for editing a card's content."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None


class CardMove(BaseModel):
    """Schema for relocating a card.

    Attributes:
        list_id: Destination list.
        position: Explicit target position.
        before_card_id: Card the drop landed on; the moved card takes its slot.
    """

    list_id: str
    position: int | None = Field(None, ge=0)
    before_card_id: str | None = None


class CardResponse(BaseModel):
    """Schema for card response."""

    id: str
    list_id: str
    title: str
    description: str | None = None
    position: int
    positioned_at: datetime | None = None
    created_by_id: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ActivityResponse(BaseModel):
    """Schema for card activity entries."""

    id: str
    card_id: str
    user_id: str | None = None
    user_name: str | None = None
    action: str
    created_at: datetime | None = None
