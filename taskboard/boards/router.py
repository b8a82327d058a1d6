"""API routes for boards, lists and cards."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskboard.boards.schemas import (
    ActivityResponse,
    BoardCreate,
    BoardResponse,
    CardCreate,
    CardMove,
    CardResponse,
    CardUpdate,
    ListCreate,
    ListMove,
    ListResponse,
    ListUpdate,
)
from taskboard.boards.service import BoardService, CardService, ListService
from taskboard.dependencies import CurrentUser, get_db

router = APIRouter()


def get_board_service(db: Annotated[Session, Depends(get_db)]) -> BoardService:
    """Get board service dependency."""
    return BoardService(db)


def get_list_service(db: Annotated[Session, Depends(get_db)]) -> ListService:
    """Get list service dependency."""
    return ListService(db)


def get_card_service(db: Annotated[Session, Depends(get_db)]) -> CardService:
    """Get card service dependency."""
    return CardService(db)


# --- Boards ---


@router.get("/organizations/{org_id}/boards", response_model=list[BoardResponse])
async def list_boards(
    org_id: str,
    service: Annotated[BoardService, Depends(get_board_service)],
    current_user: CurrentUser,
):
    """List an organization's boards, newest first."""
    return service.list_boards(org_id, current_user)


@router.post(
    "/organizations/{org_id}/boards",
    response_model=BoardResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_board(
    org_id: str,
    data: BoardCreate,
    service: Annotated[BoardService, Depends(get_board_service)],
    current_user: CurrentUser,
):
    """Create a board in an organization."""
    return service.create_board(
        org_id,
        current_user,
        name=data.name,
        description=data.description,
        color=data.color,
    )


@router.get("/boards/{board_id}", response_model=BoardResponse)
async def get_board(
    board_id: str,
    service: Annotated[BoardService, Depends(get_board_service)],
    current_user: CurrentUser,
):
    """Get a board by ID."""
    return service.get_board(board_id, current_user)


@router.delete("/boards/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(
    board_id: str,
    service: Annotated[BoardService, Depends(get_board_service)],
    current_user: CurrentUser,
):
    """Delete a board with all its lists and cards."""
    service.delete_board(board_id, current_user)


# --- Lists ---


@router.get("/boards/{board_id}/lists", response_model=list[ListResponse])
async def list_lists(
    board_id: str,
    service: Annotated[ListService, Depends(get_list_service)],
    current_user: CurrentUser,
):
    """Get a board's lists in display order."""
    return service.list_lists(board_id, current_user)


@router.post(
    "/boards/{board_id}/lists",
    response_model=ListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_list(
    board_id: str,
    data: ListCreate,
    service: Annotated[ListService, Depends(get_list_service)],
    current_user: CurrentUser,
):
    """Append a list to a board."""
    return service.create_list(board_id, current_user, data.name)


@router.patch("/lists/{list_id}", response_model=ListResponse)
async def rename_list(
    list_id: str,
    data: ListUpdate,
    service: Annotated[ListService, Depends(get_list_service)],
    current_user: CurrentUser,
):
    """Rename a list."""
    return service.rename_list(list_id, current_user, data.name)


@router.post("/lists/{list_id}/move", response_model=ListResponse)
async def move_list(
    list_id: str,
    data: ListMove,
    service: Annotated[ListService, Depends(get_list_service)],
    current_user: CurrentUser,
):
    """Move a list to a new position on its board."""
    return service.move_list(
        list_id,
        current_user,
        position=data.position,
        before_list_id=data.before_list_id,
    )


@router.delete("/lists/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_list(
    list_id: str,
    service: Annotated[ListService, Depends(get_list_service)],
    current_user: CurrentUser,
):
    """Delete a list with all its cards."""
    service.delete_list(list_id, current_user)


# --- Cards ---


@router.get("/boards/{board_id}/cards", response_model=list[CardResponse])
async def list_cards(
    board_id: str,
    service: Annotated[CardService, Depends(get_card_service)],
    current_user: CurrentUser,
):
    """Get every card on a board in display order."""
    return service.list_cards(board_id, current_user)


@router.post(
    "/lists/{list_id}/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_card(
    list_id: str,
    data: CardCreate,
    service: Annotated[CardService, Depends(get_card_service)],
    current_user: CurrentUser,
):
    """Append a card to a list."""
    return service.create_card(list_id, current_user, data.title, data.description)


@router.patch("/cards/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: str,
    data: CardUpdate,
    service: Annotated[CardService, Depends(get_card_service)],
    current_user: CurrentUser,
):
    """Edit a card's title or description."""
    return service.update_card(
        card_id, current_user, title=data.title, description=data.description
    )


@router.post("/cards/{card_id}/move", response_model=CardResponse)
async def move_card(
    card_id: str,
    data: CardMove,
    service: Annotated[CardService, Depends(get_card_service)],
    current_user: CurrentUser,
):
    """Relocate a card.

    Without ``position`` or ``before_card_id`` the card goes to the end of
    the destination list.
    """
    return service.move_card(
        card_id,
        current_user,
        data.list_id,
        position=data.position,
        before_card_id=data.before_card_id,
    )


@router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(
    card_id: str,
    service: Annotated[CardService, Depends(get_card_service)],
    current_user: CurrentUser,
):
    """Delete a card."""
    service.delete_card(card_id, current_user)


@router.get("/cards/{card_id}/activities", response_model=list[ActivityResponse])
async def list_activities(
    card_id: str,
    service: Annotated[CardService, Depends(get_card_service)],
    current_user: CurrentUser,
):
    """Get a card's activity trail, newest first."""
    return service.list_activities(card_id, current_user)
