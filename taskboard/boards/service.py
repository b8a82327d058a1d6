"""Board, list and card service layer."""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.boards.positions import Slot, drop_slot, next_position, sort_cards, sort_lists
from taskboard.boards.schemas import ActivityResponse
from taskboard.db.models import Board, BoardList, Card, CardActivity, Organization, User
from taskboard.errors import NotFound, PermissionDenied, PersistenceFailure, ValidationError
from taskboard.organizations.guard import MembershipGuard

logger = logging.getLogger(__name__)


class _BoardScopedService:
    """Shared lookups that enforce organization membership."""

    def __init__(self, db: Session):
        """Initialize the service.

        Args:
            db: Database session.
        """
        self.db = db
        self.guard = MembershipGuard(db)

    def _require_member(self, organization_id: str, user: User) -> None:
        if not self.guard.is_member(organization_id, user.id):
            raise PermissionDenied("You are not a member of this organization")

    def _board_for_user(self, board_id: str, user: User) -> Board:
        board = self.db.query(Board).filter(Board.id == board_id).first()
        if not board:
            raise NotFound("Board not found")
        self._require_member(board.organization_id, user)
        return board

    def _list_for_user(self, list_id: str, user: User) -> BoardList:
        board_list = self.db.query(BoardList).filter(BoardList.id == list_id).first()
        if not board_list:
            raise NotFound("List not found")
        self._require_member(board_list.board.organization_id, user)
        return board_list

    def _card_for_user(self, card_id: str, user: User) -> Card:
        card = self.db.query(Card).filter(Card.id == card_id).first()
        if not card:
            raise NotFound("Card not found")
        self._require_member(card.board_list.board.organization_id, user)
        return card

    def _commit(self, failure_message: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{failure_message}: {e}")
            raise PersistenceFailure(failure_message)


class BoardService(_BoardScopedService):
    """Service for board CRUD."""

    def list_boards(self, organization_id: str, user: User) -> list[Board]:
        """List an organization's boards, newest first."""
        if not self.db.query(Organization).filter(Organization.id == organization_id).first():
            raise NotFound("Organization not found")
        self._require_member(organization_id, user)
        return (
            self.db.query(Board)
            .filter(Board.organization_id == organization_id)
            .order_by(Board.created_at.desc())
            .all()
        )

    def create_board(
        self,
        organization_id: str,
        user: User,
        name: str,
        description: str | None = None,
        color: str = "#0079BF",
    ) -> Board:
        """Create a board in an organization."""
        if not self.db.query(Organization).filter(Organization.id == organization_id).first():
            raise NotFound("Organization not found")
        self._require_member(organization_id, user)

        board = Board(
            organization_id=organization_id,
            name=name,
            description=description,
            color=color,
            created_by_id=user.id,
            created_at=datetime.now(UTC),
        )
        self.db.add(board)
        self._commit("Failed to create board")
        self.db.refresh(board)
        return board

    def get_board(self, board_id: str, user: User) -> Board:
        return self._board_for_user(board_id, user)

    def delete_board(self, board_id: str, user: User) -> None:
        """Delete a board together with its lists and cards."""
        board = self._board_for_user(board_id, user)
        self.db.delete(board)
        self._commit("Failed to delete board")


class ListService(_BoardScopedService):
    """Service for the ordered lists of a board."""

    def _siblings(self, board_id: str) -> list[BoardList]:
        return sort_lists(self.db.query(BoardList).filter(BoardList.board_id == board_id).all())

    def list_lists(self, board_id: str, user: User) -> list[BoardList]:
        """Get a board's lists in display order."""
        self._board_for_user(board_id, user)
        return self._siblings(board_id)

    def create_list(self, board_id: str, user: User, name: str) -> BoardList:
        """Append a list to the end of a board."""
        self._board_for_user(board_id, user)
        position = next_position(bl.position for bl in self._siblings(board_id))

        now = datetime.now(UTC)
        board_list = BoardList(
            board_id=board_id,
            name=name,
            position=position,
            positioned_at=now,
            created_at=now,
        )
        self.db.add(board_list)
        self._commit("Failed to create list")
        self.db.refresh(board_list)
        return board_list

    def rename_list(self, list_id: str, user: User, name: str) -> BoardList:
        board_list = self._list_for_user(list_id, user)
        board_list.name = name
        self._commit("Failed to update list")
        self.db.refresh(board_list)
        return board_list

    def move_list(
        self,
        list_id: str,
        user: User,
        position: int | None = None,
        before_list_id: str | None = None,
    ) -> BoardList:
        """Move a list within its board.

        Args:
            list_id: List to move.
            user: Acting user.
            position: Explicit target position.
            before_list_id: List to insert immediately before (ignored if
                position given). Without either, the list goes to the end.

        Returns:
            BoardList: The list; unchanged if it already sits at the target.
        """
        board_list = self._list_for_user(list_id, user)
        if position is None:
            slot = drop_slot(
                self._siblings(board_list.board_id), list_id, before=before_list_id
            )
        elif position != board_list.position:
            slot = Slot(position, datetime.now(UTC))
        else:
            slot = None

        if slot is None:
            return board_list

        board_list.position, board_list.positioned_at = slot
        self._commit("Failed to move list")
        self.db.refresh(board_list)
        return board_list

    def delete_list(self, list_id: str, user: User) -> None:
        """Delete a list together with its cards."""
        board_list = self._list_for_user(list_id, user)
        self.db.delete(board_list)
        self._commit("Failed to delete list")


class CardService(_BoardScopedService):
    """Service for cards and their activity trail."""

    def _cards_in_list(self, list_id: str) -> list[Card]:
        return sort_cards(self.db.query(Card).filter(Card.list_id == list_id).all())

    def list_cards(self, board_id: str, user: User) -> list[Card]:
        """Get every card on a board in display order."""
        self._board_for_user(board_id, user)
        cards = (
            self.db.query(Card)
            .join(BoardList, BoardList.id == Card.list_id)
            .filter(BoardList.board_id == board_id)
            .all()
        )
        return sort_cards(cards)

    def get_card(self, card_id: str, user: User) -> Card:
        return self._card_for_user(card_id, user)

    def create_card(
        self,
        list_id: str,
        user: User,
        title: str,
        description: str | None = None,
    ) -> Card:
        """Append a card to the end of a list."""
        self._list_for_user(list_id, user)
        position = next_position(c.position for c in self._cards_in_list(list_id))

        card = Card(
            list_id=list_id,
            title=title,
            description=description,
            position=position,
            positioned_at=datetime.now(UTC),
            created_by_id=user.id,
        )
        self.db.add(card)
        self._commit("Failed to create card")
        self.db.refresh(card)

        self.record_activity(card.id, user.id, "created this card")
        return card

    def update_card(
        self,
        card_id: str,
        user: User,
        title: str | None = None,
        description: str | None = None,
    ) -> Card:
        """Edit a card's title and/or description."""
        card = self._card_for_user(card_id, user)
        if title is not None:
            card.title = title
        if description is not None:
            card.description = description
        self._commit("Failed to update card")
        self.db.refresh(card)
        return card

    def move_card(
        self,
        card_id: str,
        user: User,
        target_list_id: str,
        position: int | None = None,
        before_card_id: str | None = None,
    ) -> Card:
        """Relocate a card to a list and position.

        A move that leaves the card where it already is writes nothing. A
        move to another list records one activity entry afterwards; that entry
        is best-effort and never fails the move.

        Args:
            card_id: Card to move.
            user: Acting user.
            target_list_id: Destination list on the same board.
            position: Explicit target position.
            before_card_id: Card the drop landed on (ignored if position given).
                Without either, the card goes to the end of the list.

        Returns:
            Card: The card after the move.

        Raises:
            NotFound: If the card or list does not exist.
            ValidationError: If the list is on another board.
            PersistenceFailure: If the update cannot be written.
        """
        card = self._card_for_user(card_id, user)
        source_list = card.board_list
        target_list = self._list_for_user(target_list_id, user)

        if target_list.board_id != source_list.board_id:
            raise ValidationError("Cards can only be moved within the same board")

        if position is None:
            slot = drop_slot(
                self._cards_in_list(target_list_id), card_id, before=before_card_id
            )
        elif card.list_id != target_list_id or card.position != position:
            slot = Slot(position, datetime.now(UTC))
        else:
            slot = None

        if slot is None:
            return card

        source_name = source_list.name
        target_name = target_list.name
        list_changed = card.list_id != target_list_id

        card.list_id = target_list_id
        card.position, card.positioned_at = slot
        self._commit("Failed to move card")
        self.db.refresh(card)

        if list_changed:
            self.record_activity(
                card.id, user.id, f'moved from "{source_name}" to "{target_name}"'
            )
        return card

    def delete_card(self, card_id: str, user: User) -> None:
        card = self._card_for_user(card_id, user)
        self.db.delete(card)
        self._commit("Failed to delete card")

    def record_activity(self, card_id: str, user_id: str | None, action: str) -> bool:
        """Append an activity entry, swallowing storage errors.

        Returns:
            bool: True if the entry was written.
        """
        try:
            self.db.add(
                CardActivity(
                    card_id=card_id,
                    user_id=user_id,
                    action=action,
                    created_at=datetime.now(UTC),
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Failed to record activity for card {card_id}: {e}")
            return False
        return True

    def list_activities(self, card_id: str, user: User) -> list[ActivityResponse]:
        """Get a card's activity trail, newest first."""
        self._card_for_user(card_id, user)
        rows = (
            self.db.query(CardActivity, User.full_name)
            .outerjoin(User, User.id == CardActivity.user_id)
            .filter(CardActivity.card_id == card_id)
            .order_by(CardActivity.created_at.desc(), CardActivity.id)
            .all()
        )
        return [
            ActivityResponse(
                id=activity.id,
                card_id=activity.card_id,
                user_id=activity.user_id,
                user_name=full_name,
                action=activity.action,
                created_at=activity.created_at,
            )
            for activity, full_name in rows
        ]
