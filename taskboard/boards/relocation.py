"""Optimistic card relocation for an open board.

A ``CardRelocationEngine`` keeps a local ``BoardCache`` of a board's cards.
Moves are applied to the cache before the server write so the board reflects
them at once; the cache is then superseded wholesale by the next
authoritative fetch, triggered by change notifications. A failed write throws
the optimistic state away and re-fetches.
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from taskboard.boards.positions import Slot, drop_slot, sort_cards
from taskboard.boards.service import CardService
from taskboard.db.models import Card, User
from taskboard.errors import NotFound, TaskboardError
from taskboard.realtime import Change, ChangeFeed

logger = logging.getLogger(__name__)

# Drop targets naming a list container rather than a card
LIST_DROP_PREFIX = "list-"


@dataclasses.dataclass(frozen=True)
class CardState:
    """Local, immutable view of a card."""

    id: str
    list_id: str
    title: str
    position: int
    positioned_at: datetime | None = None
    description: str | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardState":
        return cls(
            id=card.id,
            list_id=card.list_id,
            title=card.title,
            position=card.position,
            positioned_at=card.positioned_at,
            description=card.description,
        )


class BoardCache:
    """Versioned local copy of a board's cards.

    Every write bumps ``generation``. ``replace`` swaps the whole snapshot;
    there is no merging of server state into optimistic state.
    """

    def __init__(self):
        self._cards: dict[str, CardState] = {}
        self.generation = 0
        self.stale = True

    def replace(self, cards: Iterable[CardState]) -> None:
        self._cards = {card.id: card for card in cards}
        self.generation += 1
        self.stale = False

    def apply(
        self,
        card_id: str,
        list_id: str,
        position: int,
        positioned_at: datetime | None = None,
    ) -> CardState:
        """Optimistically relocate a cached card.

        Raises:
            KeyError: If the card is not cached.
        """
        card = dataclasses.replace(
            self._cards[card_id],
            list_id=list_id,
            position=position,
            positioned_at=positioned_at or datetime.now(UTC),
        )
        self._cards[card_id] = card
        self.generation += 1
        return card

    def mark_stale(self) -> None:
        self.stale = True

    def get(self, card_id: str) -> CardState | None:
        return self._cards.get(card_id)

    def cards(self) -> list[CardState]:
        return sort_cards(self._cards.values())

    def cards_in(self, list_id: str) -> list[CardState]:
        return sort_cards(c for c in self._cards.values() if c.list_id == list_id)


class CardRelocationEngine:
    """Moves cards on one board with optimistic local state.

    Args:
        card_service: Persistence boundary for cards.
        board_id: Board being displayed.
        user: Acting user.
        feed: Change feed; any change to the cards table marks the cache
            stale so the next read re-fetches.
    """

    def __init__(
        self,
        card_service: CardService,
        board_id: str,
        user: User,
        feed: ChangeFeed | None = None,
    ):
        self.card_service = card_service
        self.board_id = board_id
        self.user = user
        self.cache = BoardCache()
        self._unsubscribe: Callable[[], None] | None = None
        if feed is not None:
            self._unsubscribe = feed.subscribe("cards", self._on_change)

    def _on_change(self, change: Change) -> None:
        # Runs inside the writer's commit; defer the fetch to the next read.
        self.cache.mark_stale()

    def refresh(self) -> None:
        """Replace the cache with the server's current cards."""
        cards = self.card_service.list_cards(self.board_id, self.user)
        self.cache.replace(CardState.from_card(card) for card in cards)

    def _ensure_fresh(self) -> None:
        if self.cache.stale:
            self.refresh()

    def cards(self) -> list[CardState]:
        self._ensure_fresh()
        return self.cache.cards()

    def cards_in(self, list_id: str) -> list[CardState]:
        self._ensure_fresh()
        return self.cache.cards_in(list_id)

    def get(self, card_id: str) -> CardState | None:
        self._ensure_fresh()
        return self.cache.get(card_id)

    def move_card(
        self,
        card_id: str,
        target_list_id: str,
        target_position: int | None = None,
        before_card_id: str | None = None,
    ) -> bool:
        """Move a card, updating local state before the server write.

        Args:
            card_id: Card to move.
            target_list_id: Destination list.
            target_position: Explicit destination position.
            before_card_id: Card to insert immediately before (ignored if
                target_position given). Without either, the card is appended.

        Returns:
            bool: False if the card is already there (nothing written).

        Raises:
            NotFound: If the card is not on this board.
            TaskboardError: If the server write fails; the cache has been
                re-fetched by then.
        """
        current = self.get(card_id)
        if current is None:
            raise NotFound("Card not found")

        if target_position is None:
            slot = drop_slot(
                self.cache.cards_in(target_list_id), card_id, before=before_card_id
            )
        elif current.list_id != target_list_id or current.position != target_position:
            slot = Slot(target_position, datetime.now(UTC))
        else:
            slot = None
        if slot is None:
            return False

        self.cache.apply(card_id, target_list_id, slot.position, slot.positioned_at)
        try:
            self.card_service.move_card(
                card_id,
                self.user,
                target_list_id,
                position=target_position,
                before_card_id=before_card_id,
            )
        except (TaskboardError, SQLAlchemyError) as e:
            logger.warning(f"Move of card {card_id} failed, discarding local state: {e}")
            self._recover()
            raise
        return True

    def _recover(self) -> None:
        try:
            self.refresh()
        except (TaskboardError, SQLAlchemyError) as e:
            logger.error(f"Re-fetch of board {self.board_id} failed: {e}")
            self.cache.mark_stale()

    def close(self) -> None:
        """Stop listening for change notifications."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


class DragSession:
    """Interprets one drag gesture on a board.

    The dragged card is tracked in ``active_card`` and kept apart from the
    committed cache until the drop.
    """

    def __init__(self, engine: CardRelocationEngine):
        self.engine = engine
        self.active_card: CardState | None = None
        self.last_error: TaskboardError | None = None

    def start(self, card_id: str) -> CardState | None:
        self.active_card = self.engine.get(card_id)
        self.last_error = None
        return self.active_card

    def cancel(self) -> None:
        self.active_card = None

    def drop(self, over_id: str | None) -> CardState | None:
        """Finish the gesture.

        Args:
            over_id: ``None`` when dropped outside any target,
                ``"list-<id>"`` for a list container (append at the end), or a
                card ID (insert immediately before that card).

        Returns:
            CardState | None: The card's new local state, or None if nothing
            moved.
        """
        active, self.active_card = self.active_card, None
        if active is None or over_id is None or over_id == active.id:
            return None

        if over_id.startswith(LIST_DROP_PREFIX):
            target_list_id = over_id[len(LIST_DROP_PREFIX) :]
            before = None
        else:
            over_card = self.engine.get(over_id)
            if over_card is None:
                return None
            target_list_id = over_card.list_id
            before = over_card.id

        try:
            moved = self.engine.move_card(active.id, target_list_id, before_card_id=before)
        except TaskboardError as e:
            self.last_error = e
            return None
        return self.engine.cache.get(active.id) if moved else None
