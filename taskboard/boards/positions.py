"""Position allocation and ordering for lists and cards.

Positions are integers that only grow: new items go to ``max + 1`` and no
compaction pass ever renumbers a container. Dropping an item onto another one
gives it the same position (insert-before); the resulting tie is resolved by
the ``positioned_at`` stamp, most recent first.
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import NamedTuple, Protocol

# Effective maximum of an empty container, so the first item lands on 0
EMPTY_MAX = -1


class Positioned(Protocol):
    id: str
    position: int
    positioned_at: datetime | None


class Slot(NamedTuple):
    """Target of a drop: position plus the positioned_at stamp to write."""

    position: int
    positioned_at: datetime


def next_position(existing: Iterable[int]) -> int:
    """Position for an item appended to a container.

    Args:
        existing: Positions of the items already in the container.

    Returns:
        int: ``max(existing) + 1``, or 0 when the container is empty.
    """
    return max(existing, default=EMPTY_MAX) + 1


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.min.replace(tzinfo=UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _between(first: datetime | None, second: datetime | None) -> datetime:
    low, high = sorted((_as_utc(first), _as_utc(second)))
    return low + (high - low) / 2


def drop_slot(
    siblings: Sequence[Positioned],
    moving_id: str,
    before: str | None = None,
    now: datetime | None = None,
) -> Slot | None:
    """Where an item dropped into a container lands.

    Dropping onto an item inserts immediately before it: the moved item takes
    that item's position, and its stamp places it between the target and
    whatever already shares that position ahead of it. Dropping onto the
    container appends after every sibling, the moving item included, so a
    freed position is never handed out again.

    Args:
        siblings: Items in the target container, in display order. May
            include the moving item when it stays in its container.
        moving_id: ID of the item being dropped.
        before: ID of the item the drop landed on, or None for the container
            itself. An ID not in the container counts as the container.
        now: Time of the write; defaults to the current UTC time.

    Returns:
        Slot | None: The new position and stamp, or None when the item is
        already where the drop would put it.
    """
    if now is None:
        now = datetime.now(UTC)
    if before == moving_id:
        return None

    ids = [item.id for item in siblings]
    if before is not None and before in ids:
        if moving_id in ids and ids.index(moving_id) + 1 == ids.index(before):
            return None
        others = [item for item in siblings if item.id != moving_id]
        index = next(i for i, item in enumerate(others) if item.id == before)
        target = others[index]
        previous = others[index - 1] if index else None
        if previous is not None and previous.position == target.position:
            return Slot(target.position, _between(previous.positioned_at, target.positioned_at))
        return Slot(target.position, now)

    if ids and ids[-1] == moving_id:
        return None
    return Slot(next_position(item.position for item in siblings), now)


def display_sort_key(item) -> tuple:
    """Display order: position, then most recently positioned first.

    An item dropped onto an occupied slot carries a stamp newer than the
    incumbent's, so it sorts ahead of it.
    """
    return (item.position, -_as_utc(item.positioned_at).timestamp(), item.id)


def sort_cards(cards: Iterable) -> list:
    return sorted(cards, key=display_sort_key)


def sort_lists(lists: Iterable) -> list:
    return sorted(lists, key=display_sort_key)
