"""Tests for position allocation and ordering."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from taskboard.boards.positions import (
    drop_slot,
    next_position,
    sort_cards,
    sort_lists,
)


@dataclass
class Item:
    id: str
    position: int
    positioned_at: datetime | None = None
    created_at: datetime | None = None


class TestNextPosition:
    """Tests for appending to a container."""

    def test_empty_container_starts_at_zero(self):
        assert next_position([]) == 0

    def test_appends_after_max(self):
        assert next_position([0, 4, 2]) == 5

    def test_gaps_are_not_reclaimed(self):
        assert next_position([7]) == 8

    def test_sequence_of_appends_is_strictly_increasing(self):
        positions: list[int] = []
        for _ in range(6):
            positions.append(next_position(positions))
        assert positions == [0, 1, 2, 3, 4, 5]
        assert all(a < b for a, b in zip(positions, positions[1:]))

    def test_accepts_generator(self):
        assert next_position(p for p in (1, 3)) == 4


NOW = datetime(2026, 6, 1, tzinfo=UTC)


class TestDropSlot:
    """Tests for the slot a drop lands in."""

    def test_drop_on_empty_container(self):
        assert drop_slot([], "x", now=NOW) == (0, NOW)

    def test_drop_on_container_goes_to_end(self):
        siblings = [Item("a", 0), Item("b", 3)]
        assert drop_slot(siblings, "x", now=NOW) == (4, NOW)

    def test_drop_on_item_inherits_its_position(self):
        siblings = [Item("a", 0), Item("b", 3), Item("c", 5)]
        assert drop_slot(siblings, "x", before="b", now=NOW) == (3, NOW)

    def test_unknown_target_falls_back_to_end(self):
        siblings = [Item("a", 0), Item("b", 1)]
        assert drop_slot(siblings, "x", before="zzz", now=NOW).position == 2

    def test_append_counts_the_moving_item(self):
        # "b" at 1 was deleted; "a" going to the end must not reuse 1
        siblings = [Item("a", 0), Item("c", 2)]
        assert drop_slot(siblings, "a", now=NOW).position == 3

    def test_last_item_dropped_on_own_container_stays(self):
        siblings = [Item("a", 0), Item("c", 2)]
        assert drop_slot(siblings, "c", now=NOW) is None

    def test_drop_on_itself_or_its_successor_stays(self):
        siblings = [Item("a", 0), Item("b", 1), Item("c", 2)]
        assert drop_slot(siblings, "b", before="b", now=NOW) is None
        assert drop_slot(siblings, "a", before="b", now=NOW) is None

    def test_drop_lands_between_tied_items(self):
        older = datetime(2026, 1, 1, tzinfo=UTC)
        newer = older + timedelta(seconds=10)
        siblings = [Item("a", 0, older), Item("c", 1, newer), Item("b", 1, older)]

        slot = drop_slot(siblings, "d", before="b", now=NOW)

        assert slot.position == 1
        assert older < slot.positioned_at < newer
        placed = sort_cards([*siblings, Item("d", slot.position, slot.positioned_at)])
        assert [i.id for i in placed] == ["a", "c", "d", "b"]


class TestOrdering:
    """Tests for deterministic tie-breaking."""

    def test_cards_sort_by_position(self):
        now = datetime.now(UTC)
        cards = [Item("b", 2, now), Item("a", 0, now), Item("c", 1, now)]
        assert [c.id for c in sort_cards(cards)] == ["a", "c", "b"]

    def test_card_tie_puts_most_recently_positioned_first(self):
        earlier = datetime(2026, 1, 1, tzinfo=UTC)
        later = earlier + timedelta(seconds=1)
        resident = Item("resident", 1, earlier)
        dropped = Item("dropped", 1, later)
        assert [c.id for c in sort_cards([resident, dropped])] == ["dropped", "resident"]

    def test_card_tie_with_naive_timestamps(self):
        earlier = datetime(2026, 1, 1)
        resident = Item("resident", 0, earlier)
        dropped = Item("dropped", 0, earlier + timedelta(milliseconds=1))
        assert sort_cards([resident, dropped])[0].id == "dropped"

    def test_card_tie_on_everything_falls_back_to_id(self):
        when = datetime(2026, 1, 1, tzinfo=UTC)
        cards = [Item("b", 0, when), Item("a", 0, when)]
        assert [c.id for c in sort_cards(cards)] == ["a", "b"]

    def test_list_dropped_onto_another_sorts_first(self):
        first = datetime(2026, 1, 1, tzinfo=UTC)
        lists = [
            Item("incumbent", 0, positioned_at=first),
            Item("dropped", 0, positioned_at=first + timedelta(seconds=5)),
        ]
        assert [bl.id for bl in sort_lists(lists)] == ["dropped", "incumbent"]
