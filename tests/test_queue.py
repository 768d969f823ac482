from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from recall.db.cards import create_deck
from recall.study.models import CardSnapshot, CardState
from recall.study.queue import (
    build_queue,
    build_study_cards,
    compose_queue,
    count_due_cards,
    count_new_cards,
    interleave,
)
from recall.study.settings import ORDER_DUE_FIRST, ORDER_RANDOM, ORDER_SEQUENTIAL, StudySettings


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
ORDERED = StudySettings(new_card_order=ORDER_SEQUENTIAL, review_order=ORDER_DUE_FIRST)


def _snapshot(card_id: int, front: str, state: CardState) -> CardSnapshot:
    return CardSnapshot(
        id=card_id,
        deck_id=1,
        front=front,
        back="",
        state=state,
        due_at=NOW,
        interval=0.0 if state is CardState.NEW else 3.0,
        ease_factor=2.5,
        repetitions=0 if state is CardState.NEW else 2,
        lapses=0,
    )


def test_interleave_continues_with_longer_list() -> None:
    assert interleave([1, 2, 3], ["a", "b"]) == [1, "a", 2, "b", 3]
    assert interleave([1], ["a", "b", "c"]) == [1, "a", "b", "c"]
    assert interleave([], []) == []


def test_compose_queue_interleaves_due_and_new_cards() -> None:
    due = [_snapshot(1, "A", CardState.REVIEW), _snapshot(2, "B", CardState.REVIEW), _snapshot(3, "C", CardState.REVIEW)]
    new = [_snapshot(4, "X", CardState.NEW), _snapshot(5, "Y", CardState.NEW)]

    queue = compose_queue(due, new, ORDERED)

    assert [card.front for card in queue.cards] == ["A", "X", "B", "Y", "C"]
    assert queue.total_count == 5


def test_compose_queue_puts_reviews_first_when_not_mixing() -> None:
    due = [_snapshot(1, "A", CardState.REVIEW), _snapshot(2, "B", CardState.REVIEW)]
    new = [_snapshot(3, "X", CardState.NEW)]
    settings = StudySettings(
        new_card_order=ORDER_SEQUENTIAL,
        review_order=ORDER_DUE_FIRST,
        mix_new_with_reviews=False,
    )

    queue = compose_queue(due, new, settings)

    assert [card.front for card in queue.cards] == ["A", "B", "X"]


def test_compose_queue_shuffles_each_group_independently() -> None:
    due = [_snapshot(index, f"due-{index}", CardState.REVIEW) for index in range(1, 21)]
    new = [_snapshot(index, f"new-{index}", CardState.NEW) for index in range(21, 41)]
    settings = StudySettings(new_card_order=ORDER_RANDOM, review_order=ORDER_DUE_FIRST, mix_new_with_reviews=False)

    queue = compose_queue(due, new, settings, rng=random.Random(7))

    assert queue.due_cards == due
    assert sorted(card.id for card in queue.new_cards) == [card.id for card in new]
    assert queue.new_cards != new
    assert queue.cards[:20] == due


@pytest.mark.asyncio
async def test_build_queue_selects_due_and_new_cards(session_factory, deck_id, add_card) -> None:
    overdue = await add_card(deck_id, "overdue", state="review", due_at=NOW - timedelta(days=2), interval=4, repetitions=2)
    learning = await add_card(deck_id, "learning", state="learning", due_at=NOW - timedelta(minutes=5))
    await add_card(deck_id, "future", state="review", due_at=NOW + timedelta(days=1), interval=4, repetitions=2)
    fresh = await add_card(deck_id, "fresh")

    async with session_factory() as session:
        queue = await build_queue(session, deck_id, ORDERED, now=NOW)

    assert [card.id for card in queue.due_cards] == [overdue, learning]
    assert [card.id for card in queue.new_cards] == [fresh]
    assert [card.id for card in queue.cards] == [overdue, fresh, learning]


@pytest.mark.asyncio
async def test_build_queue_excludes_suspended_and_buried_cards(session_factory, deck_id, add_card) -> None:
    visible_due = await add_card(deck_id, "due", state="review", due_at=NOW - timedelta(days=1), interval=2, repetitions=1)
    visible_new = await add_card(deck_id, "new")
    await add_card(deck_id, "suspended due", state="review", due_at=NOW - timedelta(days=1), suspended=True)
    await add_card(deck_id, "buried due", state="review", due_at=NOW - timedelta(days=1), buried_at=NOW)
    await add_card(deck_id, "suspended new", suspended=True)
    await add_card(deck_id, "buried new", buried_at=NOW - timedelta(hours=1))

    async with session_factory() as session:
        cards = await build_study_cards(session, deck_id, StudySettings(), now=NOW, rng=random.Random(1))

    assert sorted(card.id for card in cards) == sorted([visible_due, visible_new])
    assert all(not card.suspended and card.buried_at is None for card in cards)


@pytest.mark.asyncio
async def test_build_queue_respects_daily_caps(session_factory, deck_id, add_card) -> None:
    for index in range(5):
        await add_card(deck_id, f"due {index}", state="review", due_at=NOW - timedelta(days=index + 1), interval=3, repetitions=2)
    for index in range(5):
        await add_card(deck_id, f"new {index}")
    settings = StudySettings(max_reviews_per_day=3, new_cards_per_day=2)

    async with session_factory() as session:
        queue = await build_queue(session, deck_id, settings, now=NOW, rng=random.Random(3))

    assert len(queue.due_cards) == 3
    assert len(queue.new_cards) == 2
    assert queue.total_count == 5
    assert len({card.id for card in queue.cards}) == 5
    # The most overdue reviews win the cap.
    assert {card.front for card in queue.due_cards} == {"due 2", "due 3", "due 4"}


@pytest.mark.asyncio
async def test_build_queue_only_reads_the_requested_deck(session_factory, deck_id, add_card) -> None:
    async with session_factory() as session:
        async with session.begin():
            other = await create_deck(session, "Networking")
    await add_card(other.id, "other deck")
    own = await add_card(deck_id, "own deck")

    async with session_factory() as session:
        queue = await build_queue(session, deck_id, ORDERED, now=NOW)

    assert [card.id for card in queue.cards] == [own]


@pytest.mark.asyncio
async def test_empty_deck_builds_empty_queue(session_factory, deck_id) -> None:
    async with session_factory() as session:
        queue = await build_queue(session, deck_id, StudySettings(), now=NOW)

    assert queue.cards == []
    assert queue.total_count == 0


@pytest.mark.asyncio
async def test_due_and_new_counts(session_factory, deck_id, add_card) -> None:
    await add_card(deck_id, "due", state="review", due_at=NOW - timedelta(hours=1), interval=1, repetitions=1)
    await add_card(deck_id, "later", state="review", due_at=NOW + timedelta(days=3), interval=1, repetitions=1)
    await add_card(deck_id, "new")
    await add_card(deck_id, "new suspended", suspended=True)

    async with session_factory() as session:
        due = await count_due_cards(session, deck_id, now=NOW)
        new = await count_new_cards(session, deck_id)

    assert due == 1
    assert new == 1
