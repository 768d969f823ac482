from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from recall.db.cards import (
    bury_card,
    create_card,
    create_deck,
    get_card,
    get_cards_by_deck,
    get_deck_summary,
    list_child_decks,
    set_card_suspended,
    unbury_all,
    unbury_card,
    unbury_deck,
    update_card,
)
from recall.db.reviews import append_review, delete_latest_review_for_card, list_reviews_for_card
from recall.db.settings import load_study_settings, resolve_deck_settings, save_study_settings
from recall.study.errors import NotFoundError
from recall.study.models import CardSnapshot, CardState, Rating, as_utc
from recall.study.settings import AlgorithmParams, StudySettings


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_create_card_starts_as_new(session_factory, deck_id) -> None:
    async with session_factory() as session:
        async with session.begin():
            card = await create_card(
                session,
                deck_id,
                "  What does kubectl apply do?  ",
                "Creates or updates resources.",
                tags=["kubectl", " cli "],
                now=NOW,
            )

    snapshot = CardSnapshot.from_model(card)
    assert snapshot.front == "What does kubectl apply do?"
    assert snapshot.state is CardState.NEW
    assert snapshot.interval == 0
    assert snapshot.repetitions == 0
    assert snapshot.ease_factor == 2.5
    assert snapshot.suspended is False
    assert snapshot.buried_at is None
    assert card.tags == "kubectl,cli"


@pytest.mark.asyncio
async def test_update_card_applies_partial_fields(session_factory, deck_id, add_card, fetch_card) -> None:
    card_id = await add_card(deck_id)
    due = NOW + timedelta(days=3)

    async with session_factory() as session:
        async with session.begin():
            await update_card(
                session,
                card_id,
                {"state": CardState.REVIEW, "due_at": due, "interval": 3, "repetitions": 1},
                now=NOW,
            )

    snapshot = await fetch_card(card_id)
    assert snapshot.state is CardState.REVIEW
    assert snapshot.due_at == due
    assert snapshot.interval == 3
    assert snapshot.repetitions == 1
    assert snapshot.ease_factor == 2.5


@pytest.mark.asyncio
async def test_update_card_rejects_unknown_and_missing_cards(session_factory, deck_id, add_card) -> None:
    card_id = await add_card(deck_id)

    async with session_factory() as session:
        with pytest.raises(ValueError):
            await update_card(session, card_id, {"deck_id": 99})
        with pytest.raises(NotFoundError):
            await update_card(session, 4040, {"interval": 1})


@pytest.mark.asyncio
async def test_get_cards_by_deck_filters(session_factory, deck_id, add_card) -> None:
    new_id = await add_card(deck_id, "new")
    review_id = await add_card(deck_id, "review", state="review", due_at=NOW - timedelta(days=1))
    suspended_id = await add_card(deck_id, "suspended", suspended=True)

    async with session_factory() as session:
        only_new = await get_cards_by_deck(session, deck_id, state=CardState.NEW)
        everything = await get_cards_by_deck(session, deck_id, include_suspended=True, include_buried=True)
        not_new = await get_cards_by_deck(session, deck_id, exclude_state=CardState.NEW, due_before=NOW)
        limited = await get_cards_by_deck(session, deck_id, include_suspended=True, limit=2)

    assert [card.id for card in only_new] == [new_id]
    assert [card.id for card in everything] == [new_id, review_id, suspended_id]
    assert [card.id for card in not_new] == [review_id]
    assert [card.id for card in limited] == [new_id, review_id]


@pytest.mark.asyncio
async def test_suspend_bury_and_unbury(session_factory, deck_id, add_card, fetch_card) -> None:
    first = await add_card(deck_id, "first")
    second = await add_card(deck_id, "second")

    async with session_factory() as session:
        async with session.begin():
            await set_card_suspended(session, first, True)
            await bury_card(session, first, now=NOW)
            await bury_card(session, second, now=NOW)

    suspended = await fetch_card(first)
    assert suspended.suspended is True
    assert suspended.buried_at == NOW

    async with session_factory() as session:
        async with session.begin():
            await unbury_card(session, first)
            cleared = await unbury_deck(session, deck_id)

    assert cleared == 1
    assert (await fetch_card(first)).buried_at is None
    assert (await fetch_card(second)).buried_at is None
    assert (await fetch_card(first)).suspended is True


@pytest.mark.asyncio
async def test_unbury_all_can_keep_recent_burials(session_factory, deck_id, add_card, fetch_card) -> None:
    old = await add_card(deck_id, "old", buried_at=NOW - timedelta(days=1))
    recent = await add_card(deck_id, "recent", buried_at=NOW)

    async with session_factory() as session:
        async with session.begin():
            cleared = await unbury_all(session, buried_before=NOW - timedelta(hours=1))

    assert cleared == 1
    assert (await fetch_card(old)).buried_at is None
    assert (await fetch_card(recent)).buried_at == NOW


@pytest.mark.asyncio
async def test_deck_summary_counts(session_factory, deck_id, add_card) -> None:
    await add_card(deck_id, "new")
    await add_card(deck_id, "due", state="review", due_at=NOW - timedelta(days=1))
    await add_card(deck_id, "later", state="review", due_at=NOW + timedelta(days=2))
    await add_card(deck_id, "suspended", suspended=True)
    await add_card(deck_id, "buried", buried_at=NOW)

    async with session_factory() as session:
        summary = await get_deck_summary(session, deck_id, now=NOW)

    assert summary.total_cards == 5
    assert summary.new_cards == 1
    assert summary.due_cards == 1
    assert summary.review_cards == 2
    assert summary.suspended_cards == 1
    assert summary.buried_cards == 1


@pytest.mark.asyncio
async def test_child_decks_are_listed_in_position_order(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            root = await create_deck(session, "DevOps")
            second = await create_deck(session, "Helm", parent_id=root.id, position=2)
            first = await create_deck(session, "Kubernetes", parent_id=root.id, position=1)

        children = await list_child_decks(session, root.id)
        roots = await list_child_decks(session, None)

    assert [deck.id for deck in children] == [first.id, second.id]
    assert [deck.id for deck in roots] == [root.id]


@pytest.mark.asyncio
async def test_delete_latest_review_only_removes_newest(session_factory, deck_id, add_card) -> None:
    card_id = await add_card(deck_id)

    async with session_factory() as session:
        async with session.begin():
            first = await append_review(
                session,
                card_id=card_id,
                rating=Rating.HARD,
                interval=0.0069,
                ease_factor=2.5,
                previous_state=CardState.NEW,
                new_state=CardState.LEARNING,
                now=NOW,
            )
            await append_review(
                session,
                card_id=card_id,
                rating=Rating.GOOD,
                interval=1,
                ease_factor=2.5,
                previous_state=CardState.LEARNING,
                new_state=CardState.REVIEW,
                time_spent_ms=1500,
                now=NOW + timedelta(minutes=10),
            )
        async with session.begin():
            removed = await delete_latest_review_for_card(session, card_id)
        remaining = await list_reviews_for_card(session, card_id)

    assert removed is True
    assert [review.id for review in remaining] == [first]
    assert remaining[0].rating == Rating.HARD
    assert remaining[0].new_state == "learning"
    assert as_utc(remaining[0].reviewed_at) == NOW


@pytest.mark.asyncio
async def test_delete_latest_review_without_history(session_factory, deck_id, add_card) -> None:
    card_id = await add_card(deck_id)

    async with session_factory() as session:
        async with session.begin():
            removed = await delete_latest_review_for_card(session, card_id)

    assert removed is False


@pytest.mark.asyncio
async def test_study_settings_round_trip_and_deck_override(session_factory) -> None:
    stored = StudySettings(
        new_cards_per_day=5,
        mix_new_with_reviews=False,
        algorithm_params=AlgorithmParams(easy_bonus=1.5),
    )

    async with session_factory() as session:
        defaults = await load_study_settings(session)

    async with session_factory() as session:
        async with session.begin():
            await save_study_settings(session, stored)
            deck = await create_deck(
                session,
                "Spanish",
                settings={"max_reviews_per_day": 40, "algorithm_params": {"graduating_interval": 2}},
            )
        loaded = await load_study_settings(session)
        effective = await resolve_deck_settings(session, deck.id)

    assert defaults == StudySettings()
    assert loaded == stored
    assert effective.new_cards_per_day == 5
    assert effective.max_reviews_per_day == 40
    assert effective.mix_new_with_reviews is False
    assert effective.algorithm_params.graduating_interval == 2
    assert effective.algorithm_params.easy_bonus == 1.5


@pytest.mark.asyncio
async def test_resolve_deck_settings_for_missing_deck(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(NotFoundError):
            await resolve_deck_settings(session, 12345)


def test_study_settings_validation() -> None:
    with pytest.raises(ValueError):
        StudySettings(new_card_order="alphabetical")
    with pytest.raises(ValueError):
        StudySettings(max_reviews_per_day=-1)
    with pytest.raises(ValueError):
        AlgorithmParams.from_dict({"starting_ease": 1.1})


@pytest.mark.asyncio
async def test_resolve_deck_settings_ignores_invalid_override(session_factory) -> None:
    base = StudySettings(new_cards_per_day=7)

    async with session_factory() as session:
        async with session.begin():
            deck = await create_deck(session, "Go", settings={"algorithm_params": {"starting_ease": 1.0}})
        effective = await resolve_deck_settings(session, deck.id, base)

    assert effective == base
