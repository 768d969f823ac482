"""Selection and ordering of the cards studied in a session."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from recall.db.cards import get_cards_by_deck, get_deck_summary
from recall.study.models import CardSnapshot, CardState
from recall.study.settings import ORDER_RANDOM, StudySettings


T = TypeVar("T")


@dataclass(slots=True)
class StudyQueue:
    """Cards selected for a session, split by group and in study order."""

    due_cards: List[CardSnapshot] = field(default_factory=list)
    new_cards: List[CardSnapshot] = field(default_factory=list)
    cards: List[CardSnapshot] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.cards)


def interleave(first: Sequence[T], second: Sequence[T]) -> List[T]:
    """Merge two sequences round-robin: ``[1, 2, 3] + [a, b] -> [1, a, 2, b, 3]``."""
    merged: List[T] = []
    for index in range(max(len(first), len(second))):
        if index < len(first):
            merged.append(first[index])
        if index < len(second):
            merged.append(second[index])
    return merged


def _ordered(cards: Sequence[T], order: str, rng: random.Random) -> List[T]:
    ordered = list(cards)
    if order == ORDER_RANDOM:
        rng.shuffle(ordered)
    return ordered


def compose_queue(
    due_cards: Sequence[CardSnapshot],
    new_cards: Sequence[CardSnapshot],
    settings: StudySettings,
    rng: Optional[random.Random] = None,
) -> StudyQueue:
    """Order both groups and combine them according to the study settings."""
    if rng is None:
        rng = random.Random()

    due = _ordered(due_cards, settings.review_order, rng)
    new = _ordered(new_cards, settings.new_card_order, rng)
    if settings.mix_new_with_reviews:
        cards = interleave(due, new)
    else:
        cards = due + new
    return StudyQueue(due_cards=due, new_cards=new, cards=cards)


async def build_queue(
    session: AsyncSession,
    deck_id: int,
    settings: StudySettings,
    *,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> StudyQueue:
    """Fetch due and new cards of a deck, capped by the daily limits."""
    if now is None:
        now = datetime.now(timezone.utc)

    due_rows = await get_cards_by_deck(
        session,
        deck_id,
        exclude_state=CardState.NEW,
        due_before=now,
        limit=settings.max_reviews_per_day,
    )
    new_rows = await get_cards_by_deck(
        session,
        deck_id,
        state=CardState.NEW,
        limit=settings.new_cards_per_day,
    )

    return compose_queue(
        [CardSnapshot.from_model(card) for card in due_rows],
        [CardSnapshot.from_model(card) for card in new_rows],
        settings,
        rng=rng,
    )


async def build_study_cards(
    session: AsyncSession,
    deck_id: int,
    settings: StudySettings,
    *,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[CardSnapshot]:
    queue = await build_queue(session, deck_id, settings, now=now, rng=rng)
    return queue.cards


async def count_due_cards(session: AsyncSession, deck_id: int, now: Optional[datetime] = None) -> int:
    summary = await get_deck_summary(session, deck_id, now=now)
    return summary.due_cards


async def count_new_cards(session: AsyncSession, deck_id: int) -> int:
    summary = await get_deck_summary(session, deck_id)
    return summary.new_cards
