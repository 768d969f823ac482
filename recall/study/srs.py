"""Spaced-repetition scheduling helpers for flashcard reviews."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Protocol

from recall.study.models import CardState, Rating
from recall.study.settings import AlgorithmParams


MIN_EASE_FACTOR = 1.3
LEARNING_STEP_DAYS = 0.0069  # about ten minutes
SECOND_STEP_MULTIPLIER = 2.5


class SchedulableCard(Protocol):
    """Scheduling fields the algorithm reads from a card."""

    state: CardState
    interval: float
    ease_factor: float
    repetitions: int
    lapses: int


@dataclass(frozen=True, slots=True)
class ReviewSchedule:
    """Calculated review data for a card after receiving a rating."""

    interval: float
    repetitions: int
    ease_factor: float
    state: CardState
    due_at: datetime


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_next_schedule(
    card: SchedulableCard,
    rating: Rating,
    params: AlgorithmParams,
    *,
    now: datetime | None = None,
) -> ReviewSchedule:
    """Return the next review schedule using the SM-2 variant."""
    if now is None:
        now = datetime.now(timezone.utc)

    rating = Rating(rating)
    state = CardState(card.state)
    interval = card.interval or 0
    repetitions = card.repetitions or 0

    if state is CardState.REVIEW:
        quality_factor = 0.1 - (5 - rating) * (0.08 + (5 - rating) * 0.02)
        ease_factor = max(MIN_EASE_FACTOR, card.ease_factor + quality_factor)
    else:
        ease_factor = card.ease_factor or params.starting_ease

    learning = state in (CardState.NEW, CardState.LEARNING)

    if rating is Rating.AGAIN:
        new_interval = 0.0
        repetitions = 0
        new_state = CardState.LEARNING
    elif rating is Rating.HARD:
        if learning:
            new_interval = LEARNING_STEP_DAYS
            new_state = CardState.LEARNING
        else:
            new_interval = interval * params.hard_interval
            new_state = CardState.REVIEW
    elif rating is Rating.GOOD:
        if learning or repetitions == 0:
            new_interval = params.graduating_interval
            repetitions = 1
        elif repetitions == 1:
            new_interval = params.graduating_interval * SECOND_STEP_MULTIPLIER
            repetitions = 2
        else:
            new_interval = interval * ease_factor
            repetitions += 1
        new_state = CardState.REVIEW
    else:
        if learning or repetitions == 0:
            new_interval = params.easy_interval
            repetitions = 1
        else:
            new_interval = interval * ease_factor * params.easy_bonus
            repetitions += 1
        new_state = CardState.REVIEW

    new_interval *= params.interval_modifier
    if new_interval >= 1:
        new_interval = round_half_up(new_interval)

    return ReviewSchedule(
        interval=new_interval,
        repetitions=repetitions,
        ease_factor=ease_factor,
        state=new_state,
        due_at=now + timedelta(days=new_interval),
    )


def next_lapse_count(card: SchedulableCard, rating: Rating) -> int:
    """Count a lapse when a review card is forgotten."""
    lapses = card.lapses or 0
    if Rating(rating) is Rating.AGAIN and CardState(card.state) is CardState.REVIEW:
        return lapses + 1
    return lapses


def get_interval_previews(
    card: SchedulableCard,
    params: AlgorithmParams,
    *,
    now: datetime | None = None,
) -> Dict[Rating, ReviewSchedule]:
    """Compute the outcome of every rating without touching the card."""
    if now is None:
        now = datetime.now(timezone.utc)
    return {rating: calculate_next_schedule(card, rating, params, now=now) for rating in Rating}


def format_interval(interval: float) -> str:
    """Render an interval in days as a compact label such as ``10m`` or ``2mo``."""
    if interval < 0.021:
        return f"{round_half_up(interval * 24 * 60)}m"
    if interval < 1:
        return f"{round_half_up(interval * 24)}h"
    if interval < 30:
        return f"{round_half_up(interval)}d"
    if interval < 365:
        return f"{round_half_up(interval / 30)}mo"
    return f"{round_half_up(interval / 365)}y"


def format_interval_previews(
    card: SchedulableCard,
    params: AlgorithmParams,
    *,
    now: datetime | None = None,
) -> Dict[Rating, str]:
    previews = get_interval_previews(card, params, now=now)
    return {rating: format_interval(schedule.interval) for rating, schedule in previews.items()}
