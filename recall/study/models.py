"""Domain values shared by the scheduler, queue builder and study session."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from recall.db import Card


class Rating(IntEnum):
    """Recall quality reported by the learner after seeing the answer."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class CardState(str, Enum):
    """Lifecycle stage of a card."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"


RATING_COUNTERS: Dict[Rating, str] = {
    Rating.AGAIN: "again_count",
    Rating.HARD: "hard_count",
    Rating.GOOD: "good_count",
    Rating.EASY: "easy_count",
}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes returned by drivers such as SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def retention_percentage(remembered: int, total: int) -> float:
    """Return the share of remembered answers as a percentage, 0 when nothing was studied."""
    if total <= 0:
        return 0.0
    return remembered / total * 100


@dataclass(frozen=True, slots=True)
class CardSnapshot:
    """Immutable copy of a card as read from the repository."""

    id: int
    deck_id: int
    front: str
    back: str
    state: CardState
    due_at: datetime
    interval: float
    ease_factor: float
    repetitions: int
    lapses: int
    suspended: bool = False
    buried_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, card: "Card") -> "CardSnapshot":
        return cls(
            id=card.id,
            deck_id=card.deck_id,
            front=card.front,
            back=card.back,
            state=CardState(card.state),
            due_at=as_utc(card.due_at),
            interval=card.interval,
            ease_factor=card.ease_factor,
            repetitions=card.repetitions,
            lapses=card.lapses,
            suspended=card.suspended,
            buried_at=as_utc(card.buried_at),
        )

    @property
    def is_new(self) -> bool:
        return self.state is CardState.NEW

    def scheduling_fields(self) -> Dict[str, Any]:
        """Return the columns owned by the scheduler, ready for a repository update."""
        return {
            "state": self.state.value,
            "due_at": self.due_at,
            "interval": self.interval,
            "ease_factor": self.ease_factor,
            "repetitions": self.repetitions,
            "lapses": self.lapses,
        }

    def with_schedule(self, schedule: Any, lapses: int) -> "CardSnapshot":
        """Return a copy carrying the fields of a computed review schedule."""
        return replace(
            self,
            state=schedule.state,
            due_at=schedule.due_at,
            interval=schedule.interval,
            ease_factor=schedule.ease_factor,
            repetitions=schedule.repetitions,
            lapses=lapses,
        )


@dataclass(slots=True)
class SessionStats:
    """Running counters for a single study session."""

    start_time: datetime
    end_time: Optional[datetime] = None
    cards_studied: int = 0
    new_cards_studied: int = 0
    review_cards_studied: int = 0
    again_count: int = 0
    hard_count: int = 0
    good_count: int = 0
    easy_count: int = 0

    def record(self, rating: Rating, was_new: bool) -> None:
        self._apply(rating, was_new, 1)

    def revert(self, rating: Rating, was_new: bool) -> None:
        self._apply(rating, was_new, -1)

    def _apply(self, rating: Rating, was_new: bool, step: int) -> None:
        self.cards_studied += step
        if was_new:
            self.new_cards_studied += step
        else:
            self.review_cards_studied += step
        counter = RATING_COUNTERS[Rating(rating)]
        setattr(self, counter, getattr(self, counter) + step)

    @property
    def retention_rate(self) -> float:
        return retention_percentage(self.good_count + self.easy_count, self.cards_studied)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()


@dataclass(frozen=True, slots=True)
class UndoEntry:
    """Card state captured before a rating was applied."""

    snapshot: CardSnapshot
    rating: Rating
