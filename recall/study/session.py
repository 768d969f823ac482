"""State machine driving a single study run over a deck."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recall.db.cards import update_card
from recall.db.reviews import append_review, delete_latest_review_for_card
from recall.db.settings import resolve_deck_settings
from recall.db.stats import increment_daily_stat
from recall.study.errors import NotFoundError, PersistenceError, RecallError
from recall.study.models import CardSnapshot, Rating, SessionStats, UndoEntry
from recall.study.queue import build_queue
from recall.study.settings import StudySettings
from recall.study.srs import (
    ReviewSchedule,
    calculate_next_schedule,
    format_interval,
    get_interval_previews,
    next_lapse_count,
)
from recall.study.stats import today_string


LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionPhase(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    COMPLETE = "complete"
    ERROR = "error"


class StudySession:
    """Walks through a study queue, applying ratings and keeping undo history.

    Settings are resolved once in :meth:`start` (global values plus the deck's
    overrides) and are not re-read while the session runs. Each rating is
    persisted in its own transaction: the card update, the review event and
    the daily-stat increment either all commit or none does.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Optional[StudySettings] = None,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._session_factory = session_factory
        self._base_settings = settings
        self._settings = settings or StudySettings()
        self._clock = clock or _utcnow
        self._rng = rng
        self._deck_id: Optional[int] = None
        self._cards: List[CardSnapshot] = []
        self._index = 0
        self._showing_answer = False
        self._history: List[UndoEntry] = []
        self._stats = SessionStats(start_time=self._clock())
        self._phase = SessionPhase.LOADING
        self._error: Optional[RecallError] = None
        self._busy = False
        self._card_shown_at: Optional[datetime] = None

    # -- read-only surface -------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def deck_id(self) -> Optional[int]:
        return self._deck_id

    @property
    def settings(self) -> StudySettings:
        return self._settings

    @property
    def error(self) -> Optional[RecallError]:
        return self._error

    @property
    def current_card(self) -> Optional[CardSnapshot]:
        if self._phase is not SessionPhase.ACTIVE or self._index >= len(self._cards):
            return None
        return self._cards[self._index]

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def total_cards(self) -> int:
        return len(self._cards)

    @property
    def showing_answer(self) -> bool:
        return self._showing_answer

    @property
    def progress(self) -> float:
        if not self._cards:
            return 0.0
        return self._index / len(self._cards) * 100

    @property
    def can_undo(self) -> bool:
        return self._settings.enable_undo and bool(self._history) and not self._busy

    @property
    def is_complete(self) -> bool:
        return self._phase is SessionPhase.COMPLETE

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def stats(self) -> SessionStats:
        return self._stats

    # -- operations ----------------------------------------------------------

    async def start(self, deck_id: int) -> None:
        """Load the study queue of a deck; failures put the session in the error phase."""
        now = self._clock()
        self._deck_id = deck_id
        self._phase = SessionPhase.LOADING
        self._error = None

        try:
            async with self._session_factory() as session:
                settings = await resolve_deck_settings(session, deck_id, self._base_settings)
                queue = await build_queue(session, deck_id, settings, now=now, rng=self._rng)
        except NotFoundError as exc:
            LOGGER.warning("Cannot start study session: %s", exc)
            self._fail(exc)
            return
        except SQLAlchemyError:
            LOGGER.exception("Failed to load study cards for deck %s.", deck_id)
            self._fail(PersistenceError("Failed to load study cards."))
            return

        self._settings = settings
        self._cards = list(queue.cards)
        self._index = 0
        self._showing_answer = False
        self._history = []
        self._stats = SessionStats(start_time=now)

        if not self._cards:
            self._phase = SessionPhase.COMPLETE
            self._stats.end_time = now
            LOGGER.info("Deck %s has nothing to study.", deck_id)
            return

        self._phase = SessionPhase.ACTIVE
        self._card_shown_at = now
        LOGGER.info(
            "Study session started for deck %s: %s due, %s new.",
            deck_id,
            len(queue.due_cards),
            len(queue.new_cards),
        )

    def reveal_answer(self) -> bool:
        if self.current_card is None or self._showing_answer:
            LOGGER.debug("Ignoring reveal_answer: no card awaiting an answer.")
            return False
        self._showing_answer = True
        return True

    async def rate(self, rating: Rating) -> Optional[ReviewSchedule]:
        """Apply a rating to the current card and advance.

        Returns the applied schedule, or ``None`` when the call was ignored.
        Raises :class:`PersistenceError` when the repository rejects the write;
        in that case the session stays on the same card.
        """
        rating = Rating(rating)
        card = self.current_card
        if self._busy or card is None or not self._showing_answer:
            LOGGER.debug("Ignoring rate(%s): session is not waiting for a rating.", rating.name)
            return None

        self._busy = True
        try:
            now = self._clock()
            schedule = calculate_next_schedule(card, rating, self._settings.algorithm_params, now=now)
            updated = card.with_schedule(schedule, lapses=next_lapse_count(card, rating))
            await self._persist_rating(card, updated, rating, now)

            self._error = None
            self._stats.record(rating, card.is_new)
            self._history.append(UndoEntry(snapshot=card, rating=rating))
            self._advance(now)
            return schedule
        finally:
            self._busy = False

    async def undo(self) -> bool:
        """Revert the most recent rating; returns ``False`` when there is nothing to undo.

        The daily-stat increment made by the reverted rating is kept.
        """
        if self._busy or not self._history or not self._settings.enable_undo:
            LOGGER.debug("Ignoring undo: nothing to revert.")
            return False

        entry = self._history[-1]
        self._busy = True
        try:
            now = self._clock()
            await self._persist_undo(entry, now)

            self._history.pop()
            self._error = None
            self._stats.revert(entry.rating, entry.snapshot.is_new)
            self._stats.end_time = None
            self._index = max(0, self._index - 1)
            self._cards[self._index] = entry.snapshot
            self._showing_answer = False
            self._phase = SessionPhase.ACTIVE
            self._card_shown_at = now
            return True
        finally:
            self._busy = False

    def interval_preview(self) -> Optional[Dict[Rating, ReviewSchedule]]:
        card = self.current_card
        if card is None:
            return None
        return get_interval_previews(card, self._settings.algorithm_params, now=self._clock())

    def interval_preview_labels(self) -> Optional[Dict[Rating, str]]:
        previews = self.interval_preview()
        if previews is None:
            return None
        return {rating: format_interval(schedule.interval) for rating, schedule in previews.items()}

    # -- internals -------------------------------------------------------------

    def _fail(self, error: RecallError) -> None:
        self._error = error
        self._phase = SessionPhase.ERROR
        self._cards = []
        self._index = 0
        self._showing_answer = False
        self._history = []

    def _advance(self, now: datetime) -> None:
        self._index += 1
        self._showing_answer = False
        self._card_shown_at = now
        if self._index >= len(self._cards):
            self._phase = SessionPhase.COMPLETE
            self._stats.end_time = now
            LOGGER.info(
                "Study session for deck %s complete: %s cards studied.",
                self._deck_id,
                self._stats.cards_studied,
            )

    def _elapsed_ms(self, now: datetime) -> int:
        if self._card_shown_at is None:
            return 0
        return max(0, int((now - self._card_shown_at).total_seconds() * 1000))

    async def _persist_rating(
        self,
        card: CardSnapshot,
        updated: CardSnapshot,
        rating: Rating,
        now: datetime,
    ) -> None:
        time_spent_ms = self._elapsed_ms(now)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await update_card(session, card.id, updated.scheduling_fields(), now=now)
                    await append_review(
                        session,
                        card_id=card.id,
                        rating=rating,
                        interval=updated.interval,
                        ease_factor=updated.ease_factor,
                        previous_state=card.state,
                        new_state=updated.state,
                        time_spent_ms=time_spent_ms,
                        now=now,
                    )
                    await increment_daily_stat(
                        session,
                        today_string(now),
                        rating,
                        card.is_new,
                        deck_id=card.deck_id,
                        time_spent_ms=time_spent_ms,
                    )
        except NotFoundError as exc:
            LOGGER.warning("Card %s disappeared during the session.", card.id)
            self._error = exc
            raise
        except SQLAlchemyError as exc:
            LOGGER.exception("Failed to save rating for card %s.", card.id)
            error = PersistenceError("Failed to save rating. Please try again.")
            self._error = error
            raise error from exc

    async def _persist_undo(self, entry: UndoEntry, now: datetime) -> None:
        card_id = entry.snapshot.id
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await update_card(session, card_id, entry.snapshot.scheduling_fields(), now=now)
                    await delete_latest_review_for_card(session, card_id)
        except NotFoundError as exc:
            LOGGER.warning("Card %s disappeared before undo.", card_id)
            self._error = exc
            raise
        except SQLAlchemyError as exc:
            LOGGER.exception("Failed to undo rating for card %s.", card_id)
            error = PersistenceError("Failed to undo. Please try again.")
            self._error = error
            raise error from exc
