"""Plain terminal front-end for a study session."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from recall.study.errors import RecallError
from recall.study.models import Rating, SessionStats
from recall.study.session import StudySession
from recall.study.srs import format_interval


LOGGER = logging.getLogger(__name__)

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]

_RATING_KEYS = {str(rating.value): rating for rating in Rating}


def _render_previews(session: StudySession) -> str:
    labels = session.interval_preview_labels() or {}
    return "  ".join(
        f"{rating.value}={rating.name.title()} ({labels[rating]})" for rating in Rating if rating in labels
    )


def render_summary(stats: SessionStats) -> str:
    lines = [
        f"Cards studied: {stats.cards_studied} ({stats.new_cards_studied} new, {stats.review_cards_studied} review)",
        f"Again {stats.again_count} / Hard {stats.hard_count} / Good {stats.good_count} / Easy {stats.easy_count}",
        f"Retention: {stats.retention_rate:.0f}%",
    ]
    duration = stats.duration_seconds
    if duration is not None:
        lines.append(f"Time: {format_interval(duration / 86400)}")
    return "\n".join(lines)


async def run_terminal_session(
    session: StudySession,
    deck_id: int,
    input_fn: InputFn = input,
    output_fn: OutputFn = print,
) -> Optional[SessionStats]:
    """Drive a study session from the keyboard.

    Enter reveals the answer, ``1``-``4`` rate it, ``u`` undoes the last rating
    and ``q`` quits. Returns the session statistics, or ``None`` when the deck
    could not be loaded.
    """
    await session.start(deck_id)
    if session.error is not None:
        output_fn(f"Error: {session.error}")
        return None

    while not session.is_complete:
        card = session.current_card
        if card is None:
            break

        if not session.showing_answer:
            output_fn(f"[{session.current_index + 1}/{session.total_cards}] {card.front}")
            command = input_fn("Press Enter to show the answer (u=undo, q=quit): ").strip().lower()
        else:
            output_fn(card.back)
            if session.settings.show_next_intervals:
                output_fn(_render_previews(session))
            command = input_fn("Rate 1-4 (u=undo, q=quit): ").strip().lower()

        if command == "q":
            break
        if command == "u":
            if session.can_undo:
                try:
                    await session.undo()
                except RecallError as exc:
                    output_fn(f"Error: {exc}")
            else:
                output_fn("Nothing to undo.")
            continue
        if not session.showing_answer:
            session.reveal_answer()
            continue

        rating = _RATING_KEYS.get(command)
        if rating is None:
            output_fn("Please answer with 1, 2, 3 or 4.")
            continue
        try:
            await session.rate(rating)
        except RecallError as exc:
            output_fn(f"Error: {exc}")

    if session.is_complete:
        output_fn("Session complete.")
    output_fn(render_summary(session.stats))
    return session.stats
