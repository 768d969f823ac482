"""Daily study counters."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recall.study.models import RATING_COUNTERS, Rating, retention_percentage

from . import DailyStat


def _empty_daily_stat(date: str) -> DailyStat:
    return DailyStat(
        date=date,
        new_cards=0,
        reviewed_cards=0,
        again_count=0,
        hard_count=0,
        good_count=0,
        easy_count=0,
        time_spent_ms=0,
        retention_rate=0.0,
        deck_stats={},
    )


def _update_deck_stats(
    deck_stats: Optional[Dict[str, Any]],
    deck_id: int,
    rating: Rating,
    was_new: bool,
) -> Dict[str, Any]:
    # Retention per deck is a running average of 100/0 per rating, not an exact
    # good+easy ratio; only the day-wide rate is exact.
    updated = {key: dict(value) for key, value in (deck_stats or {}).items()}
    entry = updated.setdefault(
        str(deck_id), {"new_cards": 0, "reviewed_cards": 0, "retention_rate": 0.0}
    )
    if was_new:
        entry["new_cards"] += 1
    else:
        entry["reviewed_cards"] += 1

    total = entry["new_cards"] + entry["reviewed_cards"]
    remembered = 100 if rating >= Rating.GOOD else 0
    entry["retention_rate"] = (entry["retention_rate"] * (total - 1) + remembered) / total
    return updated


async def increment_daily_stat(
    session: AsyncSession,
    date: str,
    rating: Rating,
    was_new: bool,
    *,
    deck_id: Optional[int] = None,
    time_spent_ms: int = 0,
) -> DailyStat:
    """Count one applied rating in the stats of ``date`` (``YYYY-MM-DD``)."""
    rating = Rating(rating)
    stat = await session.get(DailyStat, date)
    if stat is None:
        stat = _empty_daily_stat(date)
        session.add(stat)

    if was_new:
        stat.new_cards += 1
    else:
        stat.reviewed_cards += 1

    counter = RATING_COUNTERS[rating]
    setattr(stat, counter, getattr(stat, counter) + 1)
    stat.time_spent_ms += max(0, int(time_spent_ms))
    stat.retention_rate = retention_percentage(
        stat.good_count + stat.easy_count,
        stat.new_cards + stat.reviewed_cards,
    )

    if deck_id is not None:
        # JSON columns are not mutation-tracked, so always assign a fresh dict.
        stat.deck_stats = _update_deck_stats(stat.deck_stats, deck_id, rating, was_new)

    await session.flush()
    return stat


async def get_daily_stat(session: AsyncSession, date: str) -> Optional[DailyStat]:
    return await session.get(DailyStat, date)


async def get_daily_stats_between(session: AsyncSession, start: str, end: str) -> list[DailyStat]:
    """Return stored days in the inclusive ``[start, end]`` range, oldest first."""
    stmt = (
        select(DailyStat)
        .where(DailyStat.date >= start, DailyStat.date <= end)
        .order_by(DailyStat.date)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_all_daily_stats(session: AsyncSession) -> list[DailyStat]:
    result = await session.execute(select(DailyStat).order_by(DailyStat.date))
    return list(result.scalars().all())
