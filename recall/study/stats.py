"""Derived study statistics: streaks, retention and daily rollups."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from recall.db.stats import get_all_daily_stats
from recall.study.models import retention_percentage

if TYPE_CHECKING:
    from recall.db import DailyStat


STREAK_LOOKBACK_DAYS = 365
DASHBOARD_DAYS = 30


def today_string(now: Optional[datetime] = None) -> str:
    """Return the UTC calendar date of ``now`` as ``YYYY-MM-DD``."""
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date().isoformat()


@dataclass(frozen=True, slots=True)
class DailyStatRecord:
    """Read-only copy of one day's counters."""

    date: str
    new_cards: int = 0
    reviewed_cards: int = 0
    again_count: int = 0
    hard_count: int = 0
    good_count: int = 0
    easy_count: int = 0
    time_spent_ms: int = 0
    retention_rate: float = 0.0
    deck_stats: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_model(cls, stat: "DailyStat") -> "DailyStatRecord":
        return cls(
            date=stat.date,
            new_cards=stat.new_cards,
            reviewed_cards=stat.reviewed_cards,
            again_count=stat.again_count,
            hard_count=stat.hard_count,
            good_count=stat.good_count,
            easy_count=stat.easy_count,
            time_spent_ms=stat.time_spent_ms,
            retention_rate=stat.retention_rate,
            deck_stats=dict(stat.deck_stats or {}),
        )

    @property
    def total_studied(self) -> int:
        return self.new_cards + self.reviewed_cards

    @property
    def has_activity(self) -> bool:
        return self.total_studied > 0


def retention_rate(record: DailyStatRecord) -> float:
    return retention_percentage(record.good_count + record.easy_count, record.total_studied)


def _by_date(records: Iterable[DailyStatRecord]) -> Dict[str, DailyStatRecord]:
    return {record.date: record for record in records}


def calculate_streak(records: Iterable[DailyStatRecord], today: date) -> int:
    """Count consecutive active days ending today, looking back at most a year."""
    indexed = _by_date(records)
    streak = 0
    for offset in range(STREAK_LOOKBACK_DAYS):
        record = indexed.get((today - timedelta(days=offset)).isoformat())
        if record is None or not record.has_activity:
            break
        streak += 1
    return streak


def last_n_days(records: Iterable[DailyStatRecord], days: int, today: date) -> List[DailyStatRecord]:
    """Return exactly ``days`` records ending today, filling gaps with empty days."""
    indexed = _by_date(records)
    series: List[DailyStatRecord] = []
    for offset in range(days - 1, -1, -1):
        key = (today - timedelta(days=offset)).isoformat()
        series.append(indexed.get(key) or DailyStatRecord(date=key))
    return series


def total_cards_reviewed(records: Iterable[DailyStatRecord]) -> int:
    return sum(record.total_studied for record in records)


def average_retention_rate(records: Iterable[DailyStatRecord]) -> float:
    """Average the stored daily retention over days with activity only."""
    active = [record for record in records if record.has_activity]
    if not active:
        return 0.0
    return sum(record.retention_rate for record in active) / len(active)


@dataclass(slots=True)
class StatisticsOverview:
    """Everything the statistics dashboard shows."""

    today: DailyStatRecord
    recent_days: List[DailyStatRecord]
    streak: int
    total_cards: int
    average_retention: float


def build_overview(
    records: Iterable[DailyStatRecord],
    today: date,
    days: int = DASHBOARD_DAYS,
) -> StatisticsOverview:
    records = list(records)
    indexed = _by_date(records)
    today_key = today.isoformat()
    return StatisticsOverview(
        today=indexed.get(today_key) or DailyStatRecord(date=today_key),
        recent_days=last_n_days(records, days, today),
        streak=calculate_streak(records, today),
        total_cards=total_cards_reviewed(records),
        average_retention=average_retention_rate(records),
    )


async def load_statistics_overview(
    session: AsyncSession,
    today: Optional[date] = None,
    days: int = DASHBOARD_DAYS,
) -> StatisticsOverview:
    """Read every stored day and derive the dashboard figures."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    stored = await get_all_daily_stats(session)
    return build_overview([DailyStatRecord.from_model(stat) for stat in stored], today, days)
