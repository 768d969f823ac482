"""Bootstrap logic for the Recall command-line tools."""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Optional

from recall.app.settings import AppSettings
from recall.app.terminal import run_terminal_session
from recall.db import get_session_factory, run_migrations, run_migrations_if_needed
from recall.db.cards import unbury_all
from recall.study.session import StudySession
from recall.study.stats import StatisticsOverview, load_statistics_overview


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def _prepare(settings: AppSettings) -> None:
    _configure_logging(settings.log_level)
    LOGGER.info("%s running in %s mode.", settings.app_name, settings.app_env)
    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise


def migrate(settings: AppSettings) -> None:
    """Apply database migrations regardless of the startup flag."""
    _configure_logging(settings.log_level)
    run_migrations()


def run_study(settings: AppSettings, deck_id: int) -> int:
    """Run an interactive study session in the terminal; returns an exit code."""
    _prepare(settings)
    rng = random.Random(settings.shuffle_seed) if settings.shuffle_seed is not None else None
    session = StudySession(get_session_factory(), rng=rng)
    stats = asyncio.run(run_terminal_session(session, deck_id))
    return 0 if stats is not None else 1


async def _load_overview() -> StatisticsOverview:
    async with get_session_factory()() as session:
        return await load_statistics_overview(session)


def show_stats(settings: AppSettings) -> StatisticsOverview:
    """Print the statistics dashboard."""
    _prepare(settings)
    overview = asyncio.run(_load_overview())
    print(f"Today: {overview.today.total_studied} cards, retention {overview.today.retention_rate:.0f}%")
    print(f"Streak: {overview.streak} day(s)")
    print(f"All time: {overview.total_cards} cards, average retention {overview.average_retention:.0f}%")
    active_days = sum(1 for day in overview.recent_days if day.has_activity)
    print(f"Active days in the last {len(overview.recent_days)}: {active_days}")
    return overview


async def _unbury(before: Optional[datetime]) -> int:
    async with get_session_factory()() as session:
        async with session.begin():
            return await unbury_all(session, buried_before=before)


def unbury(settings: AppSettings, *, keep_today: bool = False) -> int:
    """Return buried cards to the queues; with ``keep_today`` only cards buried before today."""
    _prepare(settings)
    before = None
    if keep_today:
        before = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    count = asyncio.run(_unbury(before))
    LOGGER.info("Unburied %s card(s).", count)
    return count
