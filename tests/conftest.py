from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from recall.db import Base
from recall.db.cards import create_card, create_deck, get_card, update_card
from recall.study.models import CardSnapshot


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic time source for study sessions."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest_asyncio.fixture
async def deck_id(session_factory) -> int:
    async with session_factory() as session:
        async with session.begin():
            deck = await create_deck(session, "Kubernetes")
    return deck.id


@pytest.fixture
def add_card(session_factory) -> Callable[..., Awaitable[int]]:
    """Insert a card with the given scheduling fields and return its id."""

    async def _add_card(
        deck_id: int,
        front: str = "What is a pod?",
        back: str = "The smallest deployable unit.",
        *,
        state: str = "new",
        due_at: Optional[datetime] = None,
        interval: float = 0.0,
        ease_factor: float = 2.5,
        repetitions: int = 0,
        lapses: int = 0,
        suspended: bool = False,
        buried_at: Optional[datetime] = None,
    ) -> int:
        fields: dict[str, Any] = {
            "state": state,
            "due_at": due_at or NOW,
            "interval": interval,
            "ease_factor": ease_factor,
            "repetitions": repetitions,
            "lapses": lapses,
            "suspended": suspended,
            "buried_at": buried_at,
        }
        async with session_factory() as session:
            async with session.begin():
                card = await create_card(session, deck_id, front, back, now=NOW)
                await update_card(session, card.id, fields, now=NOW)
        return card.id

    return _add_card


@pytest.fixture
def fetch_card(session_factory) -> Callable[[int], Awaitable[CardSnapshot]]:
    async def _fetch_card(card_id: int) -> CardSnapshot:
        async with session_factory() as session:
            card = await get_card(session, card_id)
        assert card is not None
        return CardSnapshot.from_model(card)

    return _fetch_card
