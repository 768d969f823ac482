"""Review-event log used for history and undo."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recall.study.models import CardState, Rating

from . import Review


async def append_review(
    session: AsyncSession,
    *,
    card_id: int,
    rating: Rating,
    interval: float,
    ease_factor: float,
    previous_state: CardState,
    new_state: CardState,
    time_spent_ms: int = 0,
    now: Optional[datetime] = None,
) -> int:
    """Persist a review outcome and return the new review id."""
    if now is None:
        now = datetime.now(timezone.utc)

    review = Review(
        card_id=card_id,
        rating=int(rating),
        interval=interval,
        ease_factor=ease_factor,
        time_spent_ms=max(0, int(time_spent_ms)),
        previous_state=CardState(previous_state).value,
        new_state=CardState(new_state).value,
        reviewed_at=now,
    )
    session.add(review)
    await session.flush()
    return review.id


async def list_reviews_for_card(session: AsyncSession, card_id: int) -> list[Review]:
    """Return the review history of a card, oldest first."""
    stmt = select(Review).where(Review.card_id == card_id).order_by(Review.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_latest_review_for_card(session: AsyncSession, card_id: int) -> bool:
    """Remove the most recent review of a card; return ``False`` when it has none."""
    stmt = (
        select(Review)
        .where(Review.card_id == card_id)
        .order_by(Review.id.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    review = result.scalars().first()
    if review is None:
        return False

    await session.delete(review)
    await session.flush()
    return True
