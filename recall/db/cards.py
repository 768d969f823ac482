"""Helpers for working with deck and card persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from recall.study.errors import NotFoundError
from recall.study.models import CardState

from . import Card, Deck


DEFAULT_EASE_FACTOR = 2.5

SCHEDULING_FIELDS = frozenset(
    {"state", "due_at", "interval", "ease_factor", "repetitions", "lapses"}
)
_UPDATABLE_FIELDS = SCHEDULING_FIELDS | {"front", "back", "tags", "card_type", "suspended", "buried_at"}


@dataclass(slots=True)
class DeckSummary:
    """Card counts displayed next to a deck."""

    deck_id: int
    total_cards: int
    new_cards: int
    due_cards: int
    review_cards: int
    suspended_cards: int
    buried_cards: int


async def create_deck(
    session: AsyncSession,
    name: str,
    *,
    parent_id: Optional[int] = None,
    description: Optional[str] = None,
    position: int = 0,
    settings: Optional[Mapping[str, Any]] = None,
) -> Deck:
    """Create a deck, optionally nested under ``parent_id``."""
    deck = Deck(
        name=name.strip(),
        parent_id=parent_id,
        description=description,
        position=position,
        settings=dict(settings) if settings else None,
    )
    session.add(deck)
    await session.flush()
    return deck


async def get_deck(session: AsyncSession, deck_id: int) -> Optional[Deck]:
    return await session.get(Deck, deck_id)


async def list_child_decks(session: AsyncSession, parent_id: Optional[int]) -> list[Deck]:
    """Return the direct children of a deck (or the root decks) in display order."""
    parent_filter = Deck.parent_id.is_(None) if parent_id is None else Deck.parent_id == parent_id
    stmt = select(Deck).where(parent_filter).order_by(Deck.position, Deck.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_card(
    session: AsyncSession,
    deck_id: int,
    front: str,
    back: str,
    *,
    card_type: str = "basic",
    tags: Optional[Sequence[str]] = None,
    ease_factor: float = DEFAULT_EASE_FACTOR,
    now: Optional[datetime] = None,
) -> Card:
    """Add a new, never-studied card to a deck."""
    if now is None:
        now = datetime.now(timezone.utc)

    card = Card(
        deck_id=deck_id,
        front=front.strip(),
        back=back.strip(),
        card_type=card_type,
        tags=",".join(tag.strip() for tag in tags) if tags else None,
        state=CardState.NEW.value,
        due_at=now,
        interval=0.0,
        ease_factor=ease_factor,
        repetitions=0,
        lapses=0,
        suspended=False,
        buried_at=None,
    )
    session.add(card)
    await session.flush()
    return card


async def get_card(session: AsyncSession, card_id: int) -> Optional[Card]:
    return await session.get(Card, card_id)


async def get_cards_by_deck(
    session: AsyncSession,
    deck_id: int,
    *,
    state: Optional[CardState] = None,
    exclude_state: Optional[CardState] = None,
    due_before: Optional[datetime] = None,
    include_suspended: bool = False,
    include_buried: bool = False,
    limit: Optional[int] = None,
) -> list[Card]:
    """Return cards of a deck matching the given filters.

    Cards are ordered by due date when ``due_before`` is given, otherwise by
    insertion order.
    """
    stmt = select(Card).where(Card.deck_id == deck_id)
    if not include_suspended:
        stmt = stmt.where(Card.suspended.is_(False))
    if not include_buried:
        stmt = stmt.where(Card.buried_at.is_(None))
    if state is not None:
        stmt = stmt.where(Card.state == CardState(state).value)
    if exclude_state is not None:
        stmt = stmt.where(Card.state != CardState(exclude_state).value)
    if due_before is not None:
        stmt = stmt.where(Card.due_at <= due_before).order_by(Card.due_at, Card.id)
    else:
        stmt = stmt.order_by(Card.id)
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_card(
    session: AsyncSession,
    card_id: int,
    fields: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Card:
    """Apply a partial update to a card."""
    if now is None:
        now = datetime.now(timezone.utc)

    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update card fields: {', '.join(sorted(unknown))}.")

    card = await session.get(Card, card_id)
    if card is None:
        raise NotFoundError(f"Card {card_id} does not exist.")

    for name, value in fields.items():
        if name == "state":
            value = CardState(value).value
        setattr(card, name, value)
    card.updated_at = now
    await session.flush()
    return card


async def set_card_suspended(session: AsyncSession, card_id: int, suspended: bool) -> Card:
    return await update_card(session, card_id, {"suspended": suspended})


async def bury_card(session: AsyncSession, card_id: int, now: Optional[datetime] = None) -> Card:
    """Hide a card from study queues until it is unburied."""
    if now is None:
        now = datetime.now(timezone.utc)
    return await update_card(session, card_id, {"buried_at": now}, now=now)


async def unbury_card(session: AsyncSession, card_id: int) -> Card:
    return await update_card(session, card_id, {"buried_at": None})


async def unbury_deck(session: AsyncSession, deck_id: int) -> int:
    """Clear the buried flag of every card in a deck; return how many were changed."""
    stmt = (
        update(Card)
        .where(Card.deck_id == deck_id, Card.buried_at.is_not(None))
        .values(buried_at=None)
    )
    result = await session.execute(stmt)
    return result.rowcount or 0


async def unbury_all(session: AsyncSession, buried_before: Optional[datetime] = None) -> int:
    """Clear buried cards across all decks, e.g. at the day boundary."""
    stmt = update(Card).where(Card.buried_at.is_not(None))
    if buried_before is not None:
        stmt = stmt.where(Card.buried_at < buried_before)
    result = await session.execute(stmt.values(buried_at=None))
    return result.rowcount or 0


async def get_deck_summary(
    session: AsyncSession,
    deck_id: int,
    now: Optional[datetime] = None,
) -> DeckSummary:
    """Count the cards of a deck by study status."""
    if now is None:
        now = datetime.now(timezone.utc)

    available = (Card.suspended.is_(False)) & (Card.buried_at.is_(None))
    is_new = Card.state == CardState.NEW.value

    def _count(condition):
        return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

    stmt = select(
        func.count(Card.id),
        _count(available & is_new),
        _count(available & ~is_new & (Card.due_at <= now)),
        _count(Card.state == CardState.REVIEW.value),
        _count(Card.suspended.is_(True)),
        _count(Card.buried_at.is_not(None)),
    ).where(Card.deck_id == deck_id)
    row = (await session.execute(stmt)).one()

    return DeckSummary(
        deck_id=deck_id,
        total_cards=row[0],
        new_cards=row[1],
        due_cards=row[2],
        review_cards=row[3],
        suspended_cards=row[4],
        buried_cards=row[5],
    )
