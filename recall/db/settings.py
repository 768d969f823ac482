"""Persistence of study preferences."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from recall.study.errors import NotFoundError
from recall.study.settings import StudySettings

from . import SettingEntry
from .cards import get_deck


LOGGER = logging.getLogger(__name__)

STUDY_SETTINGS_KEY = "app_settings"


async def load_study_settings(session: AsyncSession) -> StudySettings:
    """Return the stored global study settings, or the defaults when none are saved."""
    entry = await session.get(SettingEntry, STUDY_SETTINGS_KEY)
    if entry is None:
        return StudySettings()

    try:
        return StudySettings.from_dict(entry.value)
    except (TypeError, ValueError):
        LOGGER.exception("Stored study settings are invalid; falling back to defaults.")
        return StudySettings()


async def save_study_settings(session: AsyncSession, settings: StudySettings) -> None:
    entry = await session.get(SettingEntry, STUDY_SETTINGS_KEY)
    if entry is None:
        session.add(SettingEntry(key=STUDY_SETTINGS_KEY, value=settings.to_dict()))
    else:
        entry.value = settings.to_dict()
    await session.flush()


async def resolve_deck_settings(
    session: AsyncSession,
    deck_id: int,
    base: Optional[StudySettings] = None,
) -> StudySettings:
    """Return the settings in effect for a deck: global values plus the deck's overrides."""
    deck = await get_deck(session, deck_id)
    if deck is None:
        raise NotFoundError(f"Deck {deck_id} does not exist.")

    if base is None:
        base = await load_study_settings(session)

    try:
        return base.with_deck_override(deck.settings)
    except (AttributeError, TypeError, ValueError):
        LOGGER.exception("Settings override of deck %s is invalid; using global settings.", deck_id)
        return base
