"""Configuration helpers for the Recall runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed process settings loaded from environment variables.

    Study preferences (daily limits, ordering, algorithm parameters) are stored
    in the database and read through :mod:`recall.db.settings`.
    """

    app_name: str
    app_env: str
    log_level: str
    shuffle_seed: Optional[int]

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Recall")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        raw_seed = os.getenv("RECALL_SEED")
        shuffle_seed: Optional[int] = None
        if raw_seed:
            try:
                shuffle_seed = int(raw_seed)
            except ValueError as exc:
                raise RuntimeError("RECALL_SEED must be an integer.") from exc

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            shuffle_seed=shuffle_seed,
        )
