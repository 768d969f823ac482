"""Study preferences and SM-2 tunables.

Both values are immutable and are snapshotted once when a study session
starts; edits made afterwards only affect the next session.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional


ORDER_RANDOM = "random"
ORDER_SEQUENTIAL = "ordered"
ORDER_DUE_FIRST = "due-first"

NEW_CARD_ORDERS = frozenset({ORDER_RANDOM, ORDER_SEQUENTIAL})
REVIEW_ORDERS = frozenset({ORDER_RANDOM, ORDER_DUE_FIRST})

# Keys a deck may override on top of the global settings.
DECK_OVERRIDE_KEYS = ("new_cards_per_day", "max_reviews_per_day", "algorithm_params")


def _known_keys(cls: type, data: Mapping[str, Any]) -> Dict[str, Any]:
    names = {item.name for item in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass(frozen=True, slots=True)
class AlgorithmParams:
    """Tunable parameters of the SM-2 variant."""

    interval_modifier: float = 1.0
    new_interval: float = 0.0
    graduating_interval: float = 1
    easy_interval: float = 4
    starting_ease: float = 2.5
    easy_bonus: float = 1.3
    hard_interval: float = 1.2

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AlgorithmParams":
        if not data:
            return cls()
        values = {key: float(value) for key, value in _known_keys(cls, data).items()}
        params = cls(**values)
        if params.starting_ease < 1.3:
            raise ValueError("starting_ease must be at least 1.3.")
        if params.interval_modifier <= 0:
            raise ValueError("interval_modifier must be positive.")
        return params

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class StudySettings:
    """Daily limits, ordering preferences and algorithm parameters."""

    new_cards_per_day: int = 20
    max_reviews_per_day: int = 100
    new_card_order: str = ORDER_RANDOM
    review_order: str = ORDER_DUE_FIRST
    mix_new_with_reviews: bool = True
    show_next_intervals: bool = True
    enable_undo: bool = True
    algorithm_params: AlgorithmParams = field(default_factory=AlgorithmParams)

    def __post_init__(self) -> None:
        if self.new_cards_per_day < 0 or self.max_reviews_per_day < 0:
            raise ValueError("Daily limits cannot be negative.")
        if self.new_card_order not in NEW_CARD_ORDERS:
            raise ValueError(f"Unknown new card order: {self.new_card_order!r}.")
        if self.review_order not in REVIEW_ORDERS:
            raise ValueError(f"Unknown review order: {self.review_order!r}.")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "StudySettings":
        if not data:
            return cls()
        values = _known_keys(cls, data)
        values["algorithm_params"] = AlgorithmParams.from_dict(values.get("algorithm_params"))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["algorithm_params"] = self.algorithm_params.to_dict()
        return payload

    def with_deck_override(self, override: Optional[Mapping[str, Any]]) -> "StudySettings":
        """Return settings with a deck's limits and algorithm parameters applied."""
        if not override:
            return self

        changes: Dict[str, Any] = {}
        for key in DECK_OVERRIDE_KEYS:
            if override.get(key) is None:
                continue
            if key == "algorithm_params":
                merged = {**self.algorithm_params.to_dict(), **override[key]}
                changes[key] = AlgorithmParams.from_dict(merged)
            else:
                changes[key] = int(override[key])
        return replace(self, **changes)
