"""Scheduling, queue building and study-session components."""

from .errors import NotFoundError, PersistenceError, RecallError
from .models import CardSnapshot, CardState, Rating, SessionStats
from .settings import AlgorithmParams, StudySettings
from .srs import ReviewSchedule, calculate_next_schedule, format_interval, get_interval_previews

__all__ = [
    "AlgorithmParams",
    "CardSnapshot",
    "CardState",
    "NotFoundError",
    "PersistenceError",
    "Rating",
    "RecallError",
    "ReviewSchedule",
    "SessionStats",
    "StudySettings",
    "calculate_next_schedule",
    "format_interval",
    "get_interval_previews",
]
