"""Application bootstrap helpers for the Recall project."""

from .runtime import migrate, run_study, show_stats, unbury
from .settings import AppSettings

__all__ = ["migrate", "run_study", "show_stats", "unbury", "AppSettings"]
