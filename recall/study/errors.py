"""Errors raised by the study engine."""

from __future__ import annotations


class RecallError(Exception):
    """Base class for failures surfaced to the presentation layer."""


class NotFoundError(RecallError):
    """A referenced deck or card is missing from the repository."""


class PersistenceError(RecallError):
    """A repository write was rejected; the triggering operation can be retried."""
