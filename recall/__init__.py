"""Recall: spaced-repetition flashcard study engine."""
