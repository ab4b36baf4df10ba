"""
Error taxonomy for the flashcards engine.

Every error raised by the store, scheduler, review processor and service
derives from FlashcardError so request layers can map them in one place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .stats import CardStats


class FlashcardError(Exception):
    """Base class for all flashcard engine errors."""


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(FlashcardError):
    """An id did not resolve to a stored record."""


class CardNotFoundError(NotFoundError):
    def __init__(self, card_id: str):
        super().__init__(f"card not found: {card_id}")
        self.card_id = card_id


class DueDateNotFoundError(NotFoundError):
    def __init__(self, due_date_id: str):
        super().__init__(f"due date not found: {due_date_id}")
        self.due_date_id = due_date_id


# =============================================================================
# Selection Errors
# =============================================================================


class SelectionError(FlashcardError):
    """
    No card could be selected for review.

    Carries the aggregate stats over all cards (ignoring any tag filter)
    so callers can still report progress.
    """

    def __init__(self, message: str, stats: CardStats, tags: list[str] | None = None):
        super().__init__(message)
        self.stats = stats
        self.tags = list(tags or [])


class NoCardsMatchingTagsError(SelectionError):
    def __init__(self, tags: list[str], stats: CardStats):
        super().__init__(f"no cards found with the specified tags: {tags}", stats, tags)


class NoCardsDueError(SelectionError):
    def __init__(self, stats: CardStats, message: str = "no cards due for review", tags=None):
        super().__init__(message, stats, tags)


class NoCardsDueWithTagsError(NoCardsDueError):
    def __init__(self, tags: list[str], stats: CardStats):
        super().__init__(
            stats,
            message=f"no cards due for review with the specified tags: {tags}",
            tags=tags,
        )


# =============================================================================
# Input & Storage Errors
# =============================================================================


class InvalidRequestError(FlashcardError):
    """Missing field, rating outside 1..4, malformed date."""


class StorageIOError(FlashcardError):
    """Reading, writing or (un)marshalling the data file failed."""
