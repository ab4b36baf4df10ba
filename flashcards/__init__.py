"""
Flashcards: personal spaced-repetition engine.

A file-backed flashcard store with FSRS scheduling, exposed as tool-style
calls over HTTP and as a terminal CLI.

Components:
- StateStore: JSON persistence behind a reader/writer lock
- DueCardSelector: Priority-based due card selection
- ReviewProcessor: Applies ratings through the scheduling oracle
- FSRSOracle: FSRS-backed scheduling oracle
- FlashcardService: Operations exposed to request handlers
"""

from .errors import (
    CardNotFoundError,
    DueDateNotFoundError,
    FlashcardError,
    InvalidRequestError,
    NoCardsDueError,
    NoCardsDueWithTagsError,
    NoCardsMatchingTagsError,
    NotFoundError,
    StorageIOError,
)
from .models import Card, DueDate, Rating, Review, SchedulingState, State
from .oracle import FSRSOracle, SchedulingOracle
from .review import ReviewProcessor
from .scheduler import DueCardSelection, DueCardSelector, review_priority
from .service import FlashcardService
from .state_store import StateStore
from .stats import CardStats, calculate_stats

__all__ = [
    # Records
    "Card",
    "DueDate",
    "Review",
    "SchedulingState",
    "State",
    "Rating",
    # Persistence
    "StateStore",
    # Scheduling
    "SchedulingOracle",
    "FSRSOracle",
    "DueCardSelector",
    "DueCardSelection",
    "review_priority",
    "ReviewProcessor",
    # Stats
    "CardStats",
    "calculate_stats",
    # Service
    "FlashcardService",
    # Errors
    "FlashcardError",
    "NotFoundError",
    "CardNotFoundError",
    "DueDateNotFoundError",
    "NoCardsDueError",
    "NoCardsDueWithTagsError",
    "NoCardsMatchingTagsError",
    "InvalidRequestError",
    "StorageIOError",
]
