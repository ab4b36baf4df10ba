"""
Persisted records for the flashcards store.

These models define the on-disk JSON document:

    {
        "cards": {"<id>": Card, ...},
        "reviews": [Review, ...],
        "due_dates": [DueDate, ...],
        "last_updated": "<iso timestamp>"
    }

All timestamps are timezone-aware UTC. Naive datetimes (e.g. hand-edited
files) are interpreted as UTC on load.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import IntEnum

from pydantic import BaseModel, Field, field_validator

from .errors import InvalidRequestError


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# =============================================================================
# Enums
# =============================================================================


class State(IntEnum):
    """Scheduling state of a card."""

    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class Rating(IntEnum):
    """Recall rating given by the learner."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: int | float | str | Rating) -> Rating:
        """
        Coerce request input into a Rating.

        Raises:
            InvalidRequestError: value is not an integer in 1..4
        """
        if isinstance(value, Rating):
            return value
        if isinstance(value, bool):
            raise InvalidRequestError(f"rating must be a number, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidRequestError(f"rating must be a number, got {value!r}") from None
        if not number.is_integer() or not 1 <= number <= 4:
            raise InvalidRequestError("rating must be between 1 and 4")
        return cls(int(number))


# =============================================================================
# Records
# =============================================================================


class SchedulingState(BaseModel):
    """Per-card state owned by the scheduling oracle."""

    due: datetime
    stability: float = 0.0
    difficulty: float = 0.0
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: State = State.NEW
    last_review: datetime | None = None

    @field_validator("due", "last_review")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    def is_due(self, now: datetime) -> bool:
        """A card is due once its due timestamp is at or before now."""
        return self.due <= now


class Card(BaseModel):
    id: str
    front: str
    back: str
    created_at: datetime
    tags: list[str] = Field(default_factory=list)
    last_reviewed_at: datetime | None = None
    fsrs: SchedulingState

    @field_validator("created_at", "last_reviewed_at")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class Review(BaseModel):
    """
    One review event. Append-only.

    card_id is a plain reference: reviews outlive the card they point to.
    """

    id: str
    card_id: str
    rating: Rating
    timestamp: datetime
    answer: str = ""
    scheduled_days: int = 0
    elapsed_days: int = 0
    state: State = State.NEW

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class DueDate(BaseModel):
    """A deadline linked to a cohort of cards by tag convention."""

    id: str
    topic: str
    due_date: datetime
    tag: str

    @field_validator("due_date")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class FlashcardStore(BaseModel):
    """The whole persisted document."""

    cards: dict[str, Card] = Field(default_factory=dict)
    reviews: list[Review] = Field(default_factory=list)
    due_dates: list[DueDate] = Field(default_factory=list)
    last_updated: datetime | None = None

    @field_validator("cards", "reviews", "due_dates", mode="before")
    @classmethod
    def _null_as_empty(cls, value, info):
        # Older files may carry null collections
        if value is None:
            return {} if info.field_name == "cards" else []
        return value
