"""
Flashcard service: the operations exposed to request handlers.

Wires the store, selector, review processor and stats together, validates
request input, and saves after each mutating operation. A failed save is
reported to the caller; the in-memory change is kept (no rollback).
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable
from datetime import UTC, date, datetime

from loguru import logger

from .errors import InvalidRequestError
from .models import Card, DueDate, Rating, Review, utcnow
from .oracle import FSRSOracle, SchedulingOracle
from .review import ReviewProcessor
from .scheduler import DueCardSelection, DueCardSelector
from .state_store import StateStore, has_any_tag
from .stats import (
    CardStats,
    DueDateProgress,
    DueDateProgressInfo,
    LearningAnalysis,
    TagInfo,
    analyze_learning,
    calculate_stats,
    due_date_progress,
    due_date_progress_report,
    tag_summary,
)

DATE_FORMAT = "%Y-%m-%d"


def parse_due_date(value: str | date | datetime) -> datetime:
    """
    Accept YYYY-MM-DD strings, dates or datetimes; return UTC midnight.

    Raises:
        InvalidRequestError: malformed date string
    """
    if isinstance(value, datetime):
        day = value.date()
    elif isinstance(value, date):
        day = value
    else:
        try:
            day = datetime.strptime(str(value).strip(), DATE_FORMAT).date()
        except ValueError:
            raise InvalidRequestError(f"invalid date format: {value!r}, use YYYY-MM-DD") from None
    return datetime(day.year, day.month, day.day, tzinfo=UTC)


def cohort_tag(topic: str, due: datetime) -> str:
    """Default tag for a due date: test-<topic-slug>-<YYYY-MM-DD>."""
    slug = re.sub(r"\s+", "-", topic.strip().lower())
    return f"test-{slug}-{due.strftime(DATE_FORMAT)}"


def _normalize_tags(tags: list[str] | None) -> list[str]:
    if tags is None:
        return []
    if isinstance(tags, str) or not all(isinstance(t, str) for t in tags):
        raise InvalidRequestError("tags must be a list of strings")
    return list(tags)


class FlashcardService:
    """
    Facade over the flashcard engine.

    Handles:
    - Card CRUD (saving after each change)
    - Due card selection and review submission
    - Due date management and progress
    - Stats, tag summary and learning analysis
    """

    def __init__(
        self,
        store: StateStore,
        oracle: SchedulingOracle | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            store: Loaded StateStore
            oracle: Scheduling oracle (FSRS with default parameters if None)
            clock: Source of "now"
        """
        self.store = store
        self.oracle = oracle or FSRSOracle()
        self.clock = clock
        self.selector = DueCardSelector(store, clock)
        self.reviews = ReviewProcessor(store, self.oracle, clock)

    # =========================================================================
    # Cards
    # =========================================================================

    def create_card(self, front: str, back: str, tags: list[str] | None = None) -> Card:
        if not front or not back:
            raise InvalidRequestError("front and back are required")
        card = self.store.create_card(front, back, _normalize_tags(tags))
        self.store.save()
        logger.info(f"Created card {card.id}")
        return card

    def get_card(self, card_id: str) -> Card:
        return self.store.get_card(card_id)

    def update_card(
        self,
        card_id: str,
        front: str | None = None,
        back: str | None = None,
        tags: list[str] | None = None,
    ) -> Card:
        """
        Change only the fields that are given. Saves only if something changed.

        The read-modify-write runs under the store's exclusive lock so a
        concurrent review's scheduling state is never overwritten.
        """
        new_tags = _normalize_tags(tags) if tags is not None else None

        with self.store.exclusive():
            card = self.store.get_card(card_id)
            changes = {}
            if front is not None and front != card.front:
                changes["front"] = front
            if back is not None and back != card.back:
                changes["back"] = back
            if new_tags is not None and new_tags != card.tags:
                changes["tags"] = new_tags

            if not changes:
                return card

            card = card.model_copy(update=changes)
            self.store.update_card(card)
            self.store.save()
        logger.info(f"Updated card {card_id}: {sorted(changes)}")
        return card

    def delete_card(self, card_id: str) -> None:
        self.store.delete_card(card_id)
        self.store.save()
        logger.info(f"Deleted card {card_id}")

    def list_cards(
        self,
        tags: list[str] | None = None,
        include_stats: bool = False,
    ) -> tuple[list[Card], CardStats | None]:
        """
        Cards carrying ANY of the tags, plus stats over ALL cards if asked.
        """
        cards = self.store.list_cards(_normalize_tags(tags))
        stats = self.get_stats() if include_stats else None
        return cards, stats

    def get_cards_by_tag(self, tag: str) -> list[Card]:
        if not tag:
            raise InvalidRequestError("tag cannot be empty")
        return self.store.list_cards([tag])

    def get_card_reviews(self, card_id: str) -> list[Review]:
        return self.store.get_card_reviews(card_id)

    # =========================================================================
    # Scheduling
    # =========================================================================

    def get_due_card(self, tags: list[str] | None = None, now: datetime | None = None) -> DueCardSelection:
        return self.selector.select(_normalize_tags(tags), now=now)

    def submit_review(
        self,
        card_id: str,
        rating: Rating | int,
        answer: str = "",
        now: datetime | None = None,
    ) -> Card:
        if not card_id:
            raise InvalidRequestError("card_id is required")
        return self.reviews.submit(card_id, rating, answer, now=now)

    # =========================================================================
    # Stats
    # =========================================================================

    def get_stats(self, now: datetime | None = None) -> CardStats:
        cards, reviews = self.store.snapshot()
        return calculate_stats(cards, reviews, now or self.clock())

    def get_tags(self, now: datetime | None = None) -> list[TagInfo]:
        cards, _ = self.store.snapshot()
        return tag_summary(cards, now or self.clock())

    def analyze_learning(self, now: datetime | None = None) -> LearningAnalysis:
        cards, reviews = self.store.snapshot()
        return analyze_learning(cards, reviews, now or self.clock())

    # =========================================================================
    # Due Dates
    # =========================================================================

    def add_due_date(
        self,
        topic: str,
        due_date: str | date | datetime,
        tag: str | None = None,
    ) -> DueDate:
        """
        Create a due date. The tag defaults to test-<topic>-<date>.
        """
        if not topic or not due_date:
            raise InvalidRequestError("due date topic and date are required")
        when = parse_due_date(due_date)
        entry = DueDate(
            id=str(uuid.uuid4()),
            topic=topic,
            due_date=when,
            tag=tag or cohort_tag(topic, when),
        )
        self.store.add_due_date(entry)
        self.store.save()
        return entry

    def list_due_dates(self) -> list[DueDate]:
        return self.store.list_due_dates()

    def update_due_date(
        self,
        due_date_id: str,
        topic: str | None = None,
        due_date: str | date | datetime | None = None,
        tag: str | None = None,
    ) -> DueDate:
        if not due_date_id:
            raise InvalidRequestError("due date ID is required for update")
        changes = {}
        if topic:
            changes["topic"] = topic
        if due_date:
            changes["due_date"] = parse_due_date(due_date)
        if tag:
            changes["tag"] = tag

        with self.store.exclusive():
            entry = self.store.get_due_date(due_date_id).model_copy(update=changes)
            self.store.update_due_date(entry)
            self.store.save()
        return entry

    def delete_due_date(self, due_date_id: str) -> None:
        if not due_date_id:
            raise InvalidRequestError("due date ID is required for delete")
        self.store.delete_due_date(due_date_id)
        self.store.save()

    def get_due_date_progress(self, tag: str) -> DueDateProgress:
        """Mastery progress of the cards carrying `tag`."""
        if not tag:
            raise InvalidRequestError("tag cannot be empty")
        cards, reviews = self.store.snapshot()
        cohort = [card for card in cards if has_any_tag(card, [tag])]
        progress = due_date_progress(cohort, reviews)
        logger.debug(f"Progress for tag {tag}: {progress}")
        return progress

    def due_date_progress_report(self, now: datetime | None = None) -> list[DueDateProgressInfo]:
        cards, reviews = self.store.snapshot()
        return due_date_progress_report(self.store.list_due_dates(), cards, reviews, now or self.clock())
