"""
JSON State Store for flashcards.

Provides portable persistence for:
- Cards with their scheduling state
- Append-only review log
- Due dates (deadlines linked to cards by tag)

All state lives in memory behind a single reader/writer lock and is written
to one JSON document by save(). Mutating calls never save on their own:
callers save after a batch of mutations or the changes are lost on restart.

Default location: ./flashcards.json
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from .errors import CardNotFoundError, DueDateNotFoundError, StorageIOError
from .models import Card, DueDate, FlashcardStore, Review, SchedulingState, State, utcnow
from .rwlock import ReadWriteLock


def has_any_tag(card: Card, tags: Iterable[str]) -> bool:
    """
    OR filter used by list_cards: card carries at least one of the tags.

    An empty filter matches every card.
    """
    wanted = set(tags)
    if not wanted:
        return True
    return not wanted.isdisjoint(card.tags)


class StateStore:
    """
    JSON-file-backed flashcard store.

    Handles:
    - Card CRUD (OR tag filter on listing)
    - Review log (reviews survive deletion of their card)
    - Due date CRUD
    - Atomic load/save (temp file + rename)
    """

    DEFAULT_PATH = Path("flashcards.json")

    def __init__(
        self,
        file_path: Path | str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the store. Nothing is read until load() is called.

        Args:
            file_path: Data file (defaults to ./flashcards.json)
            clock: Source of "now" for created_at / due stamps
        """
        self.file_path = Path(file_path) if file_path else self.DEFAULT_PATH
        self._clock = clock
        self._lock = ReadWriteLock()
        self._data = FlashcardStore()

    @property
    def temp_path(self) -> Path:
        return self.file_path.with_name(self.file_path.name + ".tmp")

    @property
    def last_updated(self) -> datetime | None:
        with self._lock.read_locked():
            return self._data.last_updated

    @contextmanager
    def exclusive(self) -> Iterator[StateStore]:
        """
        Hold write access across several store calls.

        Public methods remain callable inside the block (the lock is
        reentrant for the holder), so a get/update/append/save sequence
        runs as one critical section.
        """
        with self._lock.write_locked():
            yield self

    def _touch(self) -> None:
        self._data.last_updated = self._clock()

    # =========================================================================
    # Card Operations
    # =========================================================================

    def create_card(self, front: str, back: str, tags: list[str] | None = None) -> Card:
        """
        Create a new card in state New, due immediately.

        Returns:
            A copy of the stored card
        """
        now = self._clock()
        card = Card(
            id=str(uuid.uuid4()),
            front=front,
            back=back,
            created_at=now,
            tags=list(tags or []),
            fsrs=SchedulingState(due=now, state=State.NEW),
        )
        with self._lock.write_locked():
            self._data.cards[card.id] = card
            self._data.last_updated = now
        logger.debug(f"Created card {card.id} (tags={card.tags})")
        return card.model_copy(deep=True)

    def get_card(self, card_id: str) -> Card:
        with self._lock.read_locked():
            card = self._data.cards.get(card_id)
            if card is None:
                raise CardNotFoundError(card_id)
            return card.model_copy(deep=True)

    def update_card(self, card: Card) -> None:
        """Replace the stored card with the same id."""
        with self._lock.write_locked():
            if card.id not in self._data.cards:
                raise CardNotFoundError(card.id)
            self._data.cards[card.id] = card.model_copy(deep=True)
            self._touch()

    def delete_card(self, card_id: str) -> None:
        """Remove a card. Its reviews stay in the log."""
        with self._lock.write_locked():
            if card_id not in self._data.cards:
                raise CardNotFoundError(card_id)
            del self._data.cards[card_id]
            self._touch()
        logger.debug(f"Deleted card {card_id}")

    def list_cards(self, tags: list[str] | None = None) -> list[Card]:
        """
        List cards, optionally keeping only those with ANY of the tags.

        Args:
            tags: OR filter; None or empty returns every card
        """
        with self._lock.read_locked():
            return [
                card.model_copy(deep=True)
                for card in self._data.cards.values()
                if has_any_tag(card, tags or [])
            ]

    # =========================================================================
    # Review Log Operations
    # =========================================================================

    def add_review(self, review: Review) -> Review:
        """
        Append a review for an existing card.

        Raises:
            CardNotFoundError: review.card_id is unknown
        """
        with self._lock.write_locked():
            if review.card_id not in self._data.cards:
                raise CardNotFoundError(review.card_id)
            stored = review.model_copy(deep=True)
            self._data.reviews.append(stored)
            self._touch()
        return stored.model_copy(deep=True)

    def get_card_reviews(self, card_id: str) -> list[Review]:
        """
        Reviews of one card, in log order.

        Raises CardNotFoundError for unknown (including deleted) cards even
        though their orphaned reviews are still in the log.
        """
        with self._lock.read_locked():
            if card_id not in self._data.cards:
                raise CardNotFoundError(card_id)
            return [r.model_copy(deep=True) for r in self._data.reviews if r.card_id == card_id]

    def all_reviews(self) -> list[Review]:
        """Whole review log, orphaned reviews included."""
        with self._lock.read_locked():
            return [r.model_copy(deep=True) for r in self._data.reviews]

    def snapshot(self) -> tuple[list[Card], list[Review]]:
        """Cards and review log read under one shared lock."""
        with self._lock.read_locked():
            cards = [c.model_copy(deep=True) for c in self._data.cards.values()]
            reviews = [r.model_copy(deep=True) for r in self._data.reviews]
        return cards, reviews

    # =========================================================================
    # Due Date Operations
    # =========================================================================

    def add_due_date(self, due_date: DueDate) -> None:
        with self._lock.write_locked():
            self._data.due_dates.append(due_date.model_copy(deep=True))
            self._touch()
            count = len(self._data.due_dates)
        logger.debug(f"Added due date {due_date.id} ({due_date.topic!r}, tag={due_date.tag}); count={count}")

    def get_due_date(self, due_date_id: str) -> DueDate:
        with self._lock.read_locked():
            for due_date in self._data.due_dates:
                if due_date.id == due_date_id:
                    return due_date.model_copy(deep=True)
        raise DueDateNotFoundError(due_date_id)

    def list_due_dates(self) -> list[DueDate]:
        with self._lock.read_locked():
            return [d.model_copy(deep=True) for d in self._data.due_dates]

    def update_due_date(self, due_date: DueDate) -> None:
        with self._lock.write_locked():
            for i, existing in enumerate(self._data.due_dates):
                if existing.id == due_date.id:
                    self._data.due_dates[i] = due_date.model_copy(deep=True)
                    self._touch()
                    return
        raise DueDateNotFoundError(due_date.id)

    def delete_due_date(self, due_date_id: str) -> None:
        with self._lock.write_locked():
            remaining = [d for d in self._data.due_dates if d.id != due_date_id]
            if len(remaining) == len(self._data.due_dates):
                raise DueDateNotFoundError(due_date_id)
            self._data.due_dates = remaining
            self._touch()

    # =========================================================================
    # File Operations
    # =========================================================================

    def load(self) -> None:
        """
        Load the document from disk.

        A missing file is replaced by a freshly written empty store, so the
        file exists once load() returns. A zero-byte file loads as empty.

        Raises:
            StorageIOError: unreadable file, malformed JSON or schema mismatch
        """
        with self._lock.write_locked():
            logger.debug(f"Loading flashcards from {self.file_path}")
            if not self.file_path.exists():
                logger.info(f"No data file at {self.file_path}, initializing empty store")
                self._data = FlashcardStore()
                self._save_locked()
                return

            try:
                raw = self.file_path.read_bytes()
            except OSError as e:
                logger.error(f"Failed to read {self.file_path}: {e}")
                raise StorageIOError(f"failed to read storage file: {e}") from e

            if not raw.strip():
                logger.info(f"Data file {self.file_path} is empty, initializing empty store")
                self._data = FlashcardStore()
                return

            try:
                self._data = FlashcardStore.model_validate_json(raw)
            except ValidationError as e:
                logger.error(f"Failed to parse {self.file_path}: {e}")
                raise StorageIOError(f"failed to unmarshal storage data: {e}") from e

            logger.info(
                f"Loaded {len(self._data.cards)} cards, {len(self._data.reviews)} reviews, "
                f"{len(self._data.due_dates)} due dates from {self.file_path}"
            )

    def save(self) -> None:
        """
        Write the whole document atomically (temp file, then rename).

        A crash before the rename leaves the previous file intact.

        Raises:
            StorageIOError: directory creation, write or rename failed
        """
        with self._lock.write_locked():
            self._save_locked()

    def _save_locked(self) -> None:
        self._data.last_updated = self._clock()
        payload = self._data.model_dump_json(indent=2)

        tmp = self.temp_path
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.file_path)
        except OSError as e:
            try:
                tmp.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove temp file {tmp}: {cleanup_error}")
            logger.error(f"Failed to save {self.file_path}: {e}")
            raise StorageIOError(f"failed to save storage file: {e}") from e

        logger.debug(
            f"Saved {len(self._data.cards)} cards, {len(self._data.reviews)} reviews to {self.file_path}"
        )
