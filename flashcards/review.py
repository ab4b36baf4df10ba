"""
Review processing.

Applies a rating to a card:

1. Load the card
2. If it was reviewed before, reset elapsed_days to whole days since the
   latest review
3. Ask the scheduling oracle for the next state
4. Store the card with the new state
5. Append a review record with the oracle's scheduled/elapsed days and state
6. Save

The whole sequence runs under the store's exclusive lock, so concurrent
reviews of one card cannot interleave. Failures are not rolled back: if
step 5 or 6 fails, the updated card from step 4 stays in memory.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from .models import Card, Rating, Review, utcnow
from .oracle import SchedulingOracle
from .scheduler import SECONDS_PER_DAY
from .state_store import StateStore


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Floor of the days between two instants, never negative."""
    seconds = (later - earlier).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_DAY))


class ReviewProcessor:
    def __init__(
        self,
        store: StateStore,
        oracle: SchedulingOracle,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.oracle = oracle
        self.clock = clock

    def submit(
        self,
        card_id: str,
        rating: Rating | int,
        answer: str = "",
        now: datetime | None = None,
    ) -> Card:
        """
        Record a review and reschedule the card.

        Args:
            card_id: Card being reviewed
            rating: 1=Again, 2=Hard, 3=Good, 4=Easy
            answer: Free-text answer given by the learner
            now: Review time (defaults to the processor's clock)

        Returns:
            The updated card

        Raises:
            InvalidRequestError: rating outside 1..4
            CardNotFoundError: unknown card id
            StorageIOError: save failed (card and review stay in memory)
        """
        rating = Rating.parse(rating)
        now = now or self.clock()

        with self.store.exclusive():
            card = self.store.get_card(card_id)

            previous = self.store.get_card_reviews(card_id)
            if previous:
                last_review_at = max(r.timestamp for r in previous)
                card.fsrs.elapsed_days = whole_days_between(last_review_at, now)
                logger.debug(
                    f"Card {card_id}: {len(previous)} prior reviews, "
                    f"elapsed_days={card.fsrs.elapsed_days}"
                )

            card.fsrs = self.oracle.advance(card.fsrs, rating, now)
            card.last_reviewed_at = now
            self.store.update_card(card)

            self.store.add_review(
                Review(
                    id=str(uuid.uuid4()),
                    card_id=card_id,
                    rating=rating,
                    timestamp=now,
                    answer=answer,
                    scheduled_days=card.fsrs.scheduled_days,
                    elapsed_days=card.fsrs.elapsed_days,
                    state=card.fsrs.state,
                )
            )
            self.store.save()

        logger.info(
            f"Reviewed {card_id}: rating={rating.name}, state={card.fsrs.state.name}, "
            f"next due {card.fsrs.due.isoformat()}"
        )
        return card
