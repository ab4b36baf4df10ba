"""
Due-card selection.

Picks the single most urgent due card:

- A card is due when its due timestamp is at or before now
- Priority starts from a per-state base (learning states first, new cards last)
- Overdue cards gain 10% of their base per day overdue
- Equal priorities resolve to the lowest card id

Tag filtering here is AND: a candidate must carry every requested tag.
This differs on purpose from StateStore.list_cards(), which is OR.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from .errors import NoCardsDueError, NoCardsDueWithTagsError, NoCardsMatchingTagsError
from .models import Card, State, utcnow
from .state_store import StateStore
from .stats import CardStats, calculate_stats

SECONDS_PER_DAY = 86400.0

BASE_PRIORITY: dict[State, float] = {
    State.NEW: 1.0,
    State.LEARNING: 3.0,
    State.RELEARNING: 3.0,
    State.REVIEW: 2.0,
}
OVERDUE_BOOST_PER_DAY = 0.1


def review_priority(state: State, due: datetime, now: datetime) -> float:
    """
    Priority score for a card (higher = review sooner).

    For cards not yet due the score decays with the days left. Selection
    never considers those cards; the branch exists for simulations.
    """
    base = BASE_PRIORITY[State(state)]
    overdue_days = (now - due).total_seconds() / SECONDS_PER_DAY

    if overdue_days >= 0:
        return base * (1.0 + overdue_days * OVERDUE_BOOST_PER_DAY)

    days_to_due = -overdue_days
    return base / (1.0 + days_to_due)


def has_all_tags(card: Card, tags: Iterable[str]) -> bool:
    """AND filter: card carries every tag. An empty filter matches all."""
    return set(tags).issubset(card.tags)


@dataclass
class DueCardSelection:
    """The chosen card plus overall stats."""

    card: Card
    priority: float
    stats: CardStats


class DueCardSelector:
    """
    Selects the next card to review from the store.
    """

    def __init__(self, store: StateStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def select(self, tags: list[str] | None = None, now: datetime | None = None) -> DueCardSelection:
        """
        Return the highest-priority due card.

        Args:
            tags: Optional AND filter
            now: Reference time (defaults to the selector's clock)

        Raises:
            NoCardsMatchingTagsError: a filter was given and no card has all tags
            NoCardsDueWithTagsError: matching cards exist but none is due
            NoCardsDueError: no filter and nothing is due

        All three errors carry stats computed over every card.
        """
        now = now or self.clock()
        tags = list(tags or [])

        cards, reviews = self.store.snapshot()
        stats = calculate_stats(cards, reviews, now)

        candidates = cards
        if tags:
            candidates = [card for card in cards if has_all_tags(card, tags)]
            logger.debug(f"Tag filter {tags}: {len(candidates)}/{len(cards)} cards match")
            if not candidates:
                raise NoCardsMatchingTagsError(tags, stats)

        scored = [
            (review_priority(card.fsrs.state, card.fsrs.due, now), card)
            for card in candidates
            if card.fsrs.is_due(now)
        ]
        logger.debug(f"{len(scored)} due cards among {len(candidates)} candidates")

        if not scored:
            if tags:
                raise NoCardsDueWithTagsError(tags, stats)
            raise NoCardsDueError(stats)

        priority, card = min(scored, key=lambda pc: (-pc[0], pc[1].id))
        logger.debug(f"Selected card {card.id} (state={card.fsrs.state.name}, priority={priority:.3f})")
        return DueCardSelection(card=card, priority=priority, stats=stats)
