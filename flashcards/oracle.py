"""
Scheduling oracle: the forgetting-curve model behind review scheduling.

The engine never computes intervals itself. It hands the current state, the
rating and the review time to an oracle and stores whatever complete state
comes back. FSRSOracle delegates to the `fsrs` package; tests inject
deterministic doubles that implement the same protocol.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

import fsrs
from loguru import logger

from .models import Rating, SchedulingState, State


@runtime_checkable
class SchedulingOracle(Protocol):
    def advance(self, state: SchedulingState, rating: Rating, now: datetime) -> SchedulingState:
        """Return the complete state that follows `rating` given at `now`."""
        ...


class FSRSOracle:
    """
    FSRS-backed oracle.

    Wraps fsrs.FSRS.repeat(), which previews the outcome of every rating,
    and returns the card for the rating actually given.
    """

    def __init__(self, request_retention: float = 0.9, maximum_interval: int = 36500):
        """
        Args:
            request_retention: Target recall probability at the due date
            maximum_interval: Upper bound on scheduled_days
        """
        self.request_retention = request_retention
        self.maximum_interval = maximum_interval
        self._fsrs = fsrs.FSRS(
            request_retention=request_retention,
            maximum_interval=maximum_interval,
        )

    def advance(self, state: SchedulingState, rating: Rating, now: datetime) -> SchedulingState:
        now = now.astimezone(UTC)
        outcomes = self._fsrs.repeat(self._to_fsrs(state), now)
        result = outcomes[fsrs.Rating(int(rating))].card

        logger.debug(
            f"FSRS {State(state.state).name} --{Rating(rating).name}--> "
            f"{State(int(result.state)).name}, due={result.due.isoformat()}, "
            f"S={result.stability:.3f}, D={result.difficulty:.3f}"
        )
        return self._from_fsrs(result)

    @staticmethod
    def _to_fsrs(state: SchedulingState) -> fsrs.Card:
        return fsrs.Card(
            due=state.due.astimezone(UTC),
            stability=state.stability,
            difficulty=state.difficulty,
            elapsed_days=state.elapsed_days,
            scheduled_days=state.scheduled_days,
            reps=state.reps,
            lapses=state.lapses,
            state=fsrs.State(int(state.state)),
            last_review=state.last_review.astimezone(UTC) if state.last_review else None,
        )

    @staticmethod
    def _from_fsrs(card: fsrs.Card) -> SchedulingState:
        return SchedulingState(
            due=card.due,
            stability=card.stability,
            difficulty=card.difficulty,
            elapsed_days=card.elapsed_days,
            scheduled_days=card.scheduled_days,
            reps=card.reps,
            lapses=card.lapses,
            state=State(int(card.state)),
            last_review=card.last_review,
        )
