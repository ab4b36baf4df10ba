"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from flashcards.models import Rating, SchedulingState, State  # noqa: E402
from flashcards.service import FlashcardService  # noqa: E402
from flashcards.state_store import StateStore  # noqa: E402

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (API, full review flows)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FrozenClock:
    """Settable clock so tests control "now"."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubOracle:
    """
    Deterministic scheduling oracle.

    Again sends the card back to (re)learning for ten minutes; Hard, Good and
    Easy schedule it 1, 3 and 7 days out in Review.
    """

    INTERVALS = {Rating.HARD: 1, Rating.GOOD: 3, Rating.EASY: 7}

    def __init__(self):
        self.calls: list[tuple[SchedulingState, Rating, datetime]] = []

    def advance(self, state: SchedulingState, rating: Rating, now: datetime) -> SchedulingState:
        self.calls.append((state.model_copy(deep=True), rating, now))

        if rating == Rating.AGAIN:
            lapsed = state.state == State.REVIEW
            return state.model_copy(
                update={
                    "due": now + timedelta(minutes=10),
                    "scheduled_days": 0,
                    "reps": state.reps + 1,
                    "lapses": state.lapses + (1 if lapsed else 0),
                    "state": State.RELEARNING if lapsed else State.LEARNING,
                    "last_review": now,
                }
            )

        days = self.INTERVALS[rating]
        return state.model_copy(
            update={
                "due": now + timedelta(days=days),
                "stability": state.stability + days,
                "difficulty": 5.0,
                "scheduled_days": days,
                "reps": state.reps + 1,
                "state": State.REVIEW,
                "last_review": now,
            }
        )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def oracle():
    return StubOracle()


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data" / "flashcards.json"


@pytest.fixture
def store(data_file, clock):
    """Loaded store backed by a temp file."""
    s = StateStore(data_file, clock=clock)
    s.load()
    return s


@pytest.fixture
def service(store, oracle, clock):
    return FlashcardService(store, oracle, clock=clock)


@pytest.fixture
def make_due():
    """Force a stored card's due time (and optionally state)."""

    def _make_due(store: StateStore, card_id: str, due: datetime, state: State | None = None):
        card = store.get_card(card_id)
        card.fsrs.due = due
        if state is not None:
            card.fsrs.state = state
        store.update_card(card)
        return card

    return _make_due


@pytest.fixture
def sample_card_data():
    """Provide sample card content for testing."""
    return {
        "front": "What is the powerhouse of the cell?",
        "back": "The mitochondria",
        "tags": ["bio", "cells"],
    }
