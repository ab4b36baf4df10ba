"""
Unit tests for FSRSOracle.

Runs the real fsrs scheduler; assertions stick to properties every FSRS
parameter set satisfies.
"""

from datetime import timedelta

import pytest

from flashcards.models import Rating, SchedulingState, State
from flashcards.oracle import FSRSOracle, SchedulingOracle

from conftest import NOW, StubOracle


@pytest.fixture
def fsrs_oracle():
    return FSRSOracle()


@pytest.fixture
def new_state():
    return SchedulingState(due=NOW, state=State.NEW)


class TestFSRSOracle:
    def test_satisfies_protocol(self, fsrs_oracle):
        assert isinstance(fsrs_oracle, SchedulingOracle)
        assert isinstance(StubOracle(), SchedulingOracle)

    @pytest.mark.parametrize("rating", list(Rating))
    def test_every_rating_moves_due_into_the_future(self, fsrs_oracle, new_state, rating):
        result = fsrs_oracle.advance(new_state, rating, NOW)

        assert result.due > NOW
        assert result.reps == 1
        assert result.state != State.NEW
        assert result.last_review == NOW
        assert result.stability > 0

    def test_easy_graduates_new_card_to_review(self, fsrs_oracle, new_state):
        result = fsrs_oracle.advance(new_state, Rating.EASY, NOW)
        assert result.state == State.REVIEW
        assert result.scheduled_days >= 1

    def test_better_ratings_never_schedule_sooner(self, fsrs_oracle, new_state):
        dues = [fsrs_oracle.advance(new_state, r, NOW).due for r in Rating]
        assert dues == sorted(dues)

    def test_lapse_from_review(self, fsrs_oracle, new_state):
        graduated = fsrs_oracle.advance(new_state, Rating.EASY, NOW)
        later = graduated.due + timedelta(hours=1)

        lapsed = fsrs_oracle.advance(graduated, Rating.AGAIN, later)

        assert lapsed.state == State.RELEARNING
        assert lapsed.lapses == 1
        assert lapsed.reps == 2

    def test_does_not_mutate_input(self, fsrs_oracle, new_state):
        before = new_state.model_copy(deep=True)
        fsrs_oracle.advance(new_state, Rating.GOOD, NOW)
        assert new_state == before

    def test_timestamps_come_back_in_utc(self, fsrs_oracle, new_state):
        result = fsrs_oracle.advance(new_state, Rating.GOOD, NOW)
        assert result.due.utcoffset() == timedelta(0)
