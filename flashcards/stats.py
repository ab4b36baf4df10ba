"""
Aggregate statistics over card and review snapshots.

Everything here is a pure function of its inputs: callers take a snapshot
from the store and pass an explicit `now`.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from .models import Card, DueDate, Rating, Review

LOW_SCORE_THRESHOLD = 2.5
MAX_LOW_SCORING_CARDS = 10


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class CardStats:
    """Overall review statistics."""

    total_cards: int = 0
    due_cards: int = 0
    reviews_today: int = 0
    retention_rate: float = 0.0  # percent of today's reviews rated Good or Easy

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DueDateProgress:
    """Mastery progress of the cards carrying one tag."""

    total_cards: int = 0
    mastered_cards: int = 0
    progress_percent: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DueDateProgressInfo:
    """Progress towards a single due date."""

    id: str
    topic: str
    due_date: str  # YYYY-MM-DD
    tag: str
    total_cards: int
    mastered_cards: int
    progress_percent: float
    days_remaining: float  # days until the day before the due date
    cards_left: int
    required_pace: float  # cards per day

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TagInfo:
    tag: str
    card_count: int
    due_count: int
    total_cards: int
    due_cards: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CardAnalysis:
    card: Card
    reviews: list[Review]
    avg_rating: float
    review_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "card": self.card.model_dump(mode="json"),
            "reviews": [
                {"rating": int(r.rating), "timestamp": r.timestamp.isoformat(), "answer": r.answer}
                for r in self.reviews
            ],
            "avg_rating": self.avg_rating,
            "review_count": self.review_count,
        }


@dataclass
class LearningAnalysis:
    low_scoring_cards: list[CardAnalysis] = field(default_factory=list)
    common_tags: list[str] = field(default_factory=list)
    total_reviews: int = 0
    stats: CardStats = field(default_factory=CardStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "low_scoring_cards": [a.to_dict() for a in self.low_scoring_cards],
            "common_tags": list(self.common_tags),
            "total_reviews": self.total_reviews,
            "stats": self.stats.to_dict(),
        }


# =============================================================================
# Helpers
# =============================================================================


def start_of_day(now: datetime) -> datetime:
    """Local midnight of the calendar day containing `now`."""
    local = now.astimezone()
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def _reviews_by_card(cards: Iterable[Card], reviews: Iterable[Review]) -> dict[str, list[Review]]:
    grouped: dict[str, list[Review]] = {card.id: [] for card in cards}
    for review in reviews:
        if review.card_id in grouped:
            grouped[review.card_id].append(review)
    return grouped


# =============================================================================
# Aggregations
# =============================================================================


def calculate_stats(cards: list[Card], reviews: list[Review], now: datetime) -> CardStats:
    """
    Counts and today's retention for a card snapshot.

    Only reviews belonging to cards in the snapshot are counted.
    """
    today = start_of_day(now)
    due = sum(1 for card in cards if card.fsrs.is_due(now))

    todays = [
        review
        for card_reviews in _reviews_by_card(cards, reviews).values()
        for review in card_reviews
        if review.timestamp >= today
    ]
    correct = sum(1 for review in todays if review.rating >= Rating.GOOD)
    retention = correct / len(todays) * 100.0 if todays else 0.0

    return CardStats(
        total_cards=len(cards),
        due_cards=due,
        reviews_today=len(todays),
        retention_rate=retention,
    )


def due_date_progress(cards: list[Card], reviews: list[Review]) -> DueDateProgress:
    """
    Mastery over a cohort: a card is mastered when its latest review was Easy.
    """
    if not cards:
        return DueDateProgress()

    mastered = 0
    for card_reviews in _reviews_by_card(cards, reviews).values():
        if not card_reviews:
            continue
        latest = max(card_reviews, key=lambda r: r.timestamp)
        if latest.rating == Rating.EASY:
            mastered += 1

    return DueDateProgress(
        total_cards=len(cards),
        mastered_cards=mastered,
        progress_percent=mastered / len(cards) * 100.0,
    )


def due_date_progress_report(
    due_dates: list[DueDate],
    cards: list[Card],
    reviews: list[Review],
    now: datetime,
) -> list[DueDateProgressInfo]:
    """
    Progress towards each upcoming due date, soonest first.

    Past due dates are skipped unless their tag starts with "test-".
    """
    today = start_of_day(now).date()
    report: list[DueDateProgressInfo] = []

    for dd in due_dates:
        due_day = dd.due_date.date()
        if due_day < today and not dd.tag.startswith("test-"):
            continue

        cohort = [card for card in cards if dd.tag in card.tags]
        progress = due_date_progress(cohort, reviews)

        days = float((due_day - today).days)
        days_remaining = 0.0 if days < 0 else max(0.0, days - 1)

        cards_left = progress.total_cards - progress.mastered_cards
        pace = cards_left / days_remaining if days_remaining > 0 and cards_left > 0 else 0.0

        report.append(
            DueDateProgressInfo(
                id=dd.id,
                topic=dd.topic,
                due_date=due_day.isoformat(),
                tag=dd.tag,
                total_cards=progress.total_cards,
                mastered_cards=progress.mastered_cards,
                progress_percent=progress.progress_percent,
                days_remaining=days_remaining,
                cards_left=cards_left,
                required_pace=pace,
            )
        )

    report.sort(key=lambda info: info.due_date)
    return report


def tag_summary(cards: list[Card], now: datetime) -> list[TagInfo]:
    """Card and due counts per tag, alphabetical."""
    counts: Counter[str] = Counter()
    due_counts: Counter[str] = Counter()
    due_total = 0

    for card in cards:
        is_due = card.fsrs.is_due(now)
        due_total += is_due
        for tag in set(card.tags):
            counts[tag] += 1
            if is_due:
                due_counts[tag] += 1

    return [
        TagInfo(
            tag=tag,
            card_count=counts[tag],
            due_count=due_counts[tag],
            total_cards=len(cards),
            due_cards=due_total,
        )
        for tag in sorted(counts)
    ]


def analyze_learning(cards: list[Card], reviews: list[Review], now: datetime) -> LearningAnalysis:
    """
    Find the cards the learner struggles with.

    Returns up to ten cards averaging 2.5 or lower (worst first) and the tags
    that more than one of them share (most frequent first).
    """
    stats = calculate_stats(cards, reviews, now)
    by_id = {card.id: card for card in cards}

    analyzed: list[CardAnalysis] = []
    total_reviews = 0
    for card_id, card_reviews in _reviews_by_card(cards, reviews).items():
        if not card_reviews:
            continue
        total_reviews += len(card_reviews)
        avg = sum(int(r.rating) for r in card_reviews) / len(card_reviews)
        analyzed.append(CardAnalysis(by_id[card_id], card_reviews, avg, len(card_reviews)))

    analyzed.sort(key=lambda a: (a.avg_rating, a.card.id))
    low = [a for a in analyzed if a.avg_rating <= LOW_SCORE_THRESHOLD][:MAX_LOW_SCORING_CARDS]

    tag_freq = Counter(tag for a in low for tag in set(a.card.tags))
    common = [tag for tag, count in sorted(tag_freq.items(), key=lambda kv: (-kv[1], kv[0])) if count > 1]

    return LearningAnalysis(
        low_scoring_cards=low,
        common_tags=common,
        total_reviews=total_reviews,
        stats=stats,
    )
