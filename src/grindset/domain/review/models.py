"""
Domain models for spaced-repetition review.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from grindset.domain.constants import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL,
    DEFAULT_REPETITION,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReviewState:
    """
    SM-2 scheduling state for a single flashcard.

    Attributes:
        interval: Days until the next review (always >= 1).
        repetition: Consecutive successful recalls, reset to 0 on a failed one.
        ef: Ease factor. Never below 1.3, unbounded above.
        due_at: Moment the card becomes eligible for review again.
    """

    interval: int = DEFAULT_INTERVAL
    repetition: int = DEFAULT_REPETITION
    ef: float = DEFAULT_EASE_FACTOR
    due_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class Flashcard:
    """A study card and its review schedule."""

    id: str
    front: str
    back: str
    subject_id: str
    review: ReviewState = field(default_factory=ReviewState)
