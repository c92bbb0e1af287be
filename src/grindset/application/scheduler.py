"""
SM-2 review scheduler.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta

from grindset.application.utils.rounding import round_half_up
from grindset.domain.constants import MAX_QUALITY, MIN_EASE_FACTOR, PASSING_QUALITY, SECOND_INTERVAL
from grindset.domain.review.models import Flashcard, ReviewState


def schedule_next_review(current: ReviewState, quality: int, now: datetime) -> ReviewState:
    """
    Compute the next review state for a graded recall.

    Args:
        current: The card's state before this review.
        quality: Recall grade, 0 (blackout) to 5 (perfect). Values outside
            0-5 are not validated.
        now: Time of the review. ``due_at`` keeps its time-of-day and tzinfo.

    Returns:
        A new ReviewState; ``current`` is not modified.
    """
    lapse = MAX_QUALITY - quality
    ef = current.ef + (0.1 - lapse * (0.08 + lapse * 0.02))
    if ef < MIN_EASE_FACTOR:
        ef = MIN_EASE_FACTOR

    repetition = current.repetition
    interval = current.interval

    if quality < PASSING_QUALITY:
        repetition = 0
        interval = 1
    elif repetition == 0:
        repetition = 1
        interval = 1
    elif repetition == 1:
        repetition = 2
        interval = SECOND_INTERVAL
    else:
        repetition += 1
        # Uses the updated, clamped ef
        interval = round_half_up(interval * ef)

    # Aware datetime + timedelta is wall-clock arithmetic: adds calendar days
    due_at = now + timedelta(days=interval)

    return ReviewState(interval=interval, repetition=repetition, ef=ef, due_at=due_at)


def review_flashcard(card: Flashcard, quality: int, now: datetime) -> Flashcard:
    """Apply a graded review to a card, returning the updated card."""
    return replace(card, review=schedule_next_review(card.review, quality, now))


def is_due(state: ReviewState, now: datetime) -> bool:
    return state.due_at <= now


def due_flashcards(cards: Iterable[Flashcard], now: datetime) -> list[Flashcard]:
    """Cards eligible for review at ``now``, most overdue first."""
    due = [card for card in cards if is_due(card.review, now)]
    return sorted(due, key=lambda card: card.review.due_at)
