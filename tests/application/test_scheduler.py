from datetime import datetime, timedelta, timezone

import pytest

from grindset.application.scheduler import (
    due_flashcards,
    is_due,
    review_flashcard,
    schedule_next_review,
)
from grindset.application.utils.rounding import round_half_up
from grindset.domain.review.models import Flashcard, ReviewState

NOW = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


def test_default_state():
    state = ReviewState(due_at=NOW)
    assert (state.interval, state.repetition, state.ef) == (1, 0, 2.5)


def test_ease_factor_never_drops_below_floor():
    state = ReviewState(due_at=NOW)
    efs = []
    for _ in range(10):
        state = schedule_next_review(state, 0, NOW)
        efs.append(state.ef)

    # 2.5 - 0.8 = 1.7, then clamped
    assert efs[0] == pytest.approx(1.7)
    assert all(ef >= 1.3 for ef in efs)
    assert efs[-1] == 1.3


def test_floor_applies_to_already_low_ease():
    state = ReviewState(interval=3, repetition=4, ef=1.3, due_at=NOW)
    assert schedule_next_review(state, 3, NOW).ef == 1.3


@pytest.mark.parametrize("quality", [0, 1, 2])
def test_failed_recall_resets_progress(quality):
    state = ReviewState(interval=40, repetition=6, ef=2.9, due_at=NOW)
    nxt = schedule_next_review(state, quality, NOW)
    assert nxt.repetition == 0
    assert nxt.interval == 1
    assert nxt.due_at == NOW + timedelta(days=1)


def test_three_perfect_reviews_ramp():
    state = ReviewState(due_at=NOW)
    intervals, repetitions, efs = [], [], []
    for _ in range(3):
        state = schedule_next_review(state, 5, NOW)
        intervals.append(state.interval)
        repetitions.append(state.repetition)
        efs.append(state.ef)

    assert efs == pytest.approx([2.6, 2.7, 2.8])
    # round(6 * 2.8) uses the ef updated by the third review
    assert intervals == [1, 6, 17]
    assert repetitions == [1, 2, 3]


def test_quality_three_passes_but_lowers_ease():
    state = ReviewState(interval=6, repetition=2, ef=2.5, due_at=NOW)
    nxt = schedule_next_review(state, 3, NOW)
    assert nxt.ef == pytest.approx(2.36)
    assert nxt.repetition == 3
    assert nxt.interval == 14  # round(6 * 2.36) = round(14.16)


def test_interval_rounds_half_up():
    # quality 4 leaves ef unchanged; 5 * 2.5 = 12.5
    state = ReviewState(interval=5, repetition=2, ef=2.5, due_at=NOW)
    nxt = schedule_next_review(state, 4, NOW)
    assert nxt.ef == pytest.approx(2.5)
    assert nxt.interval == 13


def test_input_state_is_not_mutated():
    state = ReviewState(interval=6, repetition=2, ef=2.5, due_at=NOW)
    schedule_next_review(state, 5, NOW)
    assert state == ReviewState(interval=6, repetition=2, ef=2.5, due_at=NOW)


def test_due_date_adds_calendar_days_keeping_time_of_day():
    now = datetime(2025, 1, 28, 17, 45, 12, tzinfo=timezone.utc)
    state = ReviewState(interval=1, repetition=1, ef=2.5, due_at=now)
    nxt = schedule_next_review(state, 4, now)
    assert nxt.interval == 6
    assert nxt.due_at == datetime(2025, 2, 3, 17, 45, 12, tzinfo=timezone.utc)


def test_due_date_keeps_wall_clock_across_dst():
    zoneinfo = pytest.importorskip("zoneinfo")
    try:
        tz = zoneinfo.ZoneInfo("America/New_York")
    except zoneinfo.ZoneInfoNotFoundError:
        pytest.skip("tz database not available")

    # DST starts on 2025-03-09 in New York
    now = datetime(2025, 3, 8, 9, 30, tzinfo=tz)
    state = ReviewState(interval=1, repetition=1, ef=2.5, due_at=now)
    nxt = schedule_next_review(state, 5, now)

    assert nxt.due_at.date().isoformat() == "2025-03-14"
    assert (nxt.due_at.hour, nxt.due_at.minute) == (9, 30)
    assert nxt.due_at.utcoffset() != now.utcoffset()


@pytest.mark.parametrize(
    "value, expected", [(0.49, 0), (0.5, 1), (12.5, 13), (16.5, 17), (16.8, 17), (99.4, 99)]
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def _card(card_id, due_at):
    return Flashcard(
        id=card_id,
        front="Q",
        back="A",
        subject_id="biology",
        review=ReviewState(due_at=due_at),
    )


def test_review_flashcard_updates_only_schedule():
    card = _card("c1", NOW)
    reviewed = review_flashcard(card, 5, NOW)
    assert reviewed.id == "c1"
    assert reviewed.front == "Q"
    assert reviewed.review.repetition == 1
    assert reviewed.review.due_at == NOW + timedelta(days=1)
    assert card.review.repetition == 0


def test_due_flashcards_filters_and_orders_by_due_date():
    cards = [
        _card("later", NOW + timedelta(days=2)),
        _card("recent", NOW - timedelta(hours=1)),
        _card("overdue", NOW - timedelta(days=3)),
        _card("exact", NOW),
    ]
    due = due_flashcards(cards, NOW)
    assert [c.id for c in due] == ["overdue", "recent", "exact"]
    assert not is_due(cards[0].review, NOW)
