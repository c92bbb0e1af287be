from datetime import datetime, timedelta, timezone

import pytest

from grindset.application.sessions.power_level import PowerLevelCalculator
from grindset.domain.sessions.models import StudySession

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def calculator():
    return PowerLevelCalculator()


def _ended_days_ago(session_id, days, minutes=30, subject="physics"):
    ended = NOW - timedelta(days=days)
    return StudySession(session_id, subject, ended - timedelta(minutes=minutes), ended, minutes)


def test_unwindowed_sums_everything(calculator):
    sessions = [_ended_days_ago("a", 1), _ended_days_ago("b", 400)]
    summary = calculator.summarize(sessions, now=NOW)
    assert summary.total_study_minutes == 60
    assert summary.score == 6


def test_window_boundary_is_inclusive():
    calculator = PowerLevelCalculator(window_days=30)
    sessions = [_ended_days_ago("edge", 30), _ended_days_ago("out", 31)]
    assert calculator.total_minutes(sessions, now=NOW) == 30


def test_accuracy_passes_through(calculator):
    summary = calculator.summarize([], average_drill_accuracy=0.42)
    assert summary.average_drill_accuracy == 0.42
    assert summary.score == 0


def test_score_cap():
    assert PowerLevelCalculator.score(1000) == 100
    assert PowerLevelCalculator.score(100_000) == 100
    assert PowerLevelCalculator.score(15) == 2


def test_study_stats_empty(calculator):
    stats = calculator.study_stats([])
    assert stats.total_sessions == 0
    assert stats.subject_breakdown == {}
