"""
Power level calculator for deriving aggregates from study sessions.

This is a pure computation module with no I/O.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta

from grindset.application.utils.rounding import round_half_up
from grindset.domain.constants import POWER_LEVEL_MAX_SCORE, POWER_LEVEL_MINUTES_PER_POINT
from grindset.domain.sessions.models import PowerLevelSummary, StudySession, StudyStats


class PowerLevelCalculator:
    """
    Computes PowerLevelSummary and StudyStats from a session list.

    Stateless and side-effect free.

    Args:
        window_days: When set, only sessions that ended within this many days
            of ``now`` count toward the total. None sums every retained session.
    """

    def __init__(self, window_days: int | None = None):
        self.window_days = window_days

    def summarize(
        self,
        sessions: Sequence[StudySession],
        average_drill_accuracy: float = 0.0,
        now: datetime | None = None,
    ) -> PowerLevelSummary:
        total = self.total_minutes(sessions, now)
        return PowerLevelSummary(
            score=self.score(total),
            total_study_minutes=total,
            average_drill_accuracy=average_drill_accuracy,
        )

    def total_minutes(
        self, sessions: Sequence[StudySession], now: datetime | None = None
    ) -> int:
        return sum(s.duration_minutes for s in self._retained(sessions, now))

    @staticmethod
    def score(total_minutes: int) -> int:
        """
        Linear score with a cap: one point per 10 minutes, at most 100.
        """
        return min(
            POWER_LEVEL_MAX_SCORE,
            round_half_up(total_minutes / POWER_LEVEL_MINUTES_PER_POINT),
        )

    def study_stats(self, sessions: Sequence[StudySession]) -> StudyStats:
        """
        Totals and per-subject minutes over all sessions (never windowed).
        """
        breakdown: dict[str, int] = {}
        for s in sessions:
            breakdown[s.subject_id] = breakdown.get(s.subject_id, 0) + s.duration_minutes

        return StudyStats(
            total_sessions=len(sessions),
            total_minutes=sum(breakdown.values()),
            subject_breakdown=breakdown,
        )

    def _retained(
        self, sessions: Sequence[StudySession], now: datetime | None
    ) -> Sequence[StudySession]:
        if self.window_days is None or now is None:
            return sessions
        cutoff = now - timedelta(days=self.window_days)
        return [s for s in sessions if s.ended_at >= cutoff]
