"""
Domain models for grind (timed study) sessions.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class StudySession:
    """
    A closed grind, persisted once and never mutated.

    Attributes:
        id: Unique session id (ULID).
        subject_id: Subject the grind was tagged with.
        started_at: When the grind began.
        ended_at: When the grind was closed (or the stale cap, for auto-closed grinds).
        duration_minutes: Rounded duration, never below 1.
    """

    id: str
    subject_id: str
    started_at: datetime
    ended_at: datetime
    duration_minutes: int


@dataclass(frozen=True)
class ActiveSession:
    """
    The per-user marker for an open grind, shared across devices.
    """

    subject_id: str
    started_at: datetime
    is_active: bool = True


@dataclass(frozen=True)
class GrindState:
    """
    Local, authoritative view of the user's grind.

    ``is_grinding`` holds iff both ``active_subject`` and
    ``current_session_start`` are set. ``active_subject`` alone may be set
    while idle (a pre-selected subject).
    """

    active_subject: str | None = None
    current_session_start: datetime | None = None

    @property
    def is_grinding(self) -> bool:
        return self.active_subject is not None and self.current_session_start is not None


class SyncPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncStatus:
    """
    Advisory outcome of the most recent remote write.

    Never used to roll back local state.
    """

    phase: SyncPhase = SyncPhase.IDLE
    operation: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class PowerLevelSummary:
    """
    Aggregate derived from the retained sessions.

    Attributes:
        score: 0-100, one point per 10 minutes studied.
        total_study_minutes: Sum of duration_minutes over the retained sessions
            (optionally windowed, see ``GrindTracker``).
        average_drill_accuracy: 0-1, supplied by the caller.
    """

    score: int = 0
    total_study_minutes: int = 0
    average_drill_accuracy: float = 0.0


@dataclass(frozen=True)
class StudyStats:
    total_sessions: int = 0
    total_minutes: int = 0
    subject_breakdown: dict[str, int] = field(default_factory=dict)
