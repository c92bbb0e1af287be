# Domain Sessions Package
from .models import (
    ActiveSession,
    GrindState,
    PowerLevelSummary,
    StudySession,
    StudyStats,
    SyncPhase,
    SyncStatus,
)
from .ports import Clock, SessionRepository

__all__ = [
    "ActiveSession",
    "GrindState",
    "PowerLevelSummary",
    "StudySession",
    "StudyStats",
    "SyncPhase",
    "SyncStatus",
    "Clock",
    "SessionRepository",
]
