# Application Sessions Package
from .power_level import PowerLevelCalculator
from .registry import GrindTrackerRegistry
from .tracker import GrindTracker, session_duration_minutes

__all__ = [
    "GrindTracker",
    "GrindTrackerRegistry",
    "PowerLevelCalculator",
    "session_duration_minutes",
]
