"""Per-user GrindTracker lookup for long-lived processes (the HTTP server)."""

import logging
from typing import Any

from grindset.domain.sessions.ports import Clock, SessionRepository

from .tracker import GrindTracker

logger = logging.getLogger(__name__)


class GrindTrackerRegistry:
    """
    Hands out one GrindTracker per user, sharing a repository and clock.

    Args:
        repository: The persistence port every tracker writes through.
        clock: Source of the current time.
        **tracker_options: Extra GrindTracker keyword arguments
            (staleness_threshold, session_fetch_limit, calculator).
    """

    def __init__(self, repository: SessionRepository, clock: Clock, **tracker_options: Any):
        self.repository = repository
        self.clock = clock
        self._options = tracker_options
        self._trackers: dict[str, GrindTracker] = {}

    def get(self, user_id: str) -> GrindTracker:
        tracker = self._trackers.get(user_id)
        if tracker is None:
            logger.debug(f"Creating tracker for {user_id}")
            tracker = GrindTracker(user_id, self.repository, self.clock, **self._options)
            self._trackers[user_id] = tracker
        return tracker

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._trackers

    def drop(self, user_id: str) -> None:
        self._trackers.pop(user_id, None)
