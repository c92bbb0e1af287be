"""
Ports (interfaces) for grind-session persistence and time.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from grindset.domain.constants import SESSION_FETCH_LIMIT

from .models import ActiveSession, StudySession


class SessionRepository(ABC):
    """
    Port for storing study sessions and the active-grind marker.

    Implementations:
        - InMemorySessionRepository: Process-local dicts (tests, ephemeral use).
        - YamlSessionRepository: One YAML file pair per user under a data dir.
        - HttpSessionRepository: REST document store over httpx.
    """

    @abstractmethod
    async def save_study_session(self, user_id: str, session: StudySession) -> None:
        """
        Append a closed session. Saving the same ``session.id`` twice must
        leave a single record.
        """
        pass

    @abstractmethod
    async def save_active_session(self, user_id: str, session: ActiveSession | None) -> None:
        """
        Upsert the user's active-grind marker, or clear it when ``session`` is None.
        """
        pass

    @abstractmethod
    async def get_active_session(self, user_id: str) -> ActiveSession | None:
        """
        Return the user's active-grind marker, or None if there is none.
        """
        pass

    @abstractmethod
    async def get_study_sessions(
        self, user_id: str, limit: int = SESSION_FETCH_LIMIT
    ) -> list[StudySession]:
        """
        Fetch the user's most recent sessions.

        Returns:
            At most ``limit`` sessions, sorted by started_at descending.
        """
        pass

    async def aclose(self) -> None:
        """Release connections or handles. No-op unless the adapter holds any."""
        return None


class Clock(ABC):
    """Port for the current time. Always returns timezone-aware datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        pass
