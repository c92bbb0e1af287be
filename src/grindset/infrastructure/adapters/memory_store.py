"""
In-memory Session Repository — process-local adapter.

Nothing survives the process. Useful as a test fake and for the `memory` backend.
"""

from grindset.domain.constants import SESSION_FETCH_LIMIT
from grindset.domain.sessions.models import ActiveSession, StudySession
from grindset.domain.sessions.ports import SessionRepository


class InMemorySessionRepository(SessionRepository):
    def __init__(self):
        self.sessions: dict[str, dict[str, StudySession]] = {}
        self.active: dict[str, ActiveSession] = {}

    async def save_study_session(self, user_id: str, session: StudySession) -> None:
        self.sessions.setdefault(user_id, {})[session.id] = session

    async def save_active_session(self, user_id: str, session: ActiveSession | None) -> None:
        if session is None:
            self.active.pop(user_id, None)
        else:
            self.active[user_id] = session

    async def get_active_session(self, user_id: str) -> ActiveSession | None:
        return self.active.get(user_id)

    async def get_study_sessions(
        self, user_id: str, limit: int = SESSION_FETCH_LIMIT
    ) -> list[StudySession]:
        stored = self.sessions.get(user_id, {}).values()
        return sorted(stored, key=lambda s: s.started_at, reverse=True)[:limit]
