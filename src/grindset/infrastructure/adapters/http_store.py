"""
HTTP Session Repository — Infrastructure adapter for a REST document store.

Documents live at the same paths the web client uses:
    {base}/users/{uid}/state/activeSession
    {base}/users/{uid}/sessions/{session_id}
"""

import logging
from typing import Any

import httpx

from grindset.domain.constants import REQUEST_TIMEOUT, SESSION_FETCH_LIMIT
from grindset.domain.exceptions import RepositoryError
from grindset.domain.sessions.models import ActiveSession, StudySession
from grindset.domain.sessions.ports import SessionRepository

from .documents import (
    active_session_from_doc,
    active_session_to_doc,
    session_from_doc,
    session_to_doc,
)


class HttpSessionRepository(SessionRepository):
    """Adapter for a JSON document store reachable over HTTP."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.logger.debug(f"HttpSessionRepository initialized with base_url={self.base_url}")

    def _get_client(self) -> httpx.AsyncClient:
        # Reuse one client across calls
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def save_study_session(self, user_id: str, session: StudySession) -> None:
        # PUT keyed by id keeps repeated saves idempotent
        await self._request(
            "PUT", f"/users/{user_id}/sessions/{session.id}", json=session_to_doc(session)
        )

    async def save_active_session(self, user_id: str, session: ActiveSession | None) -> None:
        path = f"/users/{user_id}/state/activeSession"
        if session is None:
            await self._request("DELETE", path, allow_missing=True)
        else:
            await self._request("PUT", path, json=active_session_to_doc(session))

    async def get_active_session(self, user_id: str) -> ActiveSession | None:
        data = await self._request(
            "GET", f"/users/{user_id}/state/activeSession", allow_missing=True
        )
        if not data:
            return None
        return active_session_from_doc(data)

    async def get_study_sessions(
        self, user_id: str, limit: int = SESSION_FETCH_LIMIT
    ) -> list[StudySession]:
        data = await self._request(
            "GET",
            f"/users/{user_id}/sessions",
            params={"orderBy": "startedAt", "direction": "desc", "limit": limit},
        )
        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("documents", [])
        if not isinstance(data, list):
            raise RepositoryError("Session listing is not a list")

        sessions = [session_from_doc(d) for d in data]
        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return sessions[:limit]

    async def _request(
        self, method: str, path: str, allow_missing: bool = False, **kwargs: Any
    ) -> Any:
        try:
            resp = await self._get_client().request(method, path, **kwargs)
            if allow_missing and resp.status_code == 404:
                return None
            resp.raise_for_status()
            if not resp.content:
                return None
            return resp.json()
        except httpx.HTTPError as e:
            self.logger.error(f"{method} {path} failed: {e}")
            raise RepositoryError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise RepositoryError(f"{method} {path} returned invalid JSON: {e}") from e
