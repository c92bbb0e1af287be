"""
YAML Session Repository — Infrastructure adapter for a local data directory.

Layout, per user:
    <data_dir>/users/<user_id>/active_session.yaml
    <data_dir>/users/<user_id>/sessions.yaml   (list of session documents)

Separate processes (CLI invocations, devices sharing a synced folder) see
each other's active grind through these files.
"""

import logging
import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore
from yaml import YAMLError

from grindset.domain.constants import SESSION_FETCH_LIMIT
from grindset.domain.exceptions import RepositoryError
from grindset.domain.sessions.models import ActiveSession, StudySession
from grindset.domain.sessions.ports import SessionRepository

from .documents import (
    active_session_from_doc,
    active_session_to_doc,
    session_from_doc,
    session_to_doc,
)

logger = logging.getLogger(__name__)

_SAFE_USER_ID = re.compile(r"^[A-Za-z0-9_.@-]+$")

ACTIVE_SESSION_FILE = "active_session.yaml"
SESSIONS_FILE = "sessions.yaml"


class YamlSessionRepository(SessionRepository):
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def user_dir(self, user_id: str) -> Path:
        if not _SAFE_USER_ID.match(user_id) or user_id in (".", ".."):
            raise RepositoryError(f"Invalid user id for file storage: {user_id!r}")
        return self.data_dir / "users" / user_id

    async def save_study_session(self, user_id: str, session: StudySession) -> None:
        path = self.user_dir(user_id) / SESSIONS_FILE
        docs = [d for d in self._read_list(path) if d.get("id") != session.id]
        docs.append(session_to_doc(session))
        self._write(path, docs)
        logger.debug(f"Saved session {session.id} to {path}")

    async def save_active_session(self, user_id: str, session: ActiveSession | None) -> None:
        path = self.user_dir(user_id) / ACTIVE_SESSION_FILE
        if session is None:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise RepositoryError(f"Could not clear {path}: {e}") from e
            return
        self._write(path, active_session_to_doc(session))

    async def get_active_session(self, user_id: str) -> ActiveSession | None:
        path = self.user_dir(user_id) / ACTIVE_SESSION_FILE
        doc = self._read(path)
        if not doc:
            return None
        if not isinstance(doc, dict):
            raise RepositoryError(f"{path} does not contain a mapping")
        return active_session_from_doc(doc)

    async def get_study_sessions(
        self, user_id: str, limit: int = SESSION_FETCH_LIMIT
    ) -> list[StudySession]:
        path = self.user_dir(user_id) / SESSIONS_FILE
        sessions = [session_from_doc(d) for d in self._read_list(path)]
        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return sessions[:limit]

    # ---------- File helpers ----------

    def _read(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            return yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, YAMLError) as e:
            raise RepositoryError(f"Could not read {path}: {e}") from e

    def _read_list(self, path: Path) -> list[dict[str, Any]]:
        data = self._read(path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise RepositoryError(f"{path} does not contain a list")
        return [d for d in data if isinstance(d, dict)]

    def _write(self, path: Path, data: Any) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8"
            )
            tmp.replace(path)
        except OSError as e:
            raise RepositoryError(f"Could not write {path}: {e}") from e
