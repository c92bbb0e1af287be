"""
Document (dict) encoding shared by the file and HTTP stores.

Keys are camelCase and timestamps ISO-8601, matching the documents the web
client writes, so both can read each other's records.
"""

from datetime import datetime, timezone
from typing import Any

from grindset.domain.exceptions import RepositoryError
from grindset.domain.sessions.models import ActiveSession, StudySession


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed). Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def session_to_doc(session: StudySession) -> dict[str, Any]:
    return {
        "id": session.id,
        "subjectId": session.subject_id,
        "startedAt": format_timestamp(session.started_at),
        "endedAt": format_timestamp(session.ended_at),
        "durationMinutes": session.duration_minutes,
    }


def session_from_doc(doc: dict[str, Any]) -> StudySession:
    try:
        return StudySession(
            id=str(doc["id"]),
            subject_id=str(doc["subjectId"]),
            started_at=parse_timestamp(doc["startedAt"]),
            ended_at=parse_timestamp(doc["endedAt"]),
            duration_minutes=int(doc["durationMinutes"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RepositoryError(f"Malformed session document: {e}") from e


def active_session_to_doc(session: ActiveSession) -> dict[str, Any]:
    return {
        "subjectId": session.subject_id,
        "startedAt": format_timestamp(session.started_at),
        "isActive": session.is_active,
    }


def active_session_from_doc(doc: dict[str, Any]) -> ActiveSession:
    try:
        return ActiveSession(
            subject_id=str(doc["subjectId"]),
            started_at=parse_timestamp(doc["startedAt"]),
            is_active=bool(doc.get("isActive", True)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RepositoryError(f"Malformed active session document: {e}") from e
