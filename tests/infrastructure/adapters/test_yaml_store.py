from datetime import datetime, timedelta, timezone

import pytest
import yaml

from grindset.application.sessions.tracker import GrindTracker
from grindset.domain.exceptions import RepositoryError
from grindset.domain.sessions.models import ActiveSession, StudySession
from grindset.infrastructure.adapters.yaml_store import YamlSessionRepository

T0 = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return YamlSessionRepository(tmp_path / "data")


def _session(session_id, hours_after=0, minutes=30):
    start = T0 + timedelta(hours=hours_after)
    return StudySession(session_id, "physics", start, start + timedelta(minutes=minutes), minutes)


@pytest.mark.asyncio
async def test_active_session_upsert_and_clear(store, tmp_path):
    marker = ActiveSession("biology", T0)

    await store.save_active_session("alice", marker)
    assert await store.get_active_session("alice") == marker

    path = tmp_path / "data/users/alice/active_session.yaml"
    doc = yaml.safe_load(path.read_text())
    assert doc == {"subjectId": "biology", "startedAt": "2025-01-01T09:00:00+00:00", "isActive": True}

    await store.save_active_session("alice", None)
    assert not path.exists()
    assert await store.get_active_session("alice") is None
    # Clearing twice is fine
    await store.save_active_session("alice", None)


@pytest.mark.asyncio
async def test_sessions_saved_idempotently_and_listed_newest_first(store):
    await store.save_study_session("alice", _session("a", 0))
    await store.save_study_session("alice", _session("b", 5))
    await store.save_study_session("alice", _session("a", 0))

    listed = await store.get_study_sessions("alice")
    assert [s.id for s in listed] == ["b", "a"]
    assert await store.get_study_sessions("alice", limit=1) == [_session("b", 5)]
    assert await store.get_study_sessions("bob") == []


@pytest.mark.asyncio
async def test_reads_web_client_timestamps(store, tmp_path):
    path = tmp_path / "data/users/alice/active_session.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("subjectId: maths\nstartedAt: '2025-01-01T09:00:00.000Z'\nisActive: true\n")

    marker = await store.get_active_session("alice")
    assert marker == ActiveSession("maths", T0)


@pytest.mark.asyncio
async def test_corrupt_file_raises_repository_error(store, tmp_path):
    path = tmp_path / "data/users/alice/sessions.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("- id: [unclosed\n")

    with pytest.raises(RepositoryError):
        await store.get_study_sessions("alice")


@pytest.mark.asyncio
async def test_malformed_document_raises_repository_error(store, tmp_path):
    path = tmp_path / "data/users/alice/sessions.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("- id: a\n  subjectId: physics\n")

    with pytest.raises(RepositoryError):
        await store.get_study_sessions("alice")


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id", ["../escape", "a/b", "..", ""])
async def test_unsafe_user_ids_rejected(store, user_id):
    with pytest.raises(RepositoryError):
        await store.get_active_session(user_id)


@pytest.mark.asyncio
async def test_grind_survives_across_trackers(store, clock):
    """Two trackers on one store behave like two devices."""
    laptop = GrindTracker("alice", store, clock)
    await laptop.start_grind("physics")

    clock.set(clock.now() + timedelta(minutes=40))
    phone = GrindTracker("alice", store, clock)
    await phone.sync_active_session()
    assert phone.active_subject == "physics"

    session = await phone.stop_grind()
    assert session.duration_minutes == 40
    assert await store.get_active_session("alice") is None
    assert await store.get_study_sessions("alice") == [session]
