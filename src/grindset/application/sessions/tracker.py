"""
Grind Tracker — per-user state machine for timed study sessions.

States are Idle and Grinding(subject, started_at). Local state is always
authoritative: it changes synchronously, before any remote write is awaited,
and a failed remote write is recorded in ``sync_status`` without rolling
anything back.
"""

import logging
from collections.abc import Awaitable, Iterable
from dataclasses import replace
from datetime import datetime, timedelta

from grindset.application.id_service import generate_session_id
from grindset.application.utils.rounding import round_half_up
from grindset.domain.constants import (
    MIN_SESSION_MINUTES,
    SESSION_FETCH_LIMIT,
    STALENESS_THRESHOLD_HOURS,
)
from grindset.domain.exceptions import GrindAlreadyActiveError
from grindset.domain.sessions.models import (
    ActiveSession,
    GrindState,
    PowerLevelSummary,
    StudySession,
    StudyStats,
    SyncPhase,
    SyncStatus,
)
from grindset.domain.sessions.ports import Clock, SessionRepository

from .power_level import PowerLevelCalculator

logger = logging.getLogger(__name__)


def session_duration_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Rounded whole minutes between two instants, never below one."""
    seconds = (ended_at - started_at).total_seconds()
    return max(MIN_SESSION_MINUTES, round_half_up(seconds / 60))


class GrindTracker:
    """
    Tracks one user's grind and the sessions it produces.

    Follows Dependency Inversion: persistence and time are injected as the
    SessionRepository and Clock ports.
    """

    def __init__(
        self,
        user_id: str,
        repository: SessionRepository,
        clock: Clock,
        staleness_threshold: timedelta = timedelta(hours=STALENESS_THRESHOLD_HOURS),
        session_fetch_limit: int = SESSION_FETCH_LIMIT,
        calculator: PowerLevelCalculator | None = None,
    ):
        """
        Args:
            user_id: The user every repository call is scoped to.
            repository: The persistence port.
            clock: Source of the current time.
            staleness_threshold: Remote grinds older than this are auto-closed on sync.
            session_fetch_limit: How many recent sessions ``refresh_sessions`` loads.
            calculator: Optional custom calculator; uses the unwindowed default if not provided.
        """
        self.user_id = user_id
        self._repo = repository
        self._clock = clock
        self._calc = calculator or PowerLevelCalculator()
        self.staleness_threshold = staleness_threshold
        self.session_fetch_limit = session_fetch_limit

        self.state = GrindState()
        self.sync_status = SyncStatus()
        self.sessions: list[StudySession] = []
        self.power_level = PowerLevelSummary()

    # ---------- Read-only views ----------

    @property
    def is_grinding(self) -> bool:
        return self.state.is_grinding

    @property
    def active_subject(self) -> str | None:
        return self.state.active_subject

    @property
    def current_session_start(self) -> datetime | None:
        return self.state.current_session_start

    def get_elapsed_minutes(self) -> int:
        """Whole minutes since the grind started, or 0 when idle."""
        if not self.state.is_grinding:
            return 0
        elapsed = self._clock.now() - self.state.current_session_start
        return max(0, int(elapsed.total_seconds() // 60))

    def study_stats(self) -> StudyStats:
        return self._calc.study_stats(self.sessions)

    # ---------- Transitions ----------

    def select_subject(self, subject_id: str | None) -> None:
        """Pre-select the subject for the next grind."""
        if self.state.is_grinding:
            raise GrindAlreadyActiveError(self.user_id, self.state.active_subject)
        self.state = GrindState(active_subject=subject_id)

    async def start_grind(self, subject_id: str) -> GrindState:
        """
        Idle -> Grinding. Raises GrindAlreadyActiveError if a grind is open.
        """
        if self.state.is_grinding:
            raise GrindAlreadyActiveError(self.user_id, self.state.active_subject)

        started_at = self._clock.now()
        self.state = GrindState(active_subject=subject_id, current_session_start=started_at)
        logger.info(f"User {self.user_id} started grinding {subject_id}")

        await self._persist(
            "save_active_session",
            self._repo.save_active_session(
                self.user_id, ActiveSession(subject_id=subject_id, started_at=started_at)
            ),
        )
        return self.state

    async def stop_grind(self) -> StudySession | None:
        """
        Grinding -> Idle, recording the grind as a StudySession.

        Returns:
            The new session, or None if no grind was open.
        """
        if not self.state.is_grinding:
            return None

        ended_at = self._clock.now()
        started_at = self.state.current_session_start
        session = StudySession(
            id=generate_session_id(),
            subject_id=self.state.active_subject,
            started_at=started_at,
            ended_at=ended_at,
            duration_minutes=session_duration_minutes(started_at, ended_at),
        )
        self._close_locally(session)
        logger.info(
            f"User {self.user_id} stopped grinding {session.subject_id} "
            f"after {session.duration_minutes} min"
        )

        await self._persist_closed(session)
        return session

    async def switch_subject(self, subject_id: str) -> StudySession | None:
        """
        Close the open grind (if any) and start a new one on ``subject_id``.

        Returns:
            The session recorded for the previous grind, or None if idle.
        """
        closed = await self.stop_grind()
        await self.start_grind(subject_id)
        return closed

    async def sync_active_session(self) -> StudySession | None:
        """
        Reconcile local state with the remote active-grind marker.

        A remote grind older than the staleness threshold is closed with its
        duration capped at the threshold. A fresher one is resumed locally,
        overwriting whatever the local state was.

        Returns:
            The session synthesized for a stale grind, else None.
        """
        try:
            remote = await self._repo.get_active_session(self.user_id)
        except Exception as e:
            logger.warning(f"Could not fetch active session for {self.user_id}: {e}")
            self.sync_status = SyncStatus(SyncPhase.FAILED, "get_active_session", str(e))
            return None

        if remote is None or not remote.is_active:
            return None

        now = self._clock.now()
        if now - remote.started_at > self.staleness_threshold:
            # A local grind with its own start only exists if its marker write
            # failed; the stale remote grind replaces it and it is not recorded.
            if self.state.is_grinding and self.state.current_session_start != remote.started_at:
                logger.warning(
                    f"Discarding unsynced local grind on {self.state.active_subject} for "
                    f"{self.user_id} (started {self.state.current_session_start.isoformat()})"
                )
            ended_at = remote.started_at + self.staleness_threshold
            session = StudySession(
                id=generate_session_id(),
                subject_id=remote.subject_id,
                started_at=remote.started_at,
                ended_at=ended_at,
                duration_minutes=session_duration_minutes(remote.started_at, ended_at),
            )
            self._close_locally(session)
            logger.warning(
                f"Auto-closed stale grind for {self.user_id} "
                f"(started {remote.started_at.isoformat()}, capped at {session.duration_minutes} min)"
            )
            await self._persist_closed(session)
            return session

        self.state = GrindState(
            active_subject=remote.subject_id, current_session_start=remote.started_at
        )
        logger.info(f"Resumed grind on {remote.subject_id} for {self.user_id}")
        return None

    # ---------- Session list ----------

    def load_sessions(self, sessions: Iterable[StudySession]) -> None:
        """Replace the session list and recompute the aggregate."""
        self.sessions = list(sessions)
        self._recompute()

    async def refresh_sessions(self) -> list[StudySession]:
        """
        Load the most recent sessions from the repository.

        On failure the current list is kept.
        """
        try:
            fetched = await self._repo.get_study_sessions(
                self.user_id, limit=self.session_fetch_limit
            )
        except Exception as e:
            logger.warning(f"Could not fetch sessions for {self.user_id}: {e}")
            self.sync_status = SyncStatus(SyncPhase.FAILED, "get_study_sessions", str(e))
            return self.sessions

        self.load_sessions(fetched)
        return self.sessions

    def clear_sessions(self) -> None:
        """Drop all sessions and zero the aggregate (sign-out)."""
        self.sessions = []
        self.power_level = PowerLevelSummary()

    def set_drill_accuracy(self, accuracy: float) -> None:
        self.power_level = replace(self.power_level, average_drill_accuracy=accuracy)

    async def aclose(self) -> None:
        await self._repo.aclose()

    # ---------- Internals ----------

    def _recompute(self) -> None:
        self.power_level = self._calc.summarize(
            self.sessions,
            average_drill_accuracy=self.power_level.average_drill_accuracy,
            now=self._clock.now(),
        )

    def _close_locally(self, session: StudySession) -> None:
        self.state = replace(self.state, current_session_start=None)
        self.sessions = [*self.sessions, session]
        self._recompute()

    async def _persist_closed(self, session: StudySession) -> None:
        saved = await self._persist(
            "save_study_session", self._repo.save_study_session(self.user_id, session)
        )
        failure = self.sync_status
        await self._persist(
            "save_active_session", self._repo.save_active_session(self.user_id, None)
        )
        # Report the lost session write even if clearing the marker succeeded
        if not saved:
            self.sync_status = failure

    async def _persist(self, operation: str, call: Awaitable[None]) -> bool:
        self.sync_status = SyncStatus(SyncPhase.PENDING, operation)
        try:
            await call
        except Exception as e:
            logger.error(f"{operation} failed for {self.user_id}: {e}")
            self.sync_status = SyncStatus(SyncPhase.FAILED, operation, str(e))
            return False
        self.sync_status = SyncStatus(SyncPhase.SYNCED, operation)
        return True
