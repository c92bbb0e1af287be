import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from grindset.application.config import resolve_config
from grindset.application.factory import build_registry
from grindset.application.scheduler import schedule_next_review
from grindset.application.sessions.registry import GrindTrackerRegistry
from grindset.application.sessions.tracker import GrindTracker
from grindset.consts import VERSION
from grindset.domain.constants import DEFAULT_EASE_FACTOR, DEFAULT_INTERVAL, DEFAULT_REPETITION
from grindset.domain.exceptions import GrindAlreadyActiveError
from grindset.domain.review.models import ReviewState
from grindset.domain.sessions.models import StudySession

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("grindset.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"grindset server v{VERSION} starting up...")
    yield
    # Shutdown
    registry: GrindTrackerRegistry | None = getattr(app.state, "registry", None)
    if registry is not None:
        await registry.repository.aclose()
    logger.info("grindset server shutting down...")


app = FastAPI(
    title="grindset",
    description="Review scheduling and grind-session tracking.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


def get_registry(request: Request) -> GrindTrackerRegistry:
    """Registry built once per app from the resolved configuration."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        registry = build_registry(resolve_config())
        request.app.state.registry = registry
    return registry


async def get_tracker(
    user_id: str, registry: GrindTrackerRegistry = Depends(get_registry)
) -> GrindTracker:
    """
    The user's tracker. On first use it is reconciled with storage, as a
    client would do after a reload.
    """
    is_new = user_id not in registry
    tracker = registry.get(user_id)
    if is_new:
        await tracker.refresh_sessions()
        await tracker.sync_active_session()
    return tracker


# ---------- Models ----------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ReviewRequest(BaseModel):
    quality: int = Field(ge=0, le=5)
    interval: int = Field(default=DEFAULT_INTERVAL, ge=1)
    repetition: int = Field(default=DEFAULT_REPETITION, ge=0)
    ef: float = DEFAULT_EASE_FACTOR
    now: datetime | None = None


class ReviewResponse(BaseModel):
    interval: int
    repetition: int
    ef: float
    due_at: datetime


class StudySessionModel(BaseModel):
    id: str
    subject_id: str
    started_at: datetime
    ended_at: datetime
    duration_minutes: int = Field(ge=1)

    @classmethod
    def from_domain(cls, s: StudySession) -> "StudySessionModel":
        return cls(
            id=s.id,
            subject_id=s.subject_id,
            started_at=s.started_at,
            ended_at=s.ended_at,
            duration_minutes=s.duration_minutes,
        )

    def to_domain(self) -> StudySession:
        return StudySession(
            id=self.id,
            subject_id=self.subject_id,
            started_at=_aware(self.started_at),
            ended_at=_aware(self.ended_at),
            duration_minutes=self.duration_minutes,
        )


class GrindRequest(BaseModel):
    subject_id: str = Field(min_length=1)


class GrindStatusResponse(BaseModel):
    user_id: str
    is_grinding: bool
    active_subject: str | None
    current_session_start: datetime | None
    elapsed_minutes: int
    sync_phase: str
    sync_error: str | None = None


class StopResponse(BaseModel):
    session: StudySessionModel | None
    status: GrindStatusResponse


class PowerLevelResponse(BaseModel):
    score: int
    total_study_minutes: int
    average_drill_accuracy: float


class DrillAccuracyRequest(BaseModel):
    average_drill_accuracy: float = Field(ge=0.0, le=1.0)


class StatsResponse(BaseModel):
    total_sessions: int
    total_minutes: int
    subject_breakdown: dict[str, int]


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _status(tracker: GrindTracker) -> GrindStatusResponse:
    return GrindStatusResponse(
        user_id=tracker.user_id,
        is_grinding=tracker.is_grinding,
        active_subject=tracker.active_subject,
        current_session_start=tracker.current_session_start,
        elapsed_minutes=tracker.get_elapsed_minutes(),
        sync_phase=tracker.sync_status.phase.value,
        sync_error=tracker.sync_status.error,
    )


def _power(tracker: GrindTracker) -> PowerLevelResponse:
    p = tracker.power_level
    return PowerLevelResponse(
        score=p.score,
        total_study_minutes=p.total_study_minutes,
        average_drill_accuracy=p.average_drill_accuracy,
    )


# ---------- Endpoints ----------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.post("/review", response_model=ReviewResponse)
async def review(req: ReviewRequest):
    """Compute the next SM-2 review state for a graded card."""
    now = _aware(req.now) if req.now else datetime.now(timezone.utc)
    current = ReviewState(interval=req.interval, repetition=req.repetition, ef=req.ef, due_at=now)
    nxt = schedule_next_review(current, req.quality, now)
    return ReviewResponse(
        interval=nxt.interval, repetition=nxt.repetition, ef=nxt.ef, due_at=nxt.due_at
    )


@app.get("/users/{user_id}/grind", response_model=GrindStatusResponse)
async def grind_status(tracker: GrindTracker = Depends(get_tracker)):
    return _status(tracker)


@app.post("/users/{user_id}/grind/start", response_model=GrindStatusResponse)
async def grind_start(req: GrindRequest, tracker: GrindTracker = Depends(get_tracker)):
    try:
        await tracker.start_grind(req.subject_id)
    except GrindAlreadyActiveError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _status(tracker)


@app.post("/users/{user_id}/grind/stop", response_model=StopResponse)
async def grind_stop(tracker: GrindTracker = Depends(get_tracker)):
    session = await tracker.stop_grind()
    return StopResponse(
        session=StudySessionModel.from_domain(session) if session else None,
        status=_status(tracker),
    )


@app.post("/users/{user_id}/grind/switch", response_model=StopResponse)
async def grind_switch(req: GrindRequest, tracker: GrindTracker = Depends(get_tracker)):
    closed = await tracker.switch_subject(req.subject_id)
    return StopResponse(
        session=StudySessionModel.from_domain(closed) if closed else None,
        status=_status(tracker),
    )


@app.post("/users/{user_id}/grind/sync", response_model=StopResponse)
async def grind_sync(tracker: GrindTracker = Depends(get_tracker)):
    """Reconcile with the stored active grind; may auto-close a stale one."""
    closed = await tracker.sync_active_session()
    return StopResponse(
        session=StudySessionModel.from_domain(closed) if closed else None,
        status=_status(tracker),
    )


@app.get("/users/{user_id}/sessions", response_model=list[StudySessionModel])
async def list_sessions(tracker: GrindTracker = Depends(get_tracker)):
    return [StudySessionModel.from_domain(s) for s in tracker.sessions]


@app.post("/users/{user_id}/sessions/refresh", response_model=PowerLevelResponse)
async def refresh_sessions(tracker: GrindTracker = Depends(get_tracker)):
    await tracker.refresh_sessions()
    return _power(tracker)


@app.put("/users/{user_id}/sessions", response_model=PowerLevelResponse)
async def load_sessions(
    sessions: list[StudySessionModel], tracker: GrindTracker = Depends(get_tracker)
):
    """Replace the in-memory session list (does not write to storage)."""
    tracker.load_sessions(s.to_domain() for s in sessions)
    return _power(tracker)


@app.delete("/users/{user_id}/sessions", response_model=PowerLevelResponse)
async def clear_sessions(tracker: GrindTracker = Depends(get_tracker)):
    """Forget the in-memory sessions (sign-out). Storage is untouched."""
    tracker.clear_sessions()
    return _power(tracker)


@app.get("/users/{user_id}/power-level", response_model=PowerLevelResponse)
async def power_level(tracker: GrindTracker = Depends(get_tracker)):
    return _power(tracker)


@app.put("/users/{user_id}/power-level/accuracy", response_model=PowerLevelResponse)
async def set_drill_accuracy(
    req: DrillAccuracyRequest, tracker: GrindTracker = Depends(get_tracker)
):
    tracker.set_drill_accuracy(req.average_drill_accuracy)
    return _power(tracker)


@app.get("/users/{user_id}/stats", response_model=StatsResponse)
async def study_stats(tracker: GrindTracker = Depends(get_tracker)):
    stats = tracker.study_stats()
    return StatsResponse(
        total_sessions=stats.total_sessions,
        total_minutes=stats.total_minutes,
        subject_breakdown=stats.subject_breakdown,
    )
