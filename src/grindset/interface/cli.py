"""grindset CLI — review scheduling, grind tracking and power level."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from pydantic import ValidationError

from grindset.application.config import AppConfig, resolve_config
from grindset.application.factory import build_tracker
from grindset.application.log_setup import setup_logging
from grindset.application.scheduler import schedule_next_review
from grindset.application.sessions.tracker import GrindTracker
from grindset.consts import VERSION
from grindset.domain.constants import DEFAULT_EASE_FACTOR, DEFAULT_INTERVAL, DEFAULT_REPETITION
from grindset.domain.exceptions import ConfigurationError, GrindAlreadyActiveError
from grindset.domain.review.models import ReviewState
from grindset.domain.sessions.models import SyncPhase
from grindset.infrastructure.adapters.documents import parse_timestamp

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="grindset: spaced repetition and study-grind tracking.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

grind_app = typer.Typer(help="Start, stop and inspect grind sessions.", no_args_is_help=True)
app.add_typer(grind_app, name="grind")

config_app = typer.Typer(help="Manage grindset configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    user: Annotated[str | None, typer.Option("--user", help="User id to act as.")] = None,
    backend: Annotated[
        str | None, typer.Option(help="Session storage: memory, file, http.")
    ] = None,
    data_dir: Annotated[
        Path | None, typer.Option(help="Directory for the file backend.")
    ] = None,
    remote_url: Annotated[
        str | None, typer.Option(help="Base URL for the http backend.")
    ] = None,
):
    """Global settings for grindset."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "user_id": user,
        "backend": backend,
        "data_dir": data_dir,
        "remote_url": remote_url,
        # Unset unless -v was given, so GRINDSET_VERBOSE and the config file apply
        "verbose": verbose or None,
    }


def _config(ctx: typer.Context) -> AppConfig:
    """Resolve configuration and apply its logging settings."""
    obj = ctx.obj or {}
    try:
        config = resolve_config(obj.get("overrides"))
    except ValidationError as e:
        typer.secho(f"Configuration error: {e}", fg="red")
        raise typer.Exit(2) from None

    setup_logging(config)
    return config


def _run_with_tracker(config: AppConfig, op: Callable[[GrindTracker], Awaitable[T]]) -> T:
    """Build a tracker, reconcile it with storage, run ``op``, close storage."""

    async def run() -> T:
        tracker = build_tracker(config)
        try:
            await tracker.refresh_sessions()
            closed = await tracker.sync_active_session()
            if closed is not None:
                typer.secho(
                    f"Closed a stale grind on {closed.subject_id} "
                    f"({closed.duration_minutes} min).",
                    fg="yellow",
                )
            return await op(tracker)
        finally:
            await tracker.aclose()

    try:
        return asyncio.run(run())
    except ConfigurationError as e:
        typer.secho(f"Configuration error: {e}", fg="red")
        raise typer.Exit(2) from None
    except GrindAlreadyActiveError as e:
        typer.secho(f"{e}. Stop it first or use 'grindset grind switch'.", fg="red")
        raise typer.Exit(1) from None


def _warn_if_unsynced(tracker: GrindTracker) -> None:
    status = tracker.sync_status
    if status.phase is SyncPhase.FAILED:
        typer.secho(
            f"Saved locally only: {status.operation} failed ({status.error}).", fg="yellow"
        )


def _dump(data: dict[str, Any]) -> str:
    def default(v: Any) -> Any:
        if isinstance(v, datetime):
            return v.isoformat()
        return str(v)

    return json.dumps(data, indent=2, default=default)


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def version():
    """Print the grindset version."""
    typer.echo(VERSION)


@app.command()
def review(
    quality: Annotated[
        int, typer.Option("--quality", "-q", min=0, max=5, help="Recall grade, 0-5.")
    ],
    interval: Annotated[int, typer.Option(min=1, help="Current interval in days.")] = DEFAULT_INTERVAL,
    repetition: Annotated[
        int, typer.Option(min=0, help="Current successful-recall streak.")
    ] = DEFAULT_REPETITION,
    ef: Annotated[float, typer.Option(help="Current ease factor.")] = DEFAULT_EASE_FACTOR,
    now: Annotated[
        str | None, typer.Option(help="Review time (ISO-8601). Defaults to now, UTC.")
    ] = None,
):
    """Compute the [bold]next review[/bold] for a graded flashcard."""
    reviewed_at = parse_timestamp(now) if now else datetime.now(timezone.utc)
    current = ReviewState(interval=interval, repetition=repetition, ef=ef, due_at=reviewed_at)
    nxt = schedule_next_review(current, quality, reviewed_at)
    typer.echo(
        _dump(
            {
                "interval": nxt.interval,
                "repetition": nxt.repetition,
                "ef": round(nxt.ef, 4),
                "due_at": nxt.due_at,
            }
        )
    )


@app.command()
def sessions(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option(help="Show at most this many sessions.")] = 20,
):
    """List recent study sessions, newest first."""
    config = _config(ctx)

    async def op(tracker: GrindTracker):
        return tracker.sessions

    recorded = _run_with_tracker(config, op)
    if not recorded:
        typer.secho("No sessions recorded.", fg="yellow")
        return

    for s in sorted(recorded, key=lambda s: s.started_at, reverse=True)[:limit]:
        typer.echo(
            f"{s.started_at.isoformat()}  {s.subject_id:<12} {s.duration_minutes:>5} min  {s.id}"
        )


@app.command()
def power(ctx: typer.Context):
    """Show the power level and per-subject totals."""
    config = _config(ctx)

    async def op(tracker: GrindTracker):
        return tracker.power_level, tracker.study_stats()

    summary, stats = _run_with_tracker(config, op)
    typer.echo(
        _dump(
            {
                "score": summary.score,
                "total_study_minutes": summary.total_study_minutes,
                "average_drill_accuracy": summary.average_drill_accuracy,
                "total_sessions": stats.total_sessions,
                "subject_breakdown": stats.subject_breakdown,
            }
        )
    )


@app.command()
def server(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8777,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code changes.")] = False,
):
    """Run the HTTP server."""
    import uvicorn

    uvicorn.run("grindset.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Grind subgroup
# ---------------------------------------------------------------------------


@grind_app.command("start")
def grind_start(
    ctx: typer.Context,
    subject: Annotated[str, typer.Argument(help="Subject to tag the grind with.")],
):
    """[bold green]Start[/bold green] a grind on SUBJECT."""
    config = _config(ctx)

    async def op(tracker: GrindTracker):
        await tracker.start_grind(subject)
        return tracker

    tracker = _run_with_tracker(config, op)
    typer.secho(f"Grinding {subject}.", fg="green")
    _warn_if_unsynced(tracker)


@grind_app.command("stop")
def grind_stop(ctx: typer.Context):
    """[bold red]Stop[/bold red] the open grind and record it."""
    config = _config(ctx)

    async def op(tracker: GrindTracker):
        return await tracker.stop_grind(), tracker

    session, tracker = _run_with_tracker(config, op)
    if session is None:
        typer.secho("Not grinding.", fg="yellow")
        return

    typer.secho(
        f"Recorded {session.duration_minutes} min of {session.subject_id}. "
        f"Power level: {tracker.power_level.score}",
        fg="green",
    )
    _warn_if_unsynced(tracker)


@grind_app.command("switch")
def grind_switch(
    ctx: typer.Context,
    subject: Annotated[str, typer.Argument(help="Subject for the new grind.")],
):
    """Record the open grind and start a new one on SUBJECT."""
    config = _config(ctx)

    async def op(tracker: GrindTracker):
        return await tracker.switch_subject(subject), tracker

    closed, tracker = _run_with_tracker(config, op)
    if closed is not None:
        typer.echo(f"Recorded {closed.duration_minutes} min of {closed.subject_id}.")
    typer.secho(f"Grinding {subject}.", fg="green")
    _warn_if_unsynced(tracker)


@grind_app.command("status")
def grind_status(ctx: typer.Context):
    """Show whether a grind is open and for how long."""
    config = _config(ctx)

    async def op(tracker: GrindTracker):
        return tracker

    tracker = _run_with_tracker(config, op)
    if not tracker.is_grinding:
        typer.echo("Idle.")
        return

    typer.echo(
        f"Grinding {tracker.active_subject} for {tracker.get_elapsed_minutes()} min "
        f"(since {tracker.current_session_start.isoformat()})."
    )


@grind_app.command("sync")
def grind_sync(ctx: typer.Context):
    """Reconcile with storage, closing a grind left open for too long."""
    config = _config(ctx)

    async def op(tracker: GrindTracker):
        return tracker

    tracker = _run_with_tracker(config, op)
    typer.echo("Grinding." if tracker.is_grinding else "Idle.")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    d.pop("remote_token", None)
    typer.echo(json.dumps(d, indent=2))
