"""
Repository Factory
Centralizes the logic for selecting the session storage backend.
"""

import logging

from grindset.application.config import AppConfig
from grindset.application.sessions.power_level import PowerLevelCalculator
from grindset.application.sessions.registry import GrindTrackerRegistry
from grindset.application.sessions.tracker import GrindTracker
from grindset.domain.exceptions import ConfigurationError
from grindset.domain.sessions.ports import Clock, SessionRepository
from grindset.infrastructure.adapters.http_store import HttpSessionRepository
from grindset.infrastructure.adapters.memory_store import InMemorySessionRepository
from grindset.infrastructure.adapters.yaml_store import YamlSessionRepository
from grindset.infrastructure.clock import SystemClock

logger = logging.getLogger(__name__)


def get_session_repository(config: AppConfig) -> SessionRepository:
    """
    Returns the SessionRepository implementation selected by config.backend.
    """
    if config.backend == "memory":
        return InMemorySessionRepository()

    if config.backend == "http":
        if not config.remote_url:
            raise ConfigurationError("backend 'http' requires remote_url (GRINDSET_REMOTE_URL)")
        logger.debug(f"Backend: HTTP ({config.remote_url})")
        return HttpSessionRepository(
            config.remote_url, token=config.remote_token, timeout=config.request_timeout
        )

    logger.debug(f"Backend: files ({config.data_dir})")
    return YamlSessionRepository(config.data_dir)


def _tracker_options(config: AppConfig) -> dict:
    return {
        "staleness_threshold": config.staleness_threshold,
        "session_fetch_limit": config.session_fetch_limit,
        "calculator": PowerLevelCalculator(window_days=config.power_window_days),
    }


def build_tracker(
    config: AppConfig,
    repository: SessionRepository | None = None,
    clock: Clock | None = None,
    user_id: str | None = None,
) -> GrindTracker:
    return GrindTracker(
        user_id or config.user_id,
        repository or get_session_repository(config),
        clock or SystemClock(),
        **_tracker_options(config),
    )


def build_registry(
    config: AppConfig,
    repository: SessionRepository | None = None,
    clock: Clock | None = None,
) -> GrindTrackerRegistry:
    return GrindTrackerRegistry(
        repository or get_session_repository(config),
        clock or SystemClock(),
        **_tracker_options(config),
    )
