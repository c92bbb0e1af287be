from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from grindset.application.config import AppConfig, resolve_config
from grindset.application.factory import build_registry, build_tracker, get_session_repository
from grindset.domain.exceptions import ConfigurationError
from grindset.infrastructure.adapters.http_store import HttpSessionRepository
from grindset.infrastructure.adapters.memory_store import InMemorySessionRepository
from grindset.infrastructure.adapters.yaml_store import YamlSessionRepository


def test_defaults(mock_home):
    config = resolve_config()
    assert config.backend == "file"
    assert config.user_id == "local"
    assert config.data_dir == mock_home / ".local/share/grindset"
    assert config.staleness_threshold == timedelta(hours=24)
    assert config.session_fetch_limit == 50
    assert config.power_window_days is None


def test_none_overrides_are_ignored(mock_home):
    config = resolve_config({"backend": None, "user_id": "alice"})
    assert config.backend == "file"
    assert config.user_id == "alice"


def test_env_and_file_layering(mock_home, monkeypatch):
    cfg = mock_home / ".config/grindset/config.toml"
    cfg.parent.mkdir(parents=True)
    cfg.write_text('backend = "memory"\nuser_id = "from-file"\nstaleness_hours = 12\n')
    monkeypatch.setenv("GRINDSET_USER_ID", "from-env")

    config = resolve_config()
    assert config.backend == "memory"
    assert config.user_id == "from-env"
    assert config.staleness_threshold == timedelta(hours=12)

    assert resolve_config({"user_id": "from-cli"}).user_id == "from-cli"


def test_rejects_bad_values(mock_home):
    with pytest.raises(ValidationError):
        AppConfig(backend="sqlite")
    with pytest.raises(ValidationError):
        AppConfig(power_window_days=0)


def test_repository_selection(mock_home, tmp_path):
    assert isinstance(
        get_session_repository(AppConfig(backend="memory")), InMemorySessionRepository
    )

    file_repo = get_session_repository(AppConfig(backend="file", data_dir=tmp_path))
    assert isinstance(file_repo, YamlSessionRepository)
    assert file_repo.data_dir == Path(tmp_path).resolve()

    http_repo = get_session_repository(
        AppConfig(backend="http", remote_url="http://store.test/")
    )
    assert isinstance(http_repo, HttpSessionRepository)
    assert http_repo.base_url == "http://store.test"


def test_http_backend_requires_url(mock_home):
    with pytest.raises(ConfigurationError, match="remote_url"):
        get_session_repository(AppConfig(backend="http"))


def test_build_tracker_applies_config(mock_home, clock):
    config = AppConfig(
        backend="memory", user_id="alice", staleness_hours=6, session_fetch_limit=7,
        power_window_days=30,
    )
    tracker = build_tracker(config, clock=clock)
    assert tracker.user_id == "alice"
    assert tracker.staleness_threshold == timedelta(hours=6)
    assert tracker.session_fetch_limit == 7

    registry = build_registry(config, clock=clock)
    assert registry.get("bob").staleness_threshold == timedelta(hours=6)
