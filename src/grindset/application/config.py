from datetime import timedelta
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from grindset.domain.constants import (
    REQUEST_TIMEOUT,
    SESSION_FETCH_LIMIT,
    STALENESS_THRESHOLD_HOURS,
)


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/grindset/config.toml",
        Path.home() / ".grindset.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for grindset.
    Supports loading from:
    1. Environment variables (GRINDSET_*)
    2. Config file (~/.config/grindset/config.toml)
    3. Manual overrides (CLI / HTTP)
    """

    model_config = SettingsConfigDict(
        env_prefix="GRINDSET_",
        extra="ignore",
    )

    # Storage
    backend: Literal["memory", "file", "http"] = "file"
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/grindset")
    remote_url: str | None = None
    remote_token: str | None = None
    request_timeout: float = REQUEST_TIMEOUT

    # Identity (CLI is single-user; the server takes user ids per request)
    user_id: str = "local"

    # Tracking
    staleness_hours: float = Field(default=STALENESS_THRESHOLD_HOURS, gt=0)
    session_fetch_limit: int = Field(default=SESSION_FETCH_LIMIT, ge=1)
    # None sums every retained session into the power level
    power_window_days: int | None = Field(default=None, ge=1)

    # Logging
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/grindset/logs")
    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins; init (overrides) beat env beat file
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @property
    def staleness_threshold(self) -> timedelta:
        return timedelta(hours=self.staleness_hours)


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/grindset/config.toml (if exists)
    3. Environment variables (GRINDSET_*)
    4. cli_overrides (non-None values only)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
