"""Ghost Bridge — Control-plane configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. User config:   ~/.ghost-os/config.yaml
    3. An explicit config file passed to ``Settings.load()``
    4. Environment variables prefixed with GHOST_

Call ``Settings.load()`` once at startup and inject the instance into the
ControlPlane / CLI commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_DIR = Path("~/.ghost-os")


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class StorageConfig(BaseModel):
    base_dir: Path = Field(
        default=DEFAULT_BASE_DIR,
        validate_default=True,
        description="Root directory holding recipes/ and recordings/.",
    )

    @field_validator("base_dir", mode="after")
    @classmethod
    def expand_base_dir(cls, v: Path) -> Path:
        return v.expanduser()

    @property
    def recipes_dir(self) -> Path:
        return self.base_dir / "recipes"

    @property
    def recordings_dir(self) -> Path:
        return self.base_dir / "recordings"


class RecordingConfig(BaseModel):
    """Configuration for the recording interceptor."""

    enabled: bool = Field(
        default=True,
        description="When False, recordStart is rejected with permissionDenied.",
    )
    default_name: str = Field(
        default="untitled",
        min_length=1,
        description="Session name used when recordStart carries no name.",
    )


class RunnerConfig(BaseModel):
    """Configuration for recipe replay."""

    default_wait_timeout: Annotated[float, Field(ge=0.1, le=300.0)] = Field(
        default=10.0,
        description="Seconds to wait for a wait_after condition without its own timeout.",
    )
    poll_interval: Annotated[float, Field(ge=0.01, le=5.0)] = Field(
        default=0.25,
        description="Seconds between wait_after condition checks.",
    )
    max_delay_ms: Annotated[int, Field(ge=0, le=600_000)] = Field(
        default=60_000,
        description="Upper bound applied to a step's delay_ms.",
    )


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GHOST_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    recording: RecordingConfig = Field(default_factory=RecordingConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [Path.home() / ".ghost-os" / "config.yaml"]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy import, only needed when a file exists

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton, replaced by ``Settings.load()`` at startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
