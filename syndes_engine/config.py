"""Syndes Engine — Configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. User config:   ~/.syndes/config.yaml
    3. An explicit ``--config`` file
    4. Environment variables prefixed with SYNDES_

Call ``Settings.load()`` once at startup and pass the instance to
``Engine`` / ``create_app()``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=40100, ge=1024, le=65535)


class QueueConfig(BaseModel):
    cycle_poll_interval: float = Field(
        default=0.05,
        gt=0,
        le=5.0,
        description="Seconds between processed-count checks of a 'cycle next' watcher.",
    )
    interactive_commands: list[str] = Field(
        default_factory=lambda: ["uninstall"],
        description=(
            "Command names that need an interactive confirmation before dispatch. "
            "They are also refused inside parallel groups."
        ),
    )
    confirm_words: list[str] = Field(
        default_factory=lambda: ["yes", "y", "ok"],
        description="Responses accepted as a positive confirmation.",
    )

    @field_validator("interactive_commands", "confirm_words")
    @classmethod
    def lowercase_words(cls, v: list[str]) -> list[str]:
        return [w.strip().lower() for w in v if w.strip()]


class ScriptConfig(BaseModel):
    header_marker: str = Field(default="#", min_length=1)
    module_keys: list[str] = Field(
        default_factory=lambda: ["metadata", "modules"],
        description="Header keys that list the trigger runtime module(s), first match wins.",
    )
    block_terminator: str = "fi"
    available_runtimes: list[str] = Field(default_factory=lambda: ["code1"])


class WorkspaceConfig(BaseModel):
    work_dir: Path | None = Field(
        default=None,
        description="Root of the directory tree used by 'exists' and 'size' triggers.",
    )
    current_dir: Path | None = Field(
        default=None,
        description="Directory that relative trigger paths start from (defaults to work_dir).",
    )

    @field_validator("work_dir", "current_dir", mode="before")
    @classmethod
    def expand_user(cls, v: object) -> object:
        if isinstance(v, str) and v:
            return Path(v).expanduser()
        return v


class BackendConfig(BaseModel):
    shell_enabled: bool = Field(
        default=False,
        description="Enable the 'sh <cmdline>' backend (runs host subprocesses).",
    )
    shell_timeout: float = Field(default=60.0, gt=0, le=3600)


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None
    events_file: Path | None = Field(
        default=None,
        description="Optional NDJSON file receiving every output/session event.",
    )


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SYNDES_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    scripts: ScriptConfig = Field(default_factory=ScriptConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    backends: BackendConfig = Field(default_factory=BackendConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [Path.home() / ".syndes" / "config.yaml"]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton — replaced by ``Settings.load()`` at startup.
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
