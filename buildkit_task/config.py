"""Configuration settings for buildkit_task.

Uses pydantic-settings for config parsing from environment variables
and defaults. The build request itself arrives on stdin; these settings
only tune how the daemon is supervised.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOG_PATH = Path("/var/log/buildkitd.log")


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the BUILDKIT_TASK_
    prefix. The daemon runtime directory additionally honours
    XDG_RUNTIME_PATH, which is what task containers export.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDKIT_TASK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Paths
    runtime_dir: str | None = Field(
        default=None,
        validation_alias=AliasChoices("XDG_RUNTIME_PATH", "BUILDKIT_TASK_RUNTIME_DIR"),
        description="Root for the daemon socket directory (uses /run if not set)",
    )
    log_path: Path = Field(
        default=DEFAULT_LOG_PATH,
        description="Append-mode log file for buildkitd output",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    setup_cgroups: bool = Field(
        default=True,
        description="Run setup-cgroups before spawning the daemon",
    )
    terminal_columns: int = Field(
        default=80,
        ge=20,
        description="Column limit applied to the output terminal",
    )

    # Timing (in seconds)
    poll_interval: float = Field(
        default=0.1,
        gt=0,
        description="Delay between readiness probes",
    )
    ready_timeout: float = Field(
        default=300.0,
        ge=0,
        description="Deadline for the daemon to become ready (0 = wait forever)",
    )
    exit_timeout: float = Field(
        default=10.0,
        ge=0,
        description="Grace period for the daemon to exit before it is killed",
    )

    @property
    def ready_deadline(self) -> float | None:
        """Readiness deadline, or None when waiting is unbounded."""
        return self.ready_timeout or None


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["DEFAULT_LOG_PATH", "Settings", "get_settings", "print_settings_json"]
