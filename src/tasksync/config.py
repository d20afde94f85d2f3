"""Configuration management for tasksync."""

import sys
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_task_file() -> Path:
    return Path.home() / ".cache" / "tasksync" / "tasks.md"


class Settings(BaseSettings):
    """tasksync configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="TASKSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Task files
    task_file: Path | None = Field(
        default=None,
        description="Checklist file used when none is given on the command line",
    )
    default_task_file: Path = Field(
        default_factory=_default_task_file,
        description="File created by the 'default' shell command",
    )

    @field_validator("task_file", mode="before")
    @classmethod
    def empty_task_file(cls, v: str | Path | None) -> Path | None:
        """Treat an empty value as unset."""
        if v is None or v == "":
            return None
        return Path(v).expanduser()

    @field_validator("default_task_file", mode="before")
    @classmethod
    def expand_default(cls, v: str | Path) -> Path:
        """Expand ~ in the default file path."""
        return Path(v).expanduser()

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        """Accept lower-case level names."""
        return v.upper() if isinstance(v, str) else v

    # Shell
    prompt: str = Field(
        default="tasksync> ",
        description="Interactive shell prompt",
    )

    @property
    def has_task_file(self) -> bool:
        """Check if a task file is configured."""
        return self.task_file is not None


def load_settings(env_file: Path | None = None, **overrides: object) -> Settings:
    """Load settings from environment and .env file.

    Args:
        env_file: Optional .env file to read instead of ./.env.
        **overrides: Values that take precedence over the environment.

    Returns:
        Validated Settings instance.

    Raises:
        SystemExit: If a setting has an invalid value.
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        if env_file and env_file.exists():
            # _env_file is a valid pydantic-settings parameter
            return Settings(_env_file=env_file, **overrides)  # type: ignore[call-arg]
        return Settings(**overrides)  # type: ignore[arg-type]

    except Exception as e:
        _print_config_help(e)
        sys.exit(1)


def _print_config_help(error: Exception) -> None:
    """Print helpful message for invalid configuration."""
    print("\n" + "=" * 60, file=sys.stderr)
    print("tasksync Configuration Error", file=sys.stderr)
    print("=" * 60 + "\n", file=sys.stderr)

    print("Supported environment variables (or .env entries):", file=sys.stderr)
    print("-" * 40, file=sys.stderr)
    print("TASKSYNC_TASK_FILE=~/notes/tasks.md", file=sys.stderr)
    print("TASKSYNC_DEFAULT_TASK_FILE=~/.cache/tasksync/tasks.md", file=sys.stderr)
    print("TASKSYNC_LOG_LEVEL=WARNING   # DEBUG, INFO, WARNING, ERROR", file=sys.stderr)
    print("TASKSYNC_PROMPT='tasksync> '", file=sys.stderr)
    print("-" * 40, file=sys.stderr)
    print(file=sys.stderr)

    # Print the actual validation error for debugging
    print(f"Validation error: {error}", file=sys.stderr)
    print(file=sys.stderr)
