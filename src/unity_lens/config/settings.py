"""
Configuration management for Unity Lens.

This module provides environment-based configuration using Pydantic BaseSettings.
Values set here act as defaults for the connection configuration; anything saved
through ``unity-lens config set`` in the state file takes precedence.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for resolving .env by default
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
ENV_FILE_OVERRIDE = os.getenv("ULENS_ENV_FILE")
if ENV_FILE_OVERRIDE:
    env_file_candidate = Path(ENV_FILE_OVERRIDE).expanduser()
    if not env_file_candidate.is_absolute():
        env_file_candidate = PROJECT_ROOT / env_file_candidate
    SETTINGS_ENV_FILE = env_file_candidate
else:
    SETTINGS_ENV_FILE = DEFAULT_ENV_FILE

DEFAULT_STATE_FILE = Path.home() / ".unity_lens" / "state.json"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Environment variables are automatically loaded with the ULENS_ prefix.
    For example, ULENS_WAREHOUSE_ID will override the warehouse_id setting.

    Fields without prefix:
    - LOG_LEVEL: Logging level (uppercase)
    """

    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level (uppercase)",
    )

    # Databricks connection defaults
    workspace_url: str = Field(
        default="", description="Databricks workspace URL, e.g. https://dbc-1234.cloud.databricks.com"
    )
    warehouse_id: str = Field(default="", description="SQL warehouse identifier")
    pat_token: str = Field(
        default="",
        description="Personal access token; loaded from ULENS_PAT_TOKEN",
    )

    # SQL Statement Execution API behaviour
    statement_wait_timeout: str = Field(
        default="30s",
        description="Server-side wait_timeout sent with each submitted statement",
    )
    poll_interval_seconds: float = Field(
        default=1.0, description="Delay between statement status polls"
    )
    poll_timeout_seconds: float = Field(
        default=300.0,
        description="Overall deadline for one statement's submit/poll cycle",
    )
    poll_max_attempts: int = Field(
        default=600, description="Maximum number of status polls per statement"
    )
    request_timeout: int = Field(
        default=60, description="HTTP request timeout in seconds"
    )

    # Persistence
    state_file: str = Field(
        default=str(DEFAULT_STATE_FILE),
        description="JSON file holding connection config and the resolution cache",
    )

    @field_validator("workspace_url", mode="after")
    @classmethod
    def strip_trailing_slashes(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("poll_interval_seconds", "poll_timeout_seconds", mode="after")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @property
    def state_path(self) -> Path:
        return Path(self.state_file).expanduser()

    model_config = SettingsConfigDict(
        env_prefix="ULENS_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance with loaded configuration
    """
    return Settings()


def reset_settings_cache() -> None:
    """Drop the cached Settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
