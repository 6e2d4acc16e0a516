"""Runtime settings for cotasks."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from cotasks.utilities.logging import LogLevel


class TaskSettings(BaseSettings):
    """cotasks settings.

    All settings can be configured via environment variables with the prefix COTASKS_.
    For example, COTASKS_LOG_TRANSITIONS=true will set log_transitions=True.
    """

    model_config = SettingsConfigDict(
        env_prefix="COTASKS_",
        env_file=".env",
        extra="ignore",
    )

    log_level: LogLevel = "INFO"
    """Level used by ``configure_logging()`` when no explicit level is given."""

    log_transitions: bool = False
    """Log every task state transition at DEBUG level."""

    race_cancellation_reason: str = "race already settled"
    """Reason passed to a race's cancellation token once a winner is adopted."""


@lru_cache
def get_settings() -> TaskSettings:
    """Return the process-wide settings, loaded on first use."""
    return TaskSettings()
