"""
Engine configuration.

Values come from the environment (prefix PAYMENTS_ENGINE_) and can be
overridden by command line flags.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMATS = ("text", "json")


class EngineSettings(BaseSettings):
    """Payments engine configuration"""

    # Processing
    batch_mode: bool = False  # Any hard error halts the whole run
    queue_capacity: int = 100  # Per-client queue size before the reader blocks

    # Logging
    log_level: str = "WARNING"
    log_format: str = "text"  # text or json

    model_config = SettingsConfigDict(env_prefix="PAYMENTS_ENGINE_")

    @field_validator("queue_capacity")
    @classmethod
    def _check_capacity(cls, value: int) -> int:
        if value < 1:
            raise ValueError("queue_capacity must be at least 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("log_format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
        return value


def get_settings() -> EngineSettings:
    """Build settings from the current environment."""
    return EngineSettings()
