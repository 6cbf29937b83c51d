"""Settings for the signaling relay service."""

import os
from enum import Enum
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""

    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):  # type: ignore[misc]
    """
    Main settings class.

    Every field can be overridden with an environment variable of the same
    name (case sensitive).
    """

    model_config = SettingsConfigDict(case_sensitive=True)

    # Environment configuration
    ENV: Environment = Environment.DEV

    # Signaling relay settings
    RELAY_HOST: str = "0.0.0.0"
    RELAY_PORT: int = 8765
    RELAY_PATH: str = "/ws"
    RELAY_HEARTBEAT_INTERVAL_SECONDS: float = 30.0
    RELAY_MAX_MESSAGE_SIZE: int = 1024 * 1024

    # Logging settings
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]
    LOG_LEVEL: str = "INFO"

    # Loki settings
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"

    def __init__(self, **kwargs: Any) -> None:
        """Initialize settings with environment-specific defaults."""
        super().__init__(**kwargs)
        self._apply_environment_defaults()

    def _apply_environment_defaults(self) -> None:
        """Apply environment-specific configuration defaults."""
        if os.getenv("LOG_LEVEL") is not None or "LOG_LEVEL" in (
            self.model_fields_set
        ):
            return

        if self.ENV == Environment.PRODUCTION:
            self.LOG_LEVEL = "WARNING"
        elif self.ENV == Environment.STAGING:
            self.LOG_LEVEL = "INFO"
        else:  # Environment.DEV
            self.LOG_LEVEL = "DEBUG"

    @property
    def ENVIRONMENT(self) -> str:
        """Environment name used as a logging tag."""
        return self.ENV.value


app_settings = Settings()
