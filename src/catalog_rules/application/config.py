"""Engine configuration loaded from environment-style settings."""

import os
from enum import Enum
from typing import Mapping, Optional

LOG_FORMATS = ("json", "console")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Environment(Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class EngineConfig:
    """Configuration for the rule engine and its composition root."""

    def __init__(self, settings: Optional[Mapping[str, str]] = None):
        """Initialize configuration from a settings mapping (defaults to os.environ)."""
        self.settings = settings if settings is not None else os.environ
        self._load_config()

    def _load_config(self) -> None:
        get = self.settings.get

        self.ENVIRONMENT = Environment(get("ENVIRONMENT", "development").lower())

        # Logging
        self.LOG_LEVEL = get("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = get("LOG_FORMAT", "json").lower()

        # Evaluation
        self.RULES_STRICT_MODE = _flag(get("RULES_STRICT_MODE", "false"))
        self.WORKFLOW_MAX_WORKERS = int(get("WORKFLOW_MAX_WORKERS", "1"))

        # Outbound API actions
        self.TRIGGER_API_TIMEOUT_SECONDS = float(get("TRIGGER_API_TIMEOUT_SECONDS", "10"))

        # Persistence; unset means in-memory repositories
        self.DATABASE_URL = get("DATABASE_URL") or None

    @property
    def json_logs(self) -> bool:
        return self.LOG_FORMAT == "json"

    def validate(self) -> None:
        """Validate configuration values."""
        if self.LOG_LEVEL not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        if self.LOG_FORMAT not in LOG_FORMATS:
            raise ValueError("LOG_FORMAT must be json or console")

        if self.WORKFLOW_MAX_WORKERS < 1:
            raise ValueError("WORKFLOW_MAX_WORKERS must be at least 1")

        if self.TRIGGER_API_TIMEOUT_SECONDS <= 0:
            raise ValueError("TRIGGER_API_TIMEOUT_SECONDS must be positive")

        if self.ENVIRONMENT == Environment.PRODUCTION and self.DATABASE_URL is None:
            raise ValueError("DATABASE_URL must be set in production")


def load_config(settings: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    Load and validate configuration.

    Args:
        settings: Settings mapping. Defaults to the process environment.

    Returns:
        Validated configuration

    Raises:
        ValueError: If a setting is malformed or inconsistent
    """
    config = EngineConfig(settings)
    config.validate()
    return config
