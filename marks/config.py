# marks/config.py
"""
Centralized application configuration using pydantic-settings.

All settings are read from environment variables or .env file.
"""

import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Priority: environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    # --- Database ---
    DB_URL: str = Field(
        default="postgresql://localhost:5432/marks",
        description="PostgreSQL connection URL"
    )

    # --- Redis (change feed) ---
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL used for the bookmark change feed"
    )
    FEED_CHANNEL: str = Field(
        default="bookmarks_changes",
        description="Pub/sub channel carrying insert/delete events for all owners"
    )
    FEED_SUBSCRIBE_TIMEOUT: float = Field(
        default=10.0,
        description="Seconds to wait for the feed subscription acknowledgement"
    )

    # --- Server ---
    HOST: str = Field(
        default="127.0.0.1",
        description="Server bind host"
    )
    PORT: int = Field(
        default=8888,
        description="Server bind port"
    )
    SERVICE_NAME: str = Field(
        default="marks",
        description="Service name reported to tracing"
    )

    # --- HTTP gateway client ---
    API_BASE_URL: str = Field(
        default="http://127.0.0.1:8888",
        description="Base URL of the bookmarks REST API"
    )
    REQUEST_TIMEOUT: float = Field(
        default=10.0,
        description="Timeout in seconds for gateway requests"
    )

    # --- Debug / Logging ---
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v_upper

    @field_validator("FEED_SUBSCRIBE_TIMEOUT", "REQUEST_TIMEOUT")
    @classmethod
    def validate_positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be greater than zero")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings()


# --- Singleton instance for easy import ---
settings = get_settings()


# --- Module-level exports ---

# Database
DATABASE_URL: str = settings.DB_URL

# Server
HOST: str = settings.HOST
PORT: int = settings.PORT
DEBUG: bool = settings.DEBUG
LOG_LEVEL: str = settings.LOG_LEVEL
SERVICE_NAME: str = settings.SERVICE_NAME

# Redis / feed
REDIS_URL: str = settings.REDIS_URL
FEED_CHANNEL: str = settings.FEED_CHANNEL
FEED_SUBSCRIBE_TIMEOUT: float = settings.FEED_SUBSCRIBE_TIMEOUT

# --- Paths (computed, not from env) ---
PROJECT_ROOT: str = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
LOGS_PATH: str = os.path.join(PROJECT_ROOT, "logs")
