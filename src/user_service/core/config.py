"""
Centralized application configuration management.
Loads settings from environment variables and .env files.
"""
import os
import tomllib
from typing import List, Literal, Optional
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_version() -> str:
    """
    Get the service version from pyproject.toml.
    Falls back to environment variable SERVICE_VERSION if pyproject.toml is not found.
    """
    env_version = os.getenv("SERVICE_VERSION")
    if env_version:
        return env_version

    # src/user_service/core/config.py -> project root
    project_root = Path(__file__).parent.parent.parent.parent
    pyproject_path = project_root / "pyproject.toml"

    try:
        with open(pyproject_path, "rb") as f:
            pyproject_data = tomllib.load(f)
            return pyproject_data.get("project", {}).get("version", "0.0.0")
    except (FileNotFoundError, KeyError, tomllib.TOMLDecodeError):
        return "0.0.0"


class Settings(BaseSettings):
    """
    Defines the application's configuration settings.
    Pydantic automatically reads these from environment variables.
    For local development, create a .env file.

    IMPORTANT: Defaults are optimized for LOCAL DEVELOPMENT.
    Production deployments MUST set environment variables explicitly.
    """
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # --- Service Settings ---
    SERVICE_NAME: str = "user-service"
    SERVICE_VERSION: str = get_version()
    API_PREFIX: str = "/api"

    # --- Environment ---
    IS_PROD: bool = False
    IS_LOCAL_TESTING: bool = True

    # --- Database Settings ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./users.db"
    SYNC_DATABASE_URL: str = "sqlite:///./users.db"  # For Alembic migrations

    # --- Event Bus Settings ---
    EVENT_ADAPTER: Literal["nats", "memory"] = "nats"
    NATS_URL: str = "nats://localhost:4222"
    NATS_RECONNECT_TIME_WAIT: int = 2  # seconds
    NATS_MAX_RECONNECT_ATTEMPTS: int = -1  # -1 = infinite
    USER_EVENTS_TOPIC: str = "user-service.user-events"

    # --- Change Feed Relay Settings ---
    RELAY_ENABLED: bool = True
    # Seconds to wait between polls when the change journal has no new rows
    CHANGE_FEED_POLL_INTERVAL: float = 0.5
    CHANGE_FEED_BATCH_SIZE: int = 100
    # Set to false to emulate a store without pre-image retention
    CHANGE_FEED_PRE_IMAGES: bool = True
    RELAY_SHUTDOWN_TIMEOUT: float = 10.0

    # --- CORS Settings ---
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]


def check_required_settings(required: List[str]) -> None:
    """
    Verify that required settings are configured.
    Raises ValueError if any required setting is missing.
    """
    for setting_name in required:
        value: Optional[object] = getattr(settings, setting_name, None)
        if value is None or value == "":
            raise ValueError(
                f"Required setting '{setting_name}' is not configured. "
                f"Please set the {setting_name} environment variable."
            )


# Global settings instance
settings = Settings()
