# backend/clubhouse/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Persistence
    database_url: str = Field(
        default="sqlite:///./clubhouse.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL of the shared persistence layer",
    )
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=5, alias="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=5, alias="DB_POOL_TIMEOUT")
    db_retry_attempts: int = Field(default=3, alias="DB_RETRY_ATTEMPTS", ge=1)

    # Club policy
    club_timezone: str = Field(
        default="Europe/Madrid",
        alias="CLUB_TIMEZONE",
        description="Wall-clock timezone used for class start times and the booking window",
    )
    default_monthly_classes: int = Field(
        default=12,
        alias="DEFAULT_MONTHLY_CLASSES",
        ge=0,
        description="Monthly class allowance given to a member on first access of a month",
    )
    cancellation_cutoff_minutes: int = Field(
        default=60,
        alias="CANCELLATION_CUTOFF_MINUTES",
        ge=0,
        description="Self-service cancellation is refused inside this many minutes of class start",
    )
    weekly_release_weekday: int = Field(
        default=6,
        alias="WEEKLY_RELEASE_WEEKDAY",
        ge=0,
        le=6,
        description="Weekday (0=Monday) on which the following week opens for booking",
    )

    notifications_enabled: bool = Field(default=True, alias="NOTIFICATIONS_ENABLED")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("club_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
