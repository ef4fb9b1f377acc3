# servicehub/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).resolve().parents[2] / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    is_testing: bool = Field(default_factory=is_running_tests)

    # Persistence
    database_url: str = Field(
        default="sqlite:///./servicehub.db",
        description="SQLAlchemy URL for bookings, wallets and the event outbox",
    )
    sql_echo: bool = Field(default=False, description="Echo SQL statements to the log")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")

    # Money
    currency: str = Field(default="NGN", description="ISO currency of all minor-unit amounts")

    # Event outbox / notification delivery
    outbox_batch_size: int = Field(default=100, description="Max events delivered per drain")
    outbox_max_attempts: int = Field(
        default=5,
        description="Delivery attempts before an outbox event is marked FAILED",
    )
    outbox_retry_base_seconds: int = Field(
        default=30,
        description="Base delay for exponential backoff between delivery attempts",
    )
    dispatch_notifications_inline: bool = Field(
        default=True,
        description="Deliver outbox events right after the triggering transaction commits",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        if value is None:
            return "INFO"
        normalized = str(value).strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(sorted(_LOG_LEVELS))}")
        return normalized

    @field_validator("outbox_batch_size", "outbox_max_attempts", "outbox_retry_base_seconds")
    @classmethod
    def _require_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("outbox settings must be positive integers")
        return value

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        normalized = value.strip().upper()
        if len(normalized) != 3:
            raise ValueError("CURRENCY must be a 3-letter ISO code")
        return normalized

    def get_database_url(self) -> str:
        return self.database_url


settings = Settings()
