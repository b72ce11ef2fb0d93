from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    database_path: str = "./data/epg_changes.db"
    storage_backend: Literal["sqlite", "memory", "none"] = "sqlite"
    local_timezone: str = "Europe/London"  # Day boundaries for analytics
    analytics_default_window_days: int = 30
    email_secondary_delay_ms: int = 500  # Delay before opening second mail window
    dashboard_recent_entries: int = 5
    dashboard_recent_links: int = 3
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("storage_backend", mode="before")
    @classmethod
    def normalize_storage_backend(cls, value):
        """Accept backend names in any case."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, value: str) -> str:
        """Validate database path is accessible."""
        path = Path(value)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access database path '{value}': {exc}") from exc

    @field_validator("local_timezone")
    @classmethod
    def validate_local_timezone(cls, value: str) -> str:
        """Validate timezone is a known IANA zone."""
        if value == "UTC":
            return value
        try:
            ZoneInfo(value)
            return value
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"Invalid timezone: {value}. Must be a valid IANA timezone (e.g., 'Europe/London') or 'UTC'"
            ) from exc

    @field_validator("analytics_default_window_days")
    @classmethod
    def validate_window_days(cls, value: int) -> int:
        """Validate analytics window is positive and reasonable."""
        if value < 1:
            raise ValueError("analytics_default_window_days must be >= 1")
        if value > 365:
            raise ValueError("analytics_default_window_days must be <= 365 days")
        return value

    @field_validator("email_secondary_delay_ms")
    @classmethod
    def validate_secondary_delay(cls, value: int) -> int:
        """Validate the secondary mail window delay (milliseconds)."""
        if value < 0:
            raise ValueError("email_secondary_delay_ms must be >= 0")
        return value

    @field_validator("dashboard_recent_entries", "dashboard_recent_links")
    @classmethod
    def validate_dashboard_limits(cls, value: int, info) -> int:
        """Ensure dashboard list sizes are positive integers."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_storage_configuration(self):
        """Validate cross-field configuration."""
        if self.storage_backend == "none":
            logger.warning(
                "No storage backend configured - records will not be persisted"
            )
        elif self.storage_backend == "memory":
            logger.warning(
                "In-memory storage backend configured - records are lost on restart"
            )

        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Storage Backend: %s", self.storage_backend)
        logger.info("  Database: %s", self.database_path)
        logger.info("  Local Timezone: %s", self.local_timezone)
        logger.info(
            "  Analytics Default Window: %s days", self.analytics_default_window_days
        )
        logger.info("  Secondary Mail Delay: %sms", self.email_secondary_delay_ms)
        logger.info(
            "  Dashboard: %s entries, %s links",
            self.dashboard_recent_entries,
            self.dashboard_recent_links,
        )


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
