"""OrbitCore configuration management."""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from orbitcore.models.enums import AuditFrequency


class Settings(BaseSettings):
    """OrbitCore configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="ORBITCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # General
    log_level: str = "INFO"

    # Accounts
    default_audit_frequency: AuditFrequency = Field(
        default=AuditFrequency.MONTHLY,
        description="Audit frequency assigned when account.created carries none",
    )

    # External calendar reconciliation
    external_provider: str = Field(
        default="expo-calendar", description="Only provider accepted on external link events"
    )
    timestamp_epsilon_ms: int = Field(
        default=1000, description="Start-time drift tolerated before a reschedule is emitted"
    )
    import_window_past_days: int = Field(default=60, description="Import scan look-back")
    import_window_future_days: int = Field(default=180, description="Import scan look-ahead")

    # Recurrence expansion
    max_recurrence_occurrences: int = Field(
        default=5000,
        description="Hard stop on occurrences returned per expansion window",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level against the logging module's names."""
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator(
        "timestamp_epsilon_ms",
        "import_window_past_days",
        "import_window_future_days",
        "max_recurrence_occurrences",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate numeric limits are positive."""
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for applications embedding the engine."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
