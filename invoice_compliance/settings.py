# ==== APPLICATION SETTINGS CONFIGURATION ==== #

"""
Settings for the invoice compliance core.

Centralized configuration using Pydantic Settings with environment variable
and `.env` loading. Business constants that callers may tune per deployment
live here; everything else is passed explicitly.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


# ==== MAIN SETTINGS CLASS ==== #


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Covers logging and the documented business defaults (fallback deadline
    day, default rejection reason, policy file location). OTLP export is
    configured through the standard OTEL_* variables read by tracing.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

    # --► CORE SETTINGS
    APP_ENV: str = "dev"
    SERVICE_NAME: str = "invoice-compliance"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILES: bool = False

    # --► BUSINESS DEFAULTS
    DEFAULT_DEADLINE_DAY: int = 5
    DEFAULT_REJECTION_REASON: str = "Not informed"
    POLICY_PATH: str | None = None


# ==== GLOBAL SETTINGS INSTANCE ==== #


settings = Settings()


def get_settings() -> Settings:
    """
    Get global settings instance.

    Returns:
        Settings: Global settings instance
    """
    return settings
