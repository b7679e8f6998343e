"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the export script and the
GDMS client share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GdmsSettings(BaseSettings):
    """Connection and credential settings for the GDMS cloud API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    domain: str = Field("www.gdms.cloud", validation_alias="GDMS_DOMAIN")
    username: str = Field(..., validation_alias="GDMS_USERNAME")
    password: SecretStr = Field(
        ...,
        validation_alias="GDMS_PASSWORD",
        description="Plain password; hashed once when credentials are built.",
    )
    client_id: str = Field(..., validation_alias="GDMS_CLIENT_ID")
    client_secret: SecretStr = Field(..., validation_alias="GDMS_CLIENT_SECRET")
    scope: Optional[str] = Field(None, validation_alias="GDMS_SCOPE")
    expiry_skew_seconds: int = Field(
        120,
        validation_alias="GDMS_EXPIRY_SKEW_SECONDS",
        description="Refresh this many seconds before expiry. Floored at 10.",
    )
    timeout_seconds: float = Field(20.0, validation_alias="GDMS_TIMEOUT_SECONDS")
    connect_timeout_seconds: float = Field(
        20.0, validation_alias="GDMS_CONNECT_TIMEOUT_SECONDS"
    )
    refresh_loop_enabled: bool = Field(True, validation_alias="GDMS_REFRESH_LOOP_ENABLED")
    refresh_min_sleep_seconds: int = Field(20, validation_alias="GDMS_REFRESH_MIN_SLEEP")
    refresh_max_sleep_seconds: int = Field(120, validation_alias="GDMS_REFRESH_MAX_SLEEP")
    debug: bool = Field(
        False,
        validation_alias="GDMS_DEBUG",
        description="Log raw token endpoint responses at DEBUG level.",
    )

    @model_validator(mode="after")
    def _check_sleep_bounds(self) -> "GdmsSettings":
        if self.refresh_max_sleep_seconds < self.refresh_min_sleep_seconds:
            raise ValueError("GDMS_REFRESH_MAX_SLEEP must be >= GDMS_REFRESH_MIN_SLEEP")
        return self


class ReportSettings(BaseSettings):
    """Paging and fan-out tuning for report generation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    org_page_size: int = Field(1000, validation_alias="GDMS_ORG_PAGE_SIZE")
    device_page_size: int = Field(5000, validation_alias="GDMS_DEVICE_PAGE_SIZE")
    sip_page_size: int = Field(5000, validation_alias="GDMS_SIP_PAGE_SIZE")
    status_pool_size: int = Field(20, validation_alias="GDMS_STATUS_POOL_SIZE")
    status_batch_deadline_seconds: Optional[float] = Field(
        None,
        validation_alias="GDMS_STATUS_BATCH_DEADLINE",
        description=(
            "Optional overall deadline for one status enrichment run. "
            "Unset means the run waits for every lookup."
        ),
    )

    @field_validator(
        "org_page_size", "device_page_size", "sip_page_size", "status_pool_size"
    )
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    gdms: GdmsSettings = Field(default_factory=GdmsSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GdmsSettings",
    "ReportSettings",
    "get_settings",
]
