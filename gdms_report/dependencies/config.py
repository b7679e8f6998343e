"""
Configuration dependencies shared by the routers and the client factories.
"""

from functools import lru_cache

from gdms_report.core.config import AppSettings, GdmsSettings, ReportSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_gdms_settings() -> GdmsSettings:
    return get_app_settings().gdms


def get_report_settings() -> ReportSettings:
    """Paging and status fan-out settings for report generation."""
    return get_app_settings().report


__all__ = [
    "get_app_settings",
    "get_gdms_settings",
    "get_report_settings",
]
