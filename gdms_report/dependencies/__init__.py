"""Expose dependency helpers for FastAPI routers."""

from .clients import get_gdms_client, get_report_service, get_status_enrichment_service
from .config import (
    get_app_settings,
    get_gdms_settings,
    get_report_settings,
)

__all__ = [
    "get_app_settings",
    "get_gdms_client",
    "get_gdms_settings",
    "get_report_service",
    "get_report_settings",
    "get_status_enrichment_service",
]
