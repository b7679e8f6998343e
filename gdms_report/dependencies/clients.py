"""
Factory functions to provide the shared GDMS client and services as FastAPI dependencies.
"""

from functools import lru_cache

from gdms_report.clients import GdmsApiClient
from gdms_report.services import GdmsReportService, StatusEnrichmentService

from .config import get_gdms_settings, get_report_settings


@lru_cache()
def get_gdms_client() -> GdmsApiClient:
    """Create the process-wide GDMS client; its token state lives as long as the app."""
    return GdmsApiClient.from_settings(get_gdms_settings())


@lru_cache()
def get_status_enrichment_service() -> StatusEnrichmentService:
    report = get_report_settings()
    return StatusEnrichmentService(
        get_gdms_client(),
        pool_size=report.status_pool_size,
        batch_deadline_seconds=report.status_batch_deadline_seconds,
    )


def get_report_service() -> GdmsReportService:
    """Build a report service over the shared client."""
    return GdmsReportService(
        get_gdms_client(),
        get_status_enrichment_service(),
        get_report_settings(),
    )


__all__ = [
    "get_gdms_client",
    "get_report_service",
    "get_status_enrichment_service",
]
