"""Service layer exports."""

from .org_export import (
    ExportResult,
    OrganizationSelectionError,
    OrgExportWorkflow,
    select_organizations,
)
from .reports import GdmsReportService, map_sip_accounts_to_devices
from .status_enrichment import StatusEnrichmentService

__all__ = [
    "ExportResult",
    "GdmsReportService",
    "OrgExportWorkflow",
    "OrganizationSelectionError",
    "StatusEnrichmentService",
    "map_sip_accounts_to_devices",
    "select_organizations",
]
