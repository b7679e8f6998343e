"""
Multi-organization export.

Lists every organization, narrows them down by name, then fetches devices,
status and SIP accounts for the selection and writes each stage to a JSON
file in the output directory:

- ``orgs.json``
- ``devices_by_org.selected.json``
- ``status_by_org.all_devices.json``
- ``sip_accounts_by_org.selected.json``
- ``sip_accounts_with_devices.json``

Every intermediate result is returned to the caller; nothing is kept on the
workflow between runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

from gdms_report.clients.gdms_api import GdmsApiClient
from gdms_report.core.config import ReportSettings
from gdms_report.errors import GdmsError
from gdms_report.models.gdms import Device, Organization, SipAccount, StatusPayload
from gdms_report.schemas.report import SipAccountWithDevices
from gdms_report.services.reports import map_sip_accounts_to_devices
from gdms_report.services.status_enrichment import StatusEnrichmentService
from gdms_report.utils import json_codec

logger = logging.getLogger(__name__)

ORGS_FILE = "orgs.json"
DEVICES_FILE = "devices_by_org.selected.json"
STATUS_FILE = "status_by_org.all_devices.json"
SIP_ACCOUNTS_FILE = "sip_accounts_by_org.selected.json"
SIP_WITH_DEVICES_FILE = "sip_accounts_with_devices.json"


class OrganizationSelectionError(ValueError):
    """Raised when a name query is empty or matches no organization."""


def parse_org_query(raw_query: str | None) -> List[str]:
    """Split a comma-separated query into lower-cased, non-empty terms."""
    return [term.strip().lower() for term in (raw_query or "").split(",") if term.strip()]


def select_organizations(
    organizations: Sequence[Organization], raw_query: str | None
) -> List[Organization]:
    """
    Return organizations whose name contains any of the query terms.

    Matching is a case-insensitive substring test. Results keep the listing
    order and are de-duplicated by organization id.
    """
    terms = parse_org_query(raw_query)
    if not terms:
        raise OrganizationSelectionError("No organization names entered.")

    selected: List[Organization] = []
    seen_ids: set[str] = set()
    for org in organizations:
        name = (org.name or "").lower()
        if not any(term in name for term in terms):
            continue
        key = str(org.id)
        if key in seen_ids:
            continue
        seen_ids.add(key)
        selected.append(Organization(id=org.id, name=org.name or ""))

    if not selected:
        raise OrganizationSelectionError(
            "No organizations matched your input. Please try again with a different name."
        )
    return selected


@dataclass
class ExportResult:
    """Everything one export run produced, in workflow order."""

    organizations: List[Organization]
    selected: List[Organization]
    devices: List[Device]
    status_payload: StatusPayload
    sip_accounts: List[SipAccount]
    sip_accounts_with_devices: List[SipAccountWithDevices]
    files: Dict[str, Path] = field(default_factory=dict)


class OrgExportWorkflow:
    """Run the organization export against one client and write its JSON files."""

    def __init__(
        self,
        client: GdmsApiClient,
        enrichment: StatusEnrichmentService,
        output_dir: Path | str = ".",
        settings: ReportSettings | None = None,
    ) -> None:
        self._client = client
        self._enrichment = enrichment
        self._output_dir = Path(output_dir)
        self._settings = settings or ReportSettings()

    def _write(self, filename: str, data: Any) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        path = self._output_dir / filename
        path.write_text(json_codec.pretty(data) + "\n", encoding="utf-8")
        logger.info("Saved %s", path)
        return path

    async def export_organizations(self) -> List[Organization]:
        """Fetch all organizations and write ``orgs.json``."""
        orgs = await self._client.list_organizations(self._settings.org_page_size)
        self._write(ORGS_FILE, {"data": [org.to_vendor_dict() for org in orgs]})
        logger.info("Organizations fetched: %s", len(orgs))
        return orgs

    async def fetch_devices(self, selected: Sequence[Organization]) -> List[Device]:
        """Fetch and tag the devices of each selected org; failing orgs are skipped."""
        devices: List[Device] = []
        for org in selected:
            try:
                org_devices = await self._client.list_devices(org.id, self._settings.device_page_size)
            except GdmsError as exc:
                logger.error("Org %s (%s): device list error: %s", org.id, org.name, exc)
                continue
            devices.extend(device.tagged(org.id, org.name) for device in org_devices)
            logger.info("Org %s (%s): devices=%s", org.id, org.name, len(org_devices))
        self._write(DEVICES_FILE, {"data": [device.to_vendor_dict() for device in devices]})
        return devices

    async def fetch_status(
        self, devices: Sequence[Device], selected: Sequence[Organization]
    ) -> StatusPayload:
        payload = await self._enrichment.enrich(devices, selected)
        self._write(STATUS_FILE, payload.to_vendor_dict())
        return payload

    async def fetch_sip_accounts(self, selected: Sequence[Organization]) -> List[SipAccount]:
        """Fetch the SIP accounts of each selected org, labelled with the org name."""
        accounts: List[SipAccount] = []
        for org in selected:
            try:
                org_accounts = await self._client.list_sip_accounts(
                    org.id, self._settings.sip_page_size
                )
            except GdmsError as exc:
                logger.error("Org %s (%s): SIP account list error: %s", org.id, org.name, exc)
                continue
            accounts.extend(
                account.model_copy(update={"org_name": org.name}) for account in org_accounts
            )
            logger.info("Org %s (%s): SIP accounts=%s", org.id, org.name, len(org_accounts))
        self._write(SIP_ACCOUNTS_FILE, {"data": [account.to_vendor_dict() for account in accounts]})
        return accounts

    def map_sip_accounts(
        self, payload: StatusPayload, accounts: Sequence[SipAccount]
    ) -> List[SipAccountWithDevices]:
        rows = map_sip_accounts_to_devices(payload, accounts)["data"]
        self._write(
            SIP_WITH_DEVICES_FILE,
            {"data": [row.model_dump(by_alias=True) for row in rows]},
        )
        return rows

    async def run_for(self, organizations: List[Organization], raw_query: str | None) -> ExportResult:
        """Run every stage after the organization listing for the orgs matching ``raw_query``."""
        selected = select_organizations(organizations, raw_query)
        for org in selected:
            logger.info("Matched organization %s: %s", org.id, org.name)

        devices = await self.fetch_devices(selected)
        payload = await self.fetch_status(devices, selected)
        accounts = await self.fetch_sip_accounts(selected)
        mapped = self.map_sip_accounts(payload, accounts)

        files = {
            name: self._output_dir / name
            for name in (ORGS_FILE, DEVICES_FILE, STATUS_FILE, SIP_ACCOUNTS_FILE, SIP_WITH_DEVICES_FILE)
        }
        return ExportResult(
            organizations=organizations,
            selected=selected,
            devices=devices,
            status_payload=payload,
            sip_accounts=accounts,
            sip_accounts_with_devices=mapped,
            files=files,
        )

    async def run(self, raw_query: str | None) -> ExportResult:
        organizations = await self.export_organizations()
        return await self.run_for(organizations, raw_query)


__all__ = [
    "DEVICES_FILE",
    "ExportResult",
    "ORGS_FILE",
    "OrgExportWorkflow",
    "OrganizationSelectionError",
    "SIP_ACCOUNTS_FILE",
    "SIP_WITH_DEVICES_FILE",
    "STATUS_FILE",
    "parse_org_query",
    "select_organizations",
]
