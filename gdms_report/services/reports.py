"""
Report shaping over the GDMS client.

Each report call fetches fresh data: organization rows, the devices of one
organization enriched with their account status, and the SIP accounts of one
organization joined against the devices that carry their lines.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence

from gdms_report.clients.gdms_api import GdmsApiClient
from gdms_report.core.config import ReportSettings
from gdms_report.models.gdms import (
    Device,
    EnrichedDevice,
    Organization,
    SipAccount,
    StatusPayload,
)
from gdms_report.schemas.report import (
    DeviceReportRow,
    OrgName,
    SipAccountWithDevices,
    SipReportRow,
)
from gdms_report.services.status_enrichment import StatusEnrichmentService
from gdms_report.utils.coerce import (
    PLACEHOLDER,
    as_int,
    coalesce_int,
    display_text,
    normalize_mac,
    normalize_status,
)

logger = logging.getLogger(__name__)

UNNAMED_ORG = "N/A"


def _sip_key(sip_user_id: Any, org_id: Any) -> str:
    return f"{'null' if sip_user_id is None else sip_user_id}_{'null' if org_id is None else org_id}"


def map_sip_accounts_to_devices(
    payload: StatusPayload, sip_accounts: Sequence[SipAccount]
) -> Dict[str, List[SipAccountWithDevices]]:
    """
    Attach every enriched device line to the SIP account it registers.

    Lines and accounts are matched on ``sipUserId`` within the same
    organization. Each ``deviceInfoList`` entry is the device row overlaid
    with the matching ``sipAccountInfoList`` entry. ``mac`` repeats the MAC of
    the first attached device, or the placeholder when none is attached.
    """
    lines_by_key: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for device in payload.success:
        device_row = device.to_vendor_dict()
        for info in device.sip_account_info_list:
            line = dict(device_row)
            line.update(info.to_vendor_dict())
            lines_by_key[_sip_key(info.sip_user_id, device.org_id)].append(line)

    rows: List[SipAccountWithDevices] = []
    for account in sip_accounts:
        org_id = None if account.org_id is None else str(account.org_id)
        device_lines = lines_by_key.get(_sip_key(account.sip_user_id, account.org_id), [])
        first_mac = device_lines[0].get("mac") if device_lines else None
        rows.append(
            SipAccountWithDevices(
                id=account.id,
                org_id=org_id,
                sip_user_id=account.sip_user_id,
                account_name=account.account_name,
                display_name=account.display_name,
                server_name=account.server_name,
                sip_server=account.sip_server,
                status=account.status,
                modify_time=account.modify_time,
                source=account.source,
                extension_email=account.extension_email,
                org_name=account.org_name,
                device_info_list=device_lines,
                mac=str(first_mac) if first_mac is not None else PLACEHOLDER,
            )
        )
    return {"data": rows}


def build_device_row(device: Device, enriched: Optional[EnrichedDevice]) -> DeviceReportRow:
    status = device.status
    if status is None and enriched is not None:
        status = enriched.account_status
    extras = device.model_extra or {}
    push = coalesce_int(device.is_synchronized, extras.get("is_synchronized"))

    row = DeviceReportRow(
        mac_address=display_text(device.mac),
        sn=display_text(device.sn),
        device_name=display_text(device.device_name),
        site_name=display_text(device.site_name),
        device_model=display_text(device.device_type),
        firmware_version=display_text(device.firmware_version),
        status=status if status is not None else -1,
        push_configuration=push if push is not None else 0,
        last_config_time=display_text(device.last_time),
    )
    if enriched is not None and enriched.sip_account_info_list:
        first_line = enriched.sip_account_info_list[0]
        row.account1_user_id = display_text(first_line.sip_user_id)
        row.account1_sip_server = display_text(first_line.sip_server)
    return row


def build_sip_row(account: SipAccount, lines: Sequence[Dict[str, Any]]) -> SipReportRow:
    row = SipReportRow(
        account_name=display_text(account.account_name),
        display_name=display_text(account.display_name),
        sip_server=display_text(account.sip_server),
        sip_user_id=display_text(account.sip_user_id),
        sip_account_active_status=normalize_status(account.status),
    )
    for line in lines:
        slot = as_int(line.get("account"))
        if slot == 1:
            row.mac1_address = normalize_mac(line.get("mac"))
        elif slot == 2:
            row.mac2_address = normalize_mac(line.get("mac"))
    return row


class GdmsReportService:
    """Build organization, device and SIP reports from live GDMS data."""

    def __init__(
        self,
        client: GdmsApiClient,
        enrichment: StatusEnrichmentService,
        settings: ReportSettings | None = None,
    ) -> None:
        self._client = client
        self._enrichment = enrichment
        self._settings = settings or ReportSettings()

    async def get_org_names(self) -> List[OrgName]:
        orgs = await self._client.list_organizations(self._settings.org_page_size)
        return [OrgName(id=org.id, organization=org.name) for org in orgs]

    async def _enriched_devices(self, org_id: int) -> tuple[List[Device], StatusPayload]:
        devices = await self._client.list_devices(org_id, self._settings.device_page_size)
        org = Organization(id=org_id, name=UNNAMED_ORG)
        tagged = [device.tagged(org.id, org.name) for device in devices]
        payload = await self._enrichment.enrich(tagged, [org])
        return tagged, payload

    async def get_device_report(self, org_id: int) -> List[DeviceReportRow]:
        """One row per device of ``org_id``; devices whose lookup failed keep soft defaults."""
        devices, payload = await self._enriched_devices(org_id)
        by_mac = payload.success_by_mac()
        rows = [build_device_row(device, by_mac.get(device.normalized_mac)) for device in devices]
        logger.info(
            "Device report for org %s: %s row(s), %s status failure(s)",
            org_id,
            len(rows),
            payload.meta.failures,
        )
        return rows

    async def get_sip_report(self, org_id: int) -> List[SipReportRow]:
        """One row per SIP account of ``org_id`` with the MACs holding line 1 and line 2."""
        accounts = await self._client.list_sip_accounts(org_id, self._settings.sip_page_size)
        _, payload = await self._enriched_devices(org_id)

        lines_by_user: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for device in payload.success:
            for info in device.sip_account_info_list:
                sip_user_id = display_text(info.sip_user_id)
                if sip_user_id == PLACEHOLDER:
                    continue
                lines_by_user[sip_user_id].append(
                    {"account": info.account, "mac": device.mac, "status": info.account_status}
                )

        rows = [
            build_sip_row(account, lines_by_user.get(display_text(account.sip_user_id), []))
            for account in accounts
        ]
        logger.info("SIP report for org %s: %s row(s)", org_id, len(rows))
        return rows

    @staticmethod
    def map_sip_accounts_to_devices(
        payload: StatusPayload, sip_accounts: Sequence[SipAccount]
    ) -> Dict[str, List[SipAccountWithDevices]]:
        return map_sip_accounts_to_devices(payload, sip_accounts)


__all__ = [
    "GdmsReportService",
    "build_device_row",
    "build_sip_row",
    "map_sip_accounts_to_devices",
]
