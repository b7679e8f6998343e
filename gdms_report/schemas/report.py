"""
Display-ready report rows returned by the HTTP layer and the export workflow.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from gdms_report.utils.coerce import PLACEHOLDER


class ReportRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class OrgName(ReportRow):
    """Organization id and name only."""

    id: Optional[int] = Field(None, description="GDMS organization id.")
    organization: Optional[str] = Field(None, description="Organization display name.")


class DeviceReportRow(ReportRow):
    """One device of an organization, flattened with its first SIP line."""

    mac_address: str = Field(PLACEHOLDER, alias="macAddress")
    sn: str = PLACEHOLDER
    device_name: str = Field(PLACEHOLDER, alias="deviceName")
    site_name: str = Field(PLACEHOLDER, alias="siteName")
    device_model: str = Field(PLACEHOLDER, alias="deviceModel")
    firmware_version: str = Field(PLACEHOLDER, alias="firmwareVersion")
    status: int = Field(-1, description="0 offline, 1 online, -1 abnormal or unknown.")
    push_configuration: int = Field(0, alias="pushConfiguration")
    last_config_time: str = Field(PLACEHOLDER, alias="lastConfigTime")
    account1_user_id: Optional[str] = Field(None, alias="account1UserId")
    account1_sip_server: Optional[str] = Field(None, alias="account1SipServer")


class SipReportRow(ReportRow):
    """One SIP account with the MACs of the devices holding its two line slots."""

    account_name: str = Field(PLACEHOLDER, alias="accountName")
    display_name: str = Field(PLACEHOLDER, alias="displayName")
    sip_server: str = Field(PLACEHOLDER, alias="sipServer")
    sip_user_id: str = Field(PLACEHOLDER, alias="sipUserId")
    sip_account_active_status: str = Field("Abnormal", alias="sipAccountActiveStatus")
    mac1_address: str = Field(PLACEHOLDER, alias="MAC1 Address")
    mac2_address: str = Field(PLACEHOLDER, alias="MAC2 Address")


class SipAccountWithDevices(ReportRow):
    """SIP account row joined with every enriched device line registered to it."""

    id: Optional[int] = None
    org_id: Optional[str] = Field(None, alias="orgId")
    sip_user_id: Optional[str] = Field(None, alias="sipUserId")
    account_name: Optional[str] = Field(None, alias="accountName")
    display_name: Optional[str] = Field(None, alias="displayName")
    server_name: Optional[str] = Field(None, alias="serverName")
    sip_server: Optional[str] = Field(None, alias="sipServer")
    status: Optional[str] = None
    modify_time: Optional[str] = Field(None, alias="modifyTime")
    source: Optional[str] = None
    extension_email: Optional[str] = Field(None, alias="extensionEmail")
    org_name: Optional[str] = Field(None, alias="orgName")
    device_info_list: List[Dict[str, Any]] = Field(default_factory=list, alias="deviceInfoList")
    mac: str = PLACEHOLDER


__all__ = [
    "DeviceReportRow",
    "OrgName",
    "SipAccountWithDevices",
    "SipReportRow",
]
