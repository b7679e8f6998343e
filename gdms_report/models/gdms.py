"""
Typed views over GDMS vendor payloads.

Vendor rows are loosely typed: integers arrive as strings, text fields are
missing or null. Fields therefore decode softly (unparsable integers become
``None``) and unknown fields are kept as extras so exported rows still carry
everything the vendor sent.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

from gdms_report.utils.coerce import as_int


def _soft_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _soft_list(value: Any) -> Any:
    return [] if value is None else value


SoftInt = Annotated[Optional[int], BeforeValidator(as_int)]
SoftStr = Annotated[Optional[str], BeforeValidator(_soft_str)]


class VendorModel(BaseModel):
    """Base for vendor rows: keep unknown keys, accept either alias or field name."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_vendor_dict(self) -> dict[str, Any]:
        """Dump using the vendor's camelCase keys, extras included."""
        return self.model_dump(by_alias=True)


class Organization(VendorModel):
    id: SoftInt = None
    name: SoftStr = Field(None, alias="organization")


class SipAccountInfo(VendorModel):
    """One SIP line as reported by the device status endpoint."""

    sip_user_id: SoftStr = Field(None, alias="sipUserId")
    account: SoftInt = Field(None, description="Line slot on the device (1 or 2).")
    account_status: SoftInt = Field(None, alias="accountStatus")
    sip_server: SoftStr = Field(None, alias="sipServer")


class Device(VendorModel):
    mac: SoftStr = None
    sn: SoftStr = None
    device_name: SoftStr = Field(None, alias="deviceName")
    site_name: SoftStr = Field(None, alias="siteName")
    device_type: SoftStr = Field(None, alias="deviceType")
    firmware_version: SoftStr = Field(None, alias="firmwareVersion")
    status: SoftInt = Field(None, description="0 offline, 1 online, other abnormal.")
    is_synchronized: SoftInt = Field(
        None,
        alias="isSynchronized",
        validation_alias=AliasChoices("isSynchronized", "is_synchronized"),
    )
    last_time: SoftStr = Field(None, alias="lastTime")
    org_id: SoftInt = Field(None, alias="orgId")
    org_name: SoftStr = Field(None, alias="orgName")

    @property
    def normalized_mac(self) -> str:
        return (self.mac or "").strip()

    def tagged(self, org_id: Optional[int], org_name: Optional[str]) -> "Device":
        """Copy of this device labelled with its owning organization."""
        return self.model_copy(update={"org_id": org_id, "org_name": org_name})


class DeviceAccountStatus(VendorModel):
    """``data`` block of ``/device/account/status``."""

    account_status: SoftInt = Field(None, alias="accountStatus")
    dnd: SoftInt = None
    sip_account_info_list: Annotated[List[SipAccountInfo], BeforeValidator(_soft_list)] = Field(
        default_factory=list, alias="sipAccountInfoList"
    )
    sync_failure_msg: SoftStr = Field(None, alias="syncFailureMsg")


class EnrichedDevice(Device):
    account_status: SoftInt = Field(None, alias="accountStatus")
    dnd: SoftInt = None
    sip_account_info_list: Annotated[List[SipAccountInfo], BeforeValidator(_soft_list)] = Field(
        default_factory=list, alias="sipAccountInfoList"
    )
    sync_failure_msg: SoftStr = Field(None, alias="syncFailureMsg")

    @classmethod
    def merge(
        cls,
        device: Device,
        status: DeviceAccountStatus,
        *,
        org_id: Optional[int],
        org_name: Optional[str],
    ) -> "EnrichedDevice":
        """Overlay the status lookup onto the device row."""
        payload = device.to_vendor_dict()
        payload.update(
            orgId=org_id,
            orgName=org_name,
            accountStatus=status.account_status,
            dnd=status.dnd,
            sipAccountInfoList=[info.to_vendor_dict() for info in status.sip_account_info_list],
            syncFailureMsg=status.sync_failure_msg,
        )
        return cls.model_validate(payload)


class FailedDevice(Device):
    error: str

    @classmethod
    def from_device(cls, device: Device, error: str) -> "FailedDevice":
        payload = device.to_vendor_dict()
        payload["error"] = error or "status lookup failed"
        return cls.model_validate(payload)


class StatusMeta(BaseModel):
    total: int = 0
    success: int = 0
    failures: int = 0


class StatusPayload(BaseModel):
    """Result of one status enrichment run."""

    success: List[EnrichedDevice] = Field(default_factory=list)
    failures: List[FailedDevice] = Field(default_factory=list)
    meta: StatusMeta = Field(default_factory=StatusMeta)

    @classmethod
    def build(cls, success: List[EnrichedDevice], failures: List[FailedDevice]) -> "StatusPayload":
        return cls(
            success=success,
            failures=failures,
            meta=StatusMeta(
                total=len(success) + len(failures),
                success=len(success),
                failures=len(failures),
            ),
        )

    def success_by_mac(self) -> dict[str, EnrichedDevice]:
        return {device.normalized_mac: device for device in self.success if device.normalized_mac}

    def to_vendor_dict(self) -> dict[str, Any]:
        return {
            "success": [device.to_vendor_dict() for device in self.success],
            "failures": [device.to_vendor_dict() for device in self.failures],
            "meta": self.meta.model_dump(),
        }


class SipAccount(VendorModel):
    """Row of ``/sip/account/list``."""

    id: SoftInt = None
    org_id: SoftInt = Field(None, alias="orgId")
    sip_user_id: SoftStr = Field(None, alias="sipUserId")
    account_name: SoftStr = Field(None, alias="accountName")
    display_name: SoftStr = Field(None, alias="displayName")
    server_name: SoftStr = Field(None, alias="serverName")
    sip_server: SoftStr = Field(None, alias="sipServer")
    status: SoftStr = None
    modify_time: SoftStr = Field(None, alias="modifyTime")
    source: SoftStr = None
    extension_email: SoftStr = Field(None, alias="extensionEmail")
    org_name: SoftStr = Field(None, alias="orgName")


__all__ = [
    "Device",
    "DeviceAccountStatus",
    "EnrichedDevice",
    "FailedDevice",
    "Organization",
    "SipAccount",
    "SipAccountInfo",
    "StatusMeta",
    "StatusPayload",
]
