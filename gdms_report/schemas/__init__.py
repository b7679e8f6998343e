"""Public schema exports."""

from .report import DeviceReportRow, OrgName, SipAccountWithDevices, SipReportRow

__all__ = [
    "DeviceReportRow",
    "OrgName",
    "SipAccountWithDevices",
    "SipReportRow",
]
