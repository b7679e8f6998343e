"""Domain models for GDMS payloads and token state."""

from .gdms import (
    Device,
    DeviceAccountStatus,
    EnrichedDevice,
    FailedDevice,
    Organization,
    SipAccount,
    SipAccountInfo,
    StatusMeta,
    StatusPayload,
)
from .token import Token

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
    "Token",
]
