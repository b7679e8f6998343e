"""Expose constructed client wrappers."""

from gdms_report.errors import (
    AuthRetryExhausted,
    GdmsError,
    GdmsHttpError,
    MalformedVendorResponse,
    TokenGrantError,
    TokenGrantFailure,
    TransportError,
    VendorApiError,
)
from .gdms_api import GdmsApiClient
from .gdms_auth import GdmsTokenManager
from .gdms_signing import RequestSigner

__all__ = [
    "AuthRetryExhausted",
    "GdmsApiClient",
    "GdmsError",
    "GdmsHttpError",
    "GdmsTokenManager",
    "MalformedVendorResponse",
    "RequestSigner",
    "TokenGrantError",
    "TokenGrantFailure",
    "TransportError",
    "VendorApiError",
]
