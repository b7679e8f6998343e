"""Exceptions raised by the GDMS client stack."""

from __future__ import annotations

from typing import Any, Optional


class GdmsError(Exception):
    """Base class for every GDMS client failure."""


class TokenGrantError(GdmsError):
    """A single grant attempt (refresh or password) failed."""

    def __init__(self, grant_type: str, message: str) -> None:
        super().__init__(f"{grant_type} grant failed: {message}")
        self.grant_type = grant_type


class TokenGrantFailure(GdmsError):
    """No grant produced a usable access token."""


class TransportError(GdmsError):
    """The request never produced an HTTP response (timeout, refused, DNS)."""


class GdmsHttpError(GdmsError):
    """The vendor answered with an unexpected HTTP status."""

    def __init__(self, status_code: int, body: str = "", *, url: str | None = None) -> None:
        super().__init__(f"HTTP {status_code} {body}".rstrip())
        self.status_code = status_code
        self.body = body
        self.url = url


class AuthRetryExhausted(GdmsHttpError):
    """401/403 persisted after one forced token refresh."""


class VendorApiError(GdmsError):
    """The response envelope carried a non-zero ``retCode``."""

    def __init__(self, ret_code: Any, msg: Optional[str]) -> None:
        super().__init__(f"API error: {ret_code} - {msg}")
        self.ret_code = ret_code
        self.msg = msg


class MalformedVendorResponse(GdmsError):
    """The response body was not the envelope shape GDMS documents."""


__all__ = [
    "AuthRetryExhausted",
    "GdmsError",
    "GdmsHttpError",
    "MalformedVendorResponse",
    "TokenGrantError",
    "TokenGrantFailure",
    "TransportError",
    "VendorApiError",
]
