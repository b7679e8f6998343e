"""
GDMS resource client.

Wraps signed calls, envelope validation and page walking for the
organization, device, device-status and SIP-account endpoints.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import ValidationError

from gdms_report.clients.gdms_auth import GdmsTokenManager
from gdms_report.clients.gdms_signing import RequestSigner, normalize_body
from gdms_report.core.clock import Clock, SystemClock
from gdms_report.core.config import GdmsSettings
from gdms_report.core.credentials import GdmsCredentials
from gdms_report.errors import (
    GdmsHttpError,
    MalformedVendorResponse,
    TransportError,
    VendorApiError,
)
from gdms_report.models.gdms import (
    Device,
    DeviceAccountStatus,
    Organization,
    SipAccount,
    VendorModel,
)
from gdms_report.utils import json_codec
from gdms_report.utils.coerce import as_int
from gdms_report.utils.http import send_with_auth_retry, truncate

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=VendorModel)
Envelope = Dict[str, Any]


def _page_items(envelope: Envelope) -> tuple[List[Dict[str, Any]], int]:
    """Return ``data.result`` and ``data.pages`` (default 1) from an envelope."""
    data = envelope.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedVendorResponse(f"Expected object for 'data', got {type(data).__name__}")
    result = data.get("result")
    if result is None:
        result = []
    if not isinstance(result, list) or not all(isinstance(row, dict) for row in result):
        raise MalformedVendorResponse("Expected a list of objects for 'data.result'")
    pages = as_int(data.get("pages"))
    return list(result), pages if pages is not None else 1


def _to_models(model: Type[ModelT], rows: List[Dict[str, Any]]) -> List[ModelT]:
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as exc:
        raise MalformedVendorResponse(f"Unexpected {model.__name__} row: {exc}") from exc


class GdmsApiClient:
    """Signed access to the GDMS open API for one set of credentials."""

    API_VERSION = "v1.0.0"

    def __init__(
        self,
        credentials: GdmsCredentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        token_manager: GdmsTokenManager | None = None,
        clock: Clock | None = None,
        timeout_seconds: float = 20.0,
        connect_timeout_seconds: float = 20.0,
        expiry_skew_seconds: int = 120,
        debug: bool = False,
    ) -> None:
        self._credentials = credentials
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
            follow_redirects=True,
        )
        self._clock = clock or SystemClock()
        self._tokens = token_manager or GdmsTokenManager(
            credentials,
            http_client=self._http,
            clock=self._clock,
            expiry_skew_seconds=expiry_skew_seconds,
            debug=debug,
        )
        self._signer = RequestSigner(credentials.client_id, credentials.client_secret)

    @classmethod
    def from_settings(cls, settings: GdmsSettings, **kwargs: Any) -> "GdmsApiClient":
        return cls(
            GdmsCredentials.from_settings(settings),
            timeout_seconds=settings.timeout_seconds,
            connect_timeout_seconds=settings.connect_timeout_seconds,
            expiry_skew_seconds=settings.expiry_skew_seconds,
            debug=settings.debug,
            **kwargs,
        )

    @property
    def tokens(self) -> GdmsTokenManager:
        return self._tokens

    def api_url(self, path: str) -> str:
        return f"{self._credentials.base_url}/oapi/{self.API_VERSION}/{path.lstrip('/')}"

    async def aclose(self) -> None:
        await self._tokens.stop_refresh_loop()
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "GdmsApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ---- signed calls ----

    async def signed_request(self, method: str, url: str, body: Any = None) -> Envelope:
        """
        Sign and send one request, returning the decoded envelope.

        A 401/403 triggers one forced token refresh and one re-signed retry.
        """
        method = method.upper()
        raw_body = normalize_body(body).raw if body is not None else None

        async def _send(access_token: str) -> httpx.Response:
            timestamp_ms = self._clock.now_ms()
            signed_url, _ = self._signer.signed_url(url, access_token, timestamp_ms, body)
            headers = {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": self._tokens.header_for(access_token),
            }
            try:
                return await self._http.request(
                    method, signed_url, content=raw_body, headers=headers
                )
            except httpx.DecodingError as exc:
                raise MalformedVendorResponse(f"Undecodable response from {url}: {exc}") from exc
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {url} failed: {exc!r}") from exc

        response = await send_with_auth_retry(
            _send,
            get_token=self._tokens.ensure_token,
            refresh_token=self._tokens.force_refresh,
        )
        return self._decode_envelope(response, url)

    async def signed_get(self, url: str) -> Envelope:
        return await self.signed_request("GET", url)

    async def signed_post(self, url: str, body: Dict[str, Any]) -> Envelope:
        return await self.signed_request("POST", url, body)

    @staticmethod
    def _decode_envelope(response: httpx.Response, url: str) -> Envelope:
        if response.status_code != 200:
            raise GdmsHttpError(response.status_code, truncate(response.text), url=url)
        try:
            parsed = json_codec.parse(response.content)
        except json_codec.MalformedJson as exc:
            raise MalformedVendorResponse(
                f"Invalid JSON from {url}: {exc}; body={truncate(response.text)}"
            ) from exc
        if not isinstance(parsed, dict):
            raise MalformedVendorResponse(f"Non-object JSON from {url}: {truncate(response.text)}")
        ret_code = parsed.get("retCode")
        if as_int(ret_code) != 0:
            raise VendorApiError(ret_code, parsed.get("msg"))
        return parsed

    # ---- pagination ----

    async def fetch_all_pages(
        self,
        fetch_page: Callable[[int], Awaitable[Envelope]],
        *,
        resource: str,
    ) -> List[Dict[str, Any]]:
        """Request page 1, read ``data.pages``, then pages 2..N in order."""
        items, pages = _page_items(await fetch_page(1))
        logger.debug("Fetched %s page 1/%s (%s rows)", resource, pages, len(items))
        for page_num in range(2, pages + 1):
            page_items, _ = _page_items(await fetch_page(page_num))
            items.extend(page_items)
            logger.debug("Fetched %s page %s/%s (%s rows)", resource, page_num, pages, len(page_items))
        logger.info("Fetched %s %s rows across %s page(s)", len(items), resource, pages)
        return items

    async def list_organizations(self, page_size: int = 1000) -> List[Organization]:
        url = self.api_url("org/list")

        async def _page(page_num: int) -> Envelope:
            return await self.signed_get(f"{url}?pageSize={page_size}&pageNum={page_num}")

        rows = await self.fetch_all_pages(_page, resource="organizations")
        return _to_models(Organization, rows)

    async def list_devices(self, org_id: int, page_size: int = 1000) -> List[Device]:
        url = self.api_url("device/list")

        async def _page(page_num: int) -> Envelope:
            body = {
                "order": "",
                "pageNum": page_num,
                "pageSize": page_size,
                "type": "",
                "orgId": org_id,
            }
            return await self.signed_post(url, body)

        rows = await self.fetch_all_pages(_page, resource=f"devices for org {org_id}")
        if not rows:
            logger.info("No devices found for org %s", org_id)
        return _to_models(Device, rows)

    async def list_sip_accounts(
        self, org_id: int, page_size: int = 1000, *, include_type: bool = False
    ) -> List[SipAccount]:
        url = self.api_url("sip/account/list")

        async def _page(page_num: int) -> Envelope:
            body: Dict[str, Any] = {
                "order": "",
                "pageNum": page_num,
                "pageSize": page_size,
                "orgId": org_id,
            }
            if include_type:
                body["type"] = ""
            return await self.signed_post(url, body)

        rows = await self.fetch_all_pages(_page, resource=f"SIP accounts for org {org_id}")
        return _to_models(SipAccount, rows)

    async def get_device_account_status(self, mac: str) -> Optional[DeviceAccountStatus]:
        """Look up one device's account status; ``None`` when the envelope has no ``data``."""
        if mac is None or not mac.strip():
            raise ValueError("mac must be non-empty")
        envelope = await self.signed_post(
            self.api_url("device/account/status"), {"mac": mac.strip()}
        )
        data = envelope.get("data")
        if data is None:
            return None
        if not isinstance(data, dict):
            raise MalformedVendorResponse(
                f"Expected object for status 'data' of {mac}, got {type(data).__name__}"
            )
        try:
            return DeviceAccountStatus.model_validate(data)
        except ValidationError as exc:
            raise MalformedVendorResponse(f"Unexpected status payload for {mac}: {exc}") from exc


__all__ = ["GdmsApiClient"]
