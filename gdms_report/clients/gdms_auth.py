"""
GDMS OAuth token lifecycle.

The token endpoint takes its grant parameters in the query string of a GET
request. A refresh-token grant is tried first when a refresh token is held;
any failure falls back to a full password grant.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

import httpx

from gdms_report.clients.gdms_signing import form_encode
from gdms_report.core.clock import Clock, SystemClock
from gdms_report.core.credentials import GdmsCredentials
from gdms_report.errors import TokenGrantError, TokenGrantFailure
from gdms_report.models.token import Token
from gdms_report.utils import json_codec
from gdms_report.utils.coerce import as_int
from gdms_report.utils.http import truncate

logger = logging.getLogger(__name__)

MIN_EXPIRY_SKEW_SECONDS = 10
MIN_REFRESH_DELAY_SECONDS = 10
DEFAULT_EXPIRES_IN = 3600


def _parse_form(body: str) -> Dict[str, Any]:
    return dict(parse_qsl(body, keep_blank_values=True))


def _parse_json_flat(body: str) -> Dict[str, Any]:
    try:
        parsed = json_codec.parse(body)
    except json_codec.MalformedJson:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def parse_token_payload(content_type: str, body: str) -> Dict[str, Any]:
    """Decode a token response according to its declared content type."""
    content_type = (content_type or "").lower()
    if "application/json" in content_type:
        return _parse_json_flat(body)
    fields = _parse_form(body)
    if not fields.get("access_token"):
        fields = _parse_json_flat(body)
    return fields


class GdmsTokenManager:
    """Hold the current GDMS token and renew it under a single lock."""

    TOKEN_PATH = "/oapi/oauth/token"
    USER_AGENT = "GDMSTokenClient/1.0"

    def __init__(
        self,
        credentials: GdmsCredentials,
        *,
        http_client: httpx.AsyncClient,
        clock: Clock | None = None,
        expiry_skew_seconds: int = 120,
        debug: bool = False,
    ) -> None:
        self._credentials = credentials
        self._http = http_client
        self._clock = clock or SystemClock()
        self._skew = max(expiry_skew_seconds, MIN_EXPIRY_SKEW_SECONDS)
        self._debug = debug
        self._lock = asyncio.Lock()
        self._token: Optional[Token] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def token_url(self) -> str:
        return f"{self._credentials.base_url}{self.TOKEN_PATH}"

    @property
    def token(self) -> Optional[Token]:
        return self._token

    @property
    def expiry_skew_seconds(self) -> int:
        return self._skew

    def is_token_valid(self) -> bool:
        token = self._token
        return token is not None and token.is_valid(self._clock.now(), self._skew)

    async def ensure_token(self) -> str:
        """Return a usable access token, renewing it first if it is absent or near expiry."""
        async with self._lock:
            token = self._token
            if token is None or not token.is_valid(self._clock.now(), self._skew):
                token = await self._renew()
            return token.access_token

    async def force_refresh(self, rejected_token: str | None = None) -> str:
        """
        Renew after the vendor rejected ``rejected_token``.

        When another caller already replaced that token while this one waited
        for the lock, the newer token is returned without another grant.
        """
        async with self._lock:
            current = self._token
            if (
                rejected_token is not None
                and current is not None
                and current.access_token != rejected_token
                and current.is_valid(self._clock.now(), self._skew)
            ):
                return current.access_token
            logger.warning("Forcing GDMS token refresh after rejected request")
            token = await self._renew()
            return token.access_token

    async def auth_header(self) -> str:
        """Value for the ``Authorization`` header, e.g. ``Bearer abc``."""
        return self.header_for(await self.ensure_token())

    def header_for(self, access_token: str) -> str:
        """``Authorization`` value for ``access_token`` using the held token type."""
        token = self._token
        scheme = token.authorization_scheme() if token else "Bearer"
        return f"{scheme} {access_token}"

    # ---- background refresh ----

    @property
    def refresh_loop_running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def start_refresh_loop(self, min_sleep_seconds: int = 20, max_sleep_seconds: int = 120) -> None:
        """Start a task that calls :meth:`ensure_token` every ``max(min_sleep, 10)`` seconds."""
        if max_sleep_seconds < min_sleep_seconds:
            raise ValueError("max_sleep_seconds must be >= min_sleep_seconds")
        if self.refresh_loop_running:
            return
        delay = max(min_sleep_seconds, MIN_REFRESH_DELAY_SECONDS)
        self._refresh_task = asyncio.create_task(
            self._refresh_loop(delay), name="gdms-token-refresh"
        )
        logger.info("Started GDMS token refresh loop (every %ss)", delay)

    async def stop_refresh_loop(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Stopped GDMS token refresh loop")

    async def _refresh_loop(self, delay: float) -> None:
        while True:
            await asyncio.sleep(delay)
            try:
                await self.ensure_token()
            except TokenGrantFailure:
                logger.warning("Background GDMS token refresh failed", exc_info=True)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Unexpected error in GDMS token refresh loop")

    # ---- grants ----

    async def _renew(self) -> Token:
        current = self._token
        if current is not None and current.refresh_token:
            try:
                self._token = await self._refresh_grant(current.refresh_token)
                return self._token
            except TokenGrantError as exc:
                logger.warning("%s; falling back to password grant", exc)
        try:
            self._token = await self._password_grant()
        except TokenGrantError as exc:
            raise TokenGrantFailure(f"Unable to obtain a GDMS access token: {exc}") from exc
        return self._token

    async def _password_grant(self) -> Token:
        creds = self._credentials
        params = {
            "username": creds.username,
            "password": creds.password_hash,
            "grant_type": "password",
            "client_id": creds.client_id,
            "client_secret": creds.client_secret,
        }
        if creds.scope and creds.scope.strip():
            params["scope"] = creds.scope
        logger.info("Requesting GDMS token via password grant")
        return await self._call_token_endpoint("password", params)

    async def _refresh_grant(self, refresh_token: str) -> Token:
        creds = self._credentials
        params = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": creds.client_id,
            "client_secret": creds.client_secret,
        }
        logger.info("Requesting GDMS token via refresh grant")
        return await self._call_token_endpoint("refresh_token", params)

    async def _call_token_endpoint(self, grant_type: str, params: Dict[str, str]) -> Token:
        query = "&".join(f"{form_encode(key)}={form_encode(value)}" for key, value in params.items())
        url = f"{self.token_url}?{query}"
        try:
            response = await self._http.get(
                url, headers={"Accept": "*/*", "User-Agent": self.USER_AGENT}
            )
        except httpx.HTTPError as exc:
            raise TokenGrantError(grant_type, f"request error: {exc!r}") from exc

        if self._debug:
            logger.debug(
                "Token response status=%s content-type=%s body=%s",
                response.status_code,
                response.headers.get("content-type", "(none)"),
                truncate(response.text, 800),
            )
        return self._token_from_response(grant_type, response)

    def _token_from_response(self, grant_type: str, response: httpx.Response) -> Token:
        body = response.text
        if response.status_code != 200:
            raise TokenGrantError(grant_type, f"HTTP {response.status_code} body={truncate(body)}")

        fields = parse_token_payload(response.headers.get("content-type", ""), body)
        access_token = fields.get("access_token")
        if not isinstance(access_token, str) or not access_token.strip():
            raise TokenGrantError(grant_type, "no access_token in token response")

        refresh_token = fields.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token.strip():
            refresh_token = self._token.refresh_token if self._token else None

        expires_in = as_int(fields.get("expires_in"))
        if expires_in is None:
            expires_in = DEFAULT_EXPIRES_IN

        token_type = fields.get("token_type")
        return Token(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=token_type if isinstance(token_type, str) and token_type else "bearer",
            expires_at=self._clock.now() + expires_in,
        )


__all__ = ["GdmsTokenManager", "parse_token_payload"]
