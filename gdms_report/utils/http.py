"""HTTP utilities providing the single re-authentication retry used by signed calls."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

import httpx

from gdms_report.errors import AuthRetryExhausted

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = frozenset({401, 403})


class RetryConfig:
    def __init__(self, *, auth_retries: int = 1) -> None:
        self.auth_retries = auth_retries


def truncate(text: str | None, limit: int = 500) -> str:
    if text is None:
        return ""
    return text if len(text) <= limit else f"{text[:limit]}..."


async def send_with_auth_retry(
    send: Callable[[str], Awaitable[httpx.Response]],
    *,
    get_token: Callable[[], Awaitable[str]],
    refresh_token: Callable[[str], Awaitable[str]],
    retry_config: RetryConfig | None = None,
) -> httpx.Response:
    """
    Call ``send`` with a valid token; on 401/403 refresh once and resend.

    ``send`` receives the access token to sign with and must build a fresh
    request each time. Transport errors are not retried.
    """
    config = retry_config or RetryConfig()
    token = await get_token()
    attempt = 0

    while True:
        response = await send(token)
        if response.status_code not in AUTH_FAILURE_STATUSES:
            return response
        if attempt >= config.auth_retries:
            raise AuthRetryExhausted(
                response.status_code,
                truncate(response.text),
                url=str(response.request.url).split("?", 1)[0],
            )
        attempt += 1
        logger.warning(
            "GDMS rejected token with HTTP %s; forcing refresh (attempt %s/%s)",
            response.status_code,
            attempt,
            config.auth_retries,
        )
        token = await refresh_token(token)


__all__ = ["AUTH_FAILURE_STATUSES", "RetryConfig", "send_with_auth_retry", "truncate"]
