"""Controllable clock and a scripted in-memory GDMS server for tests."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import httpx

from gdms_report.clients import GdmsApiClient, GdmsTokenManager
from gdms_report.core.credentials import GdmsCredentials
from gdms_report.utils import json_codec

DOMAIN = "gdms.test"
TOKEN_PATH = "/oapi/oauth/token"
API_PREFIX = "/oapi/v1.0.0/"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def now(self) -> float:
        return self.current

    def now_ms(self) -> int:
        return int(self.current * 1000)

    def advance(self, seconds: float) -> None:
        self.current += seconds


def make_credentials(**overrides: Any) -> GdmsCredentials:
    values: Dict[str, Any] = {
        "domain": DOMAIN,
        "username": "operator",
        "password": "s3cret",
        "client_id": "cid",
        "client_secret": "csecret",
    }
    values.update(overrides)
    return GdmsCredentials(**values)


def ok(data: Any = None, *, ret_code: int = 0, msg: str = "success") -> httpx.Response:
    payload: Dict[str, Any] = {"retCode": ret_code, "msg": msg}
    if data is not None:
        payload["data"] = data
    return httpx.Response(200, json=payload)


def body_of(request: httpx.Request) -> Any:
    return json_codec.parse(request.content)


def issue_token(number: int, **overrides: Any) -> httpx.Response:
    payload: Dict[str, Any] = {
        "access_token": f"tok-{number}",
        "refresh_token": f"ref-{number}",
        "expires_in": 3600,
        "token_type": "bearer",
    }
    payload.update(overrides)
    return httpx.Response(200, json=payload)


class FakeGdms:
    """Records every request; answers the token endpoint and any registered API path."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.grants: List[Dict[str, str]] = []
        self.routes: Dict[str, Handler] = {}
        self.token_handler: Optional[Callable[[Dict[str, str], int], httpx.Response]] = None

    def route(self, path: str, handler: Handler) -> None:
        self.routes[API_PREFIX + path.lstrip("/")] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == TOKEN_PATH:
            params = dict(request.url.params)
            self.grants.append(params)
            if self.token_handler is not None:
                return self.token_handler(params, len(self.grants))
            return issue_token(len(self.grants))
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="no such route")
        return handler(request)

    def api_requests(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == API_PREFIX + path.lstrip("/")]

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def token_manager(self, clock: FakeClock | None = None, **kwargs: Any) -> GdmsTokenManager:
        return GdmsTokenManager(
            make_credentials(),
            http_client=self.http_client(),
            clock=clock or FakeClock(),
            **kwargs,
        )

    def client(self, clock: FakeClock | None = None, **kwargs: Any) -> GdmsApiClient:
        return GdmsApiClient(
            make_credentials(),
            http_client=self.http_client(),
            clock=clock or FakeClock(),
            **kwargs,
        )
