"""
GDMS request signing.

Every resource call carries ``access_token``, ``timestamp`` and ``signature``
query parameters. The signature is the SHA-256 hex digest of::

    &<k1>=<v1>&<k2>=<v2>...[&<sha256(body)>]&

where the parameters are the URL's own query parameters (raw, undecoded) plus
``access_token``, ``client_id``, ``client_secret`` and ``timestamp``, sorted by
key. The body hash is taken over the deterministic JSON serialization of the
body. The vendor rejects anything that is not byte-identical, so none of the
steps below may reorder, decode or re-encode values.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import quote_plus, urlsplit, urlunsplit

from gdms_report.utils import json_codec


@dataclass(frozen=True)
class SignatureContext:
    """Inputs for one signature. Built per request and discarded."""

    url: str
    access_token: str
    client_id: str
    client_secret: str
    timestamp_ms: int
    body: Any = None


@dataclass(frozen=True)
class NormalizedBody:
    raw: str
    sha256: Optional[str]


@dataclass(frozen=True)
class SignatureResult:
    signature: str
    body_sha256: str
    canonical: str


def sha256_hex(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def md5_hex(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def form_encode(value: str) -> str:
    """``application/x-www-form-urlencoded`` encoding of a single key or value."""
    # Same alphabet as java.net.URLEncoder, which the vendor examples use.
    return quote_plus(value, safe="*").replace("~", "%7E")


def normalize_body(body: Any) -> NormalizedBody:
    """Return the wire body and its hash; strings and bytes are sent verbatim."""
    if body is None:
        return NormalizedBody(raw="", sha256=None)
    if isinstance(body, (bytes, bytearray)):
        raw = bytes(body).decode("utf-8")
    elif isinstance(body, str):
        raw = body
    else:
        raw = json_codec.serialize(body)
    return NormalizedBody(raw=raw, sha256=sha256_hex(raw))


def parse_query(url: str) -> dict[str, str]:
    """Split the URL's query string into raw key/value pairs, first-seen order."""
    query = urlsplit(url).query
    params: dict[str, str] = {}
    if not query or not query.strip():
        return params
    for pair in query.split("&"):
        if not pair.strip():
            continue
        key, _, value = pair.partition("=")
        params[key] = value
    return params


def join_params(params: Mapping[str, str], *, case_sensitive: bool = True) -> str:
    """Join ``key=value`` pairs with ``&`` in key order."""
    if case_sensitive:
        keys = sorted(params)
    else:
        keys = sorted(params, key=lambda key: (key.lower(), key))
    return "&".join(f"{key}={params[key]}" for key in keys)


def wrap_ampersands(text: str) -> str:
    if text.startswith("&") and text.endswith("&"):
        return text
    return f"&{text}&"


def rebuild_url_with_query(url: str, params: Mapping[str, str]) -> str:
    """Replace the URL's query with ``params``; scheme, authority, path and fragment are kept."""
    parts = urlsplit(url)
    query = "&".join(f"{form_encode(key)}={form_encode(value)}" for key, value in params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _base_params(context: SignatureContext, include_url_params: bool) -> dict[str, str]:
    params: dict[str, str] = parse_query(context.url) if include_url_params else {}
    params["access_token"] = context.access_token
    params["client_id"] = context.client_id
    params["client_secret"] = context.client_secret
    params["timestamp"] = str(context.timestamp_ms)
    return params


def build_signature(
    context: SignatureContext,
    *,
    include_url_params: bool = True,
    case_sensitive: bool = True,
) -> SignatureResult:
    """Compute the JSON-body signature for ``context``."""
    params = _base_params(context, include_url_params)
    body = normalize_body(context.body)
    canonical = join_params(params, case_sensitive=case_sensitive)
    if body.sha256:
        wrapped = wrap_ampersands(f"{canonical}&{body.sha256}")
    else:
        wrapped = wrap_ampersands(canonical)
    return SignatureResult(
        signature=sha256_hex(wrapped),
        body_sha256=body.sha256 or "",
        canonical=canonical,
    )


def build_form_signature(
    context: SignatureContext,
    *,
    fields: Optional[Mapping[str, Any]] = None,
    files: Optional[Mapping[str, bytes | str | Path]] = None,
    include_url_params: bool = True,
    case_sensitive: bool = True,
) -> SignatureResult:
    """Signature for form uploads: fields join the parameters, files contribute their MD5."""
    params = _base_params(context, include_url_params)
    for key, value in (fields or {}).items():
        params[key] = str(value)
    for key, value in (files or {}).items():
        if isinstance(value, (bytes, bytearray)):
            params[key] = md5_hex(bytes(value))
        elif isinstance(value, (str, Path)):
            params[key] = md5_hex(Path(value).read_bytes())
        else:
            raise TypeError(f"File field {key!r} must be bytes or a file path")
    canonical = join_params(params, case_sensitive=case_sensitive)
    return SignatureResult(
        signature=sha256_hex(wrap_ampersands(canonical)),
        body_sha256="",
        canonical=canonical,
    )


def attach_common_params(url: str, access_token: str, timestamp_ms: int, signature: str) -> str:
    """Return ``url`` with ``access_token``, ``timestamp`` and ``signature`` in its query."""
    params = parse_query(url)
    params["access_token"] = access_token
    params["timestamp"] = str(timestamp_ms)
    params["signature"] = signature
    return rebuild_url_with_query(url, params)


class RequestSigner:
    """Sign GDMS resource URLs for one client id/secret pair."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        include_url_params: bool = True,
        case_sensitive: bool = True,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._include_url_params = include_url_params
        self._case_sensitive = case_sensitive

    def _context(self, url: str, access_token: str, timestamp_ms: int, body: Any = None) -> SignatureContext:
        return SignatureContext(
            url=url,
            access_token=access_token,
            client_id=self._client_id,
            client_secret=self._client_secret,
            timestamp_ms=timestamp_ms,
            body=body,
        )

    def sign(self, url: str, access_token: str, timestamp_ms: int, body: Any = None) -> SignatureResult:
        return build_signature(
            self._context(url, access_token, timestamp_ms, body),
            include_url_params=self._include_url_params,
            case_sensitive=self._case_sensitive,
        )

    def sign_form(
        self,
        url: str,
        access_token: str,
        timestamp_ms: int,
        *,
        fields: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, bytes | str | Path]] = None,
    ) -> SignatureResult:
        return build_form_signature(
            self._context(url, access_token, timestamp_ms),
            fields=fields,
            files=files,
            include_url_params=self._include_url_params,
            case_sensitive=self._case_sensitive,
        )

    def signed_url(self, url: str, access_token: str, timestamp_ms: int, body: Any = None) -> tuple[str, SignatureResult]:
        """Sign and rewrite ``url`` in one step."""
        result = self.sign(url, access_token, timestamp_ms, body)
        return attach_common_params(url, access_token, timestamp_ms, result.signature), result


__all__ = [
    "NormalizedBody",
    "RequestSigner",
    "SignatureContext",
    "SignatureResult",
    "attach_common_params",
    "build_form_signature",
    "build_signature",
    "form_encode",
    "join_params",
    "normalize_body",
    "parse_query",
    "rebuild_url_with_query",
    "sha256_hex",
    "wrap_ampersands",
]
