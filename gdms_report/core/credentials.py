"""Static GDMS client credentials."""

from __future__ import annotations

import hashlib
from typing import Optional

from gdms_report.core.config import GdmsSettings


def hash_password(password: str) -> str:
    """Return ``sha256(md5(password))`` as lowercase hex, the form GDMS expects."""
    md5_hex = hashlib.md5(password.encode("utf-8")).hexdigest()
    return hashlib.sha256(md5_hex.encode("utf-8")).hexdigest()


class GdmsCredentials:
    """Immutable credential bundle. The plain password is hashed on construction and dropped."""

    __slots__ = ("_domain", "_username", "_password_hash", "_client_id", "_client_secret", "_scope")

    def __init__(
        self,
        *,
        domain: str,
        username: str,
        password: str,
        client_id: str,
        client_secret: str,
        scope: Optional[str] = None,
    ) -> None:
        if not domain or not username or not client_id or not client_secret:
            raise ValueError("domain, username, client_id and client_secret are required.")
        object.__setattr__(self, "_domain", domain)
        object.__setattr__(self, "_username", username)
        object.__setattr__(self, "_password_hash", hash_password(password))
        object.__setattr__(self, "_client_id", client_id)
        object.__setattr__(self, "_client_secret", client_secret)
        object.__setattr__(self, "_scope", scope or None)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("GdmsCredentials is immutable")

    @classmethod
    def from_settings(cls, settings: GdmsSettings) -> "GdmsCredentials":
        return cls(
            domain=settings.domain,
            username=settings.username,
            password=settings.password.get_secret_value(),
            client_id=settings.client_id,
            client_secret=settings.client_secret.get_secret_value(),
            scope=settings.scope,
        )

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def base_url(self) -> str:
        return f"https://{self._domain}"

    @property
    def username(self) -> str:
        return self._username

    @property
    def password_hash(self) -> str:
        return self._password_hash

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def client_secret(self) -> str:
        return self._client_secret

    @property
    def scope(self) -> Optional[str]:
        return self._scope

    def __repr__(self) -> str:
        return f"GdmsCredentials(domain={self._domain!r}, username={self._username!r}, client_id={self._client_id!r})"


__all__ = ["GdmsCredentials", "hash_password"]
