"""
Domain model for the GDMS access token held by the token manager.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Token(BaseModel):
    """An access token and the instant (epoch seconds) it stops being accepted."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: float = Field(..., description="Expiry as seconds since the epoch.")

    def is_valid(self, now: float, skew_seconds: float) -> bool:
        """A token is usable only while ``now + skew < expires_at``."""
        return bool(self.access_token) and now + skew_seconds < self.expires_at

    def authorization_scheme(self) -> str:
        token_type = (self.token_type or "").strip() or "bearer"
        return token_type[:1].upper() + token_type[1:].lower()


__all__ = ["Token"]
