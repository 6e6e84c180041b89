"""Session credential model."""

import base64
import binascii
import json
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


def token_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim of a JWT without verifying it.

    Returns None for tokens that are not JWTs or carry no expiry.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    if not isinstance(claims, dict):
        return None
    exp = claims.get("exp")
    if not isinstance(exp, int | float) or isinstance(exp, bool):
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


class Session(BaseModel):
    """Credential held by the session manager."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None
    expiry: datetime | None = None
    remember: bool = False
    remembered_at: datetime | None = None

    @classmethod
    def from_tokens(cls, access_token: str, refresh_token: str | None, remember: bool) -> "Session":
        """Build a session from a login or renewal response."""
        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            expiry=token_expiry(access_token),
            remember=remember,
            remembered_at=datetime.now(timezone.utc) if remember else None,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check the access token expiry. Tokens without expiry never expire locally."""
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expiry
