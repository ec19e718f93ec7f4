"""Access-token providers.

Every co-parent operation needs a fresh bearer token before it touches the
network.  Token *acquisition* (sign-in) lives elsewhere; this module only
defines the provider interface, two concrete providers and the pre-flight
check that turns a missing or expired session into an :class:`AuthError`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from jose import JWTError, jwt

from .errors import MissingTokenError, SessionExpiredError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredTokens:
    access_token: str
    expires_at: int | None = None  # epoch milliseconds
    user_id: str | None = None


class TokenProvider(Protocol):
    async def get_fresh_tokens(self) -> StoredTokens | None: ...

    def is_token_expired(self, expires_at: int | None) -> bool: ...


def _now_ms() -> int:
    return int(time.time() * 1000)


class _ExpiryMixin:
    skew_seconds: int = 0

    def is_token_expired(self, expires_at: int | None) -> bool:
        """An unknown expiry is treated as still valid."""
        if expires_at is None:
            return False
        return _now_ms() >= expires_at - self.skew_seconds * 1000


class StaticTokenProvider(_ExpiryMixin):
    """Hands out one fixed token, e.g. taken from the environment."""

    def __init__(self, access_token: str | None, expires_at: int | None = None) -> None:
        self._access_token = access_token
        self._expires_at = expires_at

    async def get_fresh_tokens(self) -> StoredTokens | None:
        if not self._access_token:
            return None
        return StoredTokens(access_token=self._access_token, expires_at=self._expires_at)


class JwtTokenProvider(_ExpiryMixin):
    """Holds a bearer JWT and derives its expiry from the ``exp`` claim.

    The signature is not verified here; the backend does that.  Only the
    claims are read so a known-expired session fails before any request.
    """

    def __init__(self, token: str | None = None, *, skew_seconds: int = 30) -> None:
        self.skew_seconds = skew_seconds
        self._token: str | None = None
        self._expires_at: int | None = None
        self._user_id: str | None = None
        if token:
            self.update(token)

    def update(self, token: str | None) -> None:
        """Replace the held token (after sign-in or refresh)."""
        self._token = token or None
        self._expires_at = None
        self._user_id = None
        if not self._token:
            return
        try:
            claims = jwt.get_unverified_claims(self._token)
        except JWTError:
            log.warning("Access token is not a readable JWT; expiry unknown")
            return
        exp = claims.get("exp")
        if isinstance(exp, (int, float)):
            self._expires_at = int(exp * 1000)
        self._user_id = claims.get("sub")

    async def get_fresh_tokens(self) -> StoredTokens | None:
        if not self._token:
            return None
        return StoredTokens(
            access_token=self._token,
            expires_at=self._expires_at,
            user_id=self._user_id,
        )


async def ensure_access_token(provider: TokenProvider) -> str:
    """Return a usable access token or raise an :class:`AuthError`.

    No retry: a missing or expired session means the user has to sign in
    again.
    """
    tokens = await provider.get_fresh_tokens()
    access_token = tokens.access_token if tokens else None

    if not access_token:
        raise MissingTokenError()

    if provider.is_token_expired(tokens.expires_at):
        raise SessionExpiredError()

    return access_token
