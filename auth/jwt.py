"""
JWT-style session token issuance and verification.

Tokens are URL-safe base64-encoded JSON claims signed with HMAC-SHA256::

    base64url({"userId": ..., "username": ..., "iat": ..., "exp": ...}) + "." + hexdigest

They are stateless: validity depends only on the signature and ``exp`` at
the moment of verification. Logging out on the client does not revoke a
token that has already been issued.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Optional

from pydantic import BaseModel

from auth.exceptions import TokenBadSignature, TokenExpired, TokenMalformed
from config.settings import Settings


class TokenClaims(BaseModel):
    userId: str
    username: str
    iat: int
    exp: int


class TokenSigner:
    """Issues and verifies session tokens for one signing secret."""

    def __init__(self, secret: str, ttl_seconds: int) -> None:
        if not secret:
            raise ValueError("signing secret must not be empty")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._key = secret.encode()
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenSigner":
        return cls(settings.signing_secret, settings.jwt_expiry_seconds)

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._key, raw, hashlib.sha256).hexdigest()

    def issue(self, user_id: str, username: str, now: Optional[float] = None) -> str:
        """Create a signed token for ``user_id`` expiring ``ttl_seconds`` from now."""
        issued_at = int(time.time() if now is None else now)
        payload = {
            "userId": user_id,
            "username": username,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        raw = json.dumps(payload, separators=(",", ":")).encode()
        return urlsafe_b64encode(raw).decode().rstrip("=") + "." + self._sign(raw)

    def verify(self, token: str, now: Optional[float] = None) -> TokenClaims:
        """
        Verify ``token`` and return its claims.

        Raises ``TokenMalformed``, ``TokenBadSignature`` or ``TokenExpired``.
        The signature is checked before the payload is parsed.
        """
        if not token or token.count(".") != 1:
            raise TokenMalformed()
        encoded, signature = token.split(".")
        try:
            raw = urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
        except (binascii.Error, ValueError):
            raise TokenMalformed()

        if not hmac.compare_digest(signature.encode(), self._sign(raw).encode()):
            raise TokenBadSignature()

        try:
            claims = TokenClaims.model_validate(json.loads(raw))
        except ValueError:
            raise TokenMalformed()

        current = time.time() if now is None else now
        if current >= claims.exp:
            raise TokenExpired()
        return claims
