"""
Session resolution for protected routes.

A token is taken from the session cookie first and from an
``Authorization: Bearer <token>`` header otherwise. ``require_user``
rejects requests with no token (401) or an invalid one (403) and leaves
the verified claims on ``request.state.user``.

Cookie helpers write and clear the session cookie with identical
attributes: HTTP-only, ``SameSite=Strict``, ``Secure`` over HTTPS.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request, Response

from auth.dependencies import get_settings, get_token_signer
from auth.exceptions import MissingToken, TokenInvalid
from auth.jwt import TokenClaims, TokenSigner
from config.settings import Settings

logger = logging.getLogger(__name__)


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    token = request.cookies.get(cookie_name)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


async def require_user(
    request: Request,
    settings: Settings = Depends(get_settings),
    signer: TokenSigner = Depends(get_token_signer),
) -> TokenClaims:
    """Resolve the caller's identity or reject the request."""
    token = extract_token(request, settings.cookie_name)
    if token is None:
        raise MissingToken()

    try:
        claims = signer.verify(token)
    except TokenInvalid as exc:
        logger.debug("Rejected token on %s: %s", request.url.path, type(exc).__name__)
        raise TokenInvalid()

    request.state.user = claims
    return claims


def _is_secure(request: Request, settings: Settings) -> bool:
    if settings.cookie_secure is not None:
        return settings.cookie_secure
    forwarded = request.headers.get("X-Forwarded-Proto", "")
    return request.url.scheme == "https" or forwarded.split(",")[0].strip() == "https"


def set_session_cookie(
    response: Response,
    request: Request,
    settings: Settings,
    token: str,
    max_age: int,
) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=_is_secure(request, settings),
        samesite="strict",
        path="/",
    )


def clear_session_cookie(response: Response, request: Request, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        secure=_is_secure(request, settings),
        samesite="strict",
        path="/",
    )
