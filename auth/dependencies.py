"""
FastAPI dependencies for authentication.

The settings, credential store, token signer and auth service are built
once per application (``main.create_app`` and its lifespan) and kept on
``app.state``; these dependencies hand them to route handlers.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.jwt import TokenSigner
from auth.service import AuthService
from auth.store import UserStore
from config.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_token_signer(request: Request) -> TokenSigner:
    signer = request.app.state.token_signer
    if signer is None:
        # startup normally builds it; this covers apps served without lifespan events
        signer = TokenSigner.from_settings(request.app.state.settings)
        request.app.state.token_signer = signer
    return signer


def get_auth_service(
    request: Request,
    signer: TokenSigner = Depends(get_token_signer),
) -> AuthService:
    service = request.app.state.auth_service
    if service is None:
        state = request.app.state
        service = AuthService.from_settings(state.user_store, signer, state.settings)
        state.auth_service = service
    return service
