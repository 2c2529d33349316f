"""
Auth API routes — signup, login, logout, verify.

Route prefix: /api/auth
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel

from auth.dependencies import get_auth_service, get_settings
from auth.jwt import TokenClaims
from auth.service import AuthService
from auth.session import clear_session_cookie, require_user, set_session_cookie
from config.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


# ── Request / response schemas ─────────────────────────────────────────


class CredentialsRequest(BaseModel):
    # optional so that missing fields get the service's own message
    username: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool
    message: str


class SignupResponse(MessageResponse):
    username: str


class LoginResponse(MessageResponse):
    token: str
    username: str


class VerifiedUser(BaseModel):
    userId: str
    username: str


class VerifyResponse(MessageResponse):
    user: VerifiedUser


# ── Endpoints ──────────────────────────────────────────────────────────


@router.get("/health")
async def auth_health() -> Dict[str, Any]:
    return {
        "status": "OK",
        "message": "Authentication service is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    req: CredentialsRequest,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Register a new user."""
    user = await service.signup(req.username, req.password)
    return {
        "success": True,
        "message": "User created successfully",
        "username": user.username,
    }


@router.post("/login", response_model=LoginResponse)
async def login(
    req: CredentialsRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Login with username + password; the token goes to the body and a cookie."""
    result = await service.login(req.username, req.password)
    set_session_cookie(response, request, settings, result.token, result.expires_in)
    return {
        "success": True,
        "message": "Login successful",
        "token": result.token,
        "username": result.username,
    }


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Clear the session cookie. Issued tokens stay valid until they expire."""
    clear_session_cookie(response, request, settings)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/verify", response_model=VerifyResponse)
async def verify(claims: TokenClaims = Depends(require_user)) -> Dict[str, Any]:
    return {
        "success": True,
        "message": "Token is valid",
        "user": {"userId": claims.userId, "username": claims.username},
    }
