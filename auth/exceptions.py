"""
Failure taxonomy for the auth flow.

Every expected failure is an ``AuthError`` carrying the HTTP status and the
caller-facing message; ``api.errors`` turns them into
``{"success": false, "message": ...}`` responses.
"""

from __future__ import annotations

from fastapi import status


class AuthError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or missing input the caller can correct."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Username and password are required"


class DuplicateUsername(AuthError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Username already exists"


class InvalidCredentials(AuthError):
    """Unknown username or wrong password; the two are never distinguished."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class StoreUnavailable(AuthError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = (
        "Database connection unavailable. Please try again later."
    )


class MissingToken(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Access token required"


class TokenInvalid(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid or expired token"


class TokenMalformed(TokenInvalid):
    pass


class TokenBadSignature(TokenInvalid):
    pass


class TokenExpired(TokenInvalid):
    pass


class InternalError(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
