"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from typing import Optional

INSECURE_FALLBACK_SECRET = "insecure-dev-only-jwt-secret"


class ConfigurationError(RuntimeError):
    """Raised at startup when the environment cannot run the service safely."""


class Settings(BaseSettings):
    environment: str = "development"

    # ── Security Secrets ──────────────────────────────────────────────────
    jwt_secret: str = ""                        # HMAC secret for session tokens
    jwt_expiry_seconds: int = 7200              # 2 hours
    allow_insecure_jwt_secret: bool = False     # local dev only: use the fallback key

    # ── Session cookie ───────────────────────────────────────────────────
    cookie_name: str = "authToken"
    cookie_secure: Optional[bool] = None        # None = follow the request scheme

    # ── Credentials ──────────────────────────────────────────────────────
    min_password_length: int = 6
    bcrypt_rounds: int = 10

    # ── Database ─────────────────────────────────────────────────────────
    database_url: Optional[str] = None          # "memory://" selects the in-process store
    store_timeout_seconds: float = 10.0
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_connect_retries: int = 3
    db_retry_delay_seconds: float = 5.0

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 5000
    host: str = "0.0.0.0"
    debug: bool = False
    cors_origins: list = ["https://multical-c.vercel.app", "http://localhost:5173"]

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def signing_secret(self) -> str:
        """
        The key tokens are signed with.

        Raises ``ConfigurationError`` when ``JWT_SECRET`` is empty unless the
        insecure development fallback was explicitly allowed.
        """
        if self.jwt_secret:
            return self.jwt_secret
        if self.allow_insecure_jwt_secret:
            return INSECURE_FALLBACK_SECRET
        raise ConfigurationError(
            "JWT_SECRET is not set. Set it to a long random value, or set "
            "ALLOW_INSECURE_JWT_SECRET=true for local development."
        )

    @property
    def uses_insecure_secret(self) -> bool:
        return not self.jwt_secret and self.allow_insecure_jwt_secret

    def validate_startup(self) -> None:
        """Fail fast on configuration the service must not run with."""
        self.signing_secret
        if self.jwt_expiry_seconds <= 0:
            raise ConfigurationError("JWT_EXPIRY_SECONDS must be positive")
        if self.min_password_length < 1:
            raise ConfigurationError("MIN_PASSWORD_LENGTH must be at least 1")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ConfigurationError("BCRYPT_ROUNDS must be between 4 and 31")


config = Settings()
