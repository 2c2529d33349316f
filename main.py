"""
MultiCalc auth API — application entry point.
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_exception_handlers
from api.health import router as health_router
from api.middleware import register_middleware
from auth.jwt import TokenSigner
from auth.routes import router as auth_router
from auth.service import AuthService
from auth.store import build_user_store
from config.settings import Settings, config

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "asyncio", "sqlalchemy.engine"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    logger.info("Validating configuration…")
    settings.validate_startup()
    if settings.uses_insecure_secret:
        logger.warning(
            "JWT_SECRET is not set; signing tokens with the INSECURE development "
            "fallback key. Never run like this in production.",
        )
    app.state.token_signer = TokenSigner.from_settings(settings)
    app.state.auth_service = AuthService.from_settings(
        app.state.user_store, app.state.token_signer, settings,
    )
    await app.state.auth_service.prepare()

    await app.state.user_store.start()

    logger.info("Environment: %s", settings.environment)
    logger.info("CORS enabled for: %s", ", ".join(settings.cors_origins))
    if not app.state.user_store.configured:
        logger.warning("Running without database connection; set DATABASE_URL to enable signup and login")
    logger.info("Application ready to accept requests.")

    yield

    await app.state.user_store.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or config

    app = FastAPI(
        title="MultiCalc Auth API",
        version="1.0.0",
        description="Username/password signup, login and session tokens.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.user_store = build_user_store(settings)
    app.state.token_signer = None
    app.state.auth_service = None

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(health_router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
