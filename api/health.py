"""
Service health endpoints.

Database status is checked on every call against the credential store
rather than read from a cached flag.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from auth.dependencies import get_settings, get_user_store
from auth.store import UserStore
from config.settings import Settings

router = APIRouter(tags=["health"])


async def database_status(store: UserStore) -> str:
    if not store.configured:
        return "Not configured"
    return "Connected" if await store.ping() else "Disconnected"


def _uptime(request: Request) -> int:
    return int(time.monotonic() - request.app.state.started_at)


@router.get("/")
async def root(
    request: Request,
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    return {
        "status": "OK",
        "message": "MultiCalc auth server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": f"{_uptime(request)} seconds",
        "database": await database_status(store),
        "environment": settings.environment,
    }


@router.get("/api/health")
async def health(
    request: Request,
    store: UserStore = Depends(get_user_store),
) -> Dict[str, Any]:
    return {
        "status": "OK",
        "message": "Server is healthy",
        "uptime": _uptime(request),
        "database": await database_status(store),
    }
