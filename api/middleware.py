"""
Request tracing middleware.

Every response carries ``X-Request-ID`` (the caller's, when it sent a
usable one) and ``X-Process-Time``. Health checks are answered without a
log line so load-balancer polling does not flood the debug log.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/", "/api/health", "/api/auth/health"})

_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,128}")


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a well-formed caller id, otherwise mint one."""
    if incoming and _REQUEST_ID_RE.fullmatch(incoming):
        return incoming
    return uuid.uuid4().hex


def register_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def trace_request(request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        if request.url.path not in QUIET_PATHS:
            logger.debug(
                "[%s] %s %s %d %.3fs",
                request_id, request.method, request.url.path, response.status_code, elapsed,
            )
        return response
