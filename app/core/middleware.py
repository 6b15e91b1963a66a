"""HTTP middleware for request correlation and CORS headers.

Usage:
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(cors_headers_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id


def cors_headers(allow_origin: str | None = None) -> dict[str, str]:
    """Permissive CORS headers sent with every chat response."""
    return {
        "Access-Control-Allow-Origin": allow_origin or settings.chat.cors_allow_origin,
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate a correlation id through logs and back to the client.

    The incoming request id header (``LOG_REQUEST_ID_HEADER``, default
    ``X-Request-ID``) is reused when present, otherwise a UUID4 is generated.
    The id is stored in contextvars for the duration of the request and
    echoed on the response together with ``X-Request-Duration-ms``.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def cors_headers_middleware(request: Request, call_next) -> Response:
    """Attach CORS headers to every response under the chat path."""

    response: Response = await call_next(request)
    if request.url.path.rstrip("/").endswith("/chat"):
        for name, value in cors_headers().items():
            response.headers.setdefault(name, value)
    return response
