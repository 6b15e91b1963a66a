"""Global exception handlers for consistent error responses.

Every error leaves the API as ``{"error": <message>, "code": <code>,
"request_id": <id>, "details"?: <context>}``:
- AppError subclasses → their own status (400, 429, 500, 502, or the
  upstream provider's status)
- Request body validation / malformed JSON → 400
- Routing errors (404, 405) → their status
- Unexpected Exception → generic 500 (safety net)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import AppError, QuotaExceededAppError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_HTTP_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }
    if details is not None:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map a domain error to its HTTP status and the shared error body.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the error's status code and any retry headers.
    """
    status_code = exc.status_code
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": exc.details is not None,
            "request_path": request.url.path,
        },
    )

    headers = exc.headers if isinstance(exc, QuotaExceededAppError) else None
    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.code, exc.message, exc.details),
        headers=headers or None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 for unparseable or mistyped request bodies."""
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        code, message = "invalid_json", "Request body must be valid JSON"
    else:
        code, message = "invalid_request", "Request body is invalid"

    logger.warning(
        "request_validation_failed",
        extra={"error_code": code, "error_count": len(errors), "request_path": request.url.path},
    )
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]
    return JSONResponse(status_code=400, content=error_body(code, message, details))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404, 405, ...) in the shared shape."""
    message = _HTTP_MESSAGES.get(exc.status_code) or str(exc.detail)
    code = message.lower().replace(" ", "_")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the error type for debugging while returning a generic message, so
    no implementation details leak to the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=error_body("internal_server_error", "Internal server error"),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
