"""
errors.py — Domain Exceptions & JSON Error Envelope

Purpose:
- Define the small set of exceptions services raise instead of HTTP errors.
- Register application-wide handlers so every failure reaches the client as
  {"success": false, "error": "<message>"}.

Status mapping:
- ValidationFailedError      → 400
- NotFoundError              → 404
- ServiceUnavailableError    → 503 (includes DatabaseNotConfiguredError)
- HTTPException              → its own status code
- anything else              → 500 (logged with traceback)
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from wasteintel.core.logging import get_logger

logger = get_logger(__name__)


class WasteIntelError(Exception):
    """Base class for errors raised by the service layer."""


class NotFoundError(WasteIntelError):
    """Raised when a requested row does not exist."""


class ValidationFailedError(WasteIntelError):
    """Raised when caller-supplied data fails a business rule."""


class ServiceUnavailableError(WasteIntelError):
    """Raised when a backing service (database, Supabase Auth) is not configured."""


class DatabaseNotConfiguredError(ServiceUnavailableError):
    """Raised by get_db() when SUPABASE_DB_URL is empty."""


def error_body(message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message}
    if details is not None:
        body["details"] = details
    return body


# -----------------------------------------------------------------------------
# Exception Handlers
# -----------------------------------------------------------------------------

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = None if isinstance(exc.detail, str) else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("query", "body", "path"))
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]),
    )


async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError) -> JSONResponse:
    logger.warning("Service unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=error_body(str(exc)))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ServiceUnavailableError, service_unavailable_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
