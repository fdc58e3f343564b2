"""
Error Types and Handlers

Every failure leaves the API as {"error": "<message>"} with a status code:
401/403 for authentication and authorization, 400 for validation,
404 for missing resources, 429 for rate limiting and 500 for the rest.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from menuca.core.config import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class APIError(HTTPException):
    """HTTPException that can carry extra top-level fields in the body."""

    def __init__(
        self,
        status_code: int,
        message: str,
        extra: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.extra = extra or {}


class AuthError(APIError):
    """Authentication or authorization failure."""


class UnauthorizedError(AuthError):
    def __init__(self, message: str = "Unauthorized - authentication required"):
        super().__init__(401, message)


class ForbiddenError(AuthError):
    def __init__(self, message: str = "Forbidden - admin access required"):
        super().__init__(403, message)


class NotFoundError(APIError):
    def __init__(self, message: str = "Not found"):
        super().__init__(404, message)


class BadRequestError(APIError):
    def __init__(self, message: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(400, message, extra=extra)


class ConflictError(APIError):
    def __init__(self, message: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(409, message, extra=extra)


class RateLimitError(APIError):
    def __init__(self, retry_after: int):
        super().__init__(
            429,
            "Too many requests. Please slow down.",
            headers={"Retry-After": str(retry_after)},
        )


class ServiceError(APIError):
    """
    Failure reported by a remote procedure, edge function or storage call.

    Client errors reported by the remote side keep their status; anything
    else becomes a 500.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        if status_code is None or not 400 <= status_code < 500:
            status_code = 500
        super().__init__(status_code, message)


# =============================================================================
# HANDLERS
# =============================================================================

def _format_location(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content: dict[str, Any] = {"error": exc.detail}
    content.update(getattr(exc, "extra", {}) or {})
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": _format_location(err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.info(f"Validation failed on {request.method} {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": details},
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Database error"})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    settings = get_settings()
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) if settings.debug else "Internal server error",
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
