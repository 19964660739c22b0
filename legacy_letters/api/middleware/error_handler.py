"""
Error envelope for the Legacy Letters API.

Every failure leaves the API as ``{"detail", "code", "timestamp"}`` (plus
``login_url`` when the caller must sign in), whether it started as a
domain error, a framework HTTP error, a request validation error or an
unhandled exception.
"""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from legacy_letters.core.exceptions import LegacyLettersError, UnauthenticatedError

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _envelope(status_code: int, detail: str, code: str, **extra: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "code": code,
            "timestamp": datetime.now(UTC).isoformat(),
            **extra,
        },
    )


def _describe_validation(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into ``body.value: Field required; ...``."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""

    @app.exception_handler(LegacyLettersError)
    async def legacy_letters_error_handler(_request: Request, exc: LegacyLettersError) -> JSONResponse:
        extra = {}
        # The client hands off to the identity provider from here
        if isinstance(exc, UnauthenticatedError):
            extra["login_url"] = exc.login_url
        response = _envelope(exc.status_code, exc.detail, exc.code, **extra)
        if exc.status_code >= 500:
            logger.warning("%s: %s", exc.code, exc.detail)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        return _envelope(exc.status_code, str(exc.detail), code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _envelope(422, _describe_validation(exc), "VALIDATION_ERROR")

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all: log the traceback, never leak it to the client."""
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _envelope(500, "Internal server error", "INTERNAL_ERROR")
