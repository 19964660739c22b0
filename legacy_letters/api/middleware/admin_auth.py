"""
Admin authentication middleware.

Validates ``Authorization: Bearer <key>`` headers on ``/api/v1/admin/``
routes against ``settings.admin_api_key``. When no key is configured the
admin routes are closed entirely.
"""

from datetime import UTC, datetime

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from legacy_letters.core.config import get_settings


def _reject(status_code: int, detail: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "code": code,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )


class AdminAuthMiddleware(BaseHTTPMiddleware):
    """Enforce Bearer token auth on admin routes."""

    _ADMIN_PREFIX = "/api/v1/admin/"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not path.startswith(self._ADMIN_PREFIX) and path != self._ADMIN_PREFIX.rstrip("/"):
            return await call_next(request)

        settings = get_settings()
        if not settings.admin_api_key:
            return _reject(403, "Admin access is disabled", "ADMIN_DISABLED")

        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            return _reject(401, "Invalid admin key", "ADMIN_AUTH_REQUIRED")

        token = auth_header[len("Bearer ") :]
        if token != settings.admin_api_key:
            return _reject(401, "Invalid admin key", "ADMIN_AUTH_REQUIRED")

        return await call_next(request)
