"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, admin auth, error
handlers, routers, and the health endpoints. The module-level ``app``
instance allows ``uvicorn legacy_letters.api.app:app --reload``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from legacy_letters import __version__
from legacy_letters.api import websocket
from legacy_letters.api.middleware.admin_auth import AdminAuthMiddleware
from legacy_letters.api.middleware.error_handler import register_error_handlers
from legacy_letters.api.routes import admin, questionnaire, sections, timer
from legacy_letters.core.config import get_settings
from legacy_letters.core.models import HealthResponse
from legacy_letters.services.questionnaire import registry
from legacy_letters.services.storage.database import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Startup: apply the log level and create tables if needed.
    Shutdown: flush every live questionnaire (pending answers and timers),
    then dispose the DB engine.
    """
    settings = get_settings()
    logging.getLogger("legacy_letters").setLevel(settings.log_level.upper())
    await init_db()
    logger.info("Legacy Letters %s started", __version__)
    yield
    await registry.cleanup()
    await close_db()


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application."""

    app = FastAPI(
        title="Legacy Letters",
        description="Guided legacy-letter questionnaire with on-device dictation.",
        version=__version__,
        lifespan=lifespan,
    )

    # -- CORS --
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Admin Auth Middleware --
    app.add_middleware(AdminAuthMiddleware)

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level and versioned) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(version=__version__, timestamp=datetime.now(UTC))

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["system"])
    async def health_v1() -> HealthResponse:
        return HealthResponse(version=__version__, timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(sections.router, prefix="/api/v1")
    app.include_router(questionnaire.router, prefix="/api/v1")
    app.include_router(timer.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    # -- WebSocket --
    app.include_router(websocket.router)

    return app


app = create_app()
